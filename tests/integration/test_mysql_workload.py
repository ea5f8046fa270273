"""Workload tests against a real MySQL server.

They need MySQL listening on localhost:9306 (root / admin) and only run with
``--run-optional``. The change propagation pipeline is simulated by copying
the source tables into the target schema.
"""

import uuid

import pytest

from mysql_replica_checker.checksum import ConsistencyVerifier
from mysql_replica_checker.config import SchemaSettings, Settings, WorkloadSettings
from mysql_replica_checker.errors import ChecksumMismatchError, ChecksumUnavailableError
from mysql_replica_checker.mysql_api import MySQLApi
from mysql_replica_checker.runner import Runner


def make_settings():
    suffix = uuid.uuid4().hex[:8]
    settings = Settings()
    connection = dict(host='localhost', port=9306, user='root', password='admin', pool_name='it_pool')
    settings.source = SchemaSettings(database=f'replica_src_{suffix}', **connection)
    settings.target = SchemaSettings(database=f'replica_dst_{suffix}', **connection)
    settings.workload = WorkloadSettings(
        nr_tables=2,
        nr_seed_rows=1000,
        delete_ratio=0.2,
        insert_ratio=0.3,
        concurrency=4,
        transaction_length=6,
        duration=1,
        random_seed=3,
    )
    settings.checksum_attempts = 2
    settings.checksum_interval = 0
    settings.validate()
    return settings


def copy_tables(source_api: MySQLApi, target_api: MySQLApi, tables):
    for table in tables:
        target_api.execute(f'TRUNCATE TABLE `{target_api.database}`.`{table}`')
        target_api.execute(
            f'INSERT INTO `{target_api.database}`.`{table}` '
            f'SELECT * FROM `{source_api.database}`.`{table}`'
        )


def count_rows(api: MySQLApi, table):
    (count,) = api.query_row(f'SELECT COUNT(*) FROM `{api.database}`.`{table}`')
    return count


@pytest.fixture
def runner():
    settings = make_settings()
    runner = Runner(settings)
    runner.setup()
    yield runner
    runner.source_api.drop_database()
    runner.target_api.drop_database()


@pytest.mark.optional
@pytest.mark.integration
def test_seed_rows(runner):
    assert runner.seed() == 4

    for table in runner.registry.names:
        assert count_rows(runner.source_api, table) == 1000
        assert count_rows(runner.target_api, table) == 0


@pytest.mark.optional
@pytest.mark.integration
def test_checksum_detects_divergence(runner):
    runner.seed()
    verifier = ConsistencyVerifier(runner.source_api, runner.target_api, attempts=2, interval=0)

    with pytest.raises(ChecksumMismatchError) as exc_info:
        verifier.verify(runner.registry.names)
    assert exc_info.value.table_name == 'test_0'

    copy_tables(runner.source_api, runner.target_api, runner.registry.names)
    verifier.verify(runner.registry.names)


@pytest.mark.optional
@pytest.mark.integration
def test_workload_then_verify(runner):
    runner.seed()
    results = runner.run_workload()

    assert all(r.ok for r in results)
    assert sum(r.stats.transactions for r in results) > 0

    copy_tables(runner.source_api, runner.target_api, runner.registry.names)
    runner.verify()


@pytest.mark.optional
@pytest.mark.integration
def test_missing_table_fails_verification(runner):
    verifier = ConsistencyVerifier(runner.source_api, runner.target_api, attempts=2, interval=0)

    with pytest.raises(ChecksumUnavailableError):
        verifier.verify(['no_such_table'])
