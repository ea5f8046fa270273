"""Shared test fixtures for mysql-replica-checker tests"""

import pytest

from mysql_replica_checker.config import SchemaSettings, Settings, WorkloadSettings
from tests.fakes import FakeMySQLApi


@pytest.fixture
def fake_source():
    return FakeMySQLApi(database='source_db')


@pytest.fixture
def fake_target():
    return FakeMySQLApi(database='target_db')


@pytest.fixture
def workload_settings():
    return WorkloadSettings(
        nr_tables=3,
        nr_seed_rows=1000,
        delete_ratio=0.2,
        insert_ratio=0.3,
        concurrency=4,
        transaction_length=5,
        duration=0.2,
        random_seed=7,
    )


@pytest.fixture
def settings(workload_settings):
    cfg = Settings()
    cfg.source = SchemaSettings(database='source_db')
    cfg.target = SchemaSettings(database='target_db')
    cfg.workload = workload_settings
    cfg.checksum_interval = 0
    return cfg
