from random import Random

import pytest

from mysql_replica_checker.errors import SeedError
from mysql_replica_checker.seeder import SEED_BATCH, SeedCoordinator, build_seed_tasks
from mysql_replica_checker.table_generator import MysqlTableDataGenerator
from mysql_replica_checker.table_registry import TableHandle, TableRegistry
from tests.fakes import FakeMySQLApi, deadlock_error, make_registry


def random_sources(count):
    return [Random(i) for i in range(count)]


@pytest.mark.unit
@pytest.mark.parametrize("nr_tables,nr_seed_rows,expected_batches", [
    (2, 1000, [500, 500]),
    (1, 1234, [500, 500, 234]),
    (3, 499, [499]),
    (1, 500, [500]),
    (2, 0, []),
])
def test_build_seed_tasks(nr_tables, nr_seed_rows, expected_batches):
    registry = make_registry(nr_tables)
    tasks = build_seed_tasks(registry, nr_seed_rows)

    assert len(tasks) == nr_tables * len(expected_batches)
    for handle in registry:
        assert [t.num for t in tasks if t.table is handle] == expected_batches
    assert all(t.num <= SEED_BATCH for t in tasks)


@pytest.mark.unit
def test_seed_two_tables_with_four_workers():
    api = FakeMySQLApi()
    registry = make_registry(2)

    executed = SeedCoordinator(api, registry, random_sources(4), 1000).seed_rows()

    assert executed == 4
    assert len(api.executed) == 4
    for handle in registry:
        assert handle.generator.rows == 1000
        assert handle.generator.batches == [500, 500]


@pytest.mark.unit
@pytest.mark.parametrize("nr_seed_rows", [1, 499, 501, 2750])
def test_seed_exact_row_count(nr_seed_rows):
    api = FakeMySQLApi()
    registry = make_registry(3)

    SeedCoordinator(api, registry, random_sources(2), nr_seed_rows).seed_rows()

    for handle in registry:
        assert handle.generator.rows == nr_seed_rows
        assert max(handle.generator.batches) <= SEED_BATCH
    assert sum(args[0] for _, args in api.executed) == 3 * nr_seed_rows


@pytest.mark.unit
def test_zero_seed_rows_does_nothing():
    api = FakeMySQLApi()
    registry = make_registry(2)

    assert SeedCoordinator(api, registry, random_sources(4), 0).seed_rows() == 0
    assert api.executed == []
    assert all(h.generator.rows == 0 for h in registry)


@pytest.mark.unit
def test_seed_with_real_generator_inserts_distinct_ids():
    api = FakeMySQLApi()
    registry = TableRegistry([TableHandle('test_0', MysqlTableDataGenerator('source_db', 'test_0'))])
    columns = len(registry[0].generator.columns)

    SeedCoordinator(api, registry, random_sources(3), 1200).seed_rows()

    ids = []
    for stmt, args in api.executed:
        assert stmt.startswith('INSERT INTO `source_db`.`test_0`')
        ids.extend(args[::columns])
    assert sorted(ids) == list(range(1, 1201))


@pytest.mark.unit
def test_seed_failure_is_fatal():
    api = FakeMySQLApi(execute_errors=[deadlock_error()])
    registry = make_registry(2)

    with pytest.raises(SeedError) as exc_info:
        SeedCoordinator(api, registry, random_sources(1), 2000).seed_rows()

    assert exc_info.value.table_name == 'test_0'
    assert isinstance(exc_info.value.__cause__, Exception)
    # a single worker stops draining after the failure
    assert api.executed == []
