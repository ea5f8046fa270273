from dataclasses import dataclass
from logging import getLogger

from .mysql_api import MySQLApi
from .table_generator import MysqlTableDataGenerator, TableDataGenerator


logger = getLogger(__name__)


TABLE_NAME_TEMPLATE = 'test_{idx}'


def table_names(nr_tables: int) -> list[str]:
    return [TABLE_NAME_TEMPLATE.format(idx=i) for i in range(nr_tables)]


@dataclass(frozen=True)
class TableHandle:
    name: str
    generator: TableDataGenerator


class TableRegistry:
    """Ordered set of managed tables. Read-only once built."""

    def __init__(self, handles: list[TableHandle]):
        names = [h.name for h in handles]
        if len(set(names)) != len(names):
            raise ValueError(f'duplicate table names: {names}')
        self._handles = tuple(handles)

    def __len__(self):
        return len(self._handles)

    def __getitem__(self, idx) -> TableHandle:
        return self._handles[idx]

    def __iter__(self):
        return iter(self._handles)

    @property
    def names(self) -> list[str]:
        return [h.name for h in self._handles]

    @classmethod
    def setup_test_tables(cls, source_api: MySQLApi, target_api: MySQLApi, nr_tables: int) -> 'TableRegistry':
        """Create ``nr_tables`` identical tables in both schemas."""
        handles = []
        for table_name in table_names(nr_tables):
            generator = MysqlTableDataGenerator(source_api.database, table_name)
            for api in (source_api, target_api):
                logger.debug(f'creating table {api.database}.{table_name}')
                api.execute(generator.create_statement(api.database))
            handles.append(TableHandle(table_name, generator))
        logger.info(
            f'{nr_tables} tables ready in {source_api.database} and {target_api.database}'
        )
        return cls(handles)
