"""Randomized statement generators for the managed test tables.

A generator turns a random source into executable ``(statement, args)``
pairs for one table: a bulk insert used while seeding and a single random
mutation (delete, insert or update) used by the transaction workers.
"""

import datetime
import string
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from random import Random

from .table_structure import TableField, TableStructure


def standard_table_structure(table_name: str) -> TableStructure:
    """Wide table covering the numeric, temporal, binary and text types."""
    return TableStructure(
        table_name=table_name,
        primary_keys=['id'],
        fields=[
            TableField('id', 'BIGINT UNSIGNED', 'NOT NULL'),
            TableField('i', 'INT', 'DEFAULT 0'),
            TableField('ui', 'INT UNSIGNED'),
            TableField('de', 'DECIMAL(11, 3)'),
            TableField('fl', 'FLOAT(11, 3)', 'NOT NULL'),
            TableField('do', 'DOUBLE(25, 3)'),
            TableField('dt', 'DATETIME(6)', 'NOT NULL DEFAULT CURRENT_TIMESTAMP(6)'),
            TableField(
                'ts', 'TIMESTAMP(6)',
                'NULL DEFAULT CURRENT_TIMESTAMP(6) ON UPDATE CURRENT_TIMESTAMP(6)',
            ),
            TableField('tbl', 'TINYBLOB'),
            TableField('tte', 'TINYTEXT CHARACTER SET utf8mb4'),
            TableField('ch', 'CHAR(5) CHARACTER SET utf8mb4'),
            TableField('va', 'VARCHAR(31) CHARACTER SET utf8mb4'),
            TableField('lva', 'VARCHAR(5000) CHARACTER SET utf8mb4'),
        ],
    )


class TableDataGenerator(ABC):
    """Produces executable statements for one table."""

    table_name: str

    @abstractmethod
    def init_data(self, num: int, rnd: Random) -> tuple[str, list]:
        """Statement inserting ``num`` new rows in one go."""

    @abstractmethod
    def random_statement(self, delete_ratio: float, insert_ratio: float, rnd: Random) -> tuple[str, list]:
        """One random delete, insert or update statement."""


def random_string(rnd: Random, max_len: int) -> str:
    return ''.join(rnd.choices(string.ascii_letters + string.digits, k=rnd.randint(0, max_len)))


def random_datetime(rnd: Random, start_year: int, end_year: int) -> datetime.datetime:
    start = datetime.datetime(start_year, 1, 1)
    span = datetime.datetime(end_year, 1, 1) - start
    return start + datetime.timedelta(
        seconds=rnd.randint(0, int(span.total_seconds()) - 1),
        microseconds=rnd.randint(0, 999999),
    )


def nullable(generate, null_ratio=0.1):
    def wrapper(rnd: Random):
        if rnd.random() < null_ratio:
            return None
        return generate(rnd)
    return wrapper


# TIMESTAMP only covers 1970-2038, DATETIME gets a narrower range for symmetry
VALUE_GENERATORS = {
    'i': lambda rnd: rnd.randint(-2 ** 31, 2 ** 31 - 1),
    'ui': nullable(lambda rnd: rnd.randint(0, 2 ** 32 - 1)),
    'de': nullable(lambda rnd: Decimal(f'{rnd.uniform(-99999999, 99999999):.3f}')),
    'fl': lambda rnd: round(rnd.uniform(-9999, 9999), 3),
    'do': nullable(lambda rnd: round(rnd.uniform(-10 ** 9, 10 ** 9), 3)),
    'dt': lambda rnd: random_datetime(rnd, 2000, 2030),
    'ts': lambda rnd: random_datetime(rnd, 2001, 2037),
    'tbl': nullable(lambda rnd: rnd.randbytes(rnd.randint(0, 255))),
    'tte': nullable(lambda rnd: random_string(rnd, 255)),
    'ch': nullable(lambda rnd: random_string(rnd, 5)),
    'va': nullable(lambda rnd: random_string(rnd, 31)),
    'lva': nullable(lambda rnd: random_string(rnd, 5000)),
}


class MysqlTableDataGenerator(TableDataGenerator):
    """Generator for tables shaped like ``standard_table_structure``.

    Row ids are handed out by a monotonically increasing allocator shared by
    every worker, so concurrent bulk inserts never collide on the primary
    key. Deletes and updates target a random id that was allocated before;
    the row may already be gone, in which case the statement matches nothing.
    """

    def __init__(self, db_name: str, table_name: str, structure: TableStructure = None):
        self.db_name = db_name
        self.table_name = table_name
        self.structure = structure or standard_table_structure(table_name)
        self.columns = self.structure.field_names()
        self.key = self.structure.primary_keys[0]
        self.value_columns = [f.name for f in self.structure.non_key_fields()]
        self._next_id = 1
        self._lock = threading.Lock()

    @property
    def full_name(self):
        return f'`{self.db_name}`.`{self.table_name}`'

    def create_statement(self, db_name=None):
        return self.structure.create_statement(db_name or self.db_name)

    def allocate_ids(self, num: int) -> range:
        with self._lock:
            first = self._next_id
            self._next_id += num
        return range(first, first + num)

    def max_allocated_id(self) -> int:
        with self._lock:
            return self._next_id - 1

    def random_row(self, row_id: int, rnd: Random) -> list:
        return [row_id] + [VALUE_GENERATORS[name](rnd) for name in self.value_columns]

    def insert_statement(self, num_rows: int) -> str:
        columns = ', '.join(f'`{c}`' for c in self.columns)
        placeholders = '(' + ', '.join(['%s'] * len(self.columns)) + ')'
        values = ', '.join([placeholders] * num_rows)
        return f'INSERT INTO {self.full_name} ({columns}) VALUES {values}'

    def init_data(self, num, rnd):
        args = []
        for row_id in self.allocate_ids(num):
            args.extend(self.random_row(row_id, rnd))
        return self.insert_statement(num), args

    def random_statement(self, delete_ratio, insert_ratio, rnd):
        max_id = self.max_allocated_id()
        p = rnd.random()
        if max_id == 0 or delete_ratio <= p < delete_ratio + insert_ratio:
            return self.init_data(1, rnd)

        row_id = rnd.randint(1, max_id)
        if p < delete_ratio:
            return f'DELETE FROM {self.full_name} WHERE `{self.key}` = %s', [row_id]

        columns = rnd.sample(self.value_columns, rnd.randint(1, len(self.value_columns)))
        assignments = ', '.join(f'`{c}` = %s' for c in columns)
        args = [VALUE_GENERATORS[c](rnd) for c in columns]
        args.append(row_id)
        return f'UPDATE {self.full_name} SET {assignments} WHERE `{self.key}` = %s', args
