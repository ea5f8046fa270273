"""In-memory fakes standing in for the MySQL boundary"""

import threading
from collections import defaultdict
from contextlib import contextmanager

from mysql.connector import errors as mysql_errors

from mysql_replica_checker.errors import ChecksumUnavailableError
from mysql_replica_checker.table_registry import TableHandle, TableRegistry


def deadlock_error():
    return mysql_errors.DatabaseError(
        msg='Deadlock found when trying to get lock; try restarting transaction', errno=1213,
    )


class FakeCursor:
    def __init__(self, api):
        self.api = api
        self.statements = []

    def execute(self, stmt, args=None):
        with self.api.lock:
            if self.api.txn_errors:
                raise self.api.txn_errors.pop(0)
            if self.api.always_fail:
                raise deadlock_error()
        self.statements.append((stmt, args))


class FakeMySQLApi:
    """In-memory stand-in for MySQLApi recording everything it is asked to run.

    ``execute_errors`` / ``txn_errors`` / ``commit_errors`` are consumed one
    per call, ``checksums`` maps a table to the values returned by successive
    checksum calls (the last value repeats, None stands for a missing table).
    """

    def __init__(self, database='source', execute_errors=None, txn_errors=None, commit_errors=None,
                 checksums=None, always_fail=False):
        self.database = database
        self.lock = threading.Lock()
        self.executed = []
        self.committed = []
        self.rollbacks = 0
        self.execute_errors = list(execute_errors or [])
        self.txn_errors = list(txn_errors or [])
        self.commit_errors = list(commit_errors or [])
        self.always_fail = always_fail
        self.checksums = checksums or {}
        self.checksum_calls = defaultdict(int)
        self.databases_created = []

    def execute(self, command, commit=False, args=None):
        with self.lock:
            if self.execute_errors:
                raise self.execute_errors.pop(0)
            self.executed.append((command, args))

    @contextmanager
    def transaction(self):
        cursor = FakeCursor(self)
        try:
            yield cursor
            with self.lock:
                if self.commit_errors:
                    raise self.commit_errors.pop(0)
                self.committed.append(cursor.statements)
        except BaseException:
            with self.lock:
                self.rollbacks += 1
            raise

    def create_database(self, database=None):
        self.databases_created.append(database or self.database)

    def table_checksum(self, table_name):
        with self.lock:
            values = self.checksums.get(table_name, [12345])
            idx = self.checksum_calls[table_name]
            self.checksum_calls[table_name] += 1
        checksum = values[min(idx, len(values) - 1)]
        if checksum is None:
            raise ChecksumUnavailableError(self.database, table_name)
        return checksum


class CountingGenerator:
    """Table generator stub: statements name the table, bulk inserts count rows."""

    def __init__(self, table_name):
        self.table_name = table_name
        self.rows = 0
        self.batches = []
        self.lock = threading.Lock()

    def init_data(self, num, rnd):
        with self.lock:
            self.rows += num
            self.batches.append(num)
        return f'INSERT {self.table_name}', [num]

    def random_statement(self, delete_ratio, insert_ratio, rnd):
        return f'MUTATE {self.table_name}', [rnd.random()]


def make_registry(nr_tables, generator_cls=CountingGenerator):
    return TableRegistry([
        TableHandle(f'test_{i}', generator_cls(f'test_{i}')) for i in range(nr_tables)
    ])
