from contextlib import contextmanager
from logging import getLogger

from .config import MysqlSettings
from .connection_pool import PooledConnection, get_pool_manager
from .errors import ChecksumUnavailableError

logger = getLogger(__name__)


class MySQLApi:
    def __init__(self, database: str, mysql_settings: MysqlSettings):
        self.database = database
        self.mysql_settings = mysql_settings
        self.pool_manager = get_pool_manager()
        self.connection_pool = self.pool_manager.get_or_create_pool(mysql_settings)
        logger.info(
            f"MySQLApi initialized with database '{database}' using connection pool '{mysql_settings.pool_name}'"
        )

    @contextmanager
    def get_connection(self):
        """Get a connection from the pool with automatic cleanup"""
        with PooledConnection(self.connection_pool) as (connection, cursor):
            yield connection, cursor

    def execute(self, command, commit=False, args=None):
        with self.get_connection() as (connection, cursor):
            if args:
                cursor.execute(command, args)
            else:
                cursor.execute(command)
            if commit:
                connection.commit()

    @contextmanager
    def transaction(self):
        """Run statements inside one transaction.

        Yields a cursor. The transaction is committed when the block exits
        normally and rolled back when the block or the commit itself raises.
        """
        with self.get_connection() as (connection, cursor):
            connection.start_transaction()
            try:
                yield cursor
                connection.commit()
            except BaseException:
                connection.rollback()
                raise

    def query_row(self, query, args=None):
        with self.get_connection() as (connection, cursor):
            cursor.execute(query, args)
            return cursor.fetchone()

    def create_database(self, database=None):
        database = database or self.database
        self.execute(f"CREATE DATABASE IF NOT EXISTS `{database}`")

    def drop_database(self, database=None):
        database = database or self.database
        self.execute(f"DROP DATABASE IF EXISTS `{database}`")

    def table_checksum(self, table_name):
        row = self.query_row(f"CHECKSUM TABLE `{self.database}`.`{table_name}`")
        # MySQL answers (name, NULL) for a missing table
        if row is None or row[1] is None:
            raise ChecksumUnavailableError(self.database, table_name)
        return row[1]
