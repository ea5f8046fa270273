"""Shared mysql-connector pools for the source and target schemas.

Seed workers and transaction workers borrow one connection each from the pool
of their schema. mysql-connector does not queue callers when a pool is empty,
``PooledConnection`` waits for a connection to be returned instead.
"""

import hashlib
import threading
import time
from logging import getLogger

from mysql.connector import Error as MySQLError
from mysql.connector.errors import PoolError
from mysql.connector.pooling import MySQLConnectionPool

from .config import MAX_POOL_SIZE, MysqlSettings

logger = getLogger(__name__)


def pool_key(mysql_settings: MysqlSettings) -> str:
    return f"{mysql_settings.host}:{mysql_settings.port}:{mysql_settings.user}:{mysql_settings.pool_name}"


def short_pool_name(key: str, user: str) -> str:
    # mysql-connector rejects pool names longer than 64 characters
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:8]
    return f"pool_{user[:16]}_{digest}"


def effective_pool_size(mysql_settings: MysqlSettings) -> int:
    return min(mysql_settings.pool_size + mysql_settings.max_overflow, MAX_POOL_SIZE)


class ConnectionPoolManager:
    """Process wide registry of pools, one per server, user and pool name.

    The source and target schemas usually live on the same server, with
    different pool names they still get separate pools.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._pools = {}
        return cls._instance

    def get_or_create_pool(self, mysql_settings: MysqlSettings) -> MySQLConnectionPool:
        key = pool_key(mysql_settings)
        pool = self._pools.get(key)
        if pool is not None:
            return pool

        with self._lock:
            if key in self._pools:
                return self._pools[key]
            size = effective_pool_size(mysql_settings)
            name = short_pool_name(key, mysql_settings.user)
            try:
                pool = MySQLConnectionPool(
                    pool_name=name,
                    pool_size=size,
                    pool_reset_session=True,
                    **mysql_settings.get_connection_config(autocommit=True),
                )
            except MySQLError as e:
                logger.error(f"Failed to create connection pool '{key}': {e}")
                raise
            logger.info(f"Created MySQL connection pool '{name}' (key: '{key}') with {size} connections")
            self._pools[key] = pool
            return pool


class PooledConnection:
    """Borrow a connection and a cursor, give both back on exit.

    A connection left inside a transaction by a failing block is rolled back
    before it returns to the pool.
    """

    GET_CONNECTION_ATTEMPTS = 50
    GET_CONNECTION_INTERVAL = 0.1

    def __init__(self, pool: MySQLConnectionPool):
        self.pool = pool
        self.connection = None
        self.cursor = None

    def acquire(self):
        for attempt in range(1, self.GET_CONNECTION_ATTEMPTS + 1):
            try:
                return self.pool.get_connection()
            except PoolError:
                if attempt == self.GET_CONNECTION_ATTEMPTS:
                    logger.error(f"No free connection in pool {self.pool.pool_name} after {attempt} attempts")
                    raise
                time.sleep(self.GET_CONNECTION_INTERVAL)

    def __enter__(self):
        self.connection = self.acquire()
        self.cursor = self.connection.cursor()
        return self.connection, self.cursor

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            self.cursor.close()
            if exc_type is not None and self.connection.in_transaction:
                logger.debug(f"rolling back pooled connection after error: {exc_val}")
                self.connection.rollback()
        finally:
            self.connection.close()


def get_pool_manager() -> ConnectionPoolManager:
    return ConnectionPoolManager()
