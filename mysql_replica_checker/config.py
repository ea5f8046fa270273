"""
MySQL Replica Checker Configuration Management

This module provides configuration classes and utilities for the workload that
validates a replicated pair of MySQL schemas: connection settings for both
sides, workload shape, checksum verification behavior and change event filters.

Classes:
    MysqlSettings: MySQL connection configuration with connection pooling
    SchemaSettings: MySQL connection plus the schema (database) to work on
    WorkloadSettings: Shape of the seeding and mutation workload
    Settings: Main configuration class that orchestrates all settings

Key Features:
    - YAML-based configuration loading
    - Connection pool management for MySQL
    - Schema/table pattern matching for filters
    - Type validation and error handling
"""

import fnmatch
from dataclasses import dataclass

import yaml

from .errors import ConfigurationError


# mysql-connector refuses pools larger than this
MAX_POOL_SIZE = 32


def stype(obj):
    """Get the simple type name of an object.

    Args:
        obj: Any object to get type name for

    Returns:
        str: Simple class name of the object's type

    Example:
        >>> stype([1, 2, 3])
        'list'
        >>> stype("hello")
        'str'
    """
    return type(obj).__name__


def is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class MysqlSettings:
    """MySQL database connection configuration with connection pool support.

    Attributes:
        host: MySQL server hostname or IP address
        port: MySQL server port (default: 3306)
        user: MySQL username for authentication
        password: MySQL password for authentication
        pool_size: Base number of connections in pool (default: 5)
        max_overflow: Maximum additional connections beyond pool_size (default: 10)
        pool_name: Identifier for connection pool (default: "default")
        charset: Character set for connection (optional)
        collation: Collation for connection (optional)
    """
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    pool_size: int = 5
    max_overflow: int = 10
    pool_name: str = "default"
    charset: str = None
    collation: str = None

    def validate(self, prefix="mysql"):
        if not isinstance(self.host, str):
            raise ConfigurationError(f"{prefix} host should be string and not {stype(self.host)}")

        if not isinstance(self.port, int):
            raise ConfigurationError(f"{prefix} port should be int and not {stype(self.port)}")

        if not isinstance(self.user, str):
            raise ConfigurationError(f"{prefix} user should be string and not {stype(self.user)}")

        if not isinstance(self.password, str):
            raise ConfigurationError(
                f"{prefix} password should be string and not {stype(self.password)}"
            )

        if not isinstance(self.pool_size, int) or self.pool_size < 1:
            raise ConfigurationError(
                f"{prefix} pool_size should be positive integer and not {stype(self.pool_size)}"
            )

        if not isinstance(self.max_overflow, int) or self.max_overflow < 0:
            raise ConfigurationError(
                f"{prefix} max_overflow should be non-negative integer and not {stype(self.max_overflow)}"
            )

        if not isinstance(self.pool_name, str):
            raise ConfigurationError(
                f"{prefix} pool_name should be string and not {stype(self.pool_name)}"
            )

        if self.charset is not None and not isinstance(self.charset, str):
            raise ConfigurationError(
                f"{prefix} charset should be string or None and not {stype(self.charset)}"
            )

        if self.collation is not None and not isinstance(self.collation, str):
            raise ConfigurationError(
                f"{prefix} collation should be string or None and not {stype(self.collation)}"
            )

    def get_connection_config(self, database=None, autocommit=True):
        """Build standardized MySQL connection configuration"""
        config = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "autocommit": autocommit,
            # generated TIMESTAMP values must not fall into DST gaps
            "time_zone": "+00:00",
        }

        if database is not None:
            config["database"] = database

        if self.charset is not None:
            config["charset"] = self.charset

        if self.collation is not None:
            config["collation"] = self.collation

        return config


@dataclass
class SchemaSettings(MysqlSettings):
    database: str = ""

    def validate(self, prefix="mysql"):
        super().validate(prefix)
        if not isinstance(self.database, str) or not self.database:
            raise ConfigurationError(
                f"{prefix} database should be non-empty string and not {stype(self.database)}"
            )


@dataclass
class WorkloadSettings:
    nr_tables: int = 10
    nr_seed_rows: int = 1000
    delete_ratio: float = 0.1
    insert_ratio: float = 0.3
    concurrency: int = 8
    # 0 means "use the default transaction length"
    transaction_length: int = 0
    # seconds of mutation workload, 0 runs until signalled
    duration: float = 60
    random_seed: int = None

    def validate(self):
        if not isinstance(self.nr_tables, int) or self.nr_tables < 1:
            raise ConfigurationError(
                f"workload nr_tables should be positive integer and not {self.nr_tables!r}"
            )

        if not isinstance(self.nr_seed_rows, int) or self.nr_seed_rows < 0:
            raise ConfigurationError(
                f"workload nr_seed_rows should be non-negative integer and not {self.nr_seed_rows!r}"
            )

        for name in ('delete_ratio', 'insert_ratio'):
            value = getattr(self, name)
            if not is_number(value):
                raise ConfigurationError(f"workload {name} should be number and not {stype(value)}")
            if not 0 <= value <= 1:
                raise ConfigurationError(f"workload {name} should be in [0, 1], got {value}")

        if not isinstance(self.concurrency, int) or self.concurrency < 1:
            raise ConfigurationError(
                f"workload concurrency should be positive integer and not {self.concurrency!r}"
            )

        if not isinstance(self.transaction_length, int) or self.transaction_length < 0:
            raise ConfigurationError(
                f"workload transaction_length should be non-negative integer and not {self.transaction_length!r}"
            )

        if not is_number(self.duration) or self.duration < 0:
            raise ConfigurationError(
                f"workload duration should be non-negative number and not {self.duration!r}"
            )

        if self.random_seed is not None and not isinstance(self.random_seed, int):
            raise ConfigurationError(
                f"workload random_seed should be int or None and not {stype(self.random_seed)}"
            )


class Settings:
    DEFAULT_LOG_LEVEL = "info"
    DEFAULT_CHECKSUM_ATTEMPTS = 5
    DEFAULT_CHECKSUM_INTERVAL = 1

    def __init__(self):
        self.source = SchemaSettings()
        self.target = SchemaSettings()
        self.workload = WorkloadSettings()
        self.settings_file = ""
        self.log_level = "info"
        self.debug_log_level = False
        self.checksum_attempts = Settings.DEFAULT_CHECKSUM_ATTEMPTS
        self.checksum_interval = Settings.DEFAULT_CHECKSUM_INTERVAL
        self.abort_on_worker_failure = True
        self.http_host = ""
        self.http_port = 0
        self.filters: list[dict] = []

    def load(self, settings_file):
        with open(settings_file, "r") as f:
            data = yaml.safe_load(f.read())

        self.settings_file = settings_file
        self.source = SchemaSettings(**data.pop("source"))
        self.target = SchemaSettings(**data.pop("target"))
        self.workload = WorkloadSettings(**data.pop("workload", {}))
        self.log_level = data.pop("log_level", Settings.DEFAULT_LOG_LEVEL)
        self.checksum_attempts = data.pop(
            "checksum_attempts", Settings.DEFAULT_CHECKSUM_ATTEMPTS
        )
        self.checksum_interval = data.pop(
            "checksum_interval", Settings.DEFAULT_CHECKSUM_INTERVAL
        )
        self.abort_on_worker_failure = data.pop("abort_on_worker_failure", True)
        self.http_host = data.pop("http_host", "")
        self.http_port = data.pop("http_port", 0)
        self.filters = data.pop("filters", [])

        if data:
            raise ConfigurationError(f"Unsupported config options: {list(data.keys())}")
        self.validate()

    @classmethod
    def is_pattern_matches(cls, substr, pattern):
        if not pattern or pattern == "*":
            return True
        if isinstance(pattern, str):
            return fnmatch.fnmatch(substr, pattern)
        if isinstance(pattern, list):
            for allowed_pattern in pattern:
                if fnmatch.fnmatch(substr, allowed_pattern):
                    return True
            return False
        raise ConfigurationError(f"pattern should be string or list and not {stype(pattern)}")

    def validate_log_level(self):
        if self.log_level not in ["critical", "error", "warning", "info", "debug"]:
            raise ConfigurationError(f"wrong log level {self.log_level}")
        if self.log_level == "debug":
            self.debug_log_level = True

    def validate_checksum(self):
        if not isinstance(self.checksum_attempts, int) or self.checksum_attempts < 1:
            raise ConfigurationError(
                f"checksum_attempts should be positive integer and not {self.checksum_attempts!r}"
            )
        if not is_number(self.checksum_interval) or self.checksum_interval < 0:
            raise ConfigurationError(
                f"checksum_interval should be non-negative number and not {self.checksum_interval!r}"
            )

    def validate_pool_size(self):
        # every worker holds one source connection for a whole transaction
        pool_size = min(self.source.pool_size + self.source.max_overflow, MAX_POOL_SIZE)
        if self.workload.concurrency > pool_size:
            raise ConfigurationError(
                f"workload concurrency {self.workload.concurrency} exceeds source connection pool size {pool_size}"
            )

    def validate_filters(self):
        from .filters import create_filters

        if not isinstance(self.filters, list):
            raise ConfigurationError(f"filters should be list and not {stype(self.filters)}")
        # building the filters runs every filter's own configuration checks
        create_filters(self.filters)

    def validate(self):
        self.source.validate("source")
        self.target.validate("target")
        self.workload.validate()
        self.validate_log_level()
        self.validate_checksum()
        self.validate_pool_size()
        if not isinstance(self.abort_on_worker_failure, bool):
            raise ConfigurationError(
                f"abort_on_worker_failure should be bool and not {stype(self.abort_on_worker_failure)}"
            )
        if not isinstance(self.http_host, str):
            raise ConfigurationError(f"http_host should be string and not {stype(self.http_host)}")
        if not isinstance(self.http_port, int):
            raise ConfigurationError(f"http_port should be int and not {stype(self.http_port)}")
        self.validate_filters()
