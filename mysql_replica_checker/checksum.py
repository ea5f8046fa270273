import time
from logging import getLogger

from .errors import ChecksumMismatchError, ChecksumUnavailableError
from .mysql_api import MySQLApi


logger = getLogger(__name__)


class ConsistencyVerifier:
    """Compares table checksums between the source and target schema.

    Changes reach the target asynchronously, so a mismatch is only reported
    after the checksums stayed different for ``attempts`` tries spaced
    ``interval`` seconds apart.
    """

    ATTEMPTS = 5
    INTERVAL = 1

    def __init__(self, source_api: MySQLApi, target_api: MySQLApi, attempts: int = ATTEMPTS, interval: float = INTERVAL):
        self.source_api = source_api
        self.target_api = target_api
        self.attempts = attempts
        self.interval = interval

    def verify(self, table_names: list[str]):
        for table_name in table_names:
            self.verify_table(table_name)
        logger.info(f'checksums equal for {len(table_names)} tables')

    def verify_table(self, table_name):
        source_checksum = target_checksum = None
        for attempt in range(1, self.attempts + 1):
            source_checksum = self.source_api.table_checksum(table_name)
            try:
                target_checksum = self.target_api.table_checksum(table_name)
            except ChecksumUnavailableError as e:
                # the table itself may not have reached the target yet
                if attempt == self.attempts:
                    raise
                logger.info(f'table {table_name}: attempt {attempt}/{self.attempts}: {e}')
                time.sleep(self.interval)
                continue
            if source_checksum == target_checksum:
                logger.debug(f'table {table_name}: checksum {source_checksum} equal on attempt {attempt}')
                return source_checksum
            logger.info(
                f'table {table_name}: checksum differs on attempt {attempt}/{self.attempts} '
                f'(source {source_checksum}, target {target_checksum})'
            )
            if attempt < self.attempts:
                time.sleep(self.interval)

        raise ChecksumMismatchError(
            self.source_api.database, self.target_api.database,
            table_name, source_checksum, target_checksum,
        )
