class ReplicaCheckError(Exception):
    pass


class ConfigurationError(ReplicaCheckError, ValueError):
    pass


class SeedError(ReplicaCheckError):
    def __init__(self, table_name, error):
        super().__init__(f'failed to seed table {table_name}: {error}')
        self.table_name = table_name


class TransactionRetryError(ReplicaCheckError):
    """Worker transaction still failing after every retry attempt."""

    def __init__(self, worker_idx, attempts, last_error):
        super().__init__(
            f'worker {worker_idx}: transaction failed after {attempts} attempts: {last_error}'
        )
        self.worker_idx = worker_idx
        self.attempts = attempts
        self.last_error = last_error


class WorkloadError(ReplicaCheckError):
    def __init__(self, results):
        failed = [r for r in results if r.error is not None]
        super().__init__(
            f'{len(failed)} of {len(results)} workers failed: '
            + '; '.join(str(r.error) for r in failed)
        )
        self.results = results


class MalformedEventError(ReplicaCheckError):
    pass


class ChecksumMismatchError(ReplicaCheckError):
    def __init__(self, source_schema, target_schema, table_name, source_checksum, target_checksum):
        super().__init__(
            f'checksum not equal source schema: {source_schema}, target schema: {target_schema}, '
            f'table: {table_name}, source checksum: {source_checksum}, target checksum: {target_checksum}'
        )
        self.source_schema = source_schema
        self.target_schema = target_schema
        self.table_name = table_name
        self.source_checksum = source_checksum
        self.target_checksum = target_checksum


class ChecksumUnavailableError(ReplicaCheckError):
    """CHECKSUM TABLE gave no value, the table is missing in that schema."""

    def __init__(self, schema, table_name):
        super().__init__(f'no checksum for table {schema}.{table_name}, table does not exist')
        self.schema = schema
        self.table_name = table_name
