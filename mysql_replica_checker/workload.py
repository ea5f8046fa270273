import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from logging import getLogger
from random import Random

from mysql.connector import Error as MySQLError

from .config import WorkloadSettings
from .errors import TransactionRetryError
from .mysql_api import MySQLApi
from .table_registry import TableRegistry


logger = getLogger(__name__)


DEFAULT_TRANSACTION_LENGTH = 10


def build_transaction(rnd: Random, nr_tables: int, transaction_length: int = 0) -> list[int]:
    """Pick the table indices touched by one transaction.

    Indices are not deduplicated, the same table may appear several times.
    They are sorted so that all workers lock tables in the same order,
    which makes deadlocks between workers less likely.
    """
    max_length = transaction_length if transaction_length > 0 else DEFAULT_TRANSACTION_LENGTH
    num = rnd.randint(1, max_length)
    selected_tables = [rnd.randrange(nr_tables) for _ in range(num)]
    selected_tables.sort()
    return selected_tables


@dataclass
class WorkerStats:
    transactions: int = 0
    statements: int = 0
    failed_attempts: int = 0

    def to_dict(self):
        return dict(self.__dict__)


@dataclass
class WorkerResult:
    worker_idx: int
    stats: WorkerStats = field(default_factory=WorkerStats)
    error: BaseException = None

    @property
    def ok(self):
        return self.error is None


class TransactionWorker:
    MAX_ATTEMPTS = 3
    RETRY_INTERVAL = 1

    def __init__(
        self,
        worker_idx: int,
        mysql_api: MySQLApi,
        registry: TableRegistry,
        workload: WorkloadSettings,
        rnd: Random,
        stop_event: threading.Event,
    ):
        self.worker_idx = worker_idx
        self.mysql_api = mysql_api
        self.registry = registry
        self.workload = workload
        self.rnd = rnd
        self.stop_event = stop_event
        self.stats = WorkerStats()

    def run(self) -> WorkerResult:
        logger.debug(f'worker {self.worker_idx} started')
        while not self.stop_event.is_set():
            try:
                self.exec_transaction_with_retries()
            except TransactionRetryError as e:
                logger.error(str(e))
                return WorkerResult(self.worker_idx, self.stats, e)
        logger.debug(f'worker {self.worker_idx} stopped, {self.stats.transactions} transactions')
        return WorkerResult(self.worker_idx, self.stats)

    def exec_transaction_with_retries(self):
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            try:
                self.exec_transaction()
                self.stats.transactions += 1
                return
            except MySQLError as e:
                self.stats.failed_attempts += 1
                logger.warning(
                    f'worker {self.worker_idx}: transaction attempt {attempt}/{self.MAX_ATTEMPTS} failed: {e}'
                )
                if attempt == self.MAX_ATTEMPTS:
                    raise TransactionRetryError(self.worker_idx, attempt, e) from e
                time.sleep(self.RETRY_INTERVAL)

    def exec_transaction(self):
        selected_tables = build_transaction(
            self.rnd, len(self.registry), self.workload.transaction_length,
        )
        with self.mysql_api.transaction() as cursor:
            for table_idx in selected_tables:
                stmt, args = self.registry[table_idx].generator.random_statement(
                    self.workload.delete_ratio, self.workload.insert_ratio, self.rnd,
                )
                cursor.execute(stmt, args)
        self.stats.statements += len(selected_tables)


class ParallelUpdater:
    """Pool of transaction workers mutating the source schema until stopped.

    A worker that gives up returns its failure as a ``WorkerResult``. With
    ``abort_on_worker_failure`` the first failure also stops every other
    worker; otherwise they keep going until ``stop()`` is called.
    """

    def __init__(
        self,
        mysql_api: MySQLApi,
        registry: TableRegistry,
        workload: WorkloadSettings,
        random_sources: list[Random],
        stop_event: threading.Event = None,
        abort_on_worker_failure: bool = True,
    ):
        self.mysql_api = mysql_api
        self.registry = registry
        self.workload = workload
        self.stop_event = stop_event or threading.Event()
        self.abort_on_worker_failure = abort_on_worker_failure
        self.workers = [
            TransactionWorker(idx, mysql_api, registry, workload, rnd, self.stop_event)
            for idx, rnd in enumerate(random_sources)
        ]
        self.executor = None
        self.futures: list[Future] = []

    def start(self):
        logger.info(
            f'starting {len(self.workers)} workers on {len(self.registry)} tables '
            f'(delete ratio {self.workload.delete_ratio}, insert ratio {self.workload.insert_ratio})'
        )
        self.executor = ThreadPoolExecutor(
            max_workers=len(self.workers), thread_name_prefix='txn',
        )
        for worker in self.workers:
            future = self.executor.submit(worker.run)
            future.add_done_callback(self.on_worker_done)
            self.futures.append(future)
        return self

    def on_worker_done(self, future: Future):
        failed = future.exception() is not None or not future.result().ok
        if failed and self.abort_on_worker_failure and not self.stop_event.is_set():
            logger.error('worker failed, stopping remaining workers')
            self.stop_event.set()

    def stop(self):
        self.stop_event.set()

    def is_running(self):
        return any(not f.done() for f in self.futures)

    def wait(self) -> list[WorkerResult]:
        results = []
        for worker, future in zip(self.workers, self.futures):
            error = future.exception()
            if error is not None:
                results.append(WorkerResult(worker.worker_idx, worker.stats, error))
            else:
                results.append(future.result())
        if self.executor is not None:
            self.executor.shutdown()
        return results

    def get_stats(self):
        total = WorkerStats()
        workers = {}
        for worker in self.workers:
            stats = worker.stats
            total.transactions += stats.transactions
            total.statements += stats.statements
            total.failed_attempts += stats.failed_attempts
            workers[worker.worker_idx] = stats.to_dict()
        return {'total': total.to_dict(), 'workers': workers}
