import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from logging import getLogger
from random import Random

from mysql.connector import Error as MySQLError

from .errors import SeedError
from .mysql_api import MySQLApi
from .table_registry import TableHandle, TableRegistry


logger = getLogger(__name__)


SEED_BATCH = 500


@dataclass(frozen=True)
class SeedTask:
    table: TableHandle
    num: int


def build_seed_tasks(registry: TableRegistry, nr_seed_rows: int, batch: int = SEED_BATCH) -> list[SeedTask]:
    tasks = []
    for handle in registry:
        for _ in range(nr_seed_rows // batch):
            tasks.append(SeedTask(handle, batch))
        if nr_seed_rows % batch > 0:
            tasks.append(SeedTask(handle, nr_seed_rows % batch))
    return tasks


class SeedCoordinator:
    """Fills every managed table of the source schema with the seed rows.

    Seeding is expected to run on an otherwise idle system, so any failure
    aborts the whole seeding phase instead of being retried.
    """

    def __init__(self, mysql_api: MySQLApi, registry: TableRegistry, random_sources: list[Random], nr_seed_rows: int):
        self.mysql_api = mysql_api
        self.registry = registry
        self.random_sources = random_sources
        self.nr_seed_rows = nr_seed_rows
        self.stop_event = threading.Event()

    def seed_rows(self) -> int:
        """Run the seeding phase, returns the number of executed batches."""
        if self.nr_seed_rows == 0:
            logger.info('no seed rows configured, skipping seeding')
            return 0

        tasks = build_seed_tasks(self.registry, self.nr_seed_rows)
        task_queue = queue.Queue()
        for task in tasks:
            task_queue.put(task)

        concurrency = len(self.random_sources)
        logger.info(
            f'seeding {self.nr_seed_rows} rows into {len(self.registry)} tables, '
            f'{len(tasks)} batches, {concurrency} workers'
        )
        start_time = time.time()

        with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix='seed') as executor:
            futures = [
                executor.submit(self.drain, task_queue, rnd) for rnd in self.random_sources
            ]
            executed = 0
            errors = []
            for future in futures:
                error = future.exception()
                if error is not None:
                    errors.append(error)
                else:
                    executed += future.result()

        if errors:
            raise errors[0]

        logger.info(f'seeding done: {executed} batches in {time.time() - start_time:.1f}s')
        return executed

    def drain(self, task_queue: queue.Queue, rnd: Random) -> int:
        executed = 0
        while not self.stop_event.is_set():
            try:
                task = task_queue.get_nowait()
            except queue.Empty:
                break
            stmt, args = task.table.generator.init_data(task.num, rnd)
            try:
                self.mysql_api.execute(stmt, args=args)
            except MySQLError as e:
                logger.error(f'failed to seed table {task.table.name}: {e}')
                self.stop_event.set()
                raise SeedError(task.table.name, e) from e
            executed += 1
        return executed
