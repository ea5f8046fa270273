import threading
import time
from logging import getLogger

from fastapi import APIRouter, FastAPI
from uvicorn import Config, Server

from .checksum import ConsistencyVerifier
from .config import Settings
from .errors import WorkloadError
from .mysql_api import MySQLApi
from .seeder import SeedCoordinator
from .table_registry import TableRegistry, table_names
from .utils import GracefulKiller, make_random_sources
from .workload import ParallelUpdater


logger = getLogger(__name__)


class Runner:
    """Drives one check: setup, seeding, mutation workload, verification."""

    STATS_LOG_INTERVAL = 10
    CHECK_INTERVAL = 0.3

    def __init__(self, config: Settings, source_api: MySQLApi = None, target_api: MySQLApi = None):
        self.config = config
        self.source_api = source_api
        self.target_api = target_api
        self.stop_event = threading.Event()
        self.registry = None
        self.random_sources = None
        self.updater = None
        self.phase = 'created'
        self.http_server = None
        self.last_stats_log_time = 0

    def connect(self):
        if self.source_api is None:
            self.source_api = MySQLApi(
                database=self.config.source.database, mysql_settings=self.config.source,
            )
        if self.target_api is None:
            self.target_api = MySQLApi(
                database=self.config.target.database, mysql_settings=self.config.target,
            )

    def setup(self):
        self.connect()
        self.phase = 'setup'
        self.source_api.create_database()
        self.target_api.create_database()
        self.registry = TableRegistry.setup_test_tables(
            self.source_api, self.target_api, self.config.workload.nr_tables,
        )
        self.random_sources = make_random_sources(
            self.config.workload.concurrency, self.config.workload.random_seed,
        )

    def seed(self):
        self.phase = 'seeding'
        coordinator = SeedCoordinator(
            self.source_api, self.registry, self.random_sources, self.config.workload.nr_seed_rows,
        )
        return coordinator.seed_rows()

    def run_workload(self):
        """Mutate the source schema until the duration elapsed or a stop was requested.

        Returns the per-worker results. Raises WorkloadError when a worker
        failed and ``abort_on_worker_failure`` is set.
        """
        self.phase = 'workload'
        self.updater = ParallelUpdater(
            self.source_api,
            self.registry,
            self.config.workload,
            self.random_sources,
            stop_event=self.stop_event,
            abort_on_worker_failure=self.config.abort_on_worker_failure,
        )
        self.updater.start()

        duration = self.config.workload.duration
        start_time = time.time()
        while not self.stop_event.is_set() and self.updater.is_running():
            if duration and time.time() - start_time >= duration:
                logger.info(f'workload ran for {duration}s, stopping workers')
                break
            time.sleep(self.CHECK_INTERVAL)
            self.log_stats_if_required()

        self.updater.stop()
        results = self.updater.wait()
        logger.info(f'workload stats: {self.updater.get_stats()["total"]}')

        if any(not r.ok for r in results) and self.config.abort_on_worker_failure:
            raise WorkloadError(results)
        return results

    def verify(self, tables: list[str] = None):
        self.connect()
        self.phase = 'verifying'
        if tables is None:
            tables = self.registry.names if self.registry else table_names(self.config.workload.nr_tables)
        verifier = ConsistencyVerifier(
            self.source_api,
            self.target_api,
            attempts=self.config.checksum_attempts,
            interval=self.config.checksum_interval,
        )
        verifier.verify(tables)

    def log_stats_if_required(self):
        curr_time = time.time()
        if curr_time - self.last_stats_log_time < self.STATS_LOG_INTERVAL:
            return
        self.last_stats_log_time = curr_time
        logger.info(f'workload stats: {self.updater.get_stats()["total"]}')

    def get_stats(self):
        stats = {'phase': self.phase}
        if self.updater is not None:
            stats.update(self.updater.get_stats())
        return stats

    def stop(self):
        logger.info('stop requested')
        self.stop_event.set()
        return {'stopping': True}

    def run_server(self):
        if not self.config.http_host or not self.config.http_port:
            logger.info('http server disabled')
            return
        logger.info('starting http server')

        app = FastAPI()
        router = APIRouter()
        router.add_api_route('/stats', self.get_stats, methods=['GET'])
        router.add_api_route('/stop', self.stop, methods=['GET'])
        app.include_router(router)

        config = Config(app=app, host=self.config.http_host, port=self.config.http_port)
        self.http_server = Server(config)
        self.http_server.run()

    def run(self):
        GracefulKiller(self.stop_event)

        server_thread = threading.Thread(target=self.run_server, daemon=True)
        server_thread.start()

        try:
            self.setup()
            self.seed()
            results = self.run_workload()
            self.verify()
            if any(not r.ok for r in results):
                raise WorkloadError(results)
            self.phase = 'done'
            logger.info('source and target are consistent')
        except Exception:
            self.phase = 'failed'
            raise
        finally:
            if self.http_server:
                self.http_server.should_exit = True
            server_thread.join(timeout=5)
