import signal
import threading
import time
from logging import getLogger
from random import Random

logger = getLogger(__name__)


class GracefulKiller:
    """Turns SIGINT / SIGTERM into a set stop event."""

    def __init__(self, stop_event: threading.Event = None):
        self.stop_event = stop_event or threading.Event()
        signal.signal(signal.SIGINT, self.exit_gracefully)
        signal.signal(signal.SIGTERM, self.exit_gracefully)

    @property
    def kill_now(self):
        return self.stop_event.is_set()

    def exit_gracefully(self, signum, frame):
        logger.info(f'received signal {signum}, stopping')
        self.stop_event.set()


def make_random_sources(count: int, seed: int = None) -> list[Random]:
    """One independent random source per worker, seeded ``seed + idx``."""
    if seed is None:
        seed = time.time_ns()
    logger.info(f'random base seed {seed}')
    return [Random(seed + idx) for idx in range(count)]
