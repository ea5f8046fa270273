#!/usr/bin/env python3

import argparse
import json
import logging
import sys

from .config import Settings
from .errors import ReplicaCheckError
from .filters import ChangeEvent, FilterPipeline
from .runner import Runner


def set_logging_config(tags, log_level_str=None):
    """Configure logging to output only to stderr."""
    handlers = [logging.StreamHandler(sys.stderr)]

    log_levels = {
        'critical': logging.CRITICAL,
        'error': logging.ERROR,
        'warning': logging.WARNING,
        'info': logging.INFO,
        'debug': logging.DEBUG,
    }

    log_level = log_levels.get(log_level_str)
    if log_level is None:
        logging.warning(f'Unknown log level {log_level_str}, setting info')
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format=f'[{tags} %(asctime)s %(levelname)8s] %(message)s',
        handlers=handlers,
    )


def run_all(args, config: Settings):
    set_logging_config('runner', log_level_str=config.log_level)
    Runner(config).run()


def run_seed(args, config: Settings):
    set_logging_config('seed', log_level_str=config.log_level)
    runner = Runner(config)
    runner.setup()
    runner.seed()


def run_verify(args, config: Settings):
    set_logging_config('verify', log_level_str=config.log_level)
    tables = args.tables.split(',') if args.tables else None
    Runner(config).verify(tables)


def run_filter_events(args, config: Settings, input_stream=None, output_stream=None):
    set_logging_config('filter', log_level_str=config.log_level)
    input_stream = input_stream or sys.stdin
    output_stream = output_stream or sys.stdout

    pipeline = FilterPipeline.from_config(config.filters)
    for line in input_stream:
        line = line.strip()
        if not line:
            continue
        event = ChangeEvent.from_dict(json.loads(line))
        if pipeline.process(event):
            output_stream.write(json.dumps(event.to_dict(), default=str) + '\n')
    output_stream.flush()


MODES = {
    'run': run_all,
    'seed': run_seed,
    'verify': run_verify,
    'filter_events': run_filter_events,
}


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "mode", help="run mode",
        type=str,
        choices=list(MODES))
    parser.add_argument("--config", help="config file path", default='config.yaml', type=str)
    parser.add_argument(
        "--tables", type=str, default=None,
        help="comma separated tables to verify, defaults to all managed tables",
    )
    args = parser.parse_args()

    config = Settings()
    try:
        config.load(args.config)
        MODES[args.mode](args, config)
    except ReplicaCheckError as e:
        logging.critical(str(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
