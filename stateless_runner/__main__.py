#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

import argparse
import logging
import os
import sys

from .utils import settings

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Run state tests twice, the second time against nothing but the recorded witness.')
    parser.add_argument('-f', '--file', type=str, nargs='+', required=True, help='GeneralStateTests JSON fixture file(s)')
    parser.add_argument('-t', '--test', type=str, help='only run the test vector with this name')
    parser.add_argument('--fork', type=str, default=settings.FORK, help='fork to run (default: {0})'.format(settings.FORK))
    parser.add_argument('--data', type=int, help='only run cases with this data index')
    parser.add_argument('--gas', type=int, help='only run cases with this gas index')
    parser.add_argument('--value', type=int, help='only run cases with this value index')
    parser.add_argument('--scout', action='store_true', help='write the witness block of every passing case as a YAML test vector')
    parser.add_argument('--jsontrace', action='store_true', help='log one JSON line per executed opcode')
    parser.add_argument('-o', '--output-dir', type=str, default=settings.OUTPUT_DIR, help='directory for the YAML test vectors')
    parser.add_argument('-p', '--processes', type=int, default=settings.PROCESSES, help='worker processes for independent cases')
    parser.add_argument('--no-validate', action='store_true', help='execute transactions that fail static validation')
    parser.add_argument('-v', '--verbose', action='store_true', help='debug logging')
    return parser.parse_args(argv)

def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    settings.FORK = args.fork
    settings.OUTPUT_DIR = args.output_dir
    settings.PROCESSES = args.processes
    settings.JSON_TRACE = args.jsontrace
    settings.VALIDATE_TRANSACTIONS = not args.no_validate
    if args.verbose:
        settings.LOGGING_LEVEL = logging.DEBUG

    from .runner import RunOptions, run_fixture_file
    from .utils.utils import initialize_logger

    logger = initialize_logger('Main')
    options = RunOptions.from_settings(data=args.data, gas=args.gas, value=args.value, emit_artifacts=args.scout)

    failed = 0
    total = 0
    for path in args.file:
        if not os.path.isfile(path):
            logger.error('Fixture file {0} does not exist'.format(path))
            failed += 1
            continue
        for results in run_fixture_file(options, path, args.test).values():
            total += len(results)
            failed += len([result for result in results if not result.passed])

    if failed:
        logger.error('{0} of {1} cases failed'.format(failed, total))
        return 1
    logger.title('All {0} cases passed'.format(total))
    return 0

if __name__ == '__main__':
    sys.exit(main())
