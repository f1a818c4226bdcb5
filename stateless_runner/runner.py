#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import Any

import dataclasses
import multiprocessing
import traceback
from dataclasses import dataclass

from .codec import encode_block_data, write_test_suite
from .evm import FORKS, ExecutionContext
from .evm.tracing import LoggingTraceSink
from .exceptions import HarnessError
from .fixtures import TestCase, get_required_fork_alias, load_fixture, select_test_cases
from .utils import settings
from .utils.utils import initialize_logger
from .verification import CaseResult, CaseStatus, DualExecutionVerifier

logger = initialize_logger('Runner')

@dataclass(frozen=True)
class RunOptions:
    fork: str = settings.FORK
    data: int | None = None
    gas: int | None = None
    value: int | None = None
    emit_artifacts: bool = False
    trace: bool = False
    output_dir: str = settings.OUTPUT_DIR
    processes: int = settings.PROCESSES
    chain_id: int = settings.CHAIN_ID
    validate_transactions: bool = settings.VALIDATE_TRANSACTIONS

    @classmethod
    def from_settings(cls, **overrides: Any) -> RunOptions:
        options = {
            'fork': settings.FORK,
            'trace': settings.JSON_TRACE,
            'output_dir': settings.OUTPUT_DIR,
            'processes': settings.PROCESSES,
            'chain_id': settings.CHAIN_ID,
            'validate_transactions': settings.VALIDATE_TRANSACTIONS,
        }
        options.update(overrides)
        return cls(**options)

    def execution_context(self, fork: str) -> ExecutionContext:
        return ExecutionContext(
            fork=fork,
            chain_id=self.chain_id,
            validate_transactions=self.validate_transactions,
            trace_sink=LoggingTraceSink() if self.trace else None,
        )

def emit_artifacts(result: CaseResult, name: str, output_dir: str) -> str | None:
    if result.status != CaseStatus.PASSED_WITNESS:
        return None
    assert result.transaction is not None and result.witness is not None
    assert result.pre_state_root is not None and result.expected_root is not None
    logger.info('Number of proof nodes: %s', len(result.witness))
    block_data = encode_block_data(result.transaction, result.witness)
    logger.info('Block data length: %s', len(block_data))
    return write_test_suite(name, result.pre_state_root, block_data, result.expected_root, output_dir)

def run_case(options: RunOptions, fork: str, case: TestCase, artifact_name: str) -> CaseResult:
    '''
    Verify one case. Whatever goes wrong inside is reported on the result; nothing escapes.
    '''
    try:
        result = DualExecutionVerifier(options.execution_context(fork)).verify(case)
        if options.emit_artifacts:
            emit_artifacts(result, artifact_name, options.output_dir)
    except HarnessError as e:
        logger.error('Error running test case {0} for fork {1}: {2}'.format(case.label, fork, e.message))
        return CaseResult(case=case.label, status=CaseStatus.FAILED, expected_root=case.expected_root, diagnostic=e.message)
    except Exception as e:
        logger.error('Error running test case {0} for fork {1}'.format(case.label, fork))
        logger.debug(traceback.format_exc())
        return CaseResult(case=case.label, status=CaseStatus.FAILED, expected_root=case.expected_root, diagnostic=repr(e))
    return result

def _run_case_in_worker(options: RunOptions, fork: str, case: TestCase, artifact_name: str) -> CaseResult:
    # signed transactions stay in the worker process
    return dataclasses.replace(run_case(options, fork, case, artifact_name), transaction=None)

def run_state_test(options: RunOptions, test_data: dict[str, Any], test_name: str) -> list[CaseResult]:
    fork = get_required_fork_alias(options.fork)
    try:
        if fork not in FORKS:
            raise HarnessError('Unknown fork {0}, please choose one of {1}.'.format(fork, ', '.join(FORKS)), test_name)
        test_cases = select_test_cases(fork, test_data, options.data, options.gas, options.value, name=test_name)
    except HarnessError as e:
        logger.error('Error running test case for fork: {0}: {1}'.format(fork, e.message))
        return [CaseResult(case=test_name, status=CaseStatus.FAILED, diagnostic=e.message)]

    if len(test_cases) == 0:
        logger.info('No {0} post state defined, skip test'.format(fork))
        return []

    jobs = [(options, fork, case, '{0}-{1}'.format(test_name, i)) for i, case in enumerate(test_cases)]
    if options.processes > 1 and len(jobs) > 1:
        with multiprocessing.Pool(min(options.processes, len(jobs))) as pool:
            results = pool.starmap(_run_case_in_worker, jobs)
    else:
        results = [run_case(*job) for job in jobs]

    for result in results:
        if result.passed:
            logger.success('{0}: {1}'.format(result.case, result.status.value))
        else:
            logger.error('{0}: {1} ({2})'.format(result.case, result.status.value, result.diagnostic))
    return results

def run_fixture_file(options: RunOptions, path: str, test_name: str | None = None) -> dict[str, list[CaseResult]]:
    fixture = load_fixture(path)
    results: dict[str, list[CaseResult]] = {}
    for name, test_data in fixture.items():
        if test_name is not None and name != test_name:
            continue
        logger.title('Running {0}'.format(name))
        results[name] = run_state_test(options, test_data, name)
    return results
