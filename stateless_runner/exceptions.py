#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations

class RunnerError(Exception):
    '''
    Base class of every error raised by the runner itself.
    `case` names the test case the error belongs to, when known.
    '''
    def __init__(self, message: str, case: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.case = case

    def __str__(self) -> str:
        if self.case:
            return f'[{self.case}] {self.message}'
        return self.message

class ValidationRejected(RunnerError):
    '''The transaction failed static validation; the case is skipped.'''

class ExecutionFailed(RunnerError):
    '''The engine rejected the transaction while applying it.'''

class HarnessError(RunnerError):
    '''Malformed fixture, unknown fork or any unexpected failure of one case.'''

class StateRootMismatch(HarnessError):
    def __init__(self, message: str, expected: bytes, actual: bytes, case: str | None = None) -> None:
        super().__init__(message, case)
        self.expected = expected
        self.actual = actual

class WitnessInsufficient(RunnerError):
    '''Replaying against the witness-only trie did not reproduce the post-state root.'''
