#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING, cast

import enum
from dataclasses import dataclass, field

from eth.db.atomic import AtomicDB
from eth.vm.interrupt import EVMMissingData
from eth_utils.hexadecimal import encode_hex
from trie.exceptions import MissingTrieNode

from ..evm import ExecutionContext, ExecutionResult, InstrumentedEVM
from ..exceptions import StateRootMismatch, ValidationRejected, WitnessInsufficient
from ..state.loader import load_pre_state
from ..state.recorder import NodeStore, WitnessRecorder
from ..state.witness_trie import build_witness_trie
from ..utils.utils import initialize_logger

if TYPE_CHECKING:
    from eth_typing import Hash32
    from eth.abc import SignedTransactionAPI
    from ..fixtures import TestCase
    from ..state.recorder import WitnessSet

class CaseStatus(enum.Enum):
    NOT_RUN = 'NotRun'
    RUNNING_FULL = 'RunningFull'
    PASSED_FULL = 'PassedFull'
    REJECTED_INVALID_TX = 'RejectedInvalidTx'
    RUNNING_WITNESS = 'RunningWitness'
    PASSED_WITNESS = 'PassedWitness'
    WITNESS_INSUFFICIENT = 'WitnessInsufficient'
    FAILED = 'Failed'

    @property
    def passed(self) -> bool:
        return self in (CaseStatus.PASSED_WITNESS, CaseStatus.REJECTED_INVALID_TX)

@dataclass
class CaseResult:
    case: str
    status: CaseStatus = CaseStatus.NOT_RUN
    expected_root: Hash32 | None = None
    pre_state_root: Hash32 | None = None
    full_pass: ExecutionResult | None = None
    witness_pass: ExecutionResult | None = None
    transaction: SignedTransactionAPI | None = None
    diagnostic: str | None = None
    transitions: list[CaseStatus] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.status.passed

    @property
    def witness(self) -> WitnessSet | None:
        return self.full_pass.witness if self.full_pass is not None else None

class DualExecutionVerifier:
    '''
    Runs one test case twice: once against the full pre-state trie while recording the
    nodes it reads, and once against a trie built from nothing but those nodes. Both
    runs have to end in the expected post-state root.
    '''
    def __init__(self, context: ExecutionContext) -> None:
        self.context = context
        self.logger = initialize_logger('Verifier')

    def _transition(self, result: CaseResult, status: CaseStatus) -> None:
        self.logger.debug('%s: %s -> %s', result.case, result.status.value, status.value)
        result.status = status
        result.transitions.append(status)

    def verify(self, case: TestCase) -> CaseResult:
        result = CaseResult(case=case.label, expected_root=case.expected_root)

        evm = InstrumentedEVM(self.context)
        tx = evm.create_transaction(case.transaction)
        result.transaction = tx
        try:
            evm.validate(tx)
        except ValidationRejected as e:
            result.diagnostic = e.message
            self._transition(result, CaseStatus.REJECTED_INVALID_TX)
            self.logger.info('%s: %s, skipping', case.label, e.message)
            return result

        store = NodeStore()
        pre_state_root = load_pre_state(AtomicDB(store), case.pre)
        result.pre_state_root = pre_state_root

        self._transition(result, CaseStatus.RUNNING_FULL)
        result.full_pass = self.run_full(evm, store, case, pre_state_root, tx)
        try:
            self._check_root(result.full_pass.state_root, case, 'full trie')
        except StateRootMismatch as e:
            result.diagnostic = str(e)
            self._transition(result, CaseStatus.FAILED)
            self.logger.error(result.diagnostic)
            return result
        witness = cast('WitnessSet', result.full_pass.witness)
        self._transition(result, CaseStatus.PASSED_FULL)

        self._transition(result, CaseStatus.RUNNING_WITNESS)
        try:
            result.witness_pass = self.run_witness(case, pre_state_root, witness, tx)
        except WitnessInsufficient as e:
            result.diagnostic = str(e)
            self._transition(result, CaseStatus.WITNESS_INSUFFICIENT)
            self.logger.error(result.diagnostic)
            return result
        self._transition(result, CaseStatus.PASSED_WITNESS)
        return result

    def run_full(self, evm: InstrumentedEVM, store: NodeStore, case: TestCase, pre_state_root: Hash32, tx: SignedTransactionAPI) -> ExecutionResult:
        with WitnessRecorder(store) as recorder:
            execution = evm.execute(AtomicDB(recorder), case.env, pre_state_root, tx)
        witness = recorder.witness
        self.logger.debug('%s: recorded %s of %s pre-existing nodes', case.label, len(witness), len(recorder.existing_keys))
        return ExecutionResult(
            state_root=execution.state_root,
            success=execution.success,
            error=execution.error,
            coinbase_deleted=execution.coinbase_deleted,
            witness=witness,
        )

    def run_witness(self, case: TestCase, pre_state_root: Hash32, witness: WitnessSet, tx: SignedTransactionAPI) -> ExecutionResult:
        witness_trie = build_witness_trie(pre_state_root, witness)
        evm = InstrumentedEVM(self.context)
        try:
            execution = evm.execute(witness_trie.db, case.env, pre_state_root, tx)
        except (MissingTrieNode, EVMMissingData) as e:
            raise WitnessInsufficient('Witness cannot resolve a node the engine requested: {0}'.format(e), case.label) from e
        if execution.state_root != case.expected_root:
            raise WitnessInsufficient('Witness-only state root {0} differs from the expected {1}'.format(
                encode_hex(execution.state_root), encode_hex(case.expected_root)), case.label)
        return execution

    def _check_root(self, actual: Hash32, case: TestCase, trie: str) -> None:
        if actual != case.expected_root:
            raise StateRootMismatch('State root on the {0} is {1}, expected {2}'.format(
                trie, encode_hex(actual), encode_hex(case.expected_root)), case.expected_root, actual, case.label)
