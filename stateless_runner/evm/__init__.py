#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING, cast

from dataclasses import dataclass

from eth.constants import CREATE_CONTRACT_ADDRESS
from eth.rlp.headers import BlockHeader
from eth.vm.chain_context import ChainContext
from eth.vm.forks.frontier import FrontierVM
from eth.vm.forks.homestead import HomesteadVM
from eth.vm.forks.tangerine_whistle import TangerineWhistleVM
from eth.vm.forks.spurious_dragon import SpuriousDragonVM
from eth.vm.forks.byzantium import ByzantiumVM
from eth.vm.forks.constantinople import ConstantinopleVM
from eth.vm.forks.petersburg import PetersburgVM
from eth.vm.forks.istanbul import IstanbulVM
from eth.vm.forks.berlin import BerlinVM
from eth_keys import keys
from eth_utils.exceptions import ValidationError
from eth_utils.hexadecimal import encode_hex

from ..exceptions import ExecutionFailed, HarnessError, ValidationRejected
from ..utils import settings
from ..utils.utils import initialize_logger
from ..state.coinbase import revert_empty_coinbase
from .tracing import get_block_hash_for_testing, trace_opcodes

if TYPE_CHECKING:
    from eth_typing import Hash32
    from eth.abc import AtomicDatabaseAPI, SignedTransactionAPI, StateAPI, VirtualMachineAPI
    from ..fixtures import Environment, Transaction
    from ..state.recorder import WitnessSet
    from .tracing import TraceSink

FORKS: dict[str, type[VirtualMachineAPI]] = {
    'Frontier': FrontierVM,
    'Homestead': HomesteadVM,
    'EIP150': TangerineWhistleVM,
    'EIP158': SpuriousDragonVM,
    'Byzantium': ByzantiumVM,
    'Constantinople': ConstantinopleVM,
    'ConstantinopleFix': PetersburgVM,
    'Istanbul': IstanbulVM,
    'Berlin': BerlinVM,
}

@dataclass(frozen=True)
class ExecutionContext:
    '''
    Everything that selects engine behaviour for one run. Passed to the engine
    instead of being patched onto transactions or block headers.
    '''
    fork: str
    chain_id: int = settings.CHAIN_ID
    validate_transactions: bool = settings.VALIDATE_TRANSACTIONS
    trace_sink: TraceSink | None = None

@dataclass(frozen=True)
class ExecutionResult:
    state_root: Hash32
    success: bool
    error: str | None = None
    coinbase_deleted: bool = False
    witness: WitnessSet | None = None

def build_vm_class(fork: str, trace_sink: TraceSink | None = None) -> type[VirtualMachineAPI]:
    try:
        vm_class = FORKS[fork]
    except KeyError:
        raise HarnessError('Unknown fork {0}, please choose one of {1}.'.format(fork, ', '.join(FORKS)))

    state_class = vm_class.get_state_class()
    state_overrides = {'get_ancestor_hash': get_block_hash_for_testing}
    if trace_sink is not None:
        computation_class = state_class.computation_class
        state_overrides['computation_class'] = computation_class.configure(
            __name__='{0}ForTracing'.format(computation_class.__name__),
            opcodes=trace_opcodes(computation_class.opcodes, trace_sink),
        )
    state_class_for_testing = state_class.configure(
        __name__='{0}ForStateTesting'.format(state_class.__name__),
        **state_overrides,
    )
    return vm_class.configure(
        __name__='{0}ForStateTesting'.format(vm_class.__name__),
        _state_class=state_class_for_testing,
    )

class InstrumentedEVM:
    '''
    One execution engine instance. Every pass of a test case gets its own.
    '''
    def __init__(self, context: ExecutionContext) -> None:
        self.context = context
        self.vm_class = build_vm_class(context.fork, context.trace_sink)
        self.logger = initialize_logger('EVM')

    def make_header(self, env: Environment, state_root: Hash32) -> BlockHeader:
        return BlockHeader(difficulty=env['difficulty'],
                           block_number=env['block_number'],
                           gas_limit=env['gas_limit'],
                           timestamp=env['timestamp'],
                           coinbase=env['coinbase'],
                           parent_hash=env['parent_hash'],
                           state_root=state_root)

    def build_state(self, db: AtomicDatabaseAPI, env: Environment, state_root: Hash32) -> StateAPI:
        header = self.make_header(env, state_root)
        return self.vm_class.build_state(db, header, ChainContext(self.context.chain_id))

    def create_transaction(self, transaction: Transaction) -> SignedTransactionAPI:
        to = transaction['to'] if transaction['to'] else CREATE_CONTRACT_ADDRESS
        if transaction['secret_key'] is not None:
            unsigned_tx = self.vm_class.create_unsigned_transaction(
                nonce=transaction['nonce'],
                gas_price=transaction['gas_price'],
                gas=transaction['gas'],
                to=to,
                value=transaction['value'],
                data=transaction['data'],
            )
            return unsigned_tx.as_signed_transaction(keys.PrivateKey(transaction['secret_key']))
        return self.vm_class.get_transaction_builder().new_transaction(
            transaction['nonce'],
            transaction['gas_price'],
            transaction['gas'],
            to,
            transaction['value'],
            transaction['data'],
            transaction['v'],
            transaction['r'],
            transaction['s'],
        )

    def validate(self, tx: SignedTransactionAPI) -> None:
        if not self.context.validate_transactions:
            return
        try:
            tx.validate()
        except ValidationError as e:
            raise ValidationRejected('Transaction failed static validation: {0}'.format(e)) from e

    def apply_transaction(self, state: StateAPI, tx: SignedTransactionAPI) -> None:
        try:
            state.apply_transaction(tx)
        except ValidationError as e:
            raise ExecutionFailed(str(e)) from e

    def execute(self, db: AtomicDatabaseAPI, env: Environment, state_root: Hash32, tx: SignedTransactionAPI) -> ExecutionResult:
        '''
        Apply `tx` to the trie rooted at `state_root` inside `db` and return the resulting root.
        A transaction the engine rejects is not an error here: the empty coinbase rule
        runs and the rejected state is still committed.
        '''
        state = self.build_state(db, env, state_root)
        error: str | None = None
        coinbase_deleted = False
        try:
            self.apply_transaction(state, tx)
        except ExecutionFailed as e:
            error = e.message
            self.logger.debug('Transaction failed: %s', error)
            coinbase_deleted = revert_empty_coinbase(state, execution_failed=True)
        state.persist()
        post_root = cast('Hash32', state.state_root)
        if self.context.trace_sink is not None:
            self.context.trace_sink.after_transaction({'stateRoot': post_root.hex()})
        self.logger.debug('Executed transaction %s, state root %s', encode_hex(tx.hash), encode_hex(post_root))
        return ExecutionResult(state_root=post_root, success=error is None, error=error, coinbase_deleted=coinbase_deleted)
