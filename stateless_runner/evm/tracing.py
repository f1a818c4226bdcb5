#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING, TypedDict, cast

import json
from abc import ABCMeta, abstractmethod

from eth_hash.auto import keccak
from eth_utils.conversions import to_bytes

from ..utils.utils import initialize_logger

if TYPE_CHECKING:
    from eth_typing import BlockNumber
    from eth.abc import ComputationAPI, OpcodeAPI, StateAPI
    from eth.vm.stack import Stack
    from ..utils.utils import MyLogger

StepRecord = TypedDict('StepRecord', {
    'pc': int,
    'op': int,
    'gas': str,
    'gasCost': str,
    'stack': list[str],
    'depth': int,
    'opName': str,
})

TransactionRecord = TypedDict('TransactionRecord', {
    'stateRoot': str,
})

class TraceSink(metaclass=ABCMeta):
    @abstractmethod
    def step(self, record: StepRecord) -> None:
        ...

    @abstractmethod
    def after_transaction(self, record: TransactionRecord) -> None:
        ...

class LoggingTraceSink(TraceSink):
    '''
    Writes every record as one JSON line, the format other clients use for state test traces.
    '''
    def __init__(self, logger: MyLogger | None = None) -> None:
        self.logger = logger if logger is not None else initialize_logger('Trace')

    def step(self, record: StepRecord) -> None:
        self.logger.info(json.dumps(record))

    def after_transaction(self, record: TransactionRecord) -> None:
        self.logger.info(json.dumps(record))

class CollectingTraceSink(TraceSink):
    def __init__(self) -> None:
        self.steps: list[StepRecord] = []
        self.transactions: list[TransactionRecord] = []

    def step(self, record: StepRecord) -> None:
        self.steps.append(record)

    def after_transaction(self, record: TransactionRecord) -> None:
        self.transactions.append(record)

def _stack_item_to_hex(item: int | bytes) -> str:
    if isinstance(item, int):
        return hex(item)
    return hex(int.from_bytes(item, 'big'))

class TracedOpcode:
    '''
    Wraps one opcode function of a computation class and reports a step record for every execution.
    '''
    def __init__(self, opcode: int, opcode_fn: OpcodeAPI, sink: TraceSink) -> None:
        self.opcode = opcode
        self.opcode_fn = opcode_fn
        self.sink = sink

    @property
    def mnemonic(self) -> str:
        return self.opcode_fn.mnemonic

    @property
    def gas_cost(self) -> int:
        return self.opcode_fn.gas_cost

    def __call__(self, computation: ComputationAPI) -> None:
        pc = max(0, computation.code.program_counter - 1)
        gas = computation.get_gas_remaining()
        stack = [_stack_item_to_hex(item) for item in cast('Stack', computation._stack).values]
        try:
            self.opcode_fn(computation=computation)
        finally:
            self.sink.step({
                'pc': pc,
                'op': self.opcode,
                'gas': hex(gas),
                'gasCost': hex(gas - computation.get_gas_remaining()),
                'stack': stack,
                'depth': computation.msg.depth + 1,
                'opName': self.opcode_fn.mnemonic,
            })

def trace_opcodes(opcodes: dict[int, OpcodeAPI], sink: TraceSink) -> dict[int, OpcodeAPI]:
    return {opcode: cast('OpcodeAPI', TracedOpcode(opcode, opcode_fn, sink)) for opcode, opcode_fn in opcodes.items()}

def get_block_hash_for_testing(self: StateAPI, block_number: BlockNumber) -> bytes:
    if block_number >= self.block_number:
        return b''
    elif block_number < self.block_number - 256:
        return b''
    else:
        return keccak(to_bytes(text='{0}'.format(block_number)))
