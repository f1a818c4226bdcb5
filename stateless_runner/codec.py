#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING, Any

import os

import rlp
import yaml
from rlp.sedes import Binary, CountableList, big_endian_int, binary

from .utils import settings
from .utils.utils import to_hex

if TYPE_CHECKING:
    from eth.abc import SignedTransactionAPI
    from .state.recorder import WitnessSet

address = Binary.fixed_length(20, allow_empty=False)

class WitnessTransaction(rlp.Serializable):
    fields = [
        ('sender', address),
        ('nonce', big_endian_int),
        ('gas_price', big_endian_int),
        ('gas', big_endian_int),
        ('to', Binary(min_length=0, max_length=20)),
        ('value', big_endian_int),
        ('data', binary),
    ]

    @classmethod
    def from_transaction(cls, tx: SignedTransactionAPI) -> WitnessTransaction:
        return cls(
            sender=tx.sender,
            nonce=tx.nonce,
            gas_price=tx.gas_price,
            gas=tx.gas,
            to=tx.to,
            value=tx.value,
            data=tx.data,
        )

class BlockData(rlp.Serializable):
    '''
    Shard block body: the transaction and the witness nodes it needs, nodes ordered by hash.
    '''
    fields = [
        ('transaction', WitnessTransaction),
        ('nodes', CountableList(binary)),
    ]

def encode_block_data(tx: SignedTransactionAPI, witness: WitnessSet) -> bytes:
    block_data = BlockData(
        transaction=WitnessTransaction.from_transaction(tx),
        nodes=witness.nodes(),
    )
    return rlp.encode(block_data)

def decode_block_data(encoded: bytes) -> BlockData:
    return rlp.decode(encoded, sedes=BlockData)

def build_test_suite(pre_state_root: bytes, block_data: bytes, post_state_root: bytes) -> dict[str, Any]:
    return {
        'beacon_state': {
            'execution_scripts': list(settings.EXECUTION_SCRIPTS),
        },
        'shard_pre_state': {
            'exec_env_states': [
                to_hex(pre_state_root),
            ],
        },
        'shard_blocks': [
            {
                'env': settings.SHARD_BLOCK_ENV,
                'data': to_hex(block_data),
            },
        ],
        'shard_post_state': {
            'exec_env_states': [
                to_hex(post_state_root),
            ],
        },
    }

def write_test_suite(name: str, pre_state_root: bytes, block_data: bytes, post_state_root: bytes, output_dir: str | None = None) -> str:
    output_dir = output_dir if output_dir is not None else settings.OUTPUT_DIR
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, name + '.yaml')
    with open(path, 'w') as fp:
        yaml.safe_dump(build_test_suite(pre_state_root, block_data, post_state_root), fp, default_flow_style=False)
    return path
