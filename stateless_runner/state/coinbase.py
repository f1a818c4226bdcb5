#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING

from eth_utils.hexadecimal import encode_hex

from ..utils.utils import initialize_logger

if TYPE_CHECKING:
    from eth.abc import StateAPI

logger = initialize_logger('Coinbase')

def revert_empty_coinbase(state: StateAPI, execution_failed: bool) -> bool:
    '''
    When the engine rejected the transaction and the coinbase holds no balance, the
    reference post states treat the coinbase as never created: drop the account and
    flush the cached account changes into the trie.
    Without this ecmul_0-3_5616_28000_96 would fail.
    '''
    if not execution_failed:
        return False
    coinbase = state.coinbase
    if state.get_balance(coinbase) != 0:
        return False
    state.delete_account(coinbase)
    state.persist()
    logger.debug('Deleted empty coinbase %s after a failed transaction', encode_hex(coinbase))
    return True
