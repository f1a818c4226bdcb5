#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING, cast

from eth.db.account import AccountDB
from eth_utils.exceptions import ValidationError
from eth_utils.hexadecimal import encode_hex

from ..exceptions import HarnessError
from ..utils.utils import initialize_logger

if TYPE_CHECKING:
    from eth_typing import Address, Hash32
    from eth.abc import AtomicDatabaseAPI
    from ..fixtures import AccountState

logger = initialize_logger('Loader')

def load_pre_state(db: AtomicDatabaseAPI, pre: dict[Address, AccountState]) -> Hash32:
    '''
    Write the declared accounts into a fresh trie inside `db` and return its root.
    '''
    account_db = AccountDB(db)
    try:
        for address, account in pre.items():
            account_db.set_nonce(address, account['nonce'])
            account_db.set_balance(address, account['balance'])
            account_db.set_code(address, account['code'])
            for slot, value in account['storage'].items():
                account_db.set_storage(address, slot, value)
            logger.debug('Created account %s with balance %s', encode_hex(address), account['balance'])
        account_db.persist()
    except (ValidationError, KeyError, TypeError) as e:
        raise HarnessError('Cannot load pre state: {0}'.format(e)) from e
    return cast('Hash32', account_db.state_root)
