#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
from typing import TYPE_CHECKING, Any, TypedDict

import json
import re
from dataclasses import dataclass

from ..exceptions import HarnessError
from ..utils.utils import to_address, to_bytes, to_int

if TYPE_CHECKING:
    from eth_typing import Address, Hash32

AccountState = TypedDict('AccountState', {
    'nonce': int,
    'balance': int,
    'code': bytes,
    'storage': dict[int, int],
})

Environment = TypedDict('Environment', {
    'coinbase': 'Address',
    'difficulty': int,
    'gas_limit': int,
    'block_number': int,
    'timestamp': int,
    'parent_hash': bytes,
})

# only one of `secret_key` and (`v`, `r`, `s`) is set
Transaction = TypedDict('Transaction', {
    'nonce': int,
    'gas_price': int,
    'gas': int,
    'to': bytes,
    'value': int,
    'data': bytes,
    'secret_key': bytes | None,
    'v': int | None,
    'r': int | None,
    's': int | None,
})

Indexes = TypedDict('Indexes', {
    'data': int,
    'gas': int,
    'value': int,
})

# fork names as they appear under `post` in the fixtures
KNOWN_FORKS = (
    'Frontier',
    'Homestead',
    'EIP150',
    'EIP158',
    'Byzantium',
    'Constantinople',
    'ConstantinopleFix',
    'Istanbul',
    'Berlin',
)

FORK_ALIASES = (
    (re.compile(r'^chainstart$', re.IGNORECASE), 'Frontier'),
    (re.compile(r'^tangerine_?whistle$', re.IGNORECASE), 'EIP150'),
    (re.compile(r'^spurious_?dragon$', re.IGNORECASE), 'EIP158'),
    (re.compile(r'^petersburg$', re.IGNORECASE), 'ConstantinopleFix'),
)

@dataclass(frozen=True)
class TestCase:
    __test__ = False

    name: str
    indexes: Indexes
    transaction: Transaction
    expected_root: Hash32
    env: Environment
    pre: dict[Address, AccountState]

    @property
    def label(self) -> str:
        return '{0}_d{1}g{2}v{3}'.format(self.name, self.indexes['data'], self.indexes['gas'], self.indexes['value'])

def get_required_fork_alias(fork: str) -> str:
    for pattern, alias in FORK_ALIASES:
        if pattern.match(fork):
            return alias
    for known in KNOWN_FORKS:
        if known.lower() == fork.lower():
            return known
    return fork

def load_fixture(path: str) -> dict[str, dict[str, Any]]:
    with open(path, 'r') as fp:
        fixture = json.load(fp)
    if not isinstance(fixture, dict):
        raise HarnessError('Fixture {0} is not a mapping of test names to test vectors'.format(path))
    return fixture

def normalize_environment(env: dict[str, Any]) -> Environment:
    try:
        return {
            'coinbase': to_address(env['currentCoinbase']),
            'difficulty': to_int(env['currentDifficulty']),
            'gas_limit': to_int(env['currentGasLimit']),
            'block_number': to_int(env['currentNumber']),
            'timestamp': to_int(env['currentTimestamp']),
            'parent_hash': to_bytes(env.get('previousHash', '0x' + '00' * 32)),
        }
    except (KeyError, ValueError, TypeError) as e:
        raise HarnessError('Malformed env section: {0!r}'.format(e)) from e

def normalize_pre_state(pre: dict[str, Any]) -> dict[Address, AccountState]:
    accounts: dict[Address, AccountState] = {}
    try:
        for address, account in pre.items():
            accounts[to_address(address)] = {
                'nonce': to_int(account.get('nonce', 0)),
                'balance': to_int(account.get('balance', 0)),
                'code': to_bytes(account.get('code', b'')),
                'storage': {to_int(k): to_int(v) for k, v in account.get('storage', {}).items()},
            }
    except (AttributeError, ValueError, TypeError) as e:
        raise HarnessError('Malformed pre section: {0!r}'.format(e)) from e
    return accounts

def normalize_transaction(transaction: dict[str, Any]) -> Transaction:
    try:
        to = transaction.get('to', '')
        normalized: Transaction = {
            'nonce': to_int(transaction['nonce']),
            'gas_price': to_int(transaction['gasPrice']),
            'gas': to_int(transaction['gasLimit']),
            'to': to_address(to) if to not in ('', '0x', b'') else b'',
            'value': to_int(transaction['value']),
            'data': to_bytes(transaction['data']),
            'secret_key': None,
            'v': None,
            'r': None,
            's': None,
        }
        if 'secretKey' in transaction:
            normalized['secret_key'] = to_bytes(transaction['secretKey'])
        else:
            normalized['v'] = to_int(transaction['v'])
            normalized['r'] = to_int(transaction['r'])
            normalized['s'] = to_int(transaction['s'])
    except (KeyError, ValueError, TypeError) as e:
        raise HarnessError('Malformed transaction: {0!r}'.format(e)) from e
    return normalized

def _matches(indexes: dict[str, int], data: int | None, gas: int | None, value: int | None) -> bool:
    if data is not None and indexes['data'] != data:
        return False
    if value is not None and indexes['value'] != value:
        return False
    if gas is not None and indexes['gas'] != gas:
        return False
    return True

def select_test_cases(fork: str, test_data: dict[str, Any], data: int | None = None, gas: int | None = None, value: int | None = None, name: str = '') -> list[TestCase]:
    '''
    Expand the post-state cases declared for `fork` into concrete test cases.
    Supplied index filters must all match; a fork without post states yields no cases.
    '''
    if 'post' not in test_data or 'transaction' not in test_data:
        raise HarnessError('Test vector has no post or transaction section', name or None)
    post_cases = test_data['post'].get(fork)
    if not post_cases:
        return []

    template = test_data['transaction']
    env = normalize_environment(test_data.get('env', {}))
    pre = normalize_pre_state(test_data.get('pre', {}))

    test_cases: list[TestCase] = []
    for post_case in post_cases:
        try:
            indexes = post_case['indexes']
            if not _matches(indexes, data, gas, value):
                continue
            expected_root = to_bytes(post_case['hash'])
        except (KeyError, ValueError, TypeError) as e:
            raise HarnessError('Malformed post state {0!r}: {1!r}'.format(post_case, e), name or None) from e
        transaction = dict(template)
        try:
            transaction['data'] = template['data'][indexes['data']]
            transaction['gasLimit'] = template['gasLimit'][indexes['gas']]
            transaction['value'] = template['value'][indexes['value']]
        except (IndexError, KeyError, TypeError) as e:
            raise HarnessError('Post state indexes {0} do not fit the transaction template'.format(indexes), name or None) from e
        test_cases.append(TestCase(
            name=name,
            indexes={'data': indexes['data'], 'gas': indexes['gas'], 'value': indexes['value']},
            transaction=normalize_transaction(transaction),
            expected_root=expected_root,
            env=env,
            pre=pre,
        ))
    return test_cases
