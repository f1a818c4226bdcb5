from __future__ import annotations

import copy
from typing import Any, Callable

import pytest
from eth.db.atomic import AtomicDB
from eth_keys import keys
from eth_utils.hexadecimal import decode_hex, encode_hex

from stateless_runner.evm import ExecutionContext, InstrumentedEVM
from stateless_runner.fixtures import select_test_cases
from stateless_runner.state.loader import load_pre_state
from stateless_runner.state.recorder import NodeStore

FORK = "Byzantium"
SECRET_KEY = "0x45a915e4d060149eb4365960e6a7a45f334393093061116b197e3240065ff2d8"
SENDER = encode_hex(keys.PrivateKey(decode_hex(SECRET_KEY)).public_key.to_canonical_address())
RECIPIENT = "0x1000000000000000000000000000000000000001"
COINBASE = "0x2adc25665018aa1fe0e6bc666dac8fc2697ff9ba"
CONTRACT = "0x1000000000000000000000000000000000000002"
BYSTANDER = "0x1000000000000000000000000000000000000003"
# PUSH1 0x01 PUSH1 0x00 SSTORE STOP
SSTORE_CODE = "0x600160005500"
# PUSH1 0x2a PUSH1 0x00 SSTORE STOP, never executed by the transfer
BYSTANDER_CODE = "0x602a60005500"
PLACEHOLDER_ROOT = "0x" + "00" * 32


def _env(**overrides: Any) -> dict[str, str]:
    env = {
        "currentCoinbase": COINBASE,
        "currentDifficulty": "0x020000",
        "currentGasLimit": "0x05f5e100",
        "currentNumber": "0x01",
        "currentTimestamp": "0x03e8",
        "previousHash": "0x5e20a0453cecd065ea59c37ac63e079ee08998b6045136a8ce6635c7912ec0b6",
    }
    env.update(overrides)
    return env


def _transfer_vector() -> dict[str, Any]:
    """A (balance 10^18, nonce 0) sends 10 wei to the empty account B."""
    return {
        "env": _env(),
        "pre": {
            SENDER: {"balance": hex(10**18), "code": "0x", "nonce": "0x00", "storage": {}},
            BYSTANDER: {
                "balance": "0x01",
                "code": BYSTANDER_CODE,
                "nonce": "0x01",
                "storage": {"0x01": "0x05", "0x02": "0x07"},
            },
        },
        "transaction": {
            "data": ["0x"],
            "gasLimit": ["0x5208"],
            "gasPrice": "0x01",
            "nonce": "0x00",
            "secretKey": SECRET_KEY,
            "to": RECIPIENT,
            "value": ["0x0a"],
        },
        "post": {FORK: [{"hash": PLACEHOLDER_ROOT, "indexes": {"data": 0, "gas": 0, "value": 0}}]},
    }


def _contract_call_vector() -> dict[str, Any]:
    """A calls a contract that writes storage slot 0; slot 1 already holds a value."""
    return {
        "env": _env(),
        "pre": {
            SENDER: {"balance": hex(10**18), "code": "0x", "nonce": "0x00", "storage": {}},
            CONTRACT: {"balance": "0x00", "code": SSTORE_CODE, "nonce": "0x00", "storage": {"0x01": "0x05"}},
        },
        "transaction": {
            "data": ["0x", "0x01"],
            "gasLimit": ["0x0186a0"],
            "gasPrice": "0x01",
            "nonce": "0x00",
            "secretKey": SECRET_KEY,
            "to": CONTRACT,
            "value": ["0x00", "0x01"],
        },
        "post": {
            FORK: [
                {"hash": PLACEHOLDER_ROOT, "indexes": {"data": 0, "gas": 0, "value": 0}},
                {"hash": PLACEHOLDER_ROOT, "indexes": {"data": 1, "gas": 0, "value": 1}},
            ]
        },
    }


def compute_post_root(test_data: dict[str, Any], index: int = 0, fork: str = FORK) -> bytes:
    """Post-state root from a plain run of the engine, without any recording."""
    case = select_test_cases(fork, test_data)[index]
    evm = InstrumentedEVM(ExecutionContext(fork=fork))
    db = AtomicDB(NodeStore())
    pre_state_root = load_pre_state(db, case.pre)
    tx = evm.create_transaction(case.transaction)
    return evm.execute(db, case.env, pre_state_root, tx).state_root


def _seal(test_data: dict[str, Any], fork: str = FORK) -> dict[str, Any]:
    sealed = copy.deepcopy(test_data)
    for index, post_case in enumerate(sealed["post"][fork]):
        post_case["hash"] = encode_hex(compute_post_root(test_data, index, fork))
    return sealed


@pytest.fixture
def transfer_vector() -> dict[str, Any]:
    return _seal(_transfer_vector())


@pytest.fixture
def contract_call_vector() -> dict[str, Any]:
    return _seal(_contract_call_vector())


@pytest.fixture
def unsealed_vector() -> Callable[[], dict[str, Any]]:
    """Factory for the transfer vector with a placeholder post-state root."""
    return _transfer_vector


@pytest.fixture
def seal() -> Callable[[dict[str, Any]], dict[str, Any]]:
    return _seal


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(fork=FORK)
