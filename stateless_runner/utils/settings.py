#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from typing import Literal

import logging

# Fork to run ('Frontier', 'Homestead', 'EIP150', 'EIP158', 'Byzantium', 'Constantinople', 'ConstantinopleFix', 'Istanbul' or 'Berlin')
FORK: str = 'Byzantium'
# Chain id reported by the CHAINID opcode
CHAIN_ID: int = 1
# Reject transactions that fail static validation before any execution
VALIDATE_TRANSACTIONS: bool = True
# Number of worker processes for independent test cases (1 = sequential)
PROCESSES: int = 1
# Directory the interop test vectors are written to
OUTPUT_DIR: str = '.'
# Execution scripts referenced by the emitted beacon state
EXECUTION_SCRIPTS: list[str] = ['target/wasm32-unknown-unknown/release/smpt.wasm']
# Execution environment index of the emitted shard blocks
SHARD_BLOCK_ENV: int = 0
# True = write one JSON line per executed opcode, False = no tracing
JSON_TRACE: bool = False
# Format of emitted hex values
HEX_PREFIX: Literal['', '0x'] = ''
# Logging level
LOGGING_LEVEL: int = logging.INFO
