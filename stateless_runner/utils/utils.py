#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from typing import Any

import logging

from eth_typing import Address
from eth_utils.address import to_canonical_address
from eth_utils.hexadecimal import decode_hex, is_0x_prefixed

from . import settings

class MyLogger:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @staticmethod
    def bold(x: Any):
        return ''.join(['\033[1m', x, '\033[0m']) if isinstance(x, str) else x

    @staticmethod
    def red(x: Any):
        return ''.join(['\033[91m', x, '\033[0m']) if isinstance(x, str) else x

    @staticmethod
    def green(x: Any):
        return ''.join(['\033[92m', x, '\033[0m']) if isinstance(x, str) else x

    def title(self, *a: Any):
        self.logger.info(*[self.bold(x) for x in a])

    def success(self, *a: Any):
        self.logger.info(*[self.green(self.bold(x)) for x in a])

    def error(self, *a: Any):
        self.logger.error(*[self.red(self.bold(x)) for x in a])

    def warning(self, *a: Any):
        self.logger.warning(*[self.red(self.bold(x)) for x in a])

    def info(self, *a: Any):
        self.logger.info(*a)

    def debug(self, *a: Any):
        self.logger.debug(*a)

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

def initialize_logger(name: str) -> MyLogger:
    logger = logging.getLogger(name)
    logger.setLevel(level=settings.LOGGING_LEVEL)
    logging.basicConfig(format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    return MyLogger(logger)

def to_int(value: int | str) -> int:
    '''
    fixture numbers are either ints or strings, hex when 0x-prefixed and decimal otherwise
    '''
    if isinstance(value, int):
        return value
    if is_0x_prefixed(value):
        if len(value) == 2:
            return 0
        return int(value, 16)
    return int(value)

def to_bytes(value: bytes | str) -> bytes:
    if isinstance(value, bytes):
        return value
    return decode_hex(value)

def to_address(value: bytes | str) -> Address:
    return to_canonical_address(value)

def to_hex(value: bytes) -> str:
    return settings.HEX_PREFIX + value.hex()