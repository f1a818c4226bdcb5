#!/usr/bin/env python3
# -*- coding: utf-8 -*-
'''
Runs Ethereum state tests, records the trie nodes each transaction reads and
replays the transaction against a trie made of nothing but those nodes.
'''
__version__ = '0.1.0'
