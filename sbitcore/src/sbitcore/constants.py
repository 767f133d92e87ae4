"""
SBit protocol and wallet policy constants.

Money is counted in the smallest unit (1e-8 SBIT). Contract outputs use the
SBit script extensions OP_CREATE / OP_CALL with a leading version push.
"""

from __future__ import annotations

from decimal import Decimal

# Smallest units per coin
COIN = 10**8

# Staking outputs are spendable only after this many confirmations
STAKE_MATURITY = 2000

# Change policy for plain payments: any positive remainder becomes change
PAYMENT_CHANGE_THRESHOLD = Decimal("0")

# Change policy for contract calls: remainders at or below this (in coins)
# are left to the miner instead of creating a change output
CONTRACT_CALL_DUST_THRESHOLD = Decimal("0.00072799")

# Transaction serialization
TX_VERSION = 1
TX_LOCKTIME = 0
SEQUENCE_FINAL = 0xFFFFFFFF
SIGHASH_ALL = 0x01

# Script opcodes
OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_4 = 0x54
OP_16 = 0x60
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC
OP_CREATE = 0xC1
OP_CALL = 0xC2

# Version push that prefixes every contract output script
CONTRACT_VM_VERSION = OP_4

# Contract addresses are raw 160-bit hashes
CONTRACT_ADDRESS_LENGTH = 20
