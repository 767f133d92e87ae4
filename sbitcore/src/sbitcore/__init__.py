"""
sbitcore - Core library for SBit wallet components

Provides network parameters, money and script encoding, and key handling.
"""

__version__ = "0.3.0"

from sbitcore.constants import (
    COIN,
    CONTRACT_CALL_DUST_THRESHOLD,
    PAYMENT_CHANGE_THRESHOLD,
    STAKE_MATURITY,
)
from sbitcore.crypto import CryptoError, KeyPair, hash160, hash256
from sbitcore.encoding import (
    MalformedInputError,
    decode_hex,
    decode_script_number,
    encode_script_number,
    to_base_units,
)
from sbitcore.models import (
    SBIT_MAINNET,
    SBIT_TESTNET,
    NetworkParams,
    NetworkType,
    get_network_params,
)
from sbitcore.script import address_to_scriptpubkey, compile_script

__all__ = [
    "COIN",
    "CONTRACT_CALL_DUST_THRESHOLD",
    "CryptoError",
    "KeyPair",
    "MalformedInputError",
    "NetworkParams",
    "NetworkType",
    "PAYMENT_CHANGE_THRESHOLD",
    "SBIT_MAINNET",
    "SBIT_TESTNET",
    "STAKE_MATURITY",
    "address_to_scriptpubkey",
    "compile_script",
    "decode_hex",
    "decode_script_number",
    "encode_script_number",
    "get_network_params",
    "hash160",
    "hash256",
    "to_base_units",
]
