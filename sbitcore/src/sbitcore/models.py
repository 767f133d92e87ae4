"""
Core data models using Pydantic for validation.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from sbitcore.constants import STAKE_MATURITY


class NetworkType(str, Enum):
    MAINNET = "sbit"
    TESTNET = "sbit_testnet"


class Bip32Versions(BaseModel):
    model_config = ConfigDict(frozen=True)

    public: int = Field(..., ge=0, le=0xFFFFFFFF)
    private: int = Field(..., ge=0, le=0xFFFFFFFF)


class NetworkParams(BaseModel):
    """
    Per-network constants.

    Passed explicitly to selection and assembly; nothing reads a module-level
    default network.
    """

    model_config = ConfigDict(frozen=True)

    name: NetworkType
    message_prefix: str
    bech32: str = Field(..., min_length=1)
    bip32: Bip32Versions
    pubkey_hash: int = Field(..., ge=0, le=0xFF)
    script_hash: int = Field(..., ge=0, le=0xFF)
    wif: int = Field(..., ge=0, le=0xFF)
    stake_maturity: int = Field(default=STAKE_MATURITY, ge=0)


SBIT_MAINNET = NetworkParams(
    name=NetworkType.MAINNET,
    message_prefix="\x15SBit Signed Message:\n",
    bech32="bc",
    bip32=Bip32Versions(public=0x0878C22A, private=0x0878BDA8),
    pubkey_hash=0x1A,
    script_hash=0x32,
    wif=0x80,
)

SBIT_TESTNET = NetworkParams(
    name=NetworkType.TESTNET,
    message_prefix="\x15SBit Signed Message:\n",
    bech32="tb",
    bip32=Bip32Versions(public=0x084226AB, private=0x08423661),
    pubkey_hash=0x55,
    script_hash=0x6E,
    wif=0xEF,
)

NETWORKS: dict[NetworkType, NetworkParams] = {
    NetworkType.MAINNET: SBIT_MAINNET,
    NetworkType.TESTNET: SBIT_TESTNET,
}


def get_network_params(network: NetworkType | str) -> NetworkParams:
    """Look up the built-in parameters for a network name."""
    return NETWORKS[NetworkType(network)]
