"""
Test configuration for sbitwallet tests.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from sbitcore.crypto import KeyPair
from sbitcore.models import SBIT_MAINNET, NetworkParams

from sbitwallet.wallet.models import SpendableOutput


@pytest.fixture
def network() -> NetworkParams:
    return SBIT_MAINNET


@pytest.fixture
def identity() -> KeyPair:
    """Sender key (not for production use!)."""
    return KeyPair.from_secret(bytes.fromhex("11" * 32))


@pytest.fixture
def recipient_address(network: NetworkParams) -> str:
    return KeyPair.from_secret(bytes.fromhex("22" * 32)).address(network)


@pytest.fixture
def make_utxo() -> Callable[..., SpendableOutput]:
    """Factory for spendable outputs with unique, deterministic txids."""
    counter = iter(range(1, 10_000))

    def _make(value: int, confirmations: int = 10, is_stake: bool = False) -> SpendableOutput:
        n = next(counter)
        return SpendableOutput(
            txid=f"{n:064x}",
            vout=n % 3,
            value=value,
            confirmations=confirmations,
            is_stake=is_stake,
        )

    return _make
