"""
Coin selection.

Smallest-first greedy selection over mature outputs: small change is spent
before large coins, and scanning stops at the first output that covers the
target.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from loguru import logger
from sbitcore.constants import COIN
from sbitcore.encoding import Amount, to_decimal
from sbitcore.models import NetworkParams

from sbitwallet.wallet.models import CoinSelection, SpendableOutput


class InsufficientFundsError(Exception):
    """Mature outputs cannot cover amount + fee."""

    def __init__(self, target: Decimal, available: int):
        self.target = target
        self.available = available
        super().__init__(f"Insufficient funds: need {target} units, have {available} spendable")


def selection_target(amount: Amount, fee: Amount) -> Decimal:
    """(amount + fee) in smallest units, exact."""
    return (to_decimal(amount) + to_decimal(fee)) * COIN


def select_utxos(
    utxos: Sequence[SpendableOutput],
    amount: Amount,
    fee: Amount,
    network: NetworkParams,
) -> CoinSelection:
    """
    Select UTXOs to fund amount + fee (both in coins).

    Immature staking outputs are skipped. The remaining outputs are taken in
    ascending value order (stable, so equal values keep caller order) until
    the running total reaches the target.

    Raises:
        InsufficientFundsError: if every mature output together falls short
        MalformedInputError: if amount or fee is negative or not a number
    """
    target = selection_target(amount, fee)

    mature = [utxo for utxo in utxos if utxo.is_mature(network.stake_maturity)]
    mature.sort(key=lambda u: u.value)

    logger.debug(
        f"Selecting for target {target} units from {len(mature)}/{len(utxos)} mature UTXOs"
    )

    selected: list[SpendableOutput] = []
    total = 0

    for utxo in mature:
        selected.append(utxo)
        total += utxo.value
        if total >= target:
            break

    if not selected or total < target:
        raise InsufficientFundsError(target, total)

    logger.debug(f"Selected {len(selected)} UTXOs totalling {total} units")
    return CoinSelection(utxos=tuple(selected), total_value=total, target=target)
