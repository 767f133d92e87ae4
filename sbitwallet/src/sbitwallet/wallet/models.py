"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sbitcore.encoding import MalformedInputError, decode_hex

MAX_VOUT = 0xFFFFFFFF


@dataclass(frozen=True)
class SpendableOutput:
    """Unspent output as reported by the wallet backend"""

    txid: str
    vout: int
    value: int  # smallest units
    confirmations: int = 0
    is_stake: bool = False

    def __post_init__(self) -> None:
        # RPC-order hex, no 0x prefix
        try:
            txid_bytes = decode_hex(self.txid)
        except MalformedInputError as e:
            raise MalformedInputError(f"UTXO txid is not hex: {self.txid!r}") from e
        if len(txid_bytes) != 32 or len(self.txid) != 64:
            raise MalformedInputError(f"UTXO txid must be 32 bytes of hex: {self.txid!r}")
        if not 0 <= self.vout <= MAX_VOUT:
            raise MalformedInputError(f"UTXO vout out of range: {self.vout}")
        if self.value < 0:
            raise MalformedInputError(f"UTXO value must not be negative: {self.value}")
        if self.confirmations < 0:
            raise MalformedInputError(
                f"UTXO confirmations must not be negative: {self.confirmations}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpendableOutput:
        """
        Build from an explorer/wallet record.

        Accepts both the insight-style keys (hash, pos, isStake) and the
        Python field names.
        """
        return cls(
            txid=data["txid"] if "txid" in data else data["hash"],
            vout=int(data["vout"] if "vout" in data else data["pos"]),
            value=int(data["value"]),
            confirmations=int(data.get("confirmations", 0)),
            is_stake=data.get("is_stake", data.get("isStake")) is True,
        )

    def is_mature(self, stake_maturity: int) -> bool:
        return not self.is_stake or self.confirmations >= stake_maturity


@dataclass(frozen=True)
class CoinSelection:
    """Result of coin selection"""

    utxos: tuple[SpendableOutput, ...]
    total_value: int
    target: Decimal  # smallest units, may be fractional

    def __len__(self) -> int:
        return len(self.utxos)

    def __iter__(self):
        return iter(self.utxos)
