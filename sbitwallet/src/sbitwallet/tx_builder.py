"""
Transaction builder for SBit payments and contract transactions.

Builds a fully signed transaction from:
- The sender's spendable outputs (selected smallest-first)
- A payment destination or a contract create/call
- The amount and the caller-supplied fee
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, Literal

from loguru import logger
from pydantic import BaseModel, Field, TypeAdapter, field_validator
from sbitcore.constants import COIN
from sbitcore.crypto import KeyPair
from sbitcore.encoding import Amount, decode_hex, from_base_units, to_base_units
from sbitcore.models import NetworkParams
from sbitcore.script import address_to_scriptpubkey, contract_call_script, contract_create_script

from sbitwallet.config import DEFAULT_BUILDER_CONFIG, BuilderConfig
from sbitwallet.wallet.models import CoinSelection, SpendableOutput
from sbitwallet.wallet.selection import select_utxos
from sbitwallet.wallet.signing import (
    P2PKHSigner,
    Signer,
    Transaction,
    TransactionSigningError,
    TxInput,
    TxOutput,
)


class PaymentRequest(BaseModel):
    kind: Literal["payment"] = "payment"
    to: str = Field(..., min_length=1, description="Destination Base58Check address")
    amount: Decimal = Field(..., ge=0, description="Amount in coins")
    fee: Decimal = Field(..., ge=0, description="Fee in coins")


class ContractCreateRequest(BaseModel):
    kind: Literal["contract_create"] = "contract_create"
    bytecode: str = Field(..., min_length=2, description="Contract bytecode (hex)")
    gas_limit: int = Field(..., gt=0)
    gas_price: int = Field(..., gt=0, description="Smallest units per gas")
    fee: Decimal = Field(..., ge=0, description="Fee in coins, excluding gas")

    @field_validator("bytecode")
    @classmethod
    def validate_bytecode(cls, v: str) -> str:
        decode_hex(v)
        return v


class ContractCallRequest(BaseModel):
    kind: Literal["contract_call"] = "contract_call"
    contract_address: str = Field(..., description="20-byte contract address (hex)")
    encoded_data: str = Field(..., description="ABI-encoded call data (hex)")
    gas_limit: int = Field(..., gt=0)
    gas_price: int = Field(..., gt=0, description="Smallest units per gas")
    fee: Decimal = Field(..., ge=0, description="Fee in coins, excluding gas")
    amount: Decimal = Field(default=Decimal(0), ge=0, description="Value sent to the contract")

    @field_validator("contract_address", "encoded_data")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        decode_hex(v)
        return v


TransactionRequest = Annotated[
    PaymentRequest | ContractCreateRequest | ContractCallRequest,
    Field(discriminator="kind"),
]

_request_adapter: TypeAdapter[TransactionRequest] = TypeAdapter(TransactionRequest)


def parse_request(data: dict[str, Any]) -> TransactionRequest:
    """Validate a request dict, dispatching on its "kind" field."""
    return _request_adapter.validate_python(data)


def contract_fee(gas_limit: int, gas_price: int, fee: Amount) -> Decimal:
    """Gas cost converted to coins plus the base fee."""
    return from_base_units(gas_limit * gas_price + to_base_units(fee))


@dataclass
class AssembledTransaction:
    """A signed transaction together with how it was funded."""

    kind: str
    tx: Transaction
    selection: CoinSelection
    fee: int  # requested fee in smallest units, gas included

    @property
    def total_input(self) -> int:
        return self.selection.total_value

    @property
    def total_output(self) -> int:
        return sum(out.value for out in self.tx.outputs)

    @property
    def forfeited(self) -> int:
        """Remainder left to the miner on top of the requested fee."""
        return self.total_input - self.total_output - self.fee

    @property
    def txid(self) -> str:
        return self.tx.txid

    def serialize(self) -> bytes:
        return self.tx.serialize()

    def hex(self) -> str:
        return self.tx.hex()


class SBitTxBuilder:
    """
    Builds and signs SBit transactions for a single network.

    Every build selects inputs, adds the kind-specific outputs plus an
    optional change output back to the sender, then signs inputs in order.
    """

    def __init__(
        self,
        network: NetworkParams,
        signer: Signer | None = None,
        config: BuilderConfig = DEFAULT_BUILDER_CONFIG,
    ):
        self.network = network
        self.signer: Signer = signer if signer is not None else P2PKHSigner()
        self.config = config

    def build_payment(
        self,
        identity: KeyPair,
        to: str,
        amount: Amount,
        fee: Amount,
        utxos: Sequence[SpendableOutput],
    ) -> AssembledTransaction:
        """Pay `amount` coins to `to`, returning the remainder as change."""
        value = to_base_units(amount)
        fee_units = to_base_units(fee)
        script = address_to_scriptpubkey(to, self.network)

        selection = select_utxos(utxos, amount, fee, self.network)
        outputs = [TxOutput(value=value, script=script)]
        change = selection.total_value - value - fee_units

        return self._assemble(
            "payment",
            identity,
            selection,
            outputs,
            fee_units,
            change,
            self.config.payment_change_threshold,
        )

    def build_contract_create(
        self,
        identity: KeyPair,
        bytecode: str,
        gas_limit: int,
        gas_price: int,
        fee: Amount,
        utxos: Sequence[SpendableOutput],
    ) -> AssembledTransaction:
        """Deploy a contract. The contract output carries no value."""
        script = contract_create_script(bytecode, gas_limit, gas_price)
        effective_fee = contract_fee(gas_limit, gas_price, fee)
        fee_units = to_base_units(effective_fee)

        selection = select_utxos(utxos, 0, effective_fee, self.network)
        outputs = [TxOutput(value=0, script=script)]
        change = selection.total_value - fee_units

        return self._assemble(
            "contract_create",
            identity,
            selection,
            outputs,
            fee_units,
            change,
            self.config.contract_create_change_threshold,
        )

    def build_contract_call(
        self,
        identity: KeyPair,
        contract_address: str,
        encoded_data: str,
        gas_limit: int,
        gas_price: int,
        fee: Amount,
        utxos: Sequence[SpendableOutput],
        amount: Amount = 0,
    ) -> AssembledTransaction:
        """Call a contract, sending it `amount` coins."""
        script = contract_call_script(contract_address, encoded_data, gas_limit, gas_price)
        effective_fee = contract_fee(gas_limit, gas_price, fee)
        fee_units = to_base_units(effective_fee)
        value = to_base_units(amount)

        selection = select_utxos(utxos, amount, effective_fee, self.network)
        outputs = [TxOutput(value=value, script=script)]
        change = selection.total_value - fee_units - value

        return self._assemble(
            "contract_call",
            identity,
            selection,
            outputs,
            fee_units,
            change,
            self.config.contract_call_dust_threshold,
        )

    def build(
        self,
        request: TransactionRequest,
        identity: KeyPair,
        utxos: Sequence[SpendableOutput],
    ) -> AssembledTransaction:
        if isinstance(request, PaymentRequest):
            return self.build_payment(identity, request.to, request.amount, request.fee, utxos)
        if isinstance(request, ContractCreateRequest):
            return self.build_contract_create(
                identity, request.bytecode, request.gas_limit, request.gas_price, request.fee, utxos
            )
        return self.build_contract_call(
            identity,
            request.contract_address,
            request.encoded_data,
            request.gas_limit,
            request.gas_price,
            request.fee,
            utxos,
            amount=request.amount,
        )

    def _assemble(
        self,
        kind: str,
        identity: KeyPair,
        selection: CoinSelection,
        outputs: list[TxOutput],
        fee_units: int,
        change: int,
        change_threshold: Decimal,
    ) -> AssembledTransaction:
        if change > change_threshold * COIN:
            outputs.append(TxOutput(value=change, script=identity.script_pubkey()))
        elif change > 0:
            logger.warning(
                f"{kind}: remainder of {change} units is below the change threshold "
                f"and goes to the miner"
            )

        tx = Transaction(
            inputs=[TxInput(txid=u.txid, vout=u.vout) for u in selection.utxos],
            outputs=outputs,
        )

        for i, inp in enumerate(tx.inputs):
            try:
                inp.script_sig = self.signer.sign(tx, i, identity)
            except TransactionSigningError:
                raise
            except Exception as e:
                raise TransactionSigningError(f"Signer failed on input {i}: {e}") from e

        assembled = AssembledTransaction(kind=kind, tx=tx, selection=selection, fee=fee_units)
        logger.info(
            f"Built {kind} tx {assembled.txid}: {len(tx.inputs)} inputs, "
            f"{len(tx.outputs)} outputs, fee {fee_units + assembled.forfeited} units"
        )
        return assembled


def build_payment(
    identity: KeyPair,
    to: str,
    amount: Amount,
    fee: Amount,
    utxos: Sequence[SpendableOutput],
    network: NetworkParams,
    signer: Signer | None = None,
    config: BuilderConfig = DEFAULT_BUILDER_CONFIG,
) -> AssembledTransaction:
    """
    Build a signed pay-to-pubkey-hash transaction.

    Args:
        identity: Key that owns every UTXO and receives the change
        to: Destination address on `network`
        amount: Amount in coins
        fee: Fee in coins
        utxos: Candidate outputs to spend
        network: Network parameters for address encoding and maturity

    Returns:
        AssembledTransaction; `.hex()` is ready for broadcast
    """
    builder = SBitTxBuilder(network, signer, config)
    return builder.build_payment(identity, to, amount, fee, utxos)


def build_contract_create(
    identity: KeyPair,
    bytecode: str,
    gas_limit: int,
    gas_price: int,
    fee: Amount,
    utxos: Sequence[SpendableOutput],
    network: NetworkParams,
    signer: Signer | None = None,
    config: BuilderConfig = DEFAULT_BUILDER_CONFIG,
) -> AssembledTransaction:
    """
    Build a signed contract-creation transaction.

    Args:
        bytecode: Contract bytecode (hex)
        gas_limit: Maximum gas the deployment may use
        gas_price: Smallest units per gas
        fee: Fee in coins on top of gas_limit * gas_price
    """
    builder = SBitTxBuilder(network, signer, config)
    return builder.build_contract_create(identity, bytecode, gas_limit, gas_price, fee, utxos)


def build_contract_call(
    identity: KeyPair,
    contract_address: str,
    encoded_data: str,
    gas_limit: int,
    gas_price: int,
    fee: Amount,
    utxos: Sequence[SpendableOutput],
    network: NetworkParams,
    amount: Amount = 0,
    signer: Signer | None = None,
    config: BuilderConfig = DEFAULT_BUILDER_CONFIG,
) -> AssembledTransaction:
    """
    Build a signed send-to-contract transaction.

    Args:
        contract_address: 20-byte contract address (hex)
        encoded_data: ABI-encoded call data (hex)
        amount: Coins transferred into the contract
    """
    builder = SBitTxBuilder(network, signer, config)
    return builder.build_contract_call(
        identity, contract_address, encoded_data, gas_limit, gas_price, fee, utxos, amount
    )


def build_transaction(
    request: TransactionRequest,
    identity: KeyPair,
    utxos: Sequence[SpendableOutput],
    network: NetworkParams,
    signer: Signer | None = None,
    config: BuilderConfig = DEFAULT_BUILDER_CONFIG,
) -> AssembledTransaction:
    """Build whichever transaction kind the request describes."""
    return SBitTxBuilder(network, signer, config).build(request, identity, utxos)
