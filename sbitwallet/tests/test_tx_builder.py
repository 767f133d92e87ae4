"""
Tests for transaction builder module.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError
from sbitcore.constants import OP_CALL, OP_CREATE
from sbitcore.encoding import MalformedInputError
from sbitcore.script import address_to_scriptpubkey, decompile_script

from sbitwallet.config import BuilderConfig
from sbitwallet.tx_builder import (
    ContractCallRequest,
    ContractCreateRequest,
    PaymentRequest,
    SBitTxBuilder,
    build_contract_call,
    build_contract_create,
    build_payment,
    build_transaction,
    contract_fee,
    parse_request,
)
from sbitwallet.wallet.models import SpendableOutput
from sbitwallet.wallet.selection import InsufficientFundsError
from sbitwallet.wallet.signing import (
    TransactionSigningError,
    deserialize_transaction,
    verify_input_signature,
)

CONTRACT = "bb" * 20
TRANSFER_DATA = "a9059cbb" + "00" * 64


class RecordingSigner:
    """Signer stub that records the order inputs are signed in."""

    def __init__(self) -> None:
        self.calls: list[int] = []

    def sign(self, tx, input_index, identity) -> bytes:
        self.calls.append(input_index)
        return bytes([0x01, input_index])


class FailingSigner:
    """Signer stub that always raises."""

    def sign(self, tx, input_index, identity) -> bytes:
        raise RuntimeError("hardware wallet disconnected")


def assert_conserved(assembled) -> None:
    assert assembled.total_input == assembled.total_output + assembled.fee + assembled.forfeited
    assert assembled.forfeited >= 0


class TestContractFee:
    """Tests for the gas-inclusive contract fee."""

    def test_gas_converted_to_coins(self):
        """Test gas limit times gas price is converted to coins."""
        assert contract_fee(1_000_000, 40, 0) == Decimal("0.4")

    def test_base_fee_added(self):
        """Test the base fee is added on top of gas."""
        assert contract_fee(250_000, 40, "0.01") == Decimal("0.11")


class TestPayment:
    """Tests for payment transactions."""

    def test_outputs_and_change(self, identity, recipient_address, network, make_utxo):
        """Test payment output first, change back to the sender second."""
        utxos = [make_utxo(500_000_000), make_utxo(100_000_000)]

        assembled = build_payment(identity, recipient_address, "1.5", "0.001", utxos, network)

        assert [inp.txid for inp in assembled.tx.inputs] == [utxos[1].txid, utxos[0].txid]
        assert [inp.vout for inp in assembled.tx.inputs] == [utxos[1].vout, utxos[0].vout]
        payment, change = assembled.tx.outputs
        assert payment.value == 150_000_000
        assert payment.script == address_to_scriptpubkey(recipient_address, network)
        assert change.value == 449_900_000
        assert change.script == identity.script_pubkey()
        assert assembled.fee == 100_000
        assert assembled.forfeited == 0
        assert_conserved(assembled)

    def test_exact_amount_has_no_change(self, identity, recipient_address, network, make_utxo):
        """Test an exact match produces no change output."""
        utxos = [make_utxo(100_100_000)]
        assembled = build_payment(identity, recipient_address, 1, "0.001", utxos, network)

        assert len(assembled.tx.outputs) == 1
        assert assembled.tx.outputs[0].value == 100_000_000
        assert_conserved(assembled)

    def test_one_unit_remainder_is_change(self, identity, recipient_address, network, make_utxo):
        """Test any positive remainder becomes change for payments."""
        utxos = [make_utxo(100_100_001)]
        assembled = build_payment(identity, recipient_address, 1, "0.001", utxos, network)

        assert assembled.tx.outputs[-1].value == 1
        assert_conserved(assembled)

    def test_inputs_are_signed(self, identity, recipient_address, network, make_utxo):
        """Test every input carries a valid signature."""
        utxos = [make_utxo(30_000_000) for _ in range(3)]
        assembled = build_payment(identity, recipient_address, "0.8", "0.001", utxos, network)

        assert len(assembled.tx.inputs) == 3
        for i in range(3):
            assert verify_input_signature(assembled.tx, i, identity.script_pubkey())

    def test_hex_roundtrip(self, identity, recipient_address, network, make_utxo):
        """Test the hex output parses back to the same transaction."""
        assembled = build_payment(
            identity, recipient_address, "0.1", "0.001", [make_utxo(50_000_000)], network
        )
        parsed = deserialize_transaction(bytes.fromhex(assembled.hex()))
        assert parsed.serialize() == assembled.serialize()
        assert parsed.txid == assembled.txid

    def test_deterministic(self, identity, recipient_address, network, make_utxo):
        """Test identical inputs give identical raw transactions."""
        utxos = [make_utxo(v) for v in (70_000_000, 20_000_000, 20_000_000)]
        first = build_payment(identity, recipient_address, "0.3", "0.001", utxos, network)
        second = build_payment(identity, recipient_address, "0.3", "0.001", utxos, network)
        assert first.hex() == second.hex()

    def test_insufficient_funds(self, identity, recipient_address, network, make_utxo):
        """Test a shortfall raises instead of building."""
        with pytest.raises(InsufficientFundsError):
            build_payment(identity, recipient_address, 2, "0.001", [make_utxo(100)], network)

    def test_invalid_destination(self, identity, network, make_utxo):
        """Test an undecodable destination address."""
        with pytest.raises(MalformedInputError):
            build_payment(identity, "not-an-address", 1, 0, [make_utxo(10**9)], network)

    def test_sub_unit_amount_rejected(self, identity, recipient_address, network, make_utxo):
        """Test amounts finer than one unit cannot become an output."""
        with pytest.raises(MalformedInputError):
            build_payment(
                identity, recipient_address, "0.000000001", 0, [make_utxo(10**9)], network
            )

    def test_short_txid_never_reaches_the_wire(self, identity, recipient_address, network):
        """Test a truncated outpoint hash is rejected before signing."""
        with pytest.raises(MalformedInputError, match="txid"):
            build_payment(
                identity,
                recipient_address,
                1,
                0,
                [SpendableOutput(txid="ab", vout=0, value=10**9)],
                network,
            )


class TestContractCreate:
    """Tests for contract deployment transactions."""

    def test_gas_sets_selection_target(self, identity, network, make_utxo):
        """Test gas cost is part of the selection target."""
        # 1_000_000 * 40 gas units = 0.4 coins; a 0.39999999 coin cannot pay it
        with pytest.raises(InsufficientFundsError) as exc_info:
            build_contract_create(
                identity, "6060", 1_000_000, 40, 0, [make_utxo(39_999_999)], network
            )
        assert exc_info.value.target == Decimal(40_000_000)

    def test_outputs(self, identity, network, make_utxo):
        """Test zero-value create output followed by change."""
        assembled = build_contract_create(
            identity, "60606040", 1_000_000, 40, "0.01", [make_utxo(50_000_000)], network
        )

        contract, change = assembled.tx.outputs
        assert contract.value == 0
        chunks = decompile_script(contract.script)
        assert chunks[0] == 0x54
        assert chunks[3] == bytes.fromhex("60606040")
        assert chunks[-1] == OP_CREATE
        assert change.value == 9_000_000
        assert change.script == identity.script_pubkey()
        assert assembled.fee == 41_000_000
        assert_conserved(assembled)

    def test_exact_funding_has_no_change(self, identity, network, make_utxo):
        """Test exact funding produces only the contract output."""
        assembled = build_contract_create(
            identity, "6060", 1_000_000, 40, 0, [make_utxo(40_000_000)], network
        )
        assert len(assembled.tx.outputs) == 1
        assert_conserved(assembled)

    def test_bad_bytecode(self, identity, network, make_utxo):
        """Test non-hex bytecode is rejected."""
        with pytest.raises(MalformedInputError):
            build_contract_create(identity, "60g0", 1_000_000, 40, 0, [make_utxo(10**9)], network)


class TestContractCall:
    """Tests for contract call transactions."""

    # gas 250_000 * 40 + fee 0.01 = 11_000_000 units, plus 0.5 coins sent
    TARGET = 61_000_000

    def _call(self, identity, network, utxos, **kwargs):
        return build_contract_call(
            identity,
            CONTRACT,
            TRANSFER_DATA,
            250_000,
            40,
            "0.01",
            utxos,
            network,
            amount="0.5",
            **kwargs,
        )

    def test_outputs(self, identity, network, make_utxo):
        """Test call output carries the amount, change follows."""
        assembled = self._call(identity, network, [make_utxo(self.TARGET + 100_000)])

        contract, change = assembled.tx.outputs
        assert contract.value == 50_000_000
        chunks = decompile_script(contract.script)
        assert chunks[3] == bytes.fromhex(TRANSFER_DATA)
        assert chunks[4] == bytes.fromhex(CONTRACT)
        assert chunks[-1] == OP_CALL
        assert change.value == 100_000
        assert assembled.fee == 11_000_000
        assert_conserved(assembled)

    def test_dust_remainder_is_forfeited(self, identity, network, make_utxo):
        """Test a remainder below the dust threshold goes to the miner."""
        assembled = self._call(identity, network, [make_utxo(self.TARGET + 50_000)])

        assert len(assembled.tx.outputs) == 1
        assert assembled.forfeited == 50_000
        assert_conserved(assembled)

    def test_remainder_equal_to_threshold_is_forfeited(self, identity, network, make_utxo):
        """Test the threshold itself is still dust."""
        assembled = self._call(identity, network, [make_utxo(self.TARGET + 72_799)])
        assert len(assembled.tx.outputs) == 1
        assert assembled.forfeited == 72_799

    def test_remainder_above_threshold_is_change(self, identity, network, make_utxo):
        """Test one unit above the threshold becomes change."""
        assembled = self._call(identity, network, [make_utxo(self.TARGET + 72_800)])
        assert assembled.tx.outputs[-1].value == 72_800
        assert assembled.forfeited == 0

    def test_threshold_is_configurable(self, identity, network, make_utxo):
        """Test the dust threshold can be lowered through config."""
        config = BuilderConfig(contract_call_dust_threshold=Decimal(0))
        assembled = self._call(
            identity, network, [make_utxo(self.TARGET + 50_000)], config=config
        )
        assert assembled.tx.outputs[-1].value == 50_000

    def test_zero_amount_default(self, identity, network, make_utxo):
        """Test calls send nothing to the contract by default."""
        assembled = build_contract_call(
            identity, CONTRACT, TRANSFER_DATA, 250_000, 40, 0, [make_utxo(10**9)], network
        )
        assert assembled.tx.outputs[0].value == 0
        assert_conserved(assembled)

    def test_bad_contract_address(self, identity, network, make_utxo):
        """Test contract addresses must be 20 bytes."""
        with pytest.raises(MalformedInputError):
            build_contract_call(
                identity, "bb" * 21, TRANSFER_DATA, 250_000, 40, 0, [make_utxo(10**9)], network
            )


class TestSigner:
    """Tests for injected signers."""

    def test_inputs_signed_in_order(self, identity, recipient_address, network, make_utxo):
        """Test inputs are signed 0..n-1 and the scriptSigs are attached."""
        signer = RecordingSigner()
        utxos = [make_utxo(10_000_000) for _ in range(3)]

        assembled = build_payment(
            identity, recipient_address, "0.25", 0, utxos, network, signer=signer
        )

        assert signer.calls == [0, 1, 2]
        assert [inp.script_sig for inp in assembled.tx.inputs] == [
            b"\x01\x00",
            b"\x01\x01",
            b"\x01\x02",
        ]

    def test_signer_failure_aborts(self, identity, recipient_address, network, make_utxo):
        """Test a signer exception aborts the build."""
        with pytest.raises(TransactionSigningError, match="disconnected"):
            build_payment(
                identity,
                recipient_address,
                "0.1",
                0,
                [make_utxo(10**9)],
                network,
                signer=FailingSigner(),
            )


class TestRequests:
    """Tests for typed requests and dispatch."""

    def test_parse_dispatches_on_kind(self):
        """Test the kind field selects the request model."""
        request = parse_request(
            {
                "kind": "contract_create",
                "bytecode": "6060",
                "gas_limit": 100,
                "gas_price": 40,
                "fee": "0",
            }
        )
        assert isinstance(request, ContractCreateRequest)

    def test_unknown_kind(self):
        """Test an unknown kind is rejected."""
        with pytest.raises(ValidationError):
            parse_request({"kind": "stake", "fee": "0"})

    def test_negative_fee(self, recipient_address):
        """Test a negative fee is rejected."""
        with pytest.raises(ValidationError):
            PaymentRequest(to=recipient_address, amount="1", fee="-0.1")

    def test_non_positive_gas(self):
        """Test gas limit must be positive."""
        with pytest.raises(ValidationError):
            ContractCreateRequest(bytecode="6060", gas_limit=0, gas_price=40, fee="0")

    def test_odd_hex(self):
        """Test odd-length call data is rejected."""
        with pytest.raises(ValidationError):
            ContractCallRequest(
                contract_address=CONTRACT, encoded_data="abc", gas_limit=1, gas_price=1, fee="0"
            )

    def test_build_transaction_payment(self, identity, recipient_address, network, make_utxo):
        """Test dispatch matches a direct payment build."""
        utxos = [make_utxo(10**9)]
        request = PaymentRequest(to=recipient_address, amount="1", fee="0.001")
        via_request = build_transaction(request, identity, utxos, network)
        direct = build_payment(identity, recipient_address, "1", "0.001", utxos, network)
        assert via_request.hex() == direct.hex()
        assert via_request.kind == "payment"

    def test_build_transaction_call(self, identity, network, make_utxo):
        """Test builder dispatch for a contract call."""
        utxos = [make_utxo(10**9)]
        request = ContractCallRequest(
            contract_address=CONTRACT,
            encoded_data=TRANSFER_DATA,
            gas_limit=250_000,
            gas_price=40,
            fee="0.01",
            amount="0.5",
        )
        assembled = SBitTxBuilder(network).build(request, identity, utxos)
        assert assembled.kind == "contract_call"
        assert assembled.tx.outputs[0].value == 50_000_000
