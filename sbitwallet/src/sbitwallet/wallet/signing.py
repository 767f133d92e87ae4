"""
Transaction structure and signing for legacy P2PKH inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Protocol

from sbitcore.constants import SEQUENCE_FINAL, SIGHASH_ALL, TX_LOCKTIME, TX_VERSION
from sbitcore.crypto import KeyPair, hash160, hash256, verify_digest
from sbitcore.encoding import encode_varint, read_varint
from sbitcore.script import compile_script, decompile_script, p2pkh_script


class TransactionSigningError(Exception):
    pass


@dataclass
class TxInput:
    txid: str  # RPC (big-endian) hex
    vout: int
    script_sig: bytes = b""
    sequence: int = SEQUENCE_FINAL

    def serialize(self) -> bytes:
        # txid is in RPC format (big-endian), reversed for the raw tx
        return (
            bytes.fromhex(self.txid)[::-1]
            + self.vout.to_bytes(4, "little")
            + encode_varint(len(self.script_sig))
            + self.script_sig
            + self.sequence.to_bytes(4, "little")
        )


@dataclass
class TxOutput:
    value: int
    script: bytes

    def serialize(self) -> bytes:
        return self.value.to_bytes(8, "little") + encode_varint(len(self.script)) + self.script


@dataclass
class Transaction:
    inputs: list[TxInput] = field(default_factory=list)
    outputs: list[TxOutput] = field(default_factory=list)
    version: int = TX_VERSION
    locktime: int = TX_LOCKTIME

    def serialize(self) -> bytes:
        result = self.version.to_bytes(4, "little")
        result += encode_varint(len(self.inputs))
        for inp in self.inputs:
            result += inp.serialize()
        result += encode_varint(len(self.outputs))
        for out in self.outputs:
            result += out.serialize()
        result += self.locktime.to_bytes(4, "little")
        return result

    def hex(self) -> str:
        return self.serialize().hex()

    @property
    def txid(self) -> str:
        return hash256(self.serialize())[::-1].hex()


def deserialize_transaction(tx_bytes: bytes) -> Transaction:
    try:
        offset = 0
        version = int.from_bytes(tx_bytes[offset : offset + 4], "little")
        offset += 4

        input_count, offset = read_varint(tx_bytes, offset)
        inputs: list[TxInput] = []

        for _ in range(input_count):
            txid = tx_bytes[offset : offset + 32][::-1].hex()
            offset += 32

            vout = int.from_bytes(tx_bytes[offset : offset + 4], "little")
            offset += 4

            script_len, offset = read_varint(tx_bytes, offset)
            script = tx_bytes[offset : offset + script_len]
            offset += script_len

            sequence = int.from_bytes(tx_bytes[offset : offset + 4], "little")
            offset += 4

            inputs.append(TxInput(txid, vout, script, sequence))

        output_count, offset = read_varint(tx_bytes, offset)
        outputs: list[TxOutput] = []

        for _ in range(output_count):
            value = int.from_bytes(tx_bytes[offset : offset + 8], "little")
            offset += 8

            script_len, offset = read_varint(tx_bytes, offset)
            script = tx_bytes[offset : offset + script_len]
            offset += script_len

            outputs.append(TxOutput(value, script))

        if len(tx_bytes) != offset + 4:
            raise ValueError(f"expected 4 locktime bytes at offset {offset}")
        locktime = int.from_bytes(tx_bytes[offset : offset + 4], "little")
        return Transaction(inputs, outputs, version, locktime)

    except Exception as e:
        raise TransactionSigningError(f"Failed to parse transaction: {e}") from e


def compute_sighash_legacy(
    tx: Transaction,
    input_index: int,
    script_code: bytes,
    sighash_type: int = SIGHASH_ALL,
) -> bytes:
    """
    Pre-segwit SIGHASH_ALL digest.

    Every scriptSig is blanked, the signed input carries the scriptPubKey it
    spends, and the sighash type is appended as 4 bytes before hashing.
    """
    if not 0 <= input_index < len(tx.inputs):
        raise TransactionSigningError(
            f"Input index {input_index} out of range ({len(tx.inputs)} inputs)"
        )

    inputs = [
        replace(inp, script_sig=script_code if i == input_index else b"")
        for i, inp in enumerate(tx.inputs)
    ]
    preimage = replace(tx, inputs=inputs).serialize() + sighash_type.to_bytes(4, "little")
    return hash256(preimage)


class Signer(Protocol):
    """Produces the scriptSig for one input of a transaction."""

    def sign(self, tx: Transaction, input_index: int, identity: KeyPair) -> bytes: ...


class P2PKHSigner:
    """Signs inputs that spend the identity's own P2PKH outputs."""

    def __init__(self, sighash_type: int = SIGHASH_ALL):
        self.sighash_type = sighash_type

    def sign(self, tx: Transaction, input_index: int, identity: KeyPair) -> bytes:
        """
        Sign a P2PKH input using coincurve.

        Returns:
            scriptSig: <DER signature + sighash byte> <public key>
        """
        try:
            sighash = compute_sighash_legacy(
                tx, input_index, identity.script_pubkey(), self.sighash_type
            )
            signature = identity.sign_digest(sighash) + bytes([self.sighash_type])
        except TransactionSigningError:
            raise
        except Exception as e:
            raise TransactionSigningError(f"Failed to sign input {input_index}: {e}") from e

        return compile_script([signature, identity.public_key_bytes()])


def verify_input_signature(tx: Transaction, input_index: int, script_pubkey: bytes) -> bool:
    """Check a P2PKH scriptSig against the scriptPubKey it spends."""
    try:
        chunks = decompile_script(tx.inputs[input_index].script_sig)
    except (IndexError, ValueError):
        return False

    if len(chunks) != 2 or not all(isinstance(c, bytes) for c in chunks):
        return False
    signature, pubkey = chunks
    if not signature or p2pkh_script(hash160(pubkey)) != script_pubkey:
        return False

    sighash = compute_sighash_legacy(tx, input_index, script_pubkey, signature[-1])
    return verify_digest(signature[:-1], sighash, pubkey)
