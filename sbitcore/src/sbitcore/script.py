"""
Script compilation and standard output scripts.

Contract outputs are an ordered chunk list compiled into script bytes:

    create: OP_4 <gas_limit> <gas_price> <bytecode> OP_CREATE
    call:   OP_4 <gas_limit> <gas_price> <data> <contract_address> OP_CALL
"""

from __future__ import annotations

from collections.abc import Iterable

import base58

from sbitcore.constants import (
    CONTRACT_ADDRESS_LENGTH,
    CONTRACT_VM_VERSION,
    OP_0,
    OP_1,
    OP_1NEGATE,
    OP_CALL,
    OP_CHECKSIG,
    OP_CREATE,
    OP_DUP,
    OP_EQUAL,
    OP_EQUALVERIFY,
    OP_HASH160,
    OP_PUSHDATA1,
    OP_PUSHDATA2,
    OP_PUSHDATA4,
)
from sbitcore.encoding import MalformedInputError, decode_hex, encode_script_number
from sbitcore.models import NetworkParams

ScriptChunk = int | bytes


def push_data(data: bytes) -> bytes:
    """Serialize a data push with the smallest length prefix."""
    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + length.to_bytes(4, "little") + data


def _as_minimal_opcode(data: bytes) -> int | None:
    # Small pushes have a dedicated opcode and must use it
    if len(data) == 0:
        return OP_0
    if len(data) == 1:
        if 1 <= data[0] <= 16:
            return OP_1 + data[0] - 1
        if data[0] == 0x81:
            return OP_1NEGATE
    return None


def compile_script(chunks: Iterable[ScriptChunk]) -> bytes:
    """Compile opcodes (int) and data pushes (bytes) into script bytes."""
    result = bytearray()
    for chunk in chunks:
        if isinstance(chunk, (bytes, bytearray)):
            opcode = _as_minimal_opcode(chunk)
            if opcode is None:
                result += push_data(bytes(chunk))
            else:
                result.append(opcode)
        elif isinstance(chunk, int) and 0 <= chunk <= 0xFF:
            result.append(chunk)
        else:
            raise MalformedInputError(f"Invalid script chunk: {chunk!r}")
    return bytes(result)


def decompile_script(script: bytes) -> list[ScriptChunk]:
    """Split script bytes back into opcodes and data pushes."""
    chunks: list[ScriptChunk] = []
    offset = 0
    while offset < len(script):
        opcode = script[offset]
        offset += 1

        if 0 < opcode < OP_PUSHDATA1:
            length = opcode
        elif opcode in (OP_PUSHDATA1, OP_PUSHDATA2, OP_PUSHDATA4):
            size = {OP_PUSHDATA1: 1, OP_PUSHDATA2: 2, OP_PUSHDATA4: 4}[opcode]
            if offset + size > len(script):
                raise MalformedInputError("Truncated push length in script")
            length = int.from_bytes(script[offset : offset + size], "little")
            offset += size
        else:
            chunks.append(opcode)
            continue

        if offset + length > len(script):
            raise MalformedInputError("Script push runs past end of script")
        chunks.append(script[offset : offset + length])
        offset += length

    return chunks


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    """OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG"""
    return compile_script([OP_DUP, OP_HASH160, pubkey_hash, OP_EQUALVERIFY, OP_CHECKSIG])


def p2sh_script(script_hash: bytes) -> bytes:
    """OP_HASH160 <20-byte-scripthash> OP_EQUAL"""
    return compile_script([OP_HASH160, script_hash, OP_EQUAL])


def address_to_scriptpubkey(address: str, network: NetworkParams) -> bytes:
    """
    Convert a Base58Check address to its scriptPubKey.

    The version byte must belong to the given network.
    """
    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise MalformedInputError(f"Invalid address {address!r}: {e}") from e

    if len(decoded) != 21:
        raise MalformedInputError(f"Invalid address payload length: {len(decoded)}")

    version = decoded[0]
    payload = decoded[1:]

    if version == network.pubkey_hash:
        return p2pkh_script(payload)
    if version == network.script_hash:
        return p2sh_script(payload)

    raise MalformedInputError(
        f"Address version 0x{version:02x} does not belong to network {network.name.value}"
    )


def pubkey_hash_to_address(pubkey_hash: bytes, network: NetworkParams) -> str:
    return base58.b58encode_check(bytes([network.pubkey_hash]) + pubkey_hash).decode("ascii")


def _check_gas(gas_limit: int, gas_price: int) -> None:
    for name, value in (("gas_limit", gas_limit), ("gas_price", gas_price)):
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise MalformedInputError(f"{name} must be a positive integer, got {value!r}")


def contract_create_script(bytecode: str, gas_limit: int, gas_price: int) -> bytes:
    """Build the output script that deploys a contract."""
    _check_gas(gas_limit, gas_price)
    return compile_script(
        [
            CONTRACT_VM_VERSION,
            encode_script_number(gas_limit),
            encode_script_number(gas_price),
            decode_hex(bytecode),
            OP_CREATE,
        ]
    )


def contract_call_script(
    contract_address: str, encoded_data: str, gas_limit: int, gas_price: int
) -> bytes:
    """Build the output script that calls an existing contract."""
    _check_gas(gas_limit, gas_price)
    address_bytes = decode_hex(contract_address)
    if len(address_bytes) != CONTRACT_ADDRESS_LENGTH:
        raise MalformedInputError(
            f"Contract address must be {CONTRACT_ADDRESS_LENGTH} bytes, got {len(address_bytes)}"
        )
    return compile_script(
        [
            CONTRACT_VM_VERSION,
            encode_script_number(gas_limit),
            encode_script_number(gas_price),
            decode_hex(encoded_data),
            address_bytes,
            OP_CALL,
        ]
    )
