"""
Cryptographic primitives for SBit wallets.
"""

from __future__ import annotations

import hashlib

import base58
from coincurve import PrivateKey, PublicKey

from sbitcore.encoding import MalformedInputError
from sbitcore.models import NetworkParams
from sbitcore.script import p2pkh_script, pubkey_hash_to_address


class CryptoError(Exception):
    pass


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    return hashlib.new("ripemd160", hashlib.sha256(data).digest()).digest()


class KeyPair:
    """
    Signing identity: a secp256k1 key and the P2PKH address it controls.

    The address depends on the network, so it is always derived from an
    explicit NetworkParams.
    """

    def __init__(self, private_key: PrivateKey | None = None, compressed: bool = True):
        if private_key is None:
            private_key = PrivateKey()
        self._private_key = private_key
        self._public_key = private_key.public_key
        self.compressed = compressed

    @classmethod
    def from_secret(cls, secret: bytes, compressed: bool = True) -> KeyPair:
        try:
            return cls(PrivateKey(secret), compressed=compressed)
        except ValueError as e:
            raise CryptoError(f"Invalid private key: {e}") from e

    @classmethod
    def from_wif(cls, wif: str, network: NetworkParams) -> KeyPair:
        """Load a key from Wallet Import Format, checking the network byte."""
        try:
            payload = base58.b58decode_check(wif)
        except ValueError as e:
            raise MalformedInputError(f"Invalid WIF: {e}") from e

        if not payload:
            raise MalformedInputError("Invalid WIF: empty payload")

        if payload[0] != network.wif:
            raise MalformedInputError(
                f"WIF version 0x{payload[0]:02x} does not match network {network.name.value}"
            )

        if len(payload) == 34 and payload[33] == 0x01:
            return cls.from_secret(payload[1:33], compressed=True)
        if len(payload) == 33:
            return cls.from_secret(payload[1:33], compressed=False)

        raise MalformedInputError(f"Invalid WIF payload length: {len(payload)}")

    def to_wif(self, network: NetworkParams) -> str:
        payload = bytes([network.wif]) + self._private_key.secret
        if self.compressed:
            payload += b"\x01"
        return base58.b58encode_check(payload).decode("ascii")

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    def public_key_bytes(self) -> bytes:
        return self._public_key.format(compressed=self.compressed)

    def public_key_hex(self) -> str:
        return self.public_key_bytes().hex()

    def pubkey_hash(self) -> bytes:
        return hash160(self.public_key_bytes())

    def address(self, network: NetworkParams) -> str:
        return pubkey_hash_to_address(self.pubkey_hash(), network)

    def script_pubkey(self) -> bytes:
        return p2pkh_script(self.pubkey_hash())

    def sign_digest(self, digest: bytes) -> bytes:
        """DER-encoded ECDSA signature over an already-hashed 32-byte digest."""
        return self._private_key.sign(digest, hasher=None)


def verify_digest(signature_der: bytes, digest: bytes, pubkey_bytes: bytes) -> bool:
    """Verify a DER signature over a pre-hashed digest."""
    try:
        return PublicKey(pubkey_bytes).verify(signature_der, digest, hasher=None)
    except Exception:
        return False
