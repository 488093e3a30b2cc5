"""Common key handling utilities.
"""

from __future__ import annotations

from typing import cast

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

ED25519_PRIVATE_DER_PREFIX = "302e020100300506032b657004220420"
ED25519_PUBLIC_DER_PREFIX = "302a300506032b6570032100"
ED25519_KEY_LEN = 32


class KeyUtils:
    """Utility class for Ed25519 key parsing and encoding."""

    @staticmethod
    def parse_private_key(material: str) -> Ed25519PrivateKey:
        """Parse a raw hex, DER hex or PEM encoded Ed25519 private key."""
        text = material.strip()
        if text.startswith("-----BEGIN"):
            key = serialization.load_pem_private_key(text.encode(), password=None)
        else:
            if text.lower().startswith("0x"):
                text = text[2:]
            try:
                raw = bytes.fromhex(text)
            except ValueError as err:
                msg = "Private key is not valid hex"
                raise ValueError(msg) from err
            if len(raw) == ED25519_KEY_LEN:
                return Ed25519PrivateKey.from_private_bytes(raw)
            key = serialization.load_der_private_key(raw, password=None)
        if not isinstance(key, Ed25519PrivateKey):
            msg = "Private key is not an Ed25519 key"
            raise ValueError(msg)
        return key

    @staticmethod
    def parse_public_key(material: str) -> Ed25519PublicKey:
        """Parse a raw hex or DER hex encoded Ed25519 public key."""
        text = material.strip().lower()
        if text.startswith("0x"):
            text = text[2:]
        if text.startswith(ED25519_PUBLIC_DER_PREFIX):
            text = text[len(ED25519_PUBLIC_DER_PREFIX) :]
        raw = bytes.fromhex(text)
        if len(raw) != ED25519_KEY_LEN:
            msg = f"Public key must be {ED25519_KEY_LEN} bytes, got {len(raw)}"
            raise ValueError(msg)
        return Ed25519PublicKey.from_public_bytes(raw)

    @staticmethod
    def public_key_hex(public_key: Ed25519PublicKey) -> str:
        return public_key.public_bytes(
            serialization.Encoding.Raw,
            serialization.PublicFormat.Raw,
        ).hex()

    @staticmethod
    def public_key_der_hex(public_key: Ed25519PublicKey) -> str:
        return public_key.public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).hex()

    @staticmethod
    def private_key_der_hex(private_key: Ed25519PrivateKey) -> str:
        return private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).hex()

    @staticmethod
    def normalize_public_key(key: Ed25519PublicKey | str) -> str:
        """Return the raw hex form of a public key object or encoded string."""
        if isinstance(key, str):
            key = KeyUtils.parse_public_key(key)
        return KeyUtils.public_key_hex(cast("Ed25519PublicKey", key))

    @staticmethod
    def verify(public_key_hex: str, signature: bytes, data: bytes) -> bool:
        """Check an Ed25519 signature, returning False on any mismatch."""
        try:
            KeyUtils.parse_public_key(public_key_hex).verify(signature, data)
        except (InvalidSignature, ValueError):
            return False
        return True
