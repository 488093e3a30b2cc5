"""
Operator and signer identities.
"""

from __future__ import annotations

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from hcsclient.client.domain.entities import EntityId
from hcsclient.common.crypto import KeyUtils
from hcsclient.common.exceptions import ConfigurationError


class SigningIdentity:
    """An account id paired with the Ed25519 key that signs for it."""

    def __init__(self, account_id: EntityId, private_key: Ed25519PrivateKey):
        self._account_id = account_id
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._public_key_hex = KeyUtils.public_key_hex(self._public_key)

    @classmethod
    def from_credentials(
        cls, account_id: str | None, private_key_material: str | None
    ) -> SigningIdentity:
        """Build an identity from configuration strings.

        Raises ConfigurationError when either value is missing or malformed.
        """
        if not account_id or not account_id.strip():
            msg = "Account id is required"
            raise ConfigurationError(msg)
        if not private_key_material or not private_key_material.strip():
            msg = "Private key is required"
            raise ConfigurationError(msg)
        try:
            parsed_account = EntityId.parse(account_id)
        except ValueError as err:
            raise ConfigurationError(str(err)) from err
        try:
            private_key = KeyUtils.parse_private_key(private_key_material)
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            msg = f"Private key for {parsed_account} is not a well-formed Ed25519 key"
            raise ConfigurationError(msg) from err
        return cls(parsed_account, private_key)

    @classmethod
    def generate(cls, account_id: str | EntityId) -> SigningIdentity:
        return cls(EntityId.parse(account_id), Ed25519PrivateKey.generate())

    @property
    def account_id(self) -> EntityId:
        return self._account_id

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._public_key

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    @property
    def public_key_der_hex(self) -> str:
        return KeyUtils.public_key_der_hex(self._public_key)

    def private_key_der_hex(self) -> str:
        return KeyUtils.private_key_der_hex(self._private_key)

    def sign(self, data: bytes) -> bytes:
        """Sign a payload; Ed25519 signatures are deterministic."""
        return self._private_key.sign(data)

    def __repr__(self) -> str:
        return f"SigningIdentity(account_id={self._account_id}, public_key={self._public_key_hex})"
