"""ED25519 keys and the sign/verify operations over signed documents.

Two capabilities compose here. A key may *hold key material*
(:class:`HasSecretKey` / :class:`HasPublicKey`) and it may be *bound to a
signature slot* (:class:`HasKeyId`, an entity plus a key-id). :func:`sign`
and :func:`verify` are written once against the combination, so any object
providing both capabilities can sign and verify documents; :class:`SigningKey`
and :class:`VerifyKey` are simply the stock implementations.

Unnamed keys (:class:`SecretKey`, :class:`PublicKey`) only support detached
operations over raw bytes and never touch a signature container.

Verification never raises for a bad or missing signature. It returns a
:class:`VerifyResult`, which keeps "nobody signed this" (``UNSIGNED``) apart
from "the signature does not match" (``INVALID``).
"""

from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from .canonical import encode_canonically
from .encoding import decode_base64, encode_base64
from .errors import DecodeError
from .signatures import Signature

if TYPE_CHECKING:
    from .signed import Signed, SignedMut

logger = logging.getLogger(__name__)

__all__ = [
    "ALGORITHM",
    "PUBLIC_KEY_LENGTH",
    "SEED_LENGTH",
    "VerifyResult",
    "PublicKey",
    "SecretKey",
    "HasPublicKey",
    "HasSecretKey",
    "HasKeyId",
    "NamedVerifyingKey",
    "NamedSigningKey",
    "SigningKey",
    "VerifyKey",
    "key_id_algorithm",
    "sign_detached",
    "verify_detached",
    "sign",
    "verify",
]

ALGORITHM = "ed25519"
PUBLIC_KEY_LENGTH = 32
SEED_LENGTH = 32


class VerifyResult(enum.Enum):
    """Outcome of checking one signature slot.

    Members have no truth value: ``if key.verify(doc):`` raises
    :class:`TypeError` so an ``UNSIGNED`` document can never pass as valid
    (or as tampered) by accident. Compare against the members instead.
    """

    VALID = "valid"
    INVALID = "invalid"
    UNSIGNED = "unsigned"

    def __bool__(self) -> bool:
        raise TypeError(
            "VerifyResult has no truth value; compare with VerifyResult.VALID"
        )


def key_id_algorithm(key_id: str) -> str:
    """Return the algorithm prefix of a ``<algorithm>:<version>`` key-id.

    Raises:
        DecodeError: If ``key_id`` has no algorithm prefix.
    """
    algorithm, sep, version = key_id.partition(":")
    if not sep or not algorithm or not version:
        raise DecodeError(f"key id {key_id!r} must look like '<algorithm>:<version>'")
    return algorithm


def _check_key_id(key_id: str) -> None:
    if not isinstance(key_id, str):
        raise TypeError("key_id must be a string")
    algorithm = key_id_algorithm(key_id)
    if algorithm != ALGORITHM:
        raise DecodeError(f"unsupported key algorithm {algorithm!r} in {key_id!r}")


@dataclass(frozen=True, slots=True)
class PublicKey:
    """A bare 32-byte ED25519 public key."""

    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != PUBLIC_KEY_LENGTH:
            raise DecodeError(
                f"public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(self.raw)}"
            )
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_bytes(cls, raw: bytes) -> PublicKey | None:
        """Return a key for ``raw``, or ``None`` when it is not 32 bytes."""
        if not isinstance(raw, (bytes, bytearray, memoryview)):
            return None
        if len(raw) != PUBLIC_KEY_LENGTH:
            return None
        return cls(bytes(raw))

    @classmethod
    def from_base64(cls, text: str | bytes) -> PublicKey | None:
        """Return a key from (unpadded) base64, or ``None`` if invalid."""
        try:
            raw = decode_base64(text)
        except DecodeError:
            return None
        return cls.from_bytes(raw)

    def to_base64(self) -> str:
        """Return the unpadded base64 form of the key."""
        return encode_base64(self.raw)

    def verify_detached(self, signature: bytes, message: bytes) -> VerifyResult:
        """Check ``signature`` over ``message``; never consults a container."""
        sig = Signature.from_bytes(signature)
        try:
            Ed25519PublicKey.from_public_bytes(self.raw).verify(sig, bytes(message))
        except InvalidSignature:
            return VerifyResult.INVALID
        except ValueError as exc:
            # Key bytes of the right length that do not decode to a curve point
            logger.debug("Unusable public key", extra={"error": str(exc)})
            return VerifyResult.INVALID
        return VerifyResult.VALID


@dataclass(frozen=True, slots=True)
class SecretKey:
    """A bare ED25519 secret key, stored as its 32-byte seed."""

    seed: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.seed) != SEED_LENGTH:
            raise DecodeError(
                f"seed must be {SEED_LENGTH} bytes, got {len(self.seed)}"
            )
        object.__setattr__(self, "seed", bytes(self.seed))

    @classmethod
    def from_seed(cls, seed: bytes) -> SecretKey | None:
        """Derive a key from a 32-byte seed, or ``None`` on bad input."""
        if not isinstance(seed, (bytes, bytearray, memoryview)):
            return None
        if len(seed) != SEED_LENGTH:
            return None
        return cls(bytes(seed))

    @classmethod
    def generate(cls) -> SecretKey:
        """Return a fresh random key."""
        return cls(os.urandom(SEED_LENGTH))

    def _private(self) -> Ed25519PrivateKey:
        return Ed25519PrivateKey.from_private_bytes(self.seed)

    @property
    def public_key(self) -> PublicKey:
        pub_bytes = self._private().public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return PublicKey(pub_bytes)

    def sign_detached(self, message: bytes) -> Signature:
        """Return the deterministic ED25519 signature of ``message``."""
        return Signature(self._private().sign(bytes(message)))


def sign_detached(secret_key: SecretKey, canonical_bytes: bytes) -> Signature:
    """Sign ``canonical_bytes`` with ``secret_key``."""
    return secret_key.sign_detached(canonical_bytes)


def verify_detached(
    public_key: PublicKey, signature: bytes, canonical_bytes: bytes
) -> VerifyResult:
    """Return ``VALID`` or ``INVALID`` for a detached signature."""
    return public_key.verify_detached(signature, canonical_bytes)


@runtime_checkable
class HasPublicKey(Protocol):
    """Capability: holds an ED25519 public key."""

    @property
    def public_key(self) -> PublicKey:
        """Return the public key."""


@runtime_checkable
class HasSecretKey(Protocol):
    """Capability: holds an ED25519 secret key."""

    @property
    def secret_key(self) -> SecretKey:
        """Return the secret key."""


@runtime_checkable
class HasKeyId(Protocol):
    """Capability: bound to the ``(entity, key_id)`` signature slot."""

    @property
    def entity(self) -> str:
        """Return the entity the key belongs to."""

    @property
    def key_id(self) -> str:
        """Return the key identifier."""


@runtime_checkable
class NamedVerifyingKey(HasPublicKey, HasKeyId, Protocol):
    """A public key bound to a signature slot."""


@runtime_checkable
class NamedSigningKey(HasSecretKey, HasKeyId, Protocol):
    """A secret key bound to a signature slot."""


def _canonical_bytes(obj: object) -> bytes:
    to_canonical = getattr(obj, "to_canonical", None)
    if callable(to_canonical):
        return bytes(to_canonical())
    return encode_canonically(obj)


def sign(key: NamedSigningKey, obj: SignedMut) -> Signature:
    """Sign ``obj`` and record the signature in its container.

    The signature covers the canonical bytes of ``obj`` and is stored in the
    ``(key.entity, key.key_id)`` slot, replacing any previous value.
    """
    canonical = _canonical_bytes(obj)
    sig = sign_detached(key.secret_key, canonical)
    obj.signatures_mut().add_signature(key.entity, key.key_id, sig)
    logger.debug(
        "Signed document",
        extra={"entity": key.entity, "key_id": key.key_id},
    )
    return sig


def verify(key: NamedVerifyingKey, obj: Signed) -> VerifyResult:
    """Check the signature held in ``obj`` for the key's slot.

    Returns ``UNSIGNED`` when the slot is empty, otherwise ``VALID`` or
    ``INVALID`` depending on the cryptographic check.
    """
    sig = obj.signatures.get_signature(key.entity, key.key_id)
    if sig is None:
        result = VerifyResult.UNSIGNED
    else:
        result = verify_detached(key.public_key, sig, _canonical_bytes(obj))
    logger.debug(
        "Verified document",
        extra={"entity": key.entity, "key_id": key.key_id, "result": result.value},
    )
    return result


@dataclass(frozen=True, slots=True)
class VerifyKey:
    """A public key bound to an entity and key-id."""

    public_key: PublicKey
    entity: str
    key_id: str

    def __post_init__(self) -> None:
        _check_key_id(self.key_id)

    @classmethod
    def from_bytes(cls, raw: bytes, entity: str, key_id: str) -> VerifyKey | None:
        """Build a key from raw bytes, or ``None`` when the length is wrong."""
        public = PublicKey.from_bytes(raw)
        if public is None:
            return None
        return cls(public, entity, key_id)

    @classmethod
    def from_base64(
        cls, text: str | bytes, entity: str, key_id: str
    ) -> VerifyKey | None:
        """Build a key from (unpadded) base64, or ``None`` if invalid."""
        public = PublicKey.from_base64(text)
        if public is None:
            return None
        return cls(public, entity, key_id)

    @classmethod
    def from_signing_key(cls, signing_key: SigningKey) -> VerifyKey:
        return cls(signing_key.public_key, signing_key.entity, signing_key.key_id)

    def with_entity(self, entity: str) -> VerifyKey:
        """Return the same key bound to another entity's slot."""
        return VerifyKey(self.public_key, entity, self.key_id)

    def public_key_b64(self) -> str:
        return self.public_key.to_base64()

    def verify(self, obj: Signed) -> VerifyResult:
        return verify(self, obj)


@dataclass(frozen=True, slots=True)
class SigningKey:
    """A secret key bound to an entity and key-id.

    Args:
    ----
        secret_key: The ED25519 secret key.
        entity: Name of the signing party, for example a server name.
        key_id: Identifier of the key, ``ed25519:<version>``.

    """

    secret_key: SecretKey
    entity: str
    key_id: str

    def __post_init__(self) -> None:
        _check_key_id(self.key_id)

    @classmethod
    def from_seed(cls, seed: bytes, entity: str, key_id: str) -> SigningKey | None:
        """Derive a key from a 32-byte seed, or ``None`` on wrong length."""
        secret = SecretKey.from_seed(seed)
        if secret is None:
            return None
        return cls(secret, entity, key_id)

    @classmethod
    def generate(cls, entity: str, key_id: str) -> SigningKey:
        return cls(SecretKey.generate(), entity, key_id)

    @property
    def public_key(self) -> PublicKey:
        return self.secret_key.public_key

    def public_key_b64(self) -> str:
        """Return the unpadded base64 form of the public key."""
        return self.public_key.to_base64()

    def verify_key(self) -> VerifyKey:
        return VerifyKey.from_signing_key(self)

    def sign(self, obj: SignedMut) -> Signature:
        return sign(self, obj)

    def sign_detached(self, obj: object) -> Signature:
        """Sign ``obj`` without storing the signature anywhere.

        ``obj`` may be raw canonical bytes or any value with a canonical form.
        """
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return sign_detached(self.secret_key, bytes(obj))
        return sign_detached(self.secret_key, _canonical_bytes(obj))

    def verify(self, obj: Signed) -> VerifyResult:
        return verify(self, obj)
