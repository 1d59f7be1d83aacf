"""Capabilities and typed documents for signature-bearing JSON.

Capabilities are :class:`typing.Protocol` classes, so any object exposing
the right attributes qualifies without inheriting from anything here:

- :class:`Signed` exposes a read-only signature container
- :class:`SignedMut` additionally hands out a mutable container
- :class:`ToCanonical` renders the canonical bytes of the document
- :class:`UnsignedCarrier` exposes the out-of-band ``unsigned`` value

:class:`SignedDocument` is a pydantic base model implementing all four.
"""

from __future__ import annotations

from typing import Any, Protocol, Self, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from .canonical import encode_canonically
from .errors import DecodeError, EncodeError
from .keys import VerifyKey
from .signatures import SignatureMap, Signatures, SignaturesMut

__all__ = [
    "Signed",
    "SignedMut",
    "ToCanonical",
    "UnsignedCarrier",
    "SignedDocument",
    "SimpleSigned",
    "VerifyKeyEntry",
    "ServerKeys",
]


@runtime_checkable
class Signed(Protocol):
    """Object exposing its signature container for reading."""

    @property
    def signatures(self) -> Signatures:
        """Return the signature container."""


@runtime_checkable
class SignedMut(Signed, Protocol):
    """Object whose signature container may be mutated."""

    def signatures_mut(self) -> SignaturesMut:
        """Return the signature container for mutation."""


@runtime_checkable
class ToCanonical(Protocol):
    """Object able to produce its canonical bytes."""

    def to_canonical(self) -> bytes:
        """Return the canonical JSON encoding of the signable content."""


@runtime_checkable
class UnsignedCarrier(Protocol):
    """Object carrying an ``unsigned`` side value outside the signed content."""

    def unsigned_value(self) -> Any | None:
        """Return the ``unsigned`` value, or ``None`` when absent."""


class SignedDocument(BaseModel):
    """Base model for JSON documents carrying a ``signatures`` member.

    Signatures are validated when the document is decoded: every entry must
    be base64 of exactly 64 bytes, otherwise validation fails. Members not
    declared on a subclass are retained so the document round-trips.
    """

    model_config = ConfigDict(extra="allow")

    signatures: SignatureMap = Field(default_factory=SignatureMap)

    def signatures_mut(self) -> SignatureMap:
        # Signatures added in place must survive an exclude_unset dump
        self.model_fields_set.add("signatures")
        return self.signatures

    def to_canonical(self) -> bytes:
        return encode_canonically(self)

    def unsigned_value(self) -> Any | None:
        return getattr(self, "unsigned", None)

    def __copy__(self) -> Self:
        clone = super().__copy__()
        clone.__dict__["signatures"] = self.signatures.copy()
        return clone


class SimpleSigned(SignedDocument):
    """Document type that keeps only the signatures of a payload.

    Every other member is ignored on decode, which makes it suitable for
    verifying arbitrary documents whose canonical form is tracked elsewhere
    (for example by :class:`fedsig.frozen.FrozenObject`). Signing or verifying
    it directly raises :class:`~fedsig.errors.EncodeError`.
    """

    model_config = ConfigDict(extra="ignore")

    def to_canonical(self) -> bytes:
        raise EncodeError(
            "SimpleSigned does not keep the signed content; "
            "decode it with FrozenObject.from_bytes"
        )


class VerifyKeyEntry(BaseModel):
    """A single entry of a server's ``verify_keys`` map."""

    model_config = ConfigDict(extra="allow")

    key: str


class ServerKeys(SignedDocument):
    """Self-signed server key document published by a federation server."""

    server_name: str
    valid_until_ts: int
    verify_keys: dict[str, VerifyKeyEntry] = Field(default_factory=dict)
    old_verify_keys: dict[str, Any] = Field(default_factory=dict)
    tls_fingerprints: list[dict[str, str]] = Field(default_factory=list)

    def verify_key(self, key_id: str) -> VerifyKey | None:
        """Return the :class:`~fedsig.keys.VerifyKey` published under ``key_id``.

        Returns ``None`` when the key is not published, its material is not
        a valid ED25519 public key, or its key-id names another algorithm.
        """
        entry = self.verify_keys.get(key_id)
        if entry is None:
            return None
        try:
            return VerifyKey.from_base64(entry.key, self.server_name, key_id)
        except DecodeError:
            return None
