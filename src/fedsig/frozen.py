"""Frozen documents: a live signed value paired with fixed canonical bytes.

A :class:`FrozenObject` computes the canonical bytes of its document exactly
once. Signatures may then be added, replaced or cleared on the live value
without ever changing what is signed, which is what makes it safe for
several parties to sign the same object in turn.

The wrapper also keeps a cache of the full serialized document (canonical
content plus current signatures plus the ``unsigned`` side value). Any
mutation routed through :meth:`FrozenObject.signatures_mut` drops the cache;
:meth:`FrozenObject.serialize` rebuilds it on demand.

Concurrency: ``canonical`` is immutable and may be read from any thread. The
live value is single-writer; callers signing from several threads must hold
their own lock.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from .canonical import (
    canonicalize,
    dump_json,
    encode_canonically,
    load_json,
    to_json_value,
)
from .errors import DecodeError, EncodeError
from .signatures import Signature, SignaturesMut

logger = logging.getLogger(__name__)

__all__ = ["FrozenObject"]

T = TypeVar("T")


class _InvalidatingSignatures:
    """Signature container proxy that reports every mutation to its owner."""

    __slots__ = ("_inner", "_owner")

    def __init__(self, inner: SignaturesMut, owner: FrozenObject[Any]) -> None:
        self._inner = inner
        self._owner = owner

    def get_signature(self, entity: str, key_id: str) -> Signature | None:
        return self._inner.get_signature(entity, key_id)

    def get_signatures_for_entity(
        self, entity: str
    ) -> Iterable[tuple[str, Signature]]:
        return self._inner.get_signatures_for_entity(entity)

    def get_signatures(self) -> Iterable[tuple[str, str, Signature]]:
        return self._inner.get_signatures()

    def get_entities(self) -> Iterable[str]:
        return self._inner.get_entities()

    def add_signature(self, entity: str, key_id: str, signature: bytes) -> None:
        self._inner.add_signature(entity, key_id, signature)
        self._owner._invalidate()

    def remove_signature(self, entity: str, key_id: str) -> None:
        remove = getattr(self._inner, "remove_signature", None)
        if remove is None:
            raise TypeError(
                f"{type(self._inner).__name__} does not support removing signatures"
            )
        remove(entity, key_id)
        self._owner._invalidate()

    def clear(self) -> None:
        self._inner.clear()
        self._owner._invalidate()

    def __len__(self) -> int:
        return sum(1 for _ in self._inner.get_signatures())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._inner!r})"


class FrozenObject(Generic[T]):
    """A signed document whose canonical form never changes.

    Use :meth:`wrap` for a value built in memory and :meth:`from_bytes` for a
    document received as JSON. Attribute reads not defined here are
    forwarded to the live value, so ``frozen.server_name`` works for a
    frozen :class:`~fedsig.signed.ServerKeys`.

    The live value must only be mutated through this wrapper (for example
    via :func:`fedsig.keys.sign`); mutating ``frozen.value`` directly leaves
    a stale serialization cache behind.
    """

    __slots__ = ("_value", "_canonical", "_unsigned", "_serialized")

    def __init__(
        self,
        value: T,
        canonical: bytes,
        unsigned: Any | None = None,
        serialized: bytes | None = None,
    ) -> None:
        self._value = value
        self._canonical = bytes(canonical)
        self._unsigned = unsigned
        self._serialized = serialized

    # -- construction ----------------------------------------------------

    @classmethod
    def wrap(cls, value: T) -> FrozenObject[T]:
        """Freeze a value built in memory.

        Existing signatures on ``value`` are cleared first and the canonical
        bytes are computed from the cleared value.
        """
        value.signatures_mut().clear()  # type: ignore[attr-defined]
        to_canonical = getattr(value, "to_canonical", None)
        if callable(to_canonical):
            canonical = bytes(to_canonical())
        else:
            canonical = encode_canonically(value)
        unsigned_value = getattr(value, "unsigned_value", None)
        unsigned = unsigned_value() if callable(unsigned_value) else None
        logger.debug(
            "Froze in-memory document",
            extra={
                "document_type": type(value).__name__,
                "canonical_length": len(canonical),
            },
        )
        return cls(value, canonical, unsigned)

    @classmethod
    def from_bytes(
        cls,
        document_type: type[T],
        raw: bytes | bytearray | memoryview,
        *,
        unsigned_type: Any = None,
    ) -> FrozenObject[T]:
        """Decode and freeze a JSON document.

        Args:
            document_type: Type of the live value, typically a
                :class:`~fedsig.signed.SignedDocument` subclass. Any type
                pydantic can validate is accepted.
            raw: The full document, possibly with ``signatures`` and
                ``unsigned`` members.
            unsigned_type: Optional type the ``unsigned`` member is validated
                as. When omitted the member is kept as a plain JSON value.

        Raises:
            ParseError: If ``raw`` is not well-formed JSON.
            DecodeError: If the document is not a JSON object or does not
                validate as ``document_type``.
        """
        raw = bytes(raw)
        parsed = load_json(raw)
        if not isinstance(parsed, dict):
            raise DecodeError("signed documents must be JSON objects")

        unsigned: Any | None = None
        if "unsigned" in parsed:
            unsigned = parsed.pop("unsigned")
            if unsigned_type is not None:
                unsigned = _validate(unsigned_type, unsigned, "unsigned")

        type_name = getattr(document_type, "__name__", repr(document_type))
        value = _validate(document_type, parsed, type_name)
        canonical = canonicalize(raw)
        logger.debug(
            "Froze decoded document",
            extra={
                "document_type": type_name,
                "canonical_length": len(canonical),
            },
        )
        return cls(value, canonical, unsigned, serialized=raw)

    @classmethod
    def from_raw_parts(
        cls, value: T, canonical: bytes, unsigned: Any | None = None
    ) -> FrozenObject[T]:
        """Assemble a frozen object from already computed parts.

        The caller is responsible for ``canonical`` actually being the
        canonical form of ``value``; nothing is checked.
        """
        return cls(value, canonical, unsigned)

    # -- read access -----------------------------------------------------

    @property
    def value(self) -> T:
        return self._value

    @property
    def canonical(self) -> bytes:
        return self._canonical

    @property
    def unsigned(self) -> Any | None:
        return self._unsigned

    def to_canonical(self) -> bytes:
        return self._canonical

    def unsigned_value(self) -> Any | None:
        return self._unsigned

    @property
    def signatures(self) -> _InvalidatingSignatures:
        return _InvalidatingSignatures(
            self._value.signatures_mut(), self  # type: ignore[attr-defined]
        )

    def signatures_mut(self) -> _InvalidatingSignatures:
        return self.signatures

    @property
    def is_serialized(self) -> bool:
        """Whether a cached serialization is currently held."""
        return self._serialized is not None

    def serialize(self) -> bytes:
        """Return the full document as JSON bytes.

        The result combines the canonical content, the current signatures
        (omitted when there are none) and the ``unsigned`` value, and is
        cached until the next signature mutation.
        """
        if self._serialized is None:
            self._serialized = self._build_serialized()
        return self._serialized

    def _build_serialized(self) -> bytes:
        content = load_json(self._canonical)
        sigs: dict[str, dict[str, str]] = {}
        for entity, key_id, sig in self.signatures.get_signatures():
            encoded = Signature.from_bytes(sig).to_base64()
            sigs.setdefault(entity, {})[key_id] = encoded
        extras: dict[str, Any] = {}
        if sigs:
            extras["signatures"] = sigs
        if self._unsigned is not None:
            extras["unsigned"] = to_json_value(self._unsigned)
        if not extras:
            return dump_json(content)
        if not isinstance(content, dict):
            raise EncodeError("cannot attach signatures to a non-object document")
        content.update(extras)
        return dump_json(content)

    def _invalidate(self) -> None:
        self._serialized = None

    # -- misc ------------------------------------------------------------

    def copy(self) -> FrozenObject[T]:
        """Return an independent frozen object with a deep-copied live value."""
        return type(self)(
            copy.deepcopy(self._value),
            self._canonical,
            copy.deepcopy(self._unsigned),
            self._serialized,
        )

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._value, name)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FrozenObject):
            return (
                self._canonical == other._canonical
                and self._value == other._value
                and self._unsigned == other._unsigned
            )
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"FrozenObject(value={self._value!r}, canonical={self._canonical!r}, "
            f"unsigned={self._unsigned!r})"
        )


def _validate(target: Any, data: object, what: str) -> Any:
    try:
        return TypeAdapter(target).validate_python(data)
    except ValidationError as exc:
        raise DecodeError(f"invalid {what} document: {exc}") from exc
