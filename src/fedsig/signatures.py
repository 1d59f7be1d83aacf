"""Signature values and the ``entity -> key_id -> signature`` container.

A signed document carries its signatures under the top-level ``signatures``
member::

    {"signatures": {"example.org": {"ed25519:auto": "<unpadded base64>"}}}

:class:`SignatureMap` is the in-memory form of that member. Reads always
enumerate entities and key-ids in ascending order so serialization is
reproducible regardless of insertion order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema

from .encoding import decode_base64, encode_base64
from .errors import DecodeError

logger = logging.getLogger(__name__)

__all__ = [
    "SIGNATURE_LENGTH",
    "Signature",
    "SignatureView",
    "Signatures",
    "SignaturesMut",
    "SignatureMap",
]

SIGNATURE_LENGTH = 64

_T = TypeVar("_T")


class Signature(bytes):
    """A raw 64-byte ED25519 signature.

    Construction validates the length, so a :class:`Signature` instance is
    always well-formed.
    """

    __slots__ = ()

    def __new__(cls, raw: bytes | bytearray | memoryview) -> Signature:
        data = bytes(raw)
        if len(data) != SIGNATURE_LENGTH:
            raise DecodeError(
                f"signature must be {SIGNATURE_LENGTH} bytes, got {len(data)}"
            )
        return super().__new__(cls, data)

    @classmethod
    def from_bytes(cls, raw: bytes | bytearray | memoryview) -> Signature:
        """Return ``raw`` as a signature, rejecting wrong-length input."""
        if isinstance(raw, cls):
            return raw
        return cls(raw)

    @classmethod
    def from_base64(cls, text: str | bytes) -> Signature:
        """Decode an (unpadded) base64 signature string."""
        return cls(decode_base64(text))

    def to_base64(self) -> str:
        """Return the unpadded base64 form used on the wire."""
        return encode_base64(self)

    def __repr__(self) -> str:
        return f"Signature({self.to_base64()!r})"


class SignatureView(Generic[_T]):
    """Lazy, restartable view over an ordered sequence of signature entries.

    Each iteration re-reads the underlying container, so a view obtained
    before a mutation reflects the container's current state.
    """

    __slots__ = ("_factory",)

    def __init__(self, factory: Callable[[], Iterator[_T]]) -> None:
        self._factory = factory

    def __iter__(self) -> Iterator[_T]:
        return self._factory()

    def __len__(self) -> int:
        return sum(1 for _ in self._factory())

    def __bool__(self) -> bool:
        return next(self._factory(), None) is not None

    def __repr__(self) -> str:
        return f"SignatureView({list(self)!r})"


@runtime_checkable
class Signatures(Protocol):
    """Read access to a signature container."""

    def get_signature(self, entity: str, key_id: str) -> Signature | None:
        """Return the signature in the ``(entity, key_id)`` slot, if any."""

    def get_signatures_for_entity(
        self, entity: str
    ) -> Iterable[tuple[str, Signature]]:
        """Return ``(key_id, signature)`` pairs for ``entity`` in key-id order."""

    def get_signatures(self) -> Iterable[tuple[str, str, Signature]]:
        """Return every ``(entity, key_id, signature)`` entry in order."""

    def get_entities(self) -> Iterable[str]:
        """Return the entity names holding signatures, ascending."""


@runtime_checkable
class SignaturesMut(Signatures, Protocol):
    """Mutable access to a signature container."""

    def add_signature(self, entity: str, key_id: str, signature: bytes) -> None:
        """Insert or overwrite the ``(entity, key_id)`` slot."""

    def clear(self) -> None:
        """Remove every signature."""


class SignatureMap:
    """Concrete signature container keyed by entity and then key-id.

    Lookups are O(1); enumeration sorts on read. The container is owned by a
    single document and is not shared between documents.
    """

    __slots__ = ("_entries",)

    def __init__(
        self, entries: Mapping[str, Mapping[str, bytes]] | None = None
    ) -> None:
        self._entries: dict[str, dict[str, Signature]] = {}
        if entries:
            for entity, sigs in entries.items():
                for key_id, sig in sigs.items():
                    self.add_signature(entity, key_id, sig)

    # -- read operations -------------------------------------------------

    def get_signature(self, entity: str, key_id: str) -> Signature | None:
        sigs = self._entries.get(entity)
        if sigs is None:
            return None
        return sigs.get(key_id)

    def get_signatures_for_entity(
        self, entity: str
    ) -> SignatureView[tuple[str, Signature]]:
        def _iter() -> Iterator[tuple[str, Signature]]:
            sigs = self._entries.get(entity, {})
            for key_id in sorted(sigs):
                yield key_id, sigs[key_id]

        return SignatureView(_iter)

    def get_signatures(self) -> SignatureView[tuple[str, str, Signature]]:
        def _iter() -> Iterator[tuple[str, str, Signature]]:
            for entity in sorted(self._entries):
                sigs = self._entries[entity]
                for key_id in sorted(sigs):
                    yield entity, key_id, sigs[key_id]

        return SignatureView(_iter)

    def get_entities(self) -> SignatureView[str]:
        return SignatureView(lambda: iter(sorted(self._entries)))

    # -- mutation --------------------------------------------------------

    def add_signature(self, entity: str, key_id: str, signature: bytes) -> None:
        if not isinstance(entity, str) or not isinstance(key_id, str):
            raise TypeError("entity and key_id must be strings")
        sig = Signature.from_bytes(signature)
        self._entries.setdefault(entity, {})[key_id] = sig
        logger.debug(
            "Stored signature", extra={"entity": entity, "key_id": key_id}
        )

    def remove_signature(self, entity: str, key_id: str) -> None:
        """Drop the ``(entity, key_id)`` slot; absent slots are ignored."""
        sigs = self._entries.get(entity)
        if sigs is None:
            return
        sigs.pop(key_id, None)
        if not sigs:
            del self._entries[entity]

    def clear(self) -> None:
        self._entries.clear()

    # -- container protocol ----------------------------------------------

    def __len__(self) -> int:
        return sum(len(sigs) for sigs in self._entries.values())

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, slot: object) -> bool:
        if not isinstance(slot, tuple) or len(slot) != 2:
            return False
        entity, key_id = slot
        return self.get_signature(entity, key_id) is not None

    def __iter__(self) -> Iterator[tuple[str, str, Signature]]:
        return iter(self.get_signatures())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SignatureMap):
            return self._entries == other._entries
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"SignatureMap({self.to_json()!r})"

    def copy(self) -> SignatureMap:
        """Return an independent container holding the same signatures."""
        clone = SignatureMap()
        clone._entries = {entity: dict(sigs) for entity, sigs in self._entries.items()}
        return clone

    def __copy__(self) -> SignatureMap:
        return self.copy()

    def __deepcopy__(self, memo: dict[int, Any]) -> SignatureMap:
        # Signature values are immutable, so copying the maps is enough
        return self.copy()

    # -- wire form -------------------------------------------------------

    def to_json(self) -> dict[str, dict[str, str]]:
        """Return the nested ``{entity: {key_id: base64}}`` wire form."""
        out: dict[str, dict[str, str]] = {}
        for entity, key_id, sig in self.get_signatures():
            out.setdefault(entity, {})[key_id] = sig.to_base64()
        return out

    @classmethod
    def from_json(cls, value: object) -> SignatureMap:
        """Build a container from its wire form.

        Raises:
            DecodeError: If the shape is wrong or any signature is not valid
                base64 of exactly 64 bytes.
        """
        if not isinstance(value, Mapping):
            raise DecodeError("signatures must be a JSON object")
        result = cls()
        for entity, sigs in value.items():
            if not isinstance(entity, str) or not isinstance(sigs, Mapping):
                raise DecodeError(f"signatures for {entity!r} must be a JSON object")
            for key_id, encoded in sigs.items():
                if not isinstance(key_id, str) or not isinstance(encoded, str):
                    raise DecodeError(
                        f"signature {entity!r}/{key_id!r} must be a base64 string"
                    )
                try:
                    sig = Signature.from_base64(encoded)
                except DecodeError as exc:
                    raise DecodeError(
                        f"invalid signature for {entity!r}/{key_id!r}: {exc}"
                    ) from exc
                result._entries.setdefault(entity, {})[key_id] = sig
        return result

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: value.to_json()
            ),
        )

    @classmethod
    def _validate(cls, value: object) -> SignatureMap:
        if isinstance(value, SignatureMap):
            # A container belongs to exactly one document
            return value.copy()
        return cls.from_json(value)
