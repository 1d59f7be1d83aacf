"""Deterministic JSON canonicalization for signed documents.

The canonical form of a document is the compact UTF-8 JSON encoding of the
document with its top-level ``signatures`` and ``unsigned`` members removed
and object keys sorted at every nesting level. It is the byte sequence that
gets signed and verified, so two parties holding logically equal documents
must always produce identical bytes.

Provides:
- canonicalize(raw): parse raw JSON bytes and return canonical bytes
- encode_canonically(value): canonical bytes for an in-memory value
- load_json(raw): strict JSON parsing shared with the frozen wrapper
- dump_json(value): canonical JSON encoding without stripping reserved keys
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from .errors import EncodeError, ParseError

logger = logging.getLogger(__name__)

__all__ = [
    "RESERVED_FIELDS",
    "canonicalize",
    "encode_canonically",
    "load_json",
    "dump_json",
    "strip_reserved",
    "to_json_value",
]

# Top-level members excluded from the signed content
RESERVED_FIELDS: tuple[str, ...] = ("signatures", "unsigned")


def _reject_constant(name: str) -> Any:
    raise ParseError(f"non-standard JSON constant {name!r} is not allowed")


def _reject_duplicates(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    obj: dict[str, Any] = {}
    for key, value in pairs:
        if key in obj:
            raise ParseError(f"duplicate object key {key!r}")
        obj[key] = value
    return obj


def load_json(raw: bytes | bytearray | memoryview | str) -> Any:
    """Parse ``raw`` as strict JSON.

    Bytes must be valid UTF-8. ``NaN``/``Infinity`` and duplicated object keys
    are rejected rather than silently accepted or collapsed.

    Raises:
        ParseError: If ``raw`` is not a well-formed JSON document.
    """
    if isinstance(raw, (bytes, bytearray, memoryview)):
        try:
            text = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"input is not valid UTF-8: {exc}") from exc
    elif isinstance(raw, str):
        text = raw
    else:
        raise ParseError(f"cannot parse JSON from {type(raw).__name__}")

    try:
        return json.loads(
            text,
            parse_constant=_reject_constant,
            object_pairs_hook=_reject_duplicates,
        )
    except json.JSONDecodeError as exc:
        raise ParseError(f"malformed JSON: {exc}") from exc
    except RecursionError as exc:
        raise ParseError("JSON document is nested too deeply") from exc


def to_json_value(value: object) -> Any:
    """Return a plain JSON value tree for ``value``.

    Accepts dicts with string keys, lists, tuples, strings, integers, finite
    floats, booleans and ``None``. Pydantic models are dumped in JSON mode
    using their aliases and only with the fields that were actually set, so a
    decoded model renders exactly the members it was decoded from. Objects
    exposing ``to_json()`` (for example :class:`fedsig.signatures.SignatureMap`)
    are rendered through it.

    Raises:
        EncodeError: For any other type, non-string keys or non-finite floats.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodeError(f"non-finite number {value!r} has no JSON form")
        return value
    if isinstance(value, BaseModel):
        dumped = value.model_dump(mode="json", by_alias=True, exclude_unset=True)
        return to_json_value(dumped)
    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodeError(
                    f"object keys must be strings, got {type(key).__name__}"
                )
            out[key] = to_json_value(item)
        return out
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return to_json_value(to_json())
    raise EncodeError(f"Object of type {type(value).__name__} is not JSON serializable")


def strip_reserved(value: Any) -> Any:
    """Return ``value`` without its top-level reserved members.

    Non-object values and nested members of the same name are untouched.
    """
    if isinstance(value, dict):
        return {k: v for k, v in value.items() if k not in RESERVED_FIELDS}
    return value


def _format_float(value: float) -> str:
    """Render a finite float in its shortest round-trip form.

    Exponents carry no sign for positive powers and no leading zeros, and
    numbers down to ``1e-5`` are written out in decimal notation.
    """
    text = repr(value)
    mantissa, sep, exponent = text.partition("e")
    if not sep:
        return text
    power = int(exponent)
    if power == -5:
        sign = "-" if mantissa.startswith("-") else ""
        digits = mantissa.lstrip("-").replace(".", "")
        return f"{sign}0.0000{digits}"
    return f"{mantissa}e{power}"


def _encode(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, int):
        return int.__repr__(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodeError(f"non-finite number {value!r} has no JSON form")
        return _format_float(value)
    if isinstance(value, dict):
        # Code point order equals UTF-8 byte order
        members = [f"{_encode(key)}:{_encode(value[key])}" for key in sorted(value)]
        return "{" + ",".join(members) + "}"
    if isinstance(value, list):
        return "[" + ",".join(_encode(item) for item in value) + "]"
    raise EncodeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _serialize(tree: Any) -> bytes:
    try:
        return _encode(tree).encode("utf-8")
    except EncodeError:
        raise
    except UnicodeEncodeError as exc:
        raise EncodeError(f"string is not encodable as UTF-8: {exc}") from exc
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodeError(str(exc)) from exc


def dump_json(value: object) -> bytes:
    """Encode ``value`` as compact, key-sorted UTF-8 JSON.

    Raises:
        EncodeError: If ``value`` cannot be represented as JSON.
    """
    return _serialize(to_json_value(value))


def encode_canonically(value: object) -> bytes:
    """Return the canonical bytes of an in-memory value.

    Raises:
        EncodeError: If ``value`` cannot be represented as JSON.
    """
    canonical = _serialize(strip_reserved(to_json_value(value)))
    logger.debug("Encoded canonical JSON", extra={"canonical_length": len(canonical)})
    return canonical


def canonicalize(raw: bytes | bytearray | memoryview | str) -> bytes:
    """Parse raw JSON and return its canonical bytes.

    Raises:
        ParseError: If ``raw`` is not a well-formed JSON document.
    """
    return encode_canonically(load_json(raw))
