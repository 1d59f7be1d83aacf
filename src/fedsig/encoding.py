"""Unpadded standard base64 helpers.

Signatures and public keys travel as standard-alphabet base64 with the
trailing ``=`` padding stripped and no line breaks.
"""

from __future__ import annotations

import base64
import binascii

from .errors import DecodeError

__all__ = ["encode_base64", "decode_base64"]


def encode_base64(data: bytes) -> str:
    """Return ``data`` as unpadded standard base64."""
    return base64.b64encode(bytes(data)).decode("ascii").rstrip("=")


def decode_base64(text: str | bytes) -> bytes:
    """Decode standard base64, accepting both padded and unpadded input.

    Raises:
        DecodeError: If ``text`` contains characters outside the standard
            alphabet or has an impossible length.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("ascii")
        except UnicodeDecodeError as exc:
            raise DecodeError("base64 input must be ASCII") from exc
    if not isinstance(text, str):
        raise DecodeError(f"expected base64 string, got {type(text).__name__}")

    stripped = text.rstrip("=")
    if len(stripped) % 4 == 1:
        raise DecodeError("invalid base64 length")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64: {exc}") from exc
