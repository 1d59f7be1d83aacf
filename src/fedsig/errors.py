"""Exception hierarchy for :mod:`fedsig`.

Every failure the library surfaces is immediate and synchronous. Callers that
only care about "something was wrong with the input" can catch
:class:`FedsigError`; the concrete subclasses also derive from the matching
builtin so existing ``except ValueError`` handlers keep working.

Verification outcomes are *not* errors; see :class:`fedsig.keys.VerifyResult`.
"""

from __future__ import annotations

__all__ = ["FedsigError", "ParseError", "DecodeError", "EncodeError"]


class FedsigError(Exception):
    """Base class for all errors raised by :mod:`fedsig`."""


class ParseError(FedsigError, ValueError):
    """Raised when input bytes are not a well-formed JSON document."""


class DecodeError(FedsigError, ValueError):
    """Raised when well-formed input carries invalid content.

    Examples are signatures or keys of the wrong length, invalid base64 and
    documents that do not match the expected typed shape.
    """


class EncodeError(FedsigError, TypeError):
    """Raised when a value cannot be rendered as canonical JSON."""
