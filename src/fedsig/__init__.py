"""Canonical JSON signing for federated documents."""

from __future__ import annotations

import logging
from importlib import import_module
from typing import Any, TYPE_CHECKING

__all__ = [
    "canonicalize",
    "encode_canonically",
    "FedsigError",
    "ParseError",
    "DecodeError",
    "EncodeError",
    "Signature",
    "SignatureMap",
    "Signed",
    "SignedMut",
    "SignedDocument",
    "SimpleSigned",
    "ServerKeys",
    "VerifyResult",
    "PublicKey",
    "SecretKey",
    "SigningKey",
    "VerifyKey",
    "sign",
    "verify",
    "sign_detached",
    "verify_detached",
    "FrozenObject",
    "FedsigSettings",
    "get_settings",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())

if TYPE_CHECKING:
    from .canonical import canonicalize, encode_canonically
    from .errors import DecodeError, EncodeError, FedsigError, ParseError
    from .frozen import FrozenObject
    from .keys import (
        PublicKey,
        SecretKey,
        SigningKey,
        VerifyKey,
        VerifyResult,
        sign,
        sign_detached,
        verify,
        verify_detached,
    )
    from .settings import FedsigSettings, get_settings
    from .signatures import Signature, SignatureMap
    from .signed import ServerKeys, Signed, SignedDocument, SignedMut, SimpleSigned


def __getattr__(name: str) -> Any:
    """Lazily import submodules so ``import fedsig`` stays cheap."""

    module_map = {
        "canonicalize": "canonical",
        "encode_canonically": "canonical",
        "FedsigError": "errors",
        "ParseError": "errors",
        "DecodeError": "errors",
        "EncodeError": "errors",
        "Signature": "signatures",
        "SignatureMap": "signatures",
        "Signed": "signed",
        "SignedMut": "signed",
        "SignedDocument": "signed",
        "SimpleSigned": "signed",
        "ServerKeys": "signed",
        "VerifyResult": "keys",
        "PublicKey": "keys",
        "SecretKey": "keys",
        "SigningKey": "keys",
        "VerifyKey": "keys",
        "sign": "keys",
        "verify": "keys",
        "sign_detached": "keys",
        "verify_detached": "keys",
        "FrozenObject": "frozen",
        "FedsigSettings": "settings",
        "get_settings": "settings",
    }

    if name not in module_map:
        raise AttributeError(name)

    module = import_module(f".{module_map[name]}", __name__)
    return getattr(module, name)
