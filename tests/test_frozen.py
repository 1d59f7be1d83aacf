"""Tests for the frozen document wrapper."""

from __future__ import annotations

import json

import pytest
from pydantic import BaseModel

from fedsig.errors import DecodeError, ParseError
from fedsig.frozen import FrozenObject
from fedsig.keys import SigningKey, VerifyResult
from fedsig.signed import ServerKeys, SignedDocument, SimpleSigned

from conftest import JKI_CANONICAL, JKI_SERVER_KEYS, JKI_SIGNATURE_BYTES


def test_from_bytes_keeps_canonical_and_signatures() -> None:
    frozen = FrozenObject.from_bytes(SimpleSigned, JKI_SERVER_KEYS)

    assert frozen.canonical == JKI_CANONICAL
    assert frozen.to_canonical() == JKI_CANONICAL
    sig = frozen.signatures.get_signature("jki.re", "ed25519:auto")
    assert sig == JKI_SIGNATURE_BYTES
    assert frozen.is_serialized
    assert frozen.serialize() == JKI_SERVER_KEYS


def test_typed_server_keys_verify_with_embedded_key() -> None:
    frozen = FrozenObject.from_bytes(ServerKeys, JKI_SERVER_KEYS)
    assert frozen.server_name == "jki.re"
    assert frozen.value.valid_until_ts == 1462110302047

    key = frozen.verify_key("ed25519:auto")
    assert key is not None
    assert key.verify(frozen) is VerifyResult.VALID
    assert key.with_entity("example.com").verify(frozen) is VerifyResult.UNSIGNED
    assert frozen.verify_key("ed25519:missing") is None


def test_signing_never_changes_canonical_bytes() -> None:
    frozen = FrozenObject.from_bytes(ServerKeys, JKI_SERVER_KEYS)
    before = frozen.canonical
    SigningKey.generate("notary.example", "ed25519:n").sign(frozen)
    SigningKey.generate("other.example", "ed25519:o").sign(frozen)
    assert frozen.canonical == before

    frozen.signatures_mut().clear()
    assert frozen.canonical == before


def test_mutation_invalidates_serialization_cache() -> None:
    frozen = FrozenObject.from_bytes(SimpleSigned, JKI_SERVER_KEYS)
    notary = SigningKey.generate("notary.example", "ed25519:n")

    notary.sign(frozen)
    assert not frozen.is_serialized

    document = json.loads(frozen.serialize())
    assert frozen.is_serialized
    assert set(document["signatures"]) == {"jki.re", "notary.example"}
    assert document["server_name"] == "jki.re"

    frozen.signatures_mut().remove_signature("notary.example", "ed25519:n")
    assert not frozen.is_serialized
    assert set(json.loads(frozen.serialize())["signatures"]) == {"jki.re"}


def test_serialize_is_cached_until_next_mutation() -> None:
    frozen = FrozenObject.wrap(SignedDocument(content="x"))
    first = frozen.serialize()
    assert frozen.serialize() is first
    SigningKey.generate("a.example", "ed25519:1").sign(frozen)
    assert frozen.serialize() is not first


def test_wrap_clears_existing_signatures() -> None:
    signer = SigningKey.generate("a.example", "ed25519:1")
    doc = ServerKeys(server_name="a.example", valid_until_ts=10)
    signer.sign(doc)
    assert doc.signatures

    frozen = FrozenObject.wrap(doc)
    assert list(frozen.signatures.get_signatures()) == []
    assert not frozen.is_serialized
    assert b"signatures" not in frozen.canonical
    assert frozen.serialize() == frozen.canonical


def test_wrap_sign_and_verify_roundtrip() -> None:
    signer = SigningKey.generate("a.example", "ed25519:1")
    doc = ServerKeys(
        server_name="a.example",
        valid_until_ts=10,
        verify_keys={"ed25519:1": {"key": signer.public_key_b64()}},
    )
    frozen = FrozenObject.wrap(doc)
    signer.sign(frozen)

    received = FrozenObject.from_bytes(ServerKeys, frozen.serialize())
    assert received.canonical == frozen.canonical
    key = received.verify_key("ed25519:1")
    assert key is not None
    assert key.verify(received) is VerifyResult.VALID


def test_unsigned_side_value_roundtrip() -> None:
    raw = b'{"content":"hi","unsigned":{"age":5},"signatures":{}}'
    frozen = FrozenObject.from_bytes(SignedDocument, raw)

    assert frozen.unsigned == {"age": 5}
    assert frozen.canonical == b'{"content":"hi"}'
    assert "unsigned" not in (frozen.value.model_extra or {})

    SigningKey.generate("a.example", "ed25519:1").sign(frozen)
    document = json.loads(frozen.serialize())
    assert document["unsigned"] == {"age": 5}
    assert document["content"] == "hi"
    assert "a.example" in document["signatures"]


class _Unsigned(BaseModel):
    age: int


def test_unsigned_type_is_validated() -> None:
    raw = b'{"content":"hi","unsigned":{"age":5}}'
    frozen = FrozenObject.from_bytes(SignedDocument, raw, unsigned_type=_Unsigned)
    assert frozen.unsigned == _Unsigned(age=5)

    frozen.signatures_mut().clear()
    assert json.loads(frozen.serialize())["unsigned"] == {"age": 5}

    with pytest.raises(DecodeError):
        FrozenObject.from_bytes(
            SignedDocument, b'{"unsigned":{"age":"old"}}', unsigned_type=_Unsigned
        )


def test_wrap_picks_up_unsigned_member() -> None:
    frozen = FrozenObject.wrap(SignedDocument(content=1, unsigned={"age": 2}))
    assert frozen.unsigned == {"age": 2}
    assert frozen.canonical == b'{"content":1}'
    assert frozen.serialize() == b'{"content":1,"unsigned":{"age":2}}'


@pytest.mark.parametrize(
    ("raw", "error"),
    [
        (b"[1, 2]", DecodeError),
        (b'"text"', DecodeError),
        (b"{not json", ParseError),
        (b'{"signatures":{"a":{"ed25519:1":"AAAA"}}}', DecodeError),
        (b'{"signatures":[]}', DecodeError),
    ],
)
def test_from_bytes_failures(raw: bytes, error: type[Exception]) -> None:
    with pytest.raises(error):
        FrozenObject.from_bytes(SimpleSigned, raw)


def test_from_bytes_requires_typed_fields() -> None:
    with pytest.raises(DecodeError):
        FrozenObject.from_bytes(ServerKeys, b'{"valid_until_ts": 1}')


def test_copy_is_independent() -> None:
    frozen = FrozenObject.from_bytes(SimpleSigned, JKI_SERVER_KEYS)
    clone = frozen.copy()
    SigningKey.generate("b.example", "ed25519:1").sign(clone)

    assert frozen.signatures.get_signature("b.example", "ed25519:1") is None
    assert frozen.serialize() == JKI_SERVER_KEYS
    assert clone.canonical == frozen.canonical
    assert clone != frozen


def test_from_raw_parts_trusts_caller() -> None:
    frozen = FrozenObject.from_raw_parts(SimpleSigned(), b'{"a":1}', unsigned=[1])
    assert frozen.canonical == b'{"a":1}'
    assert frozen.serialize() == b'{"a":1,"unsigned":[1]}'


def test_private_attributes_are_not_forwarded() -> None:
    frozen = FrozenObject.wrap(SignedDocument())
    with pytest.raises(AttributeError):
        frozen._not_there  # noqa: B018
    with pytest.raises(AttributeError):
        frozen.not_there_either  # noqa: B018
