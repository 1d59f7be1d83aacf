"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys

import pytest

# Ensure src/ is on sys.path for tests so the src layout is used during test runs
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

# Server key document published by jki.re, self-signed with ed25519:auto
JKI_SERVER_KEYS = (
    b'{"old_verify_keys":{},"server_name":"jki.re","signatures":{"jki.re":'
    b'{"ed25519:auto":"X2t7jN0jaJsiZWp57da9GqmQ874QFbukCMSqc5VclaB+2n4i8LPcZ'
    b'DkD6+fzg4tkfpSsiIDogkY4HWv1cnGhAg"}},"tls_fingerprints":[{"sha256":'
    b'"Big0aXVWZ/m0oEcHddgP4hTriTEvb4Jx6592W1mB5i4"}],"valid_until_ts":'
    b'1462110302047,"verify_keys":{"ed25519:auto":{"key":'
    b'"Sr/Vj3FIqyQ2WjJ9fWpUXRdz6fX4oFAjKrDmu198PnI"}}}'
)

JKI_CANONICAL = (
    b'{"old_verify_keys":{},"server_name":"jki.re","tls_fingerprints":'
    b'[{"sha256":"Big0aXVWZ/m0oEcHddgP4hTriTEvb4Jx6592W1mB5i4"}],'
    b'"valid_until_ts":1462110302047,"verify_keys":{"ed25519:auto":{"key":'
    b'"Sr/Vj3FIqyQ2WjJ9fWpUXRdz6fX4oFAjKrDmu198PnI"}}}'
)

JKI_PUBLIC_KEY_B64 = "Sr/Vj3FIqyQ2WjJ9fWpUXRdz6fX4oFAjKrDmu198PnI"

JKI_SIGNATURE_BYTES = (
    b"_k{\x8c\xdd#h\x9b\"ejy\xed\xd6\xbd\x1a\xa9\x90\xf3\xbe\x10\x15\xbb\xa4"
    b"\x08\xc4\xaas\x95\\\x95\xa0~\xda~\"\xf0\xb3\xdcd9\x03\xeb\xe7\xf3\x83"
    b"\x8bd~\x94\xac\x88\x80\xe8\x82F8\x1dk\xf5rq\xa1\x02"
)

# Seed and expected signature of the empty document for domain/ed25519:1
DOMAIN_SEED_B64 = "YJDBA9Xnr2sVqXD9Vj7XVUnmFZcZrlw8Md7kMW+3XA1"
DOMAIN_EMPTY_SIGNATURE_B64 = (
    "K8280/U9SSy9IVtjBuVeLr+HpOB4BQFWbg+UZaADMtTdGYI7Geitb76LTrr5QV/7Xg4ahLwYGYZzuHGZKM5ZAQ"
)


@pytest.fixture
def jki_server_keys() -> bytes:
    """Raw server key document for jki.re."""

    return JKI_SERVER_KEYS


@pytest.fixture
def domain_seed() -> bytes:
    """Deterministic 32-byte seed for the ``domain`` test key."""

    from fedsig.encoding import decode_base64

    return decode_base64(DOMAIN_SEED_B64)
