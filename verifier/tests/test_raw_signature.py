import logging

import pytest

from verifier.app.core.keys import KeySizePolicy
from verifier.app.core.raw_signature import verify_raw
from verifier.app.core.resolver import parse_anchor
from verifier.app.errors import InvalidKeyMaterial
from verifier.app.schemas.scheme import Scheme

from verifier.tests.fixtures.pki_factory import (
    IDENTITY_DOCUMENT,
    REGION,
    certificate_pem,
    ec_key,
    flip_last_byte,
    make_certificate,
    rsa_key,
    sign_raw,
)


def _anchor(private_key, scheme=Scheme.RAW_RSA_1024):
    return parse_anchor(
        certificate_pem(make_certificate(private_key)),
        scheme=scheme,
        region=REGION,
    )


def test_valid_signature_verifies():
    key = rsa_key(1024)
    signature = sign_raw(IDENTITY_DOCUMENT, key)

    assert verify_raw(IDENTITY_DOCUMENT, signature, _anchor(key)) is True


def test_modified_document_fails():
    key = rsa_key(1024)
    signature = sign_raw(IDENTITY_DOCUMENT, key)
    tampered = IDENTITY_DOCUMENT.replace(b"t2.micro", b"t2.large")

    assert verify_raw(tampered, signature, _anchor(key)) is False


def test_whitespace_change_fails():
    key = rsa_key(1024)
    signature = sign_raw(IDENTITY_DOCUMENT, key)

    assert verify_raw(IDENTITY_DOCUMENT + b"\n", signature, _anchor(key)) is False


def test_flipped_signature_byte_fails():
    key = rsa_key(1024)
    signature = flip_last_byte(sign_raw(IDENTITY_DOCUMENT, key))

    assert verify_raw(IDENTITY_DOCUMENT, signature, _anchor(key)) is False


def test_wrong_length_signature_fails():
    key = rsa_key(1024)
    signature = sign_raw(IDENTITY_DOCUMENT, key)

    assert verify_raw(IDENTITY_DOCUMENT, signature[:-1], _anchor(key)) is False
    assert verify_raw(IDENTITY_DOCUMENT, b"\x00" + signature, _anchor(key)) is False


def test_signature_from_other_key_fails():
    signature = sign_raw(IDENTITY_DOCUMENT, rsa_key(1024, "attacker"))

    assert verify_raw(IDENTITY_DOCUMENT, signature, _anchor(rsa_key(1024))) is False


def test_key_size_mismatch_is_rejected_under_strict_policy():
    key = rsa_key(2048)
    signature = sign_raw(IDENTITY_DOCUMENT, key)

    with pytest.raises(InvalidKeyMaterial, match="2048-bit"):
        verify_raw(IDENTITY_DOCUMENT, signature, _anchor(key))


def test_key_size_mismatch_is_logged_under_warn_policy(caplog):
    key = rsa_key(2048)
    signature = sign_raw(IDENTITY_DOCUMENT, key)

    with caplog.at_level(logging.WARNING, logger="verifier.app.core.keys"):
        assert verify_raw(
            IDENTITY_DOCUMENT,
            signature,
            _anchor(key),
            key_size_policy=KeySizePolicy.WARN,
        ) is True

    assert any("expects 1024 bits" in record.getMessage() for record in caplog.records)


def test_non_rsa_anchor_raises_invalid_key_material():
    with pytest.raises(InvalidKeyMaterial, match="ec"):
        verify_raw(IDENTITY_DOCUMENT, b"\x00" * 128, _anchor(ec_key()))
