"""
Raw-Signature Verifier.

Verifies a bare PKCS#1 v1.5 RSA signature (SHA-256) over the exact
identity document bytes, using the resolved trust anchor's public key.

A signature that does not verify is a normal outcome (``False``). Only a
defect in the trust anchor itself (InvalidKeyMaterial) is raised.
"""

from __future__ import annotations

import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from verifier.app.core.keys import KeySizePolicy, load_rsa_public_key
from verifier.app.errors import SignatureRejected
from verifier.app.schemas.anchor import TrustAnchor

logger = logging.getLogger(__name__)


class RawSignatureVerifier:
    """Verifier for the raw PKCS#1 v1.5 scheme."""

    def __init__(
        self, key_size_policy: KeySizePolicy = KeySizePolicy.STRICT
    ) -> None:
        self._key_size_policy = key_size_policy

    def check(
        self, document: bytes, signature: bytes, anchor: TrustAnchor
    ) -> None:
        """
        Verify ``signature`` over ``document``.

        Raises:
            SignatureRejected: if the signature does not verify.
            InvalidKeyMaterial: if the anchor key cannot be used.
        """
        public_key = load_rsa_public_key(anchor, self._key_size_policy)

        expected_length = (public_key.key_size + 7) // 8

        if len(signature) != expected_length:
            raise SignatureRejected(
                f"Signature is {len(signature)} bytes; a "
                f"{public_key.key_size}-bit key produces {expected_length}"
            )

        try:
            public_key.verify(
                signature,
                document,
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except InvalidSignature as exc:
            raise SignatureRejected(
                "RSA signature does not match the document"
            ) from exc


def verify_raw(
    document: bytes,
    signature: bytes,
    anchor: TrustAnchor,
    key_size_policy: KeySizePolicy = KeySizePolicy.STRICT,
) -> bool:
    """Return True if ``signature`` is the anchor's signature over ``document``."""
    try:
        RawSignatureVerifier(key_size_policy).check(document, signature, anchor)
    except SignatureRejected as exc:
        logger.info("Raw signature rejected for %s: %s", anchor.region, exc)
        return False
    return True
