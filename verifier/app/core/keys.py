"""
Trust-anchor key material.

Both verifiers need the anchor's RSA public key and apply the same
key-size policy before any signature check.
"""

from __future__ import annotations

import logging
from enum import Enum

from cryptography.hazmat.primitives.asymmetric import rsa

from verifier.app.errors import InvalidKeyMaterial
from verifier.app.schemas.anchor import TrustAnchor

logger = logging.getLogger(__name__)


class KeySizePolicy(str, Enum):
    """
    What to do when an anchor's modulus size differs from the scheme's.

    STRICT raises InvalidKeyMaterial. WARN logs and verifies anyway.
    """

    STRICT = "strict"
    WARN = "warn"


def load_rsa_public_key(
    anchor: TrustAnchor,
    key_size_policy: KeySizePolicy = KeySizePolicy.STRICT,
) -> rsa.RSAPublicKey:
    """
    Rebuild the anchor's RSA public key and enforce the key-size policy.

    Raises:
        InvalidKeyMaterial: if the anchor does not carry a usable RSA key,
            or (STRICT) its modulus size is not the scheme's.
    """
    if not anchor.is_rsa or anchor.modulus is None or anchor.public_exponent is None:
        raise InvalidKeyMaterial(
            f"Anchor {anchor.subject!r} for {anchor.region} does not carry "
            f"an RSA public key (found {anchor.key_algorithm})"
        )

    try:
        public_key = rsa.RSAPublicNumbers(
            anchor.public_exponent, anchor.modulus
        ).public_key()
    except ValueError as exc:
        raise InvalidKeyMaterial(
            f"Anchor {anchor.subject!r} for {anchor.region} has unusable "
            f"RSA key material: {exc}"
        ) from exc

    expected = anchor.scheme.expected_key_size

    if expected is not None and public_key.key_size != expected:
        message = (
            f"Anchor {anchor.subject!r} for {anchor.region} has a "
            f"{public_key.key_size}-bit modulus; {anchor.scheme.value} "
            f"expects {expected} bits"
        )

        if key_size_policy == KeySizePolicy.STRICT:
            raise InvalidKeyMaterial(message)

        logger.warning("%s (key size policy: warn)", message)

    return public_key
