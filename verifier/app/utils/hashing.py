"""
Cryptographic hashing utilities.

Provides the digest algorithms accepted by the verifiers and helpers for
computing digests over exact byte sequences.

IMPORTANT DESIGN RULE:
- This module hashes bytes, and bytes only.
- No JSON parsing, normalization, or re-serialization occurs here.
"""

from __future__ import annotations

import hashlib
from typing import Optional, Union

from cryptography.hazmat.primitives import hashes


# Digest algorithms accepted inside CMS envelopes, keyed by the names
# asn1crypto uses for DigestAlgorithmId. sha1 and md5 are not accepted.
_ACCEPTED_DIGESTS = {
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def accepted_digest_names() -> frozenset:
    return frozenset(_ACCEPTED_DIGESTS)


def hash_algorithm_for(name: str) -> Optional[hashes.HashAlgorithm]:
    """
    Return a fresh cryptography hash algorithm for ``name``.

    Returns None for algorithms outside the accepted set.
    """
    factory = _ACCEPTED_DIGESTS.get(name)
    if factory is None:
        return None
    return factory()


def compute_digest(
    data: Union[bytes, bytearray],
    algorithm: hashes.HashAlgorithm,
) -> bytes:
    """Compute a raw digest over ``data`` exactly as supplied."""
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(
            "compute_digest expects bytes, "
            f"got {type(data).__name__}"
        )

    hasher = hashes.Hash(algorithm)
    hasher.update(bytes(data))
    return hasher.finalize()


def sha256_fingerprint(der: bytes) -> str:
    """Lowercase hex SHA-256 fingerprint of a DER-encoded certificate."""
    return hashlib.sha256(der).hexdigest()
