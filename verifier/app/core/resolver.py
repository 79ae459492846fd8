"""
Certificate Resolver.

Resolves the trust anchor for a claimed (region, scheme) pair: validates
the scheme, reads the anchor bytes through the certificate store and
parses them into an immutable TrustAnchor.

Exception handling policy:
    Only loader and key-decoding errors (ValueError, UnsupportedAlgorithm)
    are translated into MalformedCertificate. Store errors and logic
    errors propagate.
"""

from __future__ import annotations

import logging
from typing import Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed25519, ed448, rsa

from verifier.app.errors import AnchorNotFound, MalformedCertificate
from verifier.app.schemas.anchor import TrustAnchor
from verifier.app.schemas.scheme import Scheme
from verifier.app.store.certificate_store import CertificateStore
from verifier.app.utils.hashing import sha256_fingerprint

logger = logging.getLogger(__name__)


class CertificateResolver:
    """Resolve trust anchors from a certificate store."""

    def __init__(self, store: CertificateStore) -> None:
        self._store = store

    def resolve(self, region: str, scheme: Union[Scheme, str]) -> TrustAnchor:
        """
        Resolve the trust anchor for ``region`` under ``scheme``.

        Raises:
            UnsupportedScheme: if ``scheme`` is not recognized.
            AnchorNotFound: if the store has no entry for the pair.
            MalformedCertificate: if the stored bytes are not X.509.
        """
        scheme = Scheme.parse(scheme)

        if not region:
            raise AnchorNotFound(
                f"Certificate not found for empty region ({scheme.value})"
            )

        data = self._store.get(scheme, region)

        if data is None:
            raise AnchorNotFound(
                f"Certificate not found for region: {region} ({scheme.value})"
            )

        anchor = parse_anchor(data, scheme=scheme, region=region)

        logger.debug(
            "Resolved %s anchor for %s: %s (sha256=%s)",
            scheme.value,
            region,
            anchor.subject,
            anchor.fingerprint_sha256,
        )

        return anchor


def parse_anchor(data: bytes, *, scheme: Scheme, region: str) -> TrustAnchor:
    """
    Parse PEM- or DER-encoded certificate bytes into a TrustAnchor.

    Raises:
        MalformedCertificate: if ``data`` is not a single X.509 certificate.
    """
    if not data:
        raise MalformedCertificate(
            f"Empty anchor certificate for {region} ({scheme.value})"
        )

    stripped = data.strip()

    try:
        if stripped.startswith(b"-----BEGIN"):
            cert = x509.load_pem_x509_certificate(stripped)
        else:
            cert = x509.load_der_x509_certificate(data)
    except ValueError as exc:
        raise MalformedCertificate(
            f"Anchor for {region} ({scheme.value}) is not a valid "
            f"X.509 certificate: {exc}"
        ) from exc

    der = cert.public_bytes(serialization.Encoding.DER)

    try:
        public_key = cert.public_key()
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise MalformedCertificate(
            f"Anchor for {region} ({scheme.value}) carries an unreadable "
            f"public key: {exc}"
        ) from exc

    key_algorithm, key_size, modulus, exponent = _describe_key(public_key)

    return TrustAnchor(
        scheme=scheme,
        region=region,
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        der=der,
        fingerprint_sha256=sha256_fingerprint(der),
        key_algorithm=key_algorithm,
        key_size=key_size,
        modulus=modulus,
        public_exponent=exponent,
    )


def _describe_key(public_key):
    """Return (algorithm, key_size, modulus, exponent) for a public key."""
    if isinstance(public_key, rsa.RSAPublicKey):
        numbers = public_key.public_numbers()
        return "rsa", public_key.key_size, numbers.n, numbers.e

    if isinstance(public_key, dsa.DSAPublicKey):
        return "dsa", public_key.key_size, None, None

    if isinstance(public_key, ec.EllipticCurvePublicKey):
        return "ec", public_key.key_size, None, None

    if isinstance(public_key, ed25519.Ed25519PublicKey):
        return "ed25519", None, None, None

    if isinstance(public_key, ed448.Ed448PublicKey):
        return "ed448", None, None, None

    return type(public_key).__name__.lower(), None, None, None
