"""
TrustAnchor schema.

A trust anchor is the single certificate the verifier is configured to
trust absolutely for one (scheme, region) pair. No chain is built above
it.

The model is frozen: once resolved, an anchor is never mutated. It holds
plain values only (names, timestamps, integers, bytes) so that two
resolutions of the same stored certificate compare equal.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from verifier.app.schemas.scheme import Scheme


class TrustAnchor(BaseModel):
    """Parsed, immutable trust-anchor certificate."""

    model_config = ConfigDict(frozen=True)

    scheme: Scheme = Field(
        ...,
        description="Scheme whose namespace the certificate was read from",
    )

    region: str = Field(
        ...,
        description="Region key the certificate was resolved for",
    )

    subject: str = Field(
        ...,
        description="RFC 4514 subject distinguished name",
    )

    issuer: str = Field(
        ...,
        description="RFC 4514 issuer distinguished name",
    )

    not_before: datetime = Field(
        ...,
        description="Start of the validity window (UTC)",
    )

    not_after: datetime = Field(
        ...,
        description="End of the validity window (UTC)",
    )

    der: bytes = Field(
        ...,
        description="DER encoding of the certificate",
        repr=False,
    )

    fingerprint_sha256: str = Field(
        ...,
        description="Lowercase hex SHA-256 over the DER encoding",
    )

    key_algorithm: str = Field(
        ...,
        description="Public key algorithm (rsa, dsa, ec, ...)",
    )

    key_size: Optional[int] = Field(
        None,
        description="Public key size in bits, when the algorithm defines one",
    )

    # ------------------------------------------------------------------
    # RSA public numbers (None for non-RSA anchors)
    # ------------------------------------------------------------------

    modulus: Optional[int] = Field(None, repr=False)

    public_exponent: Optional[int] = Field(None)

    @property
    def is_rsa(self) -> bool:
        return self.key_algorithm == "rsa"
