"""
Error taxonomy for identity document verification.

Two disjoint failure classes exist and MUST NOT be mixed:

1. Contract / configuration faults (``VerificationFault`` subclasses).
   Raised to the caller, never converted to ``False``. They indicate a
   caller-contract violation or a misconfigured trust store and should
   alert operators.

2. Verification-negative outcomes (``SignatureRejected``).
   Raised only inside the verifiers and converted to a ``False`` result
   at the public boundary. An attacker-supplied bogus claim is an
   expected, frequent outcome and must never crash anything.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Contract / configuration faults
# ---------------------------------------------------------------------------

class VerificationFault(RuntimeError):
    """Base class for faults that always propagate to the caller."""


class UnsupportedScheme(VerificationFault):
    """Raised when a signing scheme is unknown or cannot be verified."""


class MissingInput(VerificationFault):
    """Raised when a required document or signature input is empty."""


class AnchorNotFound(VerificationFault):
    """Raised when the certificate store has no entry for (scheme, region)."""


class MalformedCertificate(VerificationFault):
    """Raised when stored anchor bytes are not a valid X.509 certificate."""


class InvalidKeyMaterial(VerificationFault):
    """Raised when a trust anchor's public key cannot be used for the scheme."""


class MalformedSignature(VerificationFault):
    """Raised when a signature container cannot be parsed at all."""


class UnsupportedSignerCount(VerificationFault):
    """Raised when a CMS envelope does not carry exactly one SignerInfo."""


# ---------------------------------------------------------------------------
# Verification-negative outcome
# ---------------------------------------------------------------------------

class SignatureRejected(Exception):
    """
    The signature is not valid for this document.

    Internal to the verifiers. Public entry points convert it to ``False``.
    """
