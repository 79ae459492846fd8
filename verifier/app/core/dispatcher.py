"""
Verification Dispatcher.

Entry point of the verification core. For one identity document it runs
the state machine

    PENDING -> RESOLVED(anchor) -> {VALID, INVALID}

IMPORTANT:
- Caller-contract violations and trust-store misconfiguration raise
  (VerificationFault subclasses). They are never reported as "invalid".
- Everything that means "this signature is not valid for this document"
  yields an INVALID result / ``False``.
- The document bytes handed to the verifiers are the caller's bytes,
  never a re-serialization of the parsed JSON.
"""

from __future__ import annotations

import base64
import logging
from typing import Optional, Protocol, Union

from verifier.app.core.enveloped_signature import (
    CertificateSelectionPolicy,
    EnvelopedSignatureVerifier,
)
from verifier.app.core.keys import KeySizePolicy
from verifier.app.core.raw_signature import RawSignatureVerifier
from verifier.app.core.resolver import CertificateResolver
from verifier.app.errors import MissingInput, SignatureRejected, UnsupportedScheme
from verifier.app.schemas.anchor import TrustAnchor
from verifier.app.schemas.result import VerificationResult, VerificationState
from verifier.app.schemas.scheme import Scheme, SignatureFormat
from verifier.app.store.certificate_store import CertificateStore
from verifier.app.utils.document import document_bytes, extract_region

logger = logging.getLogger(__name__)

DocumentInput = Union[bytes, bytearray, str, None]
SignatureInput = Union[str, bytes, None]
SchemeInput = Union[Scheme, str, None]


class SchemeVerifier(Protocol):
    """One implementation per verifiable scheme."""

    def check(
        self, document: bytes, signature: bytes, anchor: TrustAnchor
    ) -> None:
        ...


class IdentityDocumentVerifier:
    """
    Verify instance identity documents against pinned trust anchors.

    Instances hold no per-call state and may be shared across threads,
    provided the certificate store supports concurrent reads.
    """

    def __init__(
        self,
        store: CertificateStore,
        key_size_policy: KeySizePolicy = KeySizePolicy.STRICT,
        selection_policy: CertificateSelectionPolicy = CertificateSelectionPolicy.ANCHOR,
    ) -> None:
        self._resolver = CertificateResolver(store)
        self._raw = RawSignatureVerifier(key_size_policy)
        self._enveloped = EnvelopedSignatureVerifier(
            key_size_policy, selection_policy
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_anchor(
        self, region: str, scheme: SchemeInput
    ) -> TrustAnchor:
        """Resolve the trust anchor for (region, scheme); see CertificateResolver."""
        return self._resolver.resolve(region, scheme)

    def verify(
        self,
        document: DocumentInput,
        signature: SignatureInput,
        scheme: SchemeInput,
    ) -> bool:
        """Return True if ``signature`` is a valid signature over ``document``."""
        return self.verify_detailed(document, signature, scheme).valid

    def verify_detailed(
        self,
        document: DocumentInput,
        signature: SignatureInput,
        scheme: SchemeInput,
    ) -> VerificationResult:
        """
        Verify a document and report the terminal state.

        Args:
            document:
                The exact signed bytes. A ``str`` is encoded as UTF-8.
            signature:
                Base64 transport encoding of the raw signature or of the
                CMS envelope. Embedded whitespace is ignored.
            scheme:
                Scheme value, member name or legacy procedure name.

        Raises:
            MissingInput: if document or signature is empty.
            UnsupportedScheme: if the scheme is unknown or not verifiable.
            AnchorNotFound, MalformedCertificate, InvalidKeyMaterial,
            MalformedSignature, UnsupportedSignerCount: see errors.py.
        """
        if not document:
            raise MissingInput("Identity document is required")
        if not signature or not signature.strip():
            raise MissingInput("Signature is required")

        scheme = Scheme.parse(scheme)
        verifier = self._verifier_for(scheme)
        payload = document_bytes(document)

        # PENDING
        try:
            region = extract_region(payload)
        except SignatureRejected as exc:
            return self._invalid(scheme, None, None, exc)

        anchor = self._resolver.resolve(region, scheme)

        # RESOLVED(anchor)
        try:
            signature_bytes = decode_signature(signature)
            verifier.check(payload, signature_bytes, anchor)
        except SignatureRejected as exc:
            return self._invalid(scheme, region, anchor, exc)

        logger.debug(
            "Verified %s document for %s against %s",
            scheme.value,
            region,
            anchor.fingerprint_sha256,
        )

        return VerificationResult(
            state=VerificationState.VALID,
            scheme=scheme,
            region=region,
            anchor_subject=anchor.subject,
            anchor_fingerprint=anchor.fingerprint_sha256,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _verifier_for(self, scheme: Scheme) -> SchemeVerifier:
        signature_format = scheme.signature_format

        if signature_format == SignatureFormat.RAW:
            return self._raw
        if signature_format == SignatureFormat.ENVELOPED:
            return self._enveloped

        raise UnsupportedScheme(
            f"Scheme {scheme.value} is deprecated and no longer verified"
        )

    def _invalid(
        self,
        scheme: Scheme,
        region: Optional[str],
        anchor: Optional[TrustAnchor],
        exc: SignatureRejected,
    ) -> VerificationResult:
        logger.info(
            "Rejected %s document (region=%s): %s",
            scheme.value,
            region,
            exc,
        )
        return VerificationResult(
            state=VerificationState.INVALID,
            scheme=scheme,
            region=region,
            anchor_subject=anchor.subject if anchor is not None else None,
            anchor_fingerprint=anchor.fingerprint_sha256 if anchor is not None else None,
            reason=str(exc),
        )


def decode_signature(signature: Union[str, bytes]) -> bytes:
    """
    Decode the base64 transport encoding of a signature.

    Raises:
        SignatureRejected: if the value is not strict base64 or decodes
            to nothing.
    """
    if isinstance(signature, (bytes, bytearray)):
        text = bytes(signature).decode("ascii", errors="replace")
    else:
        text = signature

    compact = "".join(text.split())

    try:
        decoded = base64.b64decode(compact, validate=True)
    except ValueError as exc:
        raise SignatureRejected(
            f"Signature is not valid base64: {exc}"
        ) from exc

    if not decoded:
        raise SignatureRejected("Signature decodes to zero bytes")

    return decoded


# ---------------------------------------------------------------------------
# Caller-facing functions
# ---------------------------------------------------------------------------


def verify(
    document: DocumentInput,
    signature: SignatureInput,
    scheme: SchemeInput,
    store: CertificateStore,
    key_size_policy: KeySizePolicy = KeySizePolicy.STRICT,
    selection_policy: CertificateSelectionPolicy = CertificateSelectionPolicy.ANCHOR,
) -> bool:
    """Verify one document against anchors from ``store``."""
    verifier = IdentityDocumentVerifier(store, key_size_policy, selection_policy)
    return verifier.verify(document, signature, scheme)


def resolve_anchor(
    region: str, scheme: SchemeInput, store: CertificateStore
) -> TrustAnchor:
    """Resolve the trust anchor for (region, scheme) from ``store``."""
    return CertificateResolver(store).resolve(region, scheme)
