"""
Enveloped-Signature Verifier (CMS / PKCS#7 SignedData).

The signature is a detached CMS SignedData envelope. The document bytes
are supplied out of band and are the only input to the content digest;
nothing inside the envelope is ever used as the signed content.

ASN.1 handling:
    The envelope is decoded with asn1crypto into a typed tree. All
    structural access happens in ``parse_signed_data``, which forces the
    parse of every field the verifier later walks. A structure that does
    not decode raises MalformedSignature there; after that point every
    failure is a rejection (``False``).

Trust decision:
    The verification certificate is chosen by an explicit policy
    (``select_verification_certificate``). The default, ANCHOR, always
    verifies against the out-of-band trust anchor, so a forged embedded
    certificate can never make a signature valid. No certificate chain
    is built.

Exception handling policy:
    asn1crypto raises ValueError / TypeError for malformed encodings;
    only those are caught, and only while parsing. InvalidSignature from
    cryptography is the only exception converted during verification.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, NamedTuple, Optional

from asn1crypto import cms, core, pem
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from verifier.app.core.keys import KeySizePolicy, load_rsa_public_key
from verifier.app.errors import (
    MalformedSignature,
    SignatureRejected,
    UnsupportedSignerCount,
)
from verifier.app.schemas.anchor import TrustAnchor
from verifier.app.utils.hashing import (
    accepted_digest_names,
    compute_digest,
    hash_algorithm_for,
    sha256_fingerprint,
)

logger = logging.getLogger(__name__)

# Universal SET OF tag. Signed attributes are signed as an explicit SET,
# not with the [0] IMPLICIT tag they carry inside SignerInfo.
_SET_OF_TAG = b"\x31"


class CertificateSelectionPolicy(str, Enum):
    """
    Which certificate an envelope is verified against.

    ANCHOR:
        Always the out-of-band trust anchor. Embedded certificates are
        ignored. Caller-controlled trust; the default.
    MATCHING_EMBEDDED:
        The embedded certificate, but only if its SHA-256 fingerprint
        equals the anchor's. An envelope embedding only other
        certificates is rejected.
    """

    ANCHOR = "anchor"
    MATCHING_EMBEDDED = "matching_embedded"


class ParsedEnvelope(NamedTuple):
    """Fields of a SignedData envelope the verifier relies on."""

    signed_data: cms.SignedData
    signer_info: cms.SignerInfo
    certificates: List[bytes]
    encap_content_type: str


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


def parse_signed_data(cms_bytes: bytes) -> ParsedEnvelope:
    """
    Decode a CMS ContentInfo carrying SignedData.

    Raises:
        MalformedSignature: if the bytes are not a well-formed SignedData
            ContentInfo.
        UnsupportedSignerCount: if there is not exactly one SignerInfo.
    """
    data = cms_bytes

    if pem.detect(data):
        try:
            _, _, data = pem.unarmor(data)
        except ValueError as exc:
            raise MalformedSignature(
                f"CMS envelope has invalid PEM armor: {exc}"
            ) from exc

    try:
        content_info = cms.ContentInfo.load(data, strict=True)
        content_type = content_info["content_type"].native
    except (ValueError, TypeError) as exc:
        raise MalformedSignature(
            f"Signature is not a DER-encoded CMS structure: {exc}"
        ) from exc

    if content_type != "signed_data":
        raise MalformedSignature(
            f"CMS content type is {content_type!r}, expected 'signed_data'"
        )

    try:
        signed_data = content_info["content"]
        encap_content_type = signed_data["encap_content_info"][
            "content_type"
        ].native

        certificates = [
            choice.chosen.dump()
            for choice in _present(signed_data["certificates"])
            if choice.name == "certificate"
        ]

        signer_infos = list(signed_data["signer_infos"])

        for signer_info in signer_infos:
            _touch_signer_info(signer_info)
    except (ValueError, TypeError, KeyError) as exc:
        raise MalformedSignature(
            f"CMS SignedData structure is malformed: {exc}"
        ) from exc

    if len(signer_infos) != 1:
        raise UnsupportedSignerCount(
            f"CMS envelope carries {len(signer_infos)} signers; "
            "exactly one is supported"
        )

    return ParsedEnvelope(
        signed_data=signed_data,
        signer_info=signer_infos[0],
        certificates=certificates,
        encap_content_type=encap_content_type,
    )


def _present(value):
    """Iterate an optional asn1crypto field; absent fields yield nothing."""
    if isinstance(value, core.Void):
        return []
    return value


def _touch_signer_info(signer_info: cms.SignerInfo) -> None:
    # asn1crypto parses lazily; walk every field used later so that
    # encoding errors surface here and not halfway through verification.
    signer_info["sid"].chosen
    signer_info["digest_algorithm"]["algorithm"].native
    signer_info["signature_algorithm"]["algorithm"].native
    signer_info["signature"].native

    for attribute in _present(signer_info["signed_attrs"]):
        attribute["type"].native
        for value in attribute["values"]:
            value.native


# ---------------------------------------------------------------------------
# Trust decision
# ---------------------------------------------------------------------------


def select_verification_certificate(
    embedded_certificates: List[bytes],
    anchor: TrustAnchor,
    policy: CertificateSelectionPolicy = CertificateSelectionPolicy.ANCHOR,
) -> TrustAnchor:
    """
    Decide which certificate an envelope is verified against.

    Pure function of its inputs. An envelope without embedded
    certificates is always verified against the anchor.

    Raises:
        SignatureRejected: under MATCHING_EMBEDDED, when certificates are
            embedded and none of them is the anchor.
    """
    if not embedded_certificates or policy == CertificateSelectionPolicy.ANCHOR:
        return anchor

    for der in embedded_certificates:
        if sha256_fingerprint(der) == anchor.fingerprint_sha256:
            return anchor

    raise SignatureRejected(
        "No embedded certificate matches the trust anchor for "
        f"{anchor.region} (sha256={anchor.fingerprint_sha256})"
    )


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class EnvelopedSignatureVerifier:
    """Verifier for the CMS-enveloped scheme."""

    def __init__(
        self,
        key_size_policy: KeySizePolicy = KeySizePolicy.STRICT,
        selection_policy: CertificateSelectionPolicy = CertificateSelectionPolicy.ANCHOR,
    ) -> None:
        self._key_size_policy = key_size_policy
        self._selection_policy = selection_policy

    def check(
        self, document: bytes, cms_bytes: bytes, anchor: TrustAnchor
    ) -> None:
        """
        Verify the CMS envelope ``cms_bytes`` over ``document``.

        Raises:
            SignatureRejected: if the envelope does not verify.
            MalformedSignature: if the envelope cannot be parsed.
            UnsupportedSignerCount: if it has other than one signer.
            InvalidKeyMaterial: if the anchor key cannot be used.
        """
        envelope = parse_signed_data(cms_bytes)
        signer_info = envelope.signer_info

        certificate = select_verification_certificate(
            envelope.certificates, anchor, self._selection_policy
        )
        public_key = load_rsa_public_key(certificate, self._key_size_policy)

        if not isinstance(
            envelope.signed_data["encap_content_info"]["content"], core.Void
        ):
            logger.debug(
                "Ignoring content encapsulated in the envelope; "
                "the detached document is authoritative"
            )

        # Step 4: digest over the detached document bytes.
        digest_name = signer_info["digest_algorithm"]["algorithm"].native
        hash_algorithm = hash_algorithm_for(digest_name)

        if hash_algorithm is None:
            raise SignatureRejected(
                f"Digest algorithm {digest_name!r} is not accepted "
                f"(accepted: {sorted(accepted_digest_names())})"
            )

        _check_signature_algorithm(signer_info, digest_name)

        digest = compute_digest(document, hash_algorithm)
        signature = signer_info["signature"].native
        signed_attrs = signer_info["signed_attrs"]

        if len(signature) != (public_key.key_size + 7) // 8:
            raise SignatureRejected(
                f"Signature is {len(signature)} bytes; it cannot come from "
                f"a {public_key.key_size}-bit key"
            )

        # Step 5: what the signature covers.
        try:
            if isinstance(signed_attrs, core.Void):
                if envelope.encap_content_type != "data":
                    raise SignatureRejected(
                        "Envelopes without signed attributes must carry "
                        f"id-data content, not {envelope.encap_content_type!r}"
                    )

                public_key.verify(
                    signature,
                    digest,
                    padding.PKCS1v15(),
                    Prehashed(hash_algorithm),
                )
            else:
                _check_signed_attributes(
                    signed_attrs, digest, envelope.encap_content_type
                )

                public_key.verify(
                    signature,
                    _SET_OF_TAG + signed_attrs.dump()[1:],
                    padding.PKCS1v15(),
                    hash_algorithm,
                )
        except InvalidSignature as exc:
            raise SignatureRejected(
                "CMS signature does not match the trust anchor"
            ) from exc


def _check_signature_algorithm(
    signer_info: cms.SignerInfo, digest_name: str
) -> None:
    algorithm = signer_info["signature_algorithm"]

    try:
        signature_algo = algorithm.signature_algo
    except ValueError as exc:
        raise SignatureRejected(
            f"Unsupported signature algorithm: {exc}"
        ) from exc

    if signature_algo != "rsassa_pkcs1v15":
        raise SignatureRejected(
            f"Signature algorithm {signature_algo!r} is not RSA PKCS#1 v1.5"
        )

    # sha256_rsa and friends name their hash; plain rsaEncryption does not.
    try:
        declared_hash = algorithm.hash_algo
    except ValueError:
        declared_hash = None

    if declared_hash is not None and declared_hash != digest_name:
        raise SignatureRejected(
            f"Signature algorithm hash {declared_hash!r} disagrees with "
            f"digest algorithm {digest_name!r}"
        )


def _check_signed_attributes(
    signed_attrs: cms.CMSAttributes,
    digest: bytes,
    encap_content_type: str,
) -> None:
    message_digests: List[bytes] = []
    content_type: Optional[str] = None

    for attribute in signed_attrs:
        attribute_type = attribute["type"].native
        values = attribute["values"]

        if attribute_type == "message_digest":
            message_digests.extend(value.native for value in values)
        elif attribute_type == "content_type":
            if len(values) != 1:
                raise SignatureRejected(
                    "content-type attribute must carry exactly one value"
                )
            content_type = values[0].native

    if len(message_digests) != 1:
        raise SignatureRejected(
            f"Signed attributes carry {len(message_digests)} message "
            "digests; exactly one is required"
        )

    if message_digests[0] != digest:
        raise SignatureRejected(
            "Message digest does not match the document bytes"
        )

    if content_type is None:
        raise SignatureRejected(
            "Signed attributes do not carry a content-type attribute"
        )

    if content_type != encap_content_type:
        raise SignatureRejected(
            f"Signed content type {content_type!r} does not match "
            f"encapsulated content type {encap_content_type!r}"
        )


def verify_enveloped(
    document: bytes,
    cms_bytes: bytes,
    anchor: TrustAnchor,
    key_size_policy: KeySizePolicy = KeySizePolicy.STRICT,
    selection_policy: CertificateSelectionPolicy = CertificateSelectionPolicy.ANCHOR,
) -> bool:
    """
    Return True if ``cms_bytes`` is a valid envelope over ``document``.

    Parse failures and signer-count violations propagate; every other
    failure returns False.
    """
    verifier = EnvelopedSignatureVerifier(key_size_policy, selection_policy)

    try:
        verifier.check(document, cms_bytes, anchor)
    except SignatureRejected as exc:
        logger.info("CMS signature rejected for %s: %s", anchor.region, exc)
        return False
    return True
