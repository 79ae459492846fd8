from .dispatcher import IdentityDocumentVerifier, resolve_anchor, verify
from .enveloped_signature import CertificateSelectionPolicy, verify_enveloped
from .keys import KeySizePolicy
from .raw_signature import verify_raw
from .resolver import CertificateResolver

__all__ = [
    "CertificateResolver",
    "CertificateSelectionPolicy",
    "IdentityDocumentVerifier",
    "KeySizePolicy",
    "resolve_anchor",
    "verify",
    "verify_enveloped",
    "verify_raw",
]
