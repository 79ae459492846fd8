"""
Signing scheme taxonomy.

Each scheme maps to exactly one certificate-store namespace. The public
values are stable lookup keys and MUST NOT change once published.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from verifier.app.errors import UnsupportedScheme


class SignatureFormat(str, Enum):
    """Wire format of the detached signature carried by a scheme."""

    RAW = "raw"
    ENVELOPED = "enveloped"


class Scheme(str, Enum):
    """
    Signing scheme of an instance identity document.

    DSA_LEGACY is deprecated: its anchors remain resolvable for
    diagnostics, but documents are no longer verified under it.
    """

    RAW_RSA_1024 = "raw-rsa-1024"
    RSA_2048_CMS = "raw-rsa-2048-cms"
    DSA_LEGACY = "dsa-legacy"

    @property
    def namespace(self) -> str:
        """Certificate-store namespace holding this scheme's anchors."""
        return _NAMESPACES[self]

    @property
    def expected_key_size(self) -> Optional[int]:
        return _KEY_SIZES[self]

    @property
    def signature_format(self) -> Optional[SignatureFormat]:
        """None for schemes that are resolvable but not verifiable."""
        return _FORMATS[self]

    @classmethod
    def parse(cls, value: Union["Scheme", str, None]) -> "Scheme":
        """
        Parse a scheme from its public value, member name or legacy alias.

        Raises:
            UnsupportedScheme: if the value names no known scheme.
        """
        if isinstance(value, cls):
            return value

        if not isinstance(value, str) or not value.strip():
            raise UnsupportedScheme(f"Unsupported scheme: {value!r}")

        key = value.strip().lower()

        for scheme in cls:
            if key in (scheme.value, scheme.name.lower()):
                return scheme

        if key in _LEGACY_ALIASES:
            return _LEGACY_ALIASES[key]

        raise UnsupportedScheme(f"Unsupported scheme: {value}")


_NAMESPACES = {
    Scheme.RAW_RSA_1024: "rsa",
    Scheme.RSA_2048_CMS: "rsa2048",
    Scheme.DSA_LEGACY: "dsa",
}

_KEY_SIZES = {
    Scheme.RAW_RSA_1024: 1024,
    Scheme.RSA_2048_CMS: 2048,
    Scheme.DSA_LEGACY: None,
}

_FORMATS = {
    Scheme.RAW_RSA_1024: SignatureFormat.RAW,
    Scheme.RSA_2048_CMS: SignatureFormat.ENVELOPED,
    Scheme.DSA_LEGACY: None,
}

# Procedure names used by the metadata service endpoints
# (/signature, /rsa2048, /pkcs7).
_LEGACY_ALIASES = {
    "base64": Scheme.RAW_RSA_1024,
    "signature": Scheme.RAW_RSA_1024,
    "rsa2048": Scheme.RSA_2048_CMS,
    "pkcs7": Scheme.DSA_LEGACY,
}
