"""
Runtime configuration for the Verifier service.

Pydantic v2 settings management: values are read from ``VERIFIER_*``
environment variables (or a ``.env`` file), validated once at startup and
frozen. Configuration selects trust policy explicitly; nothing here may
introduce non-deterministic verification outcomes.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from verifier.app.core.enveloped_signature import CertificateSelectionPolicy
from verifier.app.core.keys import KeySizePolicy


class VerifierSettings(BaseSettings):
    """
    Application settings parsed from the environment.

    Fails fast at startup if the certificate root is configured but does
    not exist.
    """

    # ---------------------------------------------------------------------
    # Certificate store
    # ---------------------------------------------------------------------

    certificate_root: Annotated[
        Optional[Path],
        Field(
            default=None,
            description=(
                "Directory holding <namespace>/<region>.pem trust anchors "
                "(namespaces: rsa, rsa2048, dsa)."
            ),
        ),
    ]

    cache_certificates: Annotated[
        bool,
        Field(
            default=True,
            description="Keep anchor certificate bytes in memory once read",
        ),
    ]

    # ---------------------------------------------------------------------
    # Trust policy
    # ---------------------------------------------------------------------

    key_size_policy: Annotated[
        KeySizePolicy,
        Field(
            default=KeySizePolicy.STRICT,
            description=(
                "strict: reject anchors whose modulus size differs from "
                "the scheme's. warn: log and verify anyway."
            ),
        ),
    ]

    certificate_selection_policy: Annotated[
        CertificateSelectionPolicy,
        Field(
            default=CertificateSelectionPolicy.ANCHOR,
            description=(
                "anchor: always verify CMS envelopes against the "
                "out-of-band anchor. matching_embedded: require an "
                "embedded certificate identical to the anchor."
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # Operational boundaries (HTTP surface only)
    # ---------------------------------------------------------------------

    max_document_bytes: Annotated[
        int,
        Field(
            default=64 * 1024,
            ge=1,
            description="Upper bound on accepted identity document size",
        ),
    ]

    model_config = SettingsConfigDict(
        env_prefix="VERIFIER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @field_validator("certificate_root")
    @classmethod
    def certificate_root_must_be_directory(
        cls, v: Optional[Path]
    ) -> Optional[Path]:
        if v is not None and not v.is_dir():
            raise ValueError(
                f"Configured certificate_root is not a directory: {v}"
            )
        return v


@lru_cache(maxsize=1)
def get_settings() -> VerifierSettings:
    """Process-wide settings singleton."""
    return VerifierSettings()
