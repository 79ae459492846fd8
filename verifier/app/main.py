"""
FastAPI entrypoint for the Verifier service.

Thin HTTP surface over the verification core for callers that are not
Python processes. The core performs no I/O; this module owns the
certificate store wiring and the mapping of contract faults to HTTP
status codes.

Verification endpoints are plain ``def`` functions: FastAPI runs them in
its threadpool, so every request is an independent unit of work.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from verifier.app.config import VerifierSettings, get_settings
from verifier.app.core.dispatcher import IdentityDocumentVerifier
from verifier.app.errors import (
    AnchorNotFound,
    InvalidKeyMaterial,
    MalformedCertificate,
    VerificationFault,
)
from verifier.app.schemas.anchor import TrustAnchor
from verifier.app.schemas.result import VerificationResult
from verifier.app.store.certificate_store import DirectoryCertificateStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Identity Verification"])


# ---------------------------------------------------------------------------
# Request / response bodies
# ---------------------------------------------------------------------------

class VerifyRequest(BaseModel):
    """Body of POST /verify."""

    document: str = Field(
        ...,
        description=(
            "Identity document exactly as signed. It is encoded as UTF-8 "
            "and never re-serialized."
        ),
    )

    signature: str = Field(
        ...,
        description="Base64 signature (raw RSA or CMS envelope)",
    )

    scheme: str = Field(
        ...,
        description="raw-rsa-1024 | raw-rsa-2048-cms (or legacy alias)",
    )


class AnchorResponse(BaseModel):
    """Diagnostic view of a trust anchor (DER omitted)."""

    scheme: str
    region: str
    subject: str
    issuer: str
    not_before: str
    not_after: str
    fingerprint_sha256: str
    key_algorithm: str
    key_size: Optional[int] = None

    @classmethod
    def from_anchor(cls, anchor: TrustAnchor) -> "AnchorResponse":
        return cls(
            scheme=anchor.scheme.value,
            region=anchor.region,
            subject=anchor.subject,
            issuer=anchor.issuer,
            not_before=anchor.not_before.isoformat(),
            not_after=anchor.not_after.isoformat(),
            fingerprint_sha256=anchor.fingerprint_sha256,
            key_algorithm=anchor.key_algorithm,
            key_size=anchor.key_size,
        )


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def build_verifier(settings: VerifierSettings) -> IdentityDocumentVerifier:
    """Construct the verifier from settings (composition root)."""
    if settings.certificate_root is None:
        raise RuntimeError(
            "VERIFIER_CERTIFICATE_ROOT must be configured to serve requests"
        )

    store = DirectoryCertificateStore(
        settings.certificate_root,
        cache=settings.cache_certificates,
    )

    return IdentityDocumentVerifier(
        store,
        key_size_policy=settings.key_size_policy,
        selection_policy=settings.certificate_selection_policy,
    )


def create_app(
    settings: Optional[VerifierSettings] = None,
    verifier: Optional[IdentityDocumentVerifier] = None,
) -> FastAPI:
    """
    Build the application.

    With no arguments, settings are read from the environment at startup
    and the verifier is wired from them. Either may be injected; settings
    not injected are still read from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Fail fast: invalid configuration aborts startup.
        try:
            app.state.settings = app.state.settings or get_settings()
            if app.state.verifier is None:
                app.state.verifier = build_verifier(app.state.settings)
        except Exception:
            logger.exception("invalid_verifier_configuration")
            raise

        logger.info("verifier_startup_complete")
        yield

    app = FastAPI(
        title="Identity Document Verifier",
        description="Verifies cloud instance identity document signatures",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.verifier = verifier
    app.include_router(router)

    return app


def _http_error(exc: VerificationFault) -> HTTPException:
    if isinstance(exc, AnchorNotFound):
        return HTTPException(status_code=404, detail=str(exc))

    if isinstance(exc, (MalformedCertificate, InvalidKeyMaterial)):
        # Trust store misconfiguration, not a caller error.
        logger.error("Trust anchor misconfiguration: %s", exc)
        return HTTPException(
            status_code=500,
            detail="Trust anchor configuration error",
        )

    return HTTPException(status_code=400, detail=str(exc))


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

@router.post(
    "/verify",
    response_model=VerificationResult,
    summary="Verify an instance identity document signature",
)
def verify_document(body: VerifyRequest, request: Request) -> VerificationResult:
    """
    Verify ``body.signature`` over ``body.document``.

    An invalid signature is a 200 response with ``state == "invalid"``.
    Error status codes are reserved for caller-contract violations and
    trust-store misconfiguration.
    """
    settings: VerifierSettings = request.app.state.settings

    if len(body.document.encode("utf-8")) > settings.max_document_bytes:
        raise HTTPException(
            status_code=413,
            detail=(
                "Identity document exceeds maximum allowed size of "
                f"{settings.max_document_bytes} bytes"
            ),
        )

    verifier: IdentityDocumentVerifier = request.app.state.verifier

    try:
        return verifier.verify_detailed(
            body.document, body.signature, body.scheme
        )
    except VerificationFault as exc:
        raise _http_error(exc) from exc


@router.get(
    "/anchors/{scheme}/{region}",
    response_model=AnchorResponse,
    summary="Inspect the trust anchor for a scheme and region",
)
def get_anchor(scheme: str, region: str, request: Request) -> AnchorResponse:
    verifier: IdentityDocumentVerifier = request.app.state.verifier

    try:
        anchor = verifier.resolve_anchor(region, scheme)
    except VerificationFault as exc:
        raise _http_error(exc) from exc

    return AnchorResponse.from_anchor(anchor)


@router.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "service": "verifier",
        }
    )


app = create_app()
