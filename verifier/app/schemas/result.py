"""
VerificationResult schema.

Structured outcome of a single dispatcher run. The boolean API is a
projection of this model (``result.valid``).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from verifier.app.schemas.scheme import Scheme


class VerificationState(str, Enum):
    """
    Dispatcher state machine.

        PENDING -> RESOLVED(anchor) -> {VALID, INVALID}

    Only the terminal states are ever returned to callers. A document
    rejected before an anchor was resolved (e.g. no region) goes straight
    from PENDING to INVALID.
    """

    PENDING = "pending"
    RESOLVED = "resolved"
    VALID = "valid"
    INVALID = "invalid"


class VerificationResult(BaseModel):
    """Outcome of verifying one identity document."""

    model_config = ConfigDict(frozen=True)

    state: VerificationState = Field(
        ...,
        description="Terminal state of the verification state machine",
    )

    scheme: Scheme = Field(
        ...,
        description="Scheme the document was verified under",
    )

    region: Optional[str] = Field(
        None,
        description="Region claimed by the document, if it could be read",
    )

    anchor_subject: Optional[str] = Field(
        None,
        description="Subject of the resolved trust anchor",
    )

    anchor_fingerprint: Optional[str] = Field(
        None,
        description="SHA-256 fingerprint of the resolved trust anchor",
    )

    reason: Optional[str] = Field(
        None,
        description="Why verification failed (INVALID only)",
    )

    @property
    def valid(self) -> bool:
        return self.state == VerificationState.VALID

    @model_validator(mode="after")
    def enforce_terminal_state(self) -> "VerificationResult":
        if self.state not in (
            VerificationState.VALID,
            VerificationState.INVALID,
        ):
            raise ValueError(
                "VerificationResult must carry a terminal state"
            )

        if self.state == VerificationState.VALID:
            if self.reason is not None:
                raise ValueError("A VALID result cannot carry a reason")
            if self.anchor_fingerprint is None:
                raise ValueError("A VALID result requires a resolved anchor")

        return self
