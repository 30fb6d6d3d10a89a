"""
Trust Data Models
=================

Models for signed disclosure messages, verification outcomes and
trust configuration snapshots.

Version: 0.1.0
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProofStatus(str, Enum):
    """Verdict of the trust library on a signed message."""

    VALID = "VALID"
    INVALID = "INVALID"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    UNMATCHED_REQUEST = "UNMATCHED_REQUEST"
    MISSING_ATTRIBUTES = "MISSING_ATTRIBUTES"
    EXPIRED = "EXPIRED"


class SignedMessage(BaseModel):
    """
    An IRMA attribute-based signature.

    Mirrors the wire format of the trust library: a list of proofs
    over the disclosed credentials, the disclosure indices, the signed
    message text and the session nonce/context. Unknown fields are kept
    so the library receives the message exactly as submitted.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    ld_context: str | None = Field(default=None, alias="@context")
    signature: list[dict[str, Any]] = Field(..., description="Proof list")
    indices: list[list[dict[str, Any]]] = Field(default_factory=list)
    nonce: int | None = None
    context: int | None = None
    message: str = Field(..., description="Signed message text")
    timestamp: dict[str, Any] | None = None

    def to_wire(self) -> str:
        """Serialize back to the library wire format."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class DisclosedAttribute(BaseModel):
    """A single attribute from a verified disclosure."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(..., description="scheme.issuer.credential.attribute")
    raw_value: str | None = None
    status: str | None = None


AttributeList = list[list[DisclosedAttribute]]


class OutcomeKind(str, Enum):
    """Tag of a verification outcome."""

    VALID = "valid"
    INVALID = "invalid"
    ERROR = "error"


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Result of verifying one signed message.

    Exactly one of three shapes: VALID carries the disclosed attributes,
    INVALID carries the non-valid proof status, ERROR carries the cause.
    """

    kind: OutcomeKind
    attributes: AttributeList | None = None
    status: ProofStatus | None = None
    cause: str | None = None

    @classmethod
    def valid(cls, attributes: AttributeList) -> "VerificationOutcome":
        return cls(kind=OutcomeKind.VALID, attributes=attributes, status=ProofStatus.VALID)

    @classmethod
    def invalid(cls, status: ProofStatus) -> "VerificationOutcome":
        if status == ProofStatus.VALID:
            raise ValueError("Invalid outcome cannot carry VALID status")
        return cls(kind=OutcomeKind.INVALID, status=status)

    @classmethod
    def error(cls, cause: str) -> "VerificationOutcome":
        return cls(kind=OutcomeKind.ERROR, cause=cause)

    @property
    def is_valid(self) -> bool:
        return self.kind == OutcomeKind.VALID


@dataclass(frozen=True)
class SchemeInfo:
    """Summary of one parsed scheme folder."""

    id: str
    url: str | None = None
    timestamp: int | None = None
    issuers: tuple[str, ...] = ()
    public_key_count: int = 0


@dataclass(frozen=True, eq=False)
class TrustConfiguration:
    """
    Immutable snapshot of scheme, issuer and key material.

    Never mutated after construction; a refresh builds a new snapshot
    and the trust store publishes it in place of the old one.
    """

    path: Path
    schemes: Mapping[str, SchemeInfo] = field(default_factory=dict)
    generation: int = 0
    loaded_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "schemes", MappingProxyType(dict(self.schemes)))

    @property
    def is_empty(self) -> bool:
        return not self.schemes

    @property
    def scheme_ids(self) -> list[str]:
        return sorted(self.schemes)
