from datetime import date, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class VerificationStatus(str, Enum):
    PENDING = "Pending"
    LIKELY_GENUINE = "Likely Genuine"
    NEEDS_VERIFICATION = "Needs Verification"
    HIGH_SCAM_PROBABILITY = "High Scam Probability"

    @classmethod
    def terminal(cls) -> tuple["VerificationStatus", ...]:
        return (cls.LIKELY_GENUINE, cls.NEEDS_VERIFICATION, cls.HIGH_SCAM_PROBABILITY)

    @classmethod
    def coerce(cls, value: Any) -> "VerificationStatus":
        """Map any value onto a terminal status; unknown values need human review."""
        for status in cls.terminal():
            if value == status or value == status.value:
                return status
        return cls.NEEDS_VERIFICATION


class ClassificationResult(BaseModel):
    """Output shared by the heuristic scorer and the AI classifier."""

    model_config = ConfigDict(frozen=True)

    status: VerificationStatus
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str

    @field_validator("status", mode="before")
    @classmethod
    def _terminal_status(cls, value: Any) -> VerificationStatus:
        return VerificationStatus.coerce(value)


def _strip(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


class ReportSubmission(BaseModel):
    """Distress report as submitted, before the store assigns an id."""

    message: str = Field(..., min_length=10, max_length=2000, description="What is happening")
    location: str = Field(..., min_length=3, max_length=500, description="Where it is happening")
    contact: str | None = Field(None, max_length=200, description="Optional phone or email")
    latitude: float | None = Field(None, ge=-90.0, le=90.0)
    longitude: float | None = Field(None, ge=-180.0, le=180.0)
    submitted_by: str | None = Field(None, max_length=128, description="Owning user, absent for anonymous reports")

    @field_validator("message", "location", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("contact", mode="before")
    @classmethod
    def _blank_contact(cls, value: Any) -> Any:
        value = _strip(value)
        return value or None

    @model_validator(mode="after")
    def _coordinates_pair(self) -> "ReportSubmission":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class DistressReport(BaseModel):
    id: str
    message: str
    location: str
    contact: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    submitted_by: str | None = None
    created_at: datetime
    classification: VerificationStatus = VerificationStatus.PENDING
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    rationale: str = "Analyzing..."
    classified_at: datetime | None = None

    @classmethod
    def new_pending(cls, report_id: str, submission: ReportSubmission, created_at: datetime) -> "DistressReport":
        return cls(
            id=report_id,
            created_at=created_at,
            **submission.model_dump(),
        )

    @property
    def is_pending(self) -> bool:
        return self.classification == VerificationStatus.PENDING


class ReportEvent(BaseModel):
    event_type: Literal["insert", "update"]
    report: DistressReport


class VerifyRequest(BaseModel):
    """Synchronous classification request (nothing is persisted)."""

    message: str = Field(..., min_length=1, max_length=2000)
    location: str = Field(..., min_length=1, max_length=500)

    @field_validator("message", "location", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return _strip(value)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=4000)


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    conversation_history: list[ChatMessage] = Field(default_factory=list)


class ChatReply(BaseModel):
    reply: str


class LocationCount(BaseModel):
    name: str
    count: int


class TimelinePoint(BaseModel):
    day: date
    total: int = 0
    genuine: int = 0
    scam: int = 0


class ReportStats(BaseModel):
    total: int
    genuine: int
    needs_verification: int
    scam: int
    pending: int
    average_confidence: float
    genuine_rate: float
    scam_rate: float
    top_locations: list[LocationCount] = Field(default_factory=list)
    timeline: list[TimelinePoint] = Field(default_factory=list)
