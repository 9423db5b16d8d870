"""
Pydantic models for civic issue reports.
These models cover the trust pipeline, submission ingress and read responses.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum

from fillahole.models.metadata import CaptureMetadata


class Decision(str, Enum):
    """Admission outcome derived from the final trust score."""
    VERIFIED = "VERIFIED"
    PENDING = "PENDING"
    FLAGGED = "FLAGGED"


class TrustCheck(BaseModel):
    """Result of one binary, weighted metadata check."""
    id: str = Field(..., description="Stable check id, e.g. GPS_PRESENT")
    label: str = Field(..., description="Human-readable check name")
    passed: bool = Field(..., description="Whether the check passed")
    points: int = Field(..., ge=0, description="Points awarded (0 when failed)")
    max_points: int = Field(..., ge=0, description="Points available for this check")
    detail: str = Field("", description="Why the check passed or failed")


class ScoreResult(BaseModel):
    score: int = Field(..., ge=0, le=100)
    checks: List[TrustCheck] = Field(default_factory=list)

    @property
    def checks_passed(self) -> List[str]:
        return [c.id for c in self.checks if c.passed]


class AdvisorVerdict(BaseModel):
    """Outcome of the AI authenticity cross-check."""
    is_authentic: bool = Field(True, description="Model judgement; True when unavailable")
    reason: str = Field("unavailable", description="Short explanation from the model")
    deduction: int = Field(0, ge=0, description="Points to subtract from the metadata score")
    provider: Optional[str] = Field(None, description="Provider that produced the verdict")
    error: Optional[str] = Field(None, description="Why the provider could not give a verdict")

    @classmethod
    def neutral(cls, provider: Optional[str] = None, error: Optional[str] = None) -> "AdvisorVerdict":
        return cls(is_authentic=True, reason="unavailable", deduction=0, provider=provider, error=error)


class AdmissionResult(BaseModel):
    final_score: int = Field(..., ge=0, le=100)
    decision: Decision
    checks: List[TrustCheck] = Field(default_factory=list)
    checks_passed: List[str] = Field(default_factory=list)
    advisor: AdvisorVerdict = Field(default_factory=AdvisorVerdict.neutral)
    # Scorer inputs, stored so the score can be recomputed later
    evaluated_at_ms: Optional[int] = None
    metadata: Optional[CaptureMetadata] = None
    reported_lat: Optional[float] = None
    reported_lng: Optional[float] = None

    def to_document(self) -> Dict[str, Any]:
        """Shape stored under report.trust."""
        return {
            "score": self.final_score,
            "decision": self.decision.value,
            "checks_passed": list(self.checks_passed),
            "checks": [c.model_dump() for c in self.checks],
            "advisor": self.advisor.model_dump(),
            "evaluated_at_ms": self.evaluated_at_ms,
            "metadata": self.metadata.model_dump() if self.metadata else None,
            "reported_lat": self.reported_lat,
            "reported_lng": self.reported_lng,
        }


class ReportSubmission(BaseModel):
    """
    Incoming POST /reports body.

    Deliberately loose: every field is optional and untyped so that
    validate_submission() can reject bad input with a field-specific
    message instead of a generic 422.
    """
    title: Optional[Any] = Field(None, description="Short issue title")
    description: Optional[Any] = Field(None, description="What the citizen observed")
    category: Optional[Any] = Field(None, description="Issue category, e.g. Infrastructure")
    tags: Optional[List[Any]] = Field(None, description="Free tags; 'Urgent' triggers nearby alerts")
    media_urls: Optional[List[Any]] = Field(None, description="Uploaded geotagged photo URLs")
    latitude: Optional[Any] = Field(None, description="Reported issue latitude")
    longitude: Optional[Any] = Field(None, description="Reported issue longitude")
    address: Optional[str] = Field(None, description="Reverse-geocoded address, if known")
    verification: Optional[Dict[str, Any]] = Field(
        None, description="Capture verification data: gps_accuracy and metadata"
    )
    image_base64: Optional[str] = Field(None, description="Primary photo for the AI cross-check")

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Deep pothole near bus stop",
                "description": "Two-foot wide pothole filling with water.",
                "category": "Infrastructure",
                "tags": ["Urgent"],
                "media_urls": ["https://example.com/pothole.jpg"],
                "latitude": 16.5062,
                "longitude": 80.6480,
                "verification": {
                    "gps_accuracy": 8.5,
                    "metadata": {
                        "gps": {"latitude": 16.5062, "longitude": 80.6480, "accuracy": 8.5},
                        "captured_at_unix": 1735689600000,
                        "exif": {},
                    },
                },
            }
        }
        extra = "ignore"


class ValidatedSubmission(BaseModel):
    """Submission after ingress validation; every required field is present and typed."""
    title: str
    description: str
    category: str
    tags: List[str] = Field(default_factory=list)
    media_urls: List[str] = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    gps_accuracy: float = Field(..., ge=0)
    metadata: Optional[CaptureMetadata] = None
    image_bytes: Optional[bytes] = None


class TrustSummary(BaseModel):
    score: int = Field(0, ge=0, le=100)
    decision: Decision = Decision.PENDING
    checks_passed: List[str] = Field(default_factory=list)
    checks: List[TrustCheck] = Field(default_factory=list)


class TrustBadge(BaseModel):
    """Display badge for a report card."""
    label: str
    color: str
    decision: Decision


class ReportLocation(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    geohash: Optional[str] = None
    gps_accuracy_meters: Optional[float] = None
    address: Optional[str] = None


class ReportResponse(BaseModel):
    """Report as returned by the read endpoints."""
    id: str
    author_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    media_urls: List[str] = Field(default_factory=list)
    location: ReportLocation = Field(default_factory=ReportLocation)
    trust: TrustSummary = Field(default_factory=TrustSummary)
    badge: Optional[TrustBadge] = None
    status_description: Optional[str] = None
    status: str = "OPEN"
    upvotes: int = 0
    chat_room_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "ReportResponse":
        trust = data.get("trust") or {}
        engagement = data.get("engagement") or {}
        return cls(
            id=data["id"],
            author_id=data.get("author_id"),
            title=data.get("title"),
            description=data.get("description"),
            category=data.get("category"),
            tags=data.get("tags") or [],
            media_urls=data.get("media_urls") or [],
            location=ReportLocation(**(data.get("location") or {})),
            trust=TrustSummary(
                score=trust.get("score", 0),
                decision=trust.get("decision", Decision.PENDING.value),
                checks_passed=trust.get("checks_passed") or [],
                checks=trust.get("checks") or [],
            ),
            status=data.get("status", "OPEN"),
            upvotes=engagement.get("upvotes", 0),
            chat_room_id=data.get("chat_room_id"),
            created_at=data.get("created_at") if isinstance(data.get("created_at"), datetime) else None,
        )


class SubmitResponse(BaseModel):
    id: str
    chat_room_id: str
    trust: TrustSummary
    job_ids: List[str] = Field(default_factory=list, description="Background jobs fired for this report")


class VerifyRequest(BaseModel):
    """POST /media/verify body."""
    report_id: str = Field(..., min_length=1)
    reported_lat: float = Field(..., ge=-90, le=90)
    reported_lng: float = Field(..., ge=-180, le=180)
    image_base64: Optional[str] = Field(None, description="Photo bytes for the AI cross-check")
    metadata: CaptureMetadata = Field(default_factory=CaptureMetadata)


class VerifyResponse(BaseModel):
    trust_score: int
    is_verified: bool
    checks_passed: List[str]
    decision: Decision


class VoteDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class VoteRequest(BaseModel):
    direction: VoteDirection


class VoteResponse(BaseModel):
    report_id: str
    upvotes: int
    user_vote: Optional[VoteDirection] = None


class MapPin(BaseModel):
    id: str
    latitude: float
    longitude: float
    title: Optional[str] = None
    category: Optional[str] = None
    color: str
    decision: Decision
    status: str = "OPEN"
