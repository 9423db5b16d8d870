"""
Models for geofenced notification fan-out.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional


class NearbyUser(BaseModel):
    """A user record as read from the spatial index."""
    id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    geohash: Optional[str] = None
    push_token: Optional[str] = None
    role: Optional[str] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "NearbyUser":
        location = data.get("location") or {}
        return cls(
            id=doc_id,
            latitude=location.get("latitude"),
            longitude=location.get("longitude"),
            geohash=location.get("geohash"),
            push_token=data.get("push_token"),
            role=data.get("role"),
        )


class NotificationRecord(BaseModel):
    """Persisted per recipient; only is_read ever changes afterwards."""
    id: Optional[str] = None
    user_id: str
    report_id: str
    title: str
    body: str
    type: str = "nearby_issue_alert"
    is_read: bool = False
    created_at: Optional[datetime] = None


class DispatchSummary(BaseModel):
    report_id: str
    skipped_reason: Optional[str] = Field(None, description="Set when no fan-out happened")
    candidates: int = 0
    recipients: int = 0
    chunks: int = 0
    chunks_failed: int = 0
    pushes_succeeded: int = 0
    records_written: int = 0
