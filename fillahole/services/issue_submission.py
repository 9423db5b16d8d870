"""
Issue submission - validates a new report and persists it atomically.

Flow:
1. Validate the ingress payload (fail fast, one named error per rule)
2. Score capture metadata, cross-check the photo with the AI advisor,
   admit (final score + decision)
3. One write batch: report, companion chat room, initial system message
4. After commit, fire the report-created hook (background jobs)

The trust decision is final at creation. The only later rewrite is an
explicit re-verification through the media verify endpoint.
"""

from typing import Dict, List, Optional
import base64
import binascii
import logging
import math
import time
import uuid

from firebase_admin import firestore
from pydantic import ValidationError

from fillahole.core.context import AppContext
from fillahole.models.metadata import CaptureMetadata
from fillahole.models.report import (
    AdmissionResult,
    ReportSubmission,
    SubmitResponse,
    TrustSummary,
    ValidatedSubmission,
)
from fillahole.services import trust_scorer
from fillahole.services.admission import admit
from fillahole.utils.geo import encode_geohash, is_valid_gps

logger = logging.getLogger(__name__)

REPORTS_COLLECTION = "reports"
CHATS_COLLECTION = "chats"
MESSAGES_SUBCOLLECTION = "messages"
SYSTEM_SENDER = "SYSTEM"
CHAT_WELCOME_TEXT = "Chat created. Let's fix this issue!"
MAX_GPS_ACCURACY_M = 50


class SubmissionValidationError(ValueError):
    """A submission rule was violated; nothing has been written."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def _non_empty_string(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_submission(data: ReportSubmission) -> ValidatedSubmission:
    """
    Check every submission rule in order and return typed values.

    Raises:
        SubmissionValidationError: on the first violated rule
    """
    if not _non_empty_string(data.title):
        raise SubmissionValidationError("title", "Invalid title: Title is required and must be a string.")

    if not _non_empty_string(data.description):
        raise SubmissionValidationError(
            "description", "Invalid description: Description is required and must be a string."
        )

    if not _non_empty_string(data.category):
        raise SubmissionValidationError("category", "Invalid category: Category is required.")

    media_urls = [m.strip() for m in (data.media_urls or []) if _non_empty_string(m)]
    if not media_urls:
        raise SubmissionValidationError("media_urls", "Invalid media: At least one geotagged photo is required.")

    verification = data.verification or {}
    gps_accuracy = verification.get("gps_accuracy")
    if not _is_number(gps_accuracy):
        raise SubmissionValidationError(
            "verification.gps_accuracy",
            "Invalid verification data: GPS Accuracy is missing. Have you used the GeoCamera?",
        )

    if gps_accuracy < 0:
        raise SubmissionValidationError(
            "verification.gps_accuracy", "Invalid verification data: GPS Accuracy cannot be negative."
        )

    if gps_accuracy > MAX_GPS_ACCURACY_M:
        raise SubmissionValidationError(
            "verification.gps_accuracy", "Poor GPS Lock: Accuracy must be at most 50 meters."
        )

    if not is_valid_gps(data.latitude, data.longitude):
        raise SubmissionValidationError("location", "Invalid location: Latitude and Longitude are required.")

    metadata = None
    if verification.get("metadata") is not None:
        try:
            metadata = CaptureMetadata.model_validate(verification["metadata"])
        except ValidationError:
            raise SubmissionValidationError(
                "verification.metadata", "Invalid verification data: Capture metadata is malformed."
            )

    image_bytes = None
    if data.image_base64:
        try:
            image_bytes = base64.b64decode(data.image_base64, validate=True)
        except (binascii.Error, ValueError):
            raise SubmissionValidationError("image_base64", "Invalid media: Image data is not valid base64.")

    try:
        return ValidatedSubmission(
            title=data.title.strip(),
            description=data.description.strip(),
            category=data.category.strip(),
            tags=[str(t) for t in (data.tags or []) if t],
            media_urls=media_urls,
            latitude=data.latitude,
            longitude=data.longitude,
            address=data.address,
            gps_accuracy=gps_accuracy,
            metadata=metadata,
            image_bytes=image_bytes,
        )
    except ValidationError as e:
        errors = e.errors()
        field = ".".join(str(p) for p in errors[0]["loc"]) if errors else "submission"
        raise SubmissionValidationError(field, f"Invalid submission: {field} is malformed.")


def evaluate_trust(
    ctx: AppContext,
    metadata: Optional[CaptureMetadata],
    reported_lat: float,
    reported_lng: float,
    image_bytes: Optional[bytes],
    title: str = "",
    category: str = "",
    description: str = "",
    now_ms: Optional[int] = None,
) -> AdmissionResult:
    """Metadata score, AI cross-check and admission in one step; the result carries its inputs."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    scorer_result = trust_scorer.score(metadata, reported_lat, reported_lng, now_ms=now_ms)
    verdict = ctx.advisor.advise(image_bytes, title, category, description)
    return admit(scorer_result, verdict).model_copy(update={
        "evaluated_at_ms": now_ms,
        "metadata": metadata,
        "reported_lat": reported_lat,
        "reported_lng": reported_lng,
    })


def build_report_document(
    report_id: str,
    author_id: str,
    submission: ValidatedSubmission,
    admission: AdmissionResult,
) -> Dict:
    return {
        "id": report_id,
        "author_id": author_id,
        "title": submission.title,
        "description": submission.description,
        "category": submission.category,
        "tags": list(submission.tags),
        "media_urls": list(submission.media_urls),
        "location": {
            "latitude": submission.latitude,
            "longitude": submission.longitude,
            "geohash": encode_geohash(submission.latitude, submission.longitude),
            "gps_accuracy_meters": submission.gps_accuracy,
            "address": submission.address,
        },
        "trust": admission.to_document(),
        "trust_history": [],
        "status": "OPEN",
        "engagement": {
            "upvotes": 0,
            "upvoters": [],
            "downvoters": [],
            "volunteers_joined": 0,
        },
        "volunteer_ids": [],
        "ai_estimate": None,
        "chat_room_id": f"chat_{report_id}",
        "created_at": firestore.SERVER_TIMESTAMP,
        "updated_at": firestore.SERVER_TIMESTAMP,
    }


def submit(
    ctx: AppContext,
    submission: ValidatedSubmission,
    author_id: str,
    now_ms: Optional[int] = None,
) -> SubmitResponse:
    """
    Persist a validated submission with its chat room and welcome message.

    The three documents are written in one batch; if the commit fails
    nothing is stored and the exception propagates. Background jobs are
    fired only after a successful commit.
    """
    if not _non_empty_string(author_id):
        raise SubmissionValidationError("author_id", "Invalid author: A signed-in user is required.")

    report_id = str(uuid.uuid4())
    chat_room_id = f"chat_{report_id}"

    admission = evaluate_trust(
        ctx,
        submission.metadata,
        submission.latitude,
        submission.longitude,
        submission.image_bytes,
        title=submission.title,
        category=submission.category,
        description=submission.description,
        now_ms=now_ms,
    )
    report_doc = build_report_document(report_id, author_id, submission, admission)

    db = ctx.db
    report_ref = db.collection(REPORTS_COLLECTION).document(report_id)
    chat_ref = db.collection(CHATS_COLLECTION).document(chat_room_id)
    message_ref = chat_ref.collection(MESSAGES_SUBCOLLECTION).document()

    batch = db.batch()
    batch.set(report_ref, report_doc)
    batch.set(chat_ref, {
        "id": chat_room_id,
        "report_id": report_id,
        "title": submission.title,
        "participant_ids": [author_id],
        "last_message": {
            "text": CHAT_WELCOME_TEXT,
            "sender_id": SYSTEM_SENDER,
            "created_at": firestore.SERVER_TIMESTAMP,
        },
        "pinned_task": f"Resolve: {submission.title}",
        "created_at": firestore.SERVER_TIMESTAMP,
    })
    batch.set(message_ref, {
        "text": CHAT_WELCOME_TEXT,
        "sender_id": SYSTEM_SENDER,
        "type": "system",
        "created_at": firestore.SERVER_TIMESTAMP,
    })
    batch.commit()

    logger.info(
        f"✅ Report {report_id} created by {author_id}: score={admission.final_score} "
        f"decision={admission.decision.value}"
    )

    job_ids: List[str] = []
    hook_payload = {k: v for k, v in report_doc.items() if k not in ("created_at", "updated_at")}
    try:
        job_ids = [job.id for job in ctx.hooks.fire(hook_payload)]
    except Exception as e:
        # Submission already committed; background fan-out is best-effort
        logger.error(f"Failed to fire report-created hook for {report_id}: {e}", exc_info=True)

    return SubmitResponse(
        id=report_id,
        chat_room_id=chat_room_id,
        trust=TrustSummary(
            score=admission.final_score,
            decision=admission.decision,
            checks_passed=admission.checks_passed,
            checks=admission.checks,
        ),
        job_ids=job_ids,
    )
