"""
Report service - read paths and re-verification for civic issue reports.

Every read goes through the visibility policy: FLAGGED reports are only
returned to their author. A hidden report is indistinguishable from a
missing one.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
import base64
import binascii
import logging

from firebase_admin import firestore

from fillahole.config.firebase import run_transaction
from fillahole.core.context import AppContext
from fillahole.models.report import ReportResponse, VerifyRequest, VerifyResponse, Decision
from fillahole.services.issue_submission import (
    REPORTS_COLLECTION,
    SubmissionValidationError,
    evaluate_trust,
)
from fillahole.services.admission import trust_badge
from fillahole.services.visibility import filter_visible, is_visible, status_description
from fillahole.utils.firestore_helpers import snapshot_to_dict, where_filter

logger = logging.getLogger(__name__)

FEED_SCAN_FACTOR = 3


class ReportNotFoundError(LookupError):
    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


def to_response(data: Dict) -> ReportResponse:
    """Read model for a stored report, with its display badge and subtitle."""
    response = ReportResponse.from_document(data)
    response.badge = trust_badge(response.trust.score)
    response.status_description = status_description(response.trust.decision)
    return response


def list_reports(
    ctx: AppContext,
    viewer_id: Optional[str],
    category: Optional[str] = None,
    limit: int = 50,
) -> List[ReportResponse]:
    """
    Newest-first feed, visibility-filtered for the viewer.

    Hidden reports are skipped after the query, so up to
    limit * FEED_SCAN_FACTOR documents are scanned to fill the page.
    """
    query = ctx.db.collection(REPORTS_COLLECTION)
    if category:
        query = where_filter(query, "category", "==", category)
    query = query.order_by("created_at", direction=firestore.Query.DESCENDING).limit(limit * FEED_SCAN_FACTOR)

    scanned = [snapshot_to_dict(doc) for doc in query.stream()]
    visible = filter_visible(scanned, viewer_id)
    hidden = len(scanned) - len(visible)
    results = [to_response(data) for data in visible[:limit]]

    logger.info(f"Feed: {len(results)} reports returned, {hidden} hidden from viewer {viewer_id or 'anonymous'}")
    return results


def get_report(ctx: AppContext, report_id: str, viewer_id: Optional[str]) -> ReportResponse:
    doc = ctx.db.collection(REPORTS_COLLECTION).document(report_id).get()
    if not doc.exists:
        raise ReportNotFoundError(report_id)

    data = snapshot_to_dict(doc)
    if not is_visible(data, viewer_id):
        raise ReportNotFoundError(report_id)
    return to_response(data)


def verify_report(ctx: AppContext, request: VerifyRequest, now_ms: Optional[int] = None) -> VerifyResponse:
    """
    Re-run the trust pipeline for an existing report and store the result.

    Overwrites report.trust and appends the previous-and-new summary to
    report.trust_history inside one transaction.
    """
    image_bytes = None
    if request.image_base64:
        try:
            image_bytes = base64.b64decode(request.image_base64, validate=True)
        except (binascii.Error, ValueError):
            raise SubmissionValidationError("image_base64", "Invalid media: Image data is not valid base64.")

    report_ref = ctx.db.collection(REPORTS_COLLECTION).document(request.report_id)
    snapshot = report_ref.get()
    if not snapshot.exists:
        raise ReportNotFoundError(request.report_id)
    report = snapshot.to_dict() or {}

    admission = evaluate_trust(
        ctx,
        request.metadata,
        request.reported_lat,
        request.reported_lng,
        image_bytes,
        title=report.get("title", ""),
        category=report.get("category", ""),
        description=report.get("description", ""),
        now_ms=now_ms,
    )
    trust_doc = admission.to_document()

    def _apply(transaction, ref):
        current = ref.get(transaction=transaction)
        if not current.exists:
            raise ReportNotFoundError(ref.id)
        data = current.to_dict() or {}
        history = list(data.get("trust_history") or [])
        history.append({
            "previous_score": (data.get("trust") or {}).get("score"),
            "previous_decision": (data.get("trust") or {}).get("decision"),
            "score": trust_doc["score"],
            "decision": trust_doc["decision"],
            "source": "verify",
            "verified_at": datetime.now(timezone.utc),
        })
        transaction.update(ref, {
            "trust": trust_doc,
            "trust_history": history,
            "updated_at": firestore.SERVER_TIMESTAMP,
        })

    run_transaction(ctx.db, _apply, report_ref)

    logger.info(
        f"Report {request.report_id} re-verified: score={admission.final_score} decision={admission.decision.value}"
    )
    return VerifyResponse(
        trust_score=admission.final_score,
        is_verified=admission.decision == Decision.VERIFIED,
        checks_passed=admission.checks_passed,
        decision=admission.decision,
    )
