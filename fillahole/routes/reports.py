"""
Report endpoints - submission, feed, single read and voting.

Every read passes the caller's X-User-ID (if any) to the visibility policy.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Header, Query, status

from fillahole.core.context import AppContext, get_context
from fillahole.models.report import ReportResponse, ReportSubmission, SubmitResponse, VoteRequest, VoteResponse
from fillahole.services import issue_submission, report_service, vote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SubmitResponse)
def submit_report(
    report: ReportSubmission,
    user_id: str = Header(..., alias="X-User-ID", description="Author user ID"),
    ctx: AppContext = Depends(get_context),
):
    """
    Submit a new civic issue report.

    1. Validates the payload (400 with a field-specific message on failure)
    2. Scores capture metadata and cross-checks the photo
    3. Writes report + chat room + welcome message atomically
    4. Queues the nearby-user notification job
    """
    logger.info(f"📝 POST /reports - category={report.category} author={user_id}")
    validated = issue_submission.validate_submission(report)
    result = issue_submission.submit(ctx, validated, author_id=user_id)
    logger.info(f"✅ Report created: {result.id} ({result.trust.decision.value})")
    return result


@router.get("", response_model=List[ReportResponse])
def get_reports(
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of reports"),
    user_id: Optional[str] = Header(None, alias="X-User-ID", description="Viewer user ID"),
    ctx: AppContext = Depends(get_context),
):
    return report_service.list_reports(ctx, viewer_id=user_id, category=category, limit=limit)


@router.get("/{report_id}", response_model=ReportResponse)
def get_report(
    report_id: str,
    user_id: Optional[str] = Header(None, alias="X-User-ID", description="Viewer user ID"),
    ctx: AppContext = Depends(get_context),
):
    return report_service.get_report(ctx, report_id, viewer_id=user_id)


@router.post("/{report_id}/vote", response_model=VoteResponse)
def vote_on_report(
    report_id: str,
    vote: VoteRequest,
    user_id: str = Header(..., alias="X-User-ID", description="Voter user ID"),
    ctx: AppContext = Depends(get_context),
):
    """
    Vote on a report.

    Same direction twice removes the vote; the opposite direction switches it.
    """
    return vote_service.cast_vote(ctx, report_id, user_id, vote.direction)
