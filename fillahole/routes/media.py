"""
Media verification endpoint - re-score an uploaded photo for an existing report.
"""

import logging

from fastapi import APIRouter, Depends

from fillahole.core.context import AppContext, get_context
from fillahole.models.report import VerifyRequest, VerifyResponse
from fillahole.services import report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["Media"])


@router.post("/verify", response_model=VerifyResponse)
def verify_media(request: VerifyRequest, ctx: AppContext = Depends(get_context)):
    """
    Run metadata checks and the AI cross-check for a report photo.

    Writes the result to the report's `trust` field and appends the change
    to `trust_history`.
    """
    logger.info(f"POST /media/verify - report={request.report_id}")
    return report_service.verify_report(ctx, request)
