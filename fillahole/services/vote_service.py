"""
Vote Service - upvote/downvote on reports.

The net counter lives on the report (engagement.upvotes) next to the
upvoter and downvoter id lists. Every vote is one transactional
read-modify-write, so concurrent voters never lose an update and a switch
of direction moves the counter by 2 in a single commit.
"""

from typing import Dict, List, Optional, Tuple
import logging

from firebase_admin import firestore

from fillahole.config.firebase import run_transaction
from fillahole.core.context import AppContext
from fillahole.models.report import VoteDirection, VoteResponse
from fillahole.services.issue_submission import REPORTS_COLLECTION
from fillahole.services.report_service import ReportNotFoundError
from fillahole.services.visibility import is_visible

logger = logging.getLogger(__name__)


def compute_vote_update(
    report: Dict,
    user_id: str,
    direction: VoteDirection,
) -> Tuple[Dict, int, Optional[VoteDirection]]:
    """
    New engagement fields after `user_id` votes `direction`.

    - no previous vote: +1 (up) / -1 (down)
    - same direction again: vote removed, -1 (up) / +1 (down)
    - opposite direction: vote switched, +2 (up) / -2 (down)

    Returns (field updates, new net count, user's vote afterwards).
    """
    engagement = report.get("engagement") or {}
    upvotes = int(engagement.get("upvotes") or 0)
    upvoters: List[str] = list(engagement.get("upvoters") or [])
    downvoters: List[str] = list(engagement.get("downvoters") or [])

    if direction == VoteDirection.UP:
        same, other, sign = upvoters, downvoters, 1
    else:
        same, other, sign = downvoters, upvoters, -1

    if user_id in same:
        same.remove(user_id)
        delta = -sign
        user_vote = None
    elif user_id in other:
        other.remove(user_id)
        same.append(user_id)
        delta = 2 * sign
        user_vote = direction
    else:
        same.append(user_id)
        delta = sign
        user_vote = direction

    new_upvotes = upvotes + delta
    updates = {
        "engagement.upvotes": new_upvotes,
        "engagement.upvoters": upvoters,
        "engagement.downvoters": downvoters,
    }
    return updates, new_upvotes, user_vote


def cast_vote(ctx: AppContext, report_id: str, user_id: str, direction: VoteDirection) -> VoteResponse:
    report_ref = ctx.db.collection(REPORTS_COLLECTION).document(report_id)

    def _vote(transaction, ref):
        snapshot = ref.get(transaction=transaction)
        if not snapshot.exists:
            raise ReportNotFoundError(report_id)
        data = snapshot.to_dict() or {}
        data["id"] = report_id
        if not is_visible(data, user_id):
            raise ReportNotFoundError(report_id)

        updates, new_upvotes, user_vote = compute_vote_update(data, user_id, direction)
        updates["updated_at"] = firestore.SERVER_TIMESTAMP
        transaction.update(ref, updates)
        return new_upvotes, user_vote

    new_upvotes, user_vote = run_transaction(ctx.db, _vote, report_ref)
    logger.info(f"Vote on {report_id} by {user_id}: {direction.value} -> upvotes={new_upvotes}")
    return VoteResponse(report_id=report_id, upvotes=new_upvotes, user_vote=user_vote)
