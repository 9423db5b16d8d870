"""
Visibility policy applied on every read path (feed, map pins, fetch by id).

A FLAGGED report is shadow-banned: only its author sees it. VERIFIED and
PENDING reports are public, anonymous viewers included.
"""

from typing import Dict, Iterable, List, Optional

from fillahole.models.report import Decision


def _decision_of(report: Dict) -> Optional[str]:
    trust = report.get("trust") or {}
    decision = trust.get("decision")
    if isinstance(decision, Decision):
        return decision.value
    return decision


def is_visible(report: Dict, viewer_id: Optional[str]) -> bool:
    if _decision_of(report) == Decision.FLAGGED.value:
        return viewer_id is not None and viewer_id == report.get("author_id")
    return True


def filter_visible(reports: Iterable[Dict], viewer_id: Optional[str]) -> List[Dict]:
    return [r for r in reports if is_visible(r, viewer_id)]


STATUS_DESCRIPTIONS = {
    Decision.VERIFIED.value: "Verified by GPS & metadata checks",
    Decision.PENDING.value: "Pending community verification",
    Decision.FLAGGED.value: "Under review, visible only to you",
}


def status_description(decision) -> str:
    """Short subtitle for a feed card."""
    if isinstance(decision, Decision):
        decision = decision.value
    return STATUS_DESCRIPTIONS.get(decision, "Unverified")
