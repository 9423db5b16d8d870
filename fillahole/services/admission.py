"""
Admission Controller - merges the metadata score and the AI verdict into
the single trust decision stored with a report.

The decision is written once, with the report, in the same atomic batch.
"""

from typing import Optional

from fillahole.models.report import AdmissionResult, AdvisorVerdict, Decision, ScoreResult, TrustBadge

VERIFIED_ABOVE = 90
PENDING_FROM = 50

BADGE_STYLES = {
    Decision.VERIFIED: ("Verified", "#4CAF50"),
    Decision.PENDING: ("Pending", "#FFC107"),
    Decision.FLAGGED: ("Flagged", "#F44336"),
}


def classify(final_score: int) -> Decision:
    """VERIFIED above 90, PENDING from 50 to 90 inclusive, FLAGGED below 50."""
    if final_score > VERIFIED_ABOVE:
        return Decision.VERIFIED
    if final_score >= PENDING_FROM:
        return Decision.PENDING
    return Decision.FLAGGED


def admit(scorer_result: ScoreResult, advisor_result: Optional[AdvisorVerdict] = None) -> AdmissionResult:
    advisor_result = advisor_result or AdvisorVerdict.neutral()
    deduction = max(0, advisor_result.deduction)
    final_score = min(100, max(0, scorer_result.score - deduction))
    return AdmissionResult(
        final_score=final_score,
        decision=classify(final_score),
        checks=list(scorer_result.checks),
        checks_passed=scorer_result.checks_passed,
        advisor=advisor_result,
    )


def trust_badge(final_score: int) -> TrustBadge:
    decision = classify(final_score)
    label, color = BADGE_STYLES[decision]
    return TrustBadge(label=label, color=color, decision=decision)
