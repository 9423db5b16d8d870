"""
AI authenticity cross-check.

Optional, best-effort check that a report photo plausibly shows the
described issue. Fails gracefully and never blocks report submission.
"""

from fillahole.services.ai_advisor.base import AuthenticityProvider, parse_model_verdict
from fillahole.services.ai_advisor.gemini_provider import GeminiVisionProvider
from fillahole.services.ai_advisor.neutral_provider import NeutralProvider
from fillahole.services.ai_advisor.openai_provider import OpenAIVisionProvider
from fillahole.services.ai_advisor.registry import AIAuthenticityAdvisor

__all__ = [
    "AIAuthenticityAdvisor",
    "AuthenticityProvider",
    "GeminiVisionProvider",
    "NeutralProvider",
    "OpenAIVisionProvider",
    "parse_model_verdict",
]
