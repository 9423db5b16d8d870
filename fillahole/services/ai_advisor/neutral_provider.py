"""
Neutral Provider - fallback when AI is disabled or every real provider failed.

Always available; never deducts.
"""

from typing import Dict

from fillahole.models.report import AdvisorVerdict
from fillahole.services.ai_advisor.base import AuthenticityProvider


class NeutralProvider(AuthenticityProvider):

    MODEL_NAME = "neutral"
    MODEL_VERSION = "1.0.0"

    def is_enabled(self) -> bool:
        return True

    def get_model_info(self) -> Dict[str, str]:
        return {"name": self.MODEL_NAME, "version": self.MODEL_VERSION}

    def get_timeout_seconds(self) -> float:
        return 0.0

    def assess(self, image_bytes: bytes, title: str, category: str, description: str) -> AdvisorVerdict:
        return AdvisorVerdict.neutral(provider=self.MODEL_NAME)
