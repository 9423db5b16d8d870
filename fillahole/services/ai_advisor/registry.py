"""
AI Authenticity Advisor - provider selection and fallback.

Tries enabled vision providers in priority order; the first one that
returns a verdict without an error wins. When AI is disabled, no image is
supplied, or every provider fails, the verdict is neutral (deduction 0,
reason "unavailable"). advise() never raises.
"""

from typing import List, Optional
import logging

from fillahole.core.settings import Settings
from fillahole.models.report import AdvisorVerdict
from fillahole.services.ai_advisor.base import AuthenticityProvider
from fillahole.services.ai_advisor.gemini_provider import GeminiVisionProvider
from fillahole.services.ai_advisor.neutral_provider import NeutralProvider
from fillahole.services.ai_advisor.openai_provider import OpenAIVisionProvider

logger = logging.getLogger(__name__)


class AIAuthenticityAdvisor:

    def __init__(self, settings: Settings, providers: Optional[List[AuthenticityProvider]] = None):
        self.settings = settings
        if providers is not None:
            self.providers = list(providers)
        else:
            self.providers = self._initialize_providers()

    def _initialize_providers(self) -> List[AuthenticityProvider]:
        if not self.settings.AI_ENABLED:
            logger.info("⚠️ AI is disabled globally (AI_ENABLED=false), authenticity checks are neutral")
            return []

        candidates = {
            "gemini": GeminiVisionProvider(self.settings),
            "openai": OpenAIVisionProvider(self.settings),
        }
        preferred = self.settings.AI_PROVIDER.lower()
        ordered = [candidates.pop(preferred)] if preferred in candidates else []
        ordered.extend(candidates.values())

        providers = [p for p in ordered if p.is_enabled()]
        for provider in providers:
            logger.info(f"✅ Authenticity provider registered: {provider.get_model_info()['name']}")
        if not providers:
            logger.info("⚠️ No authenticity provider has an API key, checks are neutral")
        return providers

    def advise(
        self,
        image_bytes: Optional[bytes],
        title: str = "",
        category: str = "",
        description: str = "",
    ) -> AdvisorVerdict:
        if not image_bytes:
            return AdvisorVerdict.neutral(error="No image supplied")

        for provider in self.providers:
            name = provider.get_model_info()["name"]
            try:
                verdict = provider.assess(image_bytes, title, category, description)
            except Exception as e:
                logger.warning(f"Provider {name} raised: {e}", exc_info=True)
                continue

            if verdict.error:
                logger.warning(f"Provider {name} returned error: {verdict.error}")
                continue

            logger.info(
                f"✅ Authenticity verdict from {name}: authentic={verdict.is_authentic} "
                f"deduction={verdict.deduction}"
            )
            return verdict

        if self.providers:
            logger.error("⚠️ All authenticity providers failed, using neutral verdict")
        return NeutralProvider().assess(image_bytes, title, category, description)
