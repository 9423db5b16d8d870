"""
Gemini Vision Provider - authenticity cross-check via google-generativeai.
"""

from typing import Dict
import logging

import google.generativeai as genai

from fillahole.core.settings import Settings
from fillahole.models.report import AdvisorVerdict
from fillahole.services.ai_advisor.base import (
    AuthenticityProvider,
    build_prompt,
    detect_mime_type,
    parse_model_verdict,
)

logger = logging.getLogger(__name__)


class GeminiVisionProvider(AuthenticityProvider):
    """
    Google Gemini multimodal provider.

    Requires GEMINI_API_KEY. Any API, timeout or parsing failure yields a
    neutral verdict carrying the error.
    """

    MODEL_VERSION = "1.0"

    def __init__(self, settings: Settings):
        self.settings = settings
        self.api_key = settings.GEMINI_API_KEY
        self.model_name = settings.GEMINI_MODEL
        self.enabled = bool(self.api_key and self.api_key.strip())

        if self.enabled:
            logger.info(f"✅ Gemini Vision Provider initialized: {self.model_name}")
        else:
            logger.info("⚠️ Gemini Vision Provider disabled: No API key configured")

    def is_enabled(self) -> bool:
        return self.enabled

    def get_model_info(self) -> Dict[str, str]:
        return {"name": self.model_name, "version": self.MODEL_VERSION}

    def get_timeout_seconds(self) -> float:
        return self.settings.AI_TIMEOUT_SECONDS

    def assess(self, image_bytes: bytes, title: str, category: str, description: str) -> AdvisorVerdict:
        if not self.enabled:
            return AdvisorVerdict.neutral(provider=self.model_name, error="Gemini API key not configured")

        try:
            prompt = build_prompt(title, category, description, self.settings.AI_MAX_DEDUCTION)
            text = self._call_gemini_api(prompt, image_bytes)
            return parse_model_verdict(
                text,
                provider=self.model_name,
                max_deduction=self.settings.AI_MAX_DEDUCTION,
                default_deduction=self.settings.AI_DEFAULT_DEDUCTION,
            )
        except Exception as e:
            logger.warning(f"⚠️ Gemini vision call failed: {str(e)}")
            return AdvisorVerdict.neutral(provider=self.model_name, error=f"Gemini API error: {str(e)}")

    def _call_gemini_api(self, prompt: str, image_bytes: bytes) -> str:
        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model_name)
        response = model.generate_content(
            [prompt, {"mime_type": detect_mime_type(image_bytes), "data": image_bytes}],
            request_options={"timeout": self.get_timeout_seconds()},
        )
        return response.text
