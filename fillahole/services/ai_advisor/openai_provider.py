"""
OpenAI Vision Provider - authenticity cross-check over the chat completions HTTP API.
"""

from typing import Dict
import base64
import logging

import requests

from fillahole.core.settings import Settings
from fillahole.models.report import AdvisorVerdict
from fillahole.services.ai_advisor.base import (
    AuthenticityProvider,
    build_prompt,
    detect_mime_type,
    parse_model_verdict,
)

logger = logging.getLogger(__name__)


class OpenAIVisionProvider(AuthenticityProvider):

    API_URL = "https://api.openai.com/v1/chat/completions"
    MODEL_VERSION = "1.0"

    def __init__(self, settings: Settings):
        self.settings = settings
        self.api_key = settings.OPENAI_API_KEY
        self.model_name = settings.OPENAI_MODEL
        self.enabled = bool(self.api_key and self.api_key.strip())

        if self.enabled:
            logger.info(f"✅ OpenAI Vision Provider initialized: {self.model_name}")
        else:
            logger.info("⚠️ OpenAI Vision Provider disabled: No API key configured")

    def is_enabled(self) -> bool:
        return self.enabled

    def get_model_info(self) -> Dict[str, str]:
        return {"name": self.model_name, "version": self.MODEL_VERSION}

    def get_timeout_seconds(self) -> float:
        return self.settings.AI_TIMEOUT_SECONDS

    def assess(self, image_bytes: bytes, title: str, category: str, description: str) -> AdvisorVerdict:
        if not self.enabled:
            return AdvisorVerdict.neutral(provider=self.model_name, error="OpenAI API key not configured")

        try:
            prompt = build_prompt(title, category, description, self.settings.AI_MAX_DEDUCTION)
            text = self._call_openai_api(prompt, image_bytes)
            return parse_model_verdict(
                text,
                provider=self.model_name,
                max_deduction=self.settings.AI_MAX_DEDUCTION,
                default_deduction=self.settings.AI_DEFAULT_DEDUCTION,
            )
        except Exception as e:
            logger.warning(f"⚠️ OpenAI vision call failed: {str(e)}")
            return AdvisorVerdict.neutral(provider=self.model_name, error=f"OpenAI API error: {str(e)}")

    def _call_openai_api(self, prompt: str, image_bytes: bytes) -> str:
        data_url = f"data:{detect_mime_type(image_bytes)};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": "You verify civic issue photos. Output only valid JSON."},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": data_url}},
                    ],
                },
            ],
            "temperature": 0,
            "max_tokens": 200,
            "response_format": {"type": "json_object"},
        }

        response = requests.post(self.API_URL, headers=headers, json=payload, timeout=self.get_timeout_seconds())
        if response.status_code != 200:
            raise Exception(f"OpenAI API returned status {response.status_code}: {response.text}")

        data = response.json()
        return data.get("choices", [{}])[0].get("message", {}).get("content", "")
