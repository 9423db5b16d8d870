"""
AI Authenticity Provider Base Interface.

Defines the contract for vision providers that cross-check a report photo
against its title, category and description. Providers are advisory: they
can lower a trust score, never raise it, and never fail a submission.
"""

from abc import ABC, abstractmethod
from typing import Dict
import json
import logging

from fillahole.models.report import AdvisorVerdict

logger = logging.getLogger(__name__)


AUTHENTICITY_PROMPT = """You are checking photos submitted to a civic issue reporting app.

A citizen reported the following issue:
Title: {title}
Category: {category}
Description: {description}

Look at the attached photo and decide whether it plausibly shows this issue
as an outdoor, real-world scene. Treat it as NOT authentic when it shows an
unrelated subject, an indoor or staged scene, a screenshot, a photo of a
screen, or an obviously generated or edited image.

Respond with JSON only:

{{
  "is_authentic": <true or false>,
  "reason": "<one short sentence>",
  "deduction": <integer 0-{max_deduction}, how many trust points to remove; 0 when authentic>
}}"""


def build_prompt(title: str, category: str, description: str, max_deduction: int) -> str:
    return AUTHENTICITY_PROMPT.format(
        title=title or "",
        category=category or "",
        description=(description or "")[:1000],
        max_deduction=max_deduction,
    )


def detect_mime_type(image_bytes: bytes) -> str:
    """Best-effort MIME type from magic bytes; JPEG when unknown."""
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[4:12] in (b"ftypheic", b"ftypheix", b"ftypmif1"):
        return "image/heic"
    return "image/jpeg"


def parse_model_verdict(
    text: str,
    provider: str,
    max_deduction: int,
    default_deduction: int,
) -> AdvisorVerdict:
    """
    Parse a model reply into an AdvisorVerdict.

    The reply may wrap its JSON in markdown code fences. A reply without a
    boolean `is_authentic` is unparsable and raises ValueError. The
    deduction is clamped to [0, max_deduction] and forced to 0 for
    authentic images.
    """
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ValueError(f"Model reply is not JSON: {e}")

    if not isinstance(parsed, dict) or not isinstance(parsed.get("is_authentic"), bool):
        raise ValueError("Model reply is missing a boolean 'is_authentic'")

    is_authentic = parsed["is_authentic"]
    reason = str(parsed.get("reason") or "").strip() or ("authentic" if is_authentic else "not authentic")

    if is_authentic:
        deduction = 0
    else:
        raw = parsed.get("deduction")
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            deduction = default_deduction
        else:
            deduction = int(raw)
        deduction = max(0, min(deduction, max_deduction))

    return AdvisorVerdict(is_authentic=is_authentic, reason=reason, deduction=deduction, provider=provider)


class AuthenticityProvider(ABC):
    """
    Abstract base class for vision authenticity providers.

    assess() MUST:
    - Return an AdvisorVerdict even on failure (error set, deduction 0)
    - Never raise exceptions
    - Respect get_timeout_seconds()
    """

    @abstractmethod
    def is_enabled(self) -> bool:
        pass

    @abstractmethod
    def get_model_info(self) -> Dict[str, str]:
        """Dict with 'name' and 'version' keys."""
        pass

    @abstractmethod
    def get_timeout_seconds(self) -> float:
        pass

    @abstractmethod
    def assess(
        self,
        image_bytes: bytes,
        title: str,
        category: str,
        description: str,
    ) -> AdvisorVerdict:
        pass
