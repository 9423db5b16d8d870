"""
Push delivery provider.

One call sends one notification to at most PUSH_PROVIDER_MAX_BATCH device
tokens. Callers chunk; providers reject oversize batches.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
import logging

from firebase_admin import messaging

from fillahole.core.settings import PUSH_PROVIDER_MAX_BATCH

logger = logging.getLogger(__name__)


class PushResult:
    def __init__(self, success_count: int, failure_count: int):
        self.success_count = success_count
        self.failure_count = failure_count


class PushProvider(ABC):

    max_batch_size = PUSH_PROVIDER_MAX_BATCH

    @abstractmethod
    def send_multicast(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
    ) -> PushResult:
        """Send one notification to every token. Raises on transport failure."""
        pass


class FcmPushProvider(PushProvider):
    """Firebase Cloud Messaging via firebase_admin.messaging."""

    def __init__(self, app=None):
        self.app = app

    def send_multicast(self, tokens, title, body, data=None) -> PushResult:
        if len(tokens) > self.max_batch_size:
            raise ValueError(f"FCM accepts at most {self.max_batch_size} tokens per call, got {len(tokens)}")

        message = messaging.MulticastMessage(
            tokens=list(tokens),
            notification=messaging.Notification(title=title, body=body),
            data={k: str(v) for k, v in (data or {}).items()},
        )
        response = messaging.send_each_for_multicast(message, app=self.app)
        if response.failure_count:
            logger.warning(f"FCM: {response.failure_count}/{len(tokens)} tokens failed")
        return PushResult(response.success_count, response.failure_count)
