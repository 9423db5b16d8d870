"""
Application context: every backend handle a service needs, built once at
startup and passed explicitly. Nothing below reads a module-level client.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from fastapi import HTTPException, Request, status

from fillahole.config.firebase import build_firestore_client
from fillahole.core.settings import Settings
from fillahole.services.ai_advisor import AIAuthenticityAdvisor
from fillahole.services.jobs import JobRunner, ReportCreatedHook
from fillahole.services.notification_dispatcher import GeoNotificationDispatcher
from fillahole.services.push_provider import FcmPushProvider, PushProvider
from fillahole.services.spatial_index import GeohashUserIndex, SpatialIndex

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    db: object
    advisor: AIAuthenticityAdvisor
    spatial_index: SpatialIndex
    push_provider: PushProvider
    jobs: JobRunner
    hooks: ReportCreatedHook
    dispatcher: GeoNotificationDispatcher

    def close(self) -> None:
        self.jobs.shutdown(wait=True)


def build_context(
    settings: Settings,
    db=None,
    advisor: Optional[AIAuthenticityAdvisor] = None,
    spatial_index: Optional[SpatialIndex] = None,
    push_provider: Optional[PushProvider] = None,
    jobs: Optional[JobRunner] = None,
) -> AppContext:
    """
    Wire the pipeline. Anything not supplied is built from settings;
    tests pass their own db, providers and runner.
    """
    if db is None:
        db = build_firestore_client(settings)
    if advisor is None:
        advisor = AIAuthenticityAdvisor(settings)
    if spatial_index is None:
        spatial_index = GeohashUserIndex(db, role=settings.NOTIFY_USER_ROLE)
    if push_provider is None:
        push_provider = FcmPushProvider()
    if jobs is None:
        jobs = JobRunner(max_workers=settings.JOB_WORKERS, history_limit=settings.JOB_HISTORY_LIMIT)

    dispatcher = GeoNotificationDispatcher(db, spatial_index, push_provider, settings)
    hooks = ReportCreatedHook(jobs)
    hooks.subscribe("notify_nearby_users", dispatcher.dispatch)

    logger.info(f"Context ready: hooks={hooks.subscribers} workers={settings.JOB_WORKERS}")
    return AppContext(
        settings=settings,
        db=db,
        advisor=advisor,
        spatial_index=spatial_index,
        push_provider=push_provider,
        jobs=jobs,
        hooks=hooks,
        dispatcher=dispatcher,
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency: the context stored on app.state at startup."""
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Backend not initialized. Please check Firebase configuration.",
        )
    return ctx
