"""
Geo Notification Dispatcher - alerts nearby citizens about a new report.

Pipeline per admitted report:
1. Coarse candidates from the spatial index (geohash ranges over a circle)
2. Dedup by user id; drop the author, existing volunteers and users
   already notified for this report
3. Exact haversine refinement; users without a location are dropped
4. Chunk the users holding a push token by the provider batch limit
5. Per chunk: one multicast push, then one atomic batch of records,
   written whether or not the push succeeded

Delivery is best-effort and at-most-once. A failing chunk is logged and
the next chunk still runs.
"""

from typing import Dict, List, Set, Tuple
import logging

from firebase_admin import firestore

from fillahole.core.settings import Settings
from fillahole.models.notification import DispatchSummary, NearbyUser
from fillahole.models.report import Decision
from fillahole.services.push_provider import PushProvider
from fillahole.services.spatial_index import SpatialIndex
from fillahole.utils.firestore_helpers import chunked, where_filter
from fillahole.utils.geo import haversine_m, is_valid_gps

logger = logging.getLogger(__name__)

NOTIFICATIONS_COLLECTION = "notifications"
NOTIFICATION_TITLE = "New Civic Issue Nearby!"
NOTIFICATION_TYPE = "nearby_issue_alert"
URGENT_TAG = "Urgent"


def should_notify(report: Dict) -> bool:
    """Urgent-tagged or VERIFIED reports trigger a nearby alert."""
    if URGENT_TAG in (report.get("tags") or []):
        return True
    return (report.get("trust") or {}).get("decision") == Decision.VERIFIED.value


def notification_id(report_id: str, user_id: str) -> str:
    """Deterministic record id; one record per (report, user) pair."""
    return f"{report_id}_{user_id}"


class GeoNotificationDispatcher:

    def __init__(self, db, spatial_index: SpatialIndex, push_provider: PushProvider, settings: Settings):
        self.db = db
        self.spatial_index = spatial_index
        self.push_provider = push_provider
        self.settings = settings

    @property
    def radius_m(self) -> float:
        return self.settings.NOTIFY_RADIUS_KM * 1000

    @property
    def chunk_size(self) -> int:
        return min(self.settings.push_batch_size, self.push_provider.max_batch_size)

    def build_message(self, report: Dict) -> Tuple[str, str, Dict[str, str]]:
        category = report.get("category") or "issue"
        body = f"A new {category} was reported within {self.settings.NOTIFY_RADIUS_KM:g}km of you."
        data = {"reportId": report["id"], "type": NOTIFICATION_TYPE}
        return NOTIFICATION_TITLE, body, data

    def find_recipients(self, report: Dict) -> Tuple[int, List[NearbyUser]]:
        """
        Users inside the notification radius, excluding the author and volunteers.

        Returns (raw candidate count, refined users ordered by distance).
        """
        location = report.get("location") or {}
        center = (location["latitude"], location["longitude"])

        excluded: Set[str] = set(report.get("volunteer_ids") or [])
        if report.get("author_id"):
            excluded.add(report["author_id"])

        candidates = self.spatial_index.candidates(center, self.radius_m)

        seen: Set[str] = set()
        in_range: List[Tuple[float, NearbyUser]] = []
        for user in candidates:
            if user.id in excluded or user.id in seen:
                continue
            seen.add(user.id)

            # Token-only users without a location are never notified
            if not user.has_location:
                continue

            distance = haversine_m(center[0], center[1], user.latitude, user.longitude)
            if distance <= self.radius_m:
                in_range.append((distance, user))

        in_range.sort(key=lambda pair: pair[0])
        return len(candidates), [user for _, user in in_range]

    def _already_notified(self, report_id: str) -> Set[str]:
        query = where_filter(self.db.collection(NOTIFICATIONS_COLLECTION), "report_id", "==", report_id)
        return {(doc.to_dict() or {}).get("user_id") for doc in query.stream()}

    def dispatch(self, report: Dict) -> DispatchSummary:
        """Fan out one report. Never raises for delivery or persistence failures."""
        report_id = report.get("id")
        summary = DispatchSummary(report_id=report_id or "")

        if not should_notify(report):
            logger.info(f"Report {report_id} is neither urgent nor verified. Skipping notifications.")
            summary.skipped_reason = "not_eligible"
            return summary

        location = report.get("location") or {}
        if not is_valid_gps(location.get("latitude"), location.get("longitude")):
            logger.error(f"Report {report_id} missing location data, cannot notify nearby users")
            summary.skipped_reason = "missing_location"
            return summary

        candidate_count, users = self.find_recipients(report)
        summary.candidates = candidate_count

        notified = self._already_notified(report_id)
        if notified:
            logger.info(f"Report {report_id}: {len(notified)} users already notified, skipping them")

        recipients = [u for u in users if u.push_token and u.id not in notified]
        summary.recipients = len(recipients)
        if not recipients:
            logger.info(f"Report {report_id}: no nearby recipients")
            return summary

        title, body, data = self.build_message(report)

        for chunk in chunked(recipients, self.chunk_size):
            summary.chunks += 1
            chunk_failed = False

            try:
                result = self.push_provider.send_multicast([u.push_token for u in chunk], title, body, data)
                summary.pushes_succeeded += result.success_count
                logger.info(f"{result.success_count} messages were sent successfully from chunk {summary.chunks}")
            except Exception as e:
                chunk_failed = True
                logger.error(f"Push delivery failed for report {report_id} chunk {summary.chunks}: {e}", exc_info=True)

            try:
                self._write_records(report_id, chunk, title, body)
                summary.records_written += len(chunk)
            except Exception as e:
                chunk_failed = True
                logger.error(f"Notification records failed for report {report_id} chunk {summary.chunks}: {e}", exc_info=True)

            if chunk_failed:
                summary.chunks_failed += 1

        logger.info(
            f"Report {report_id}: notified {summary.recipients} users in {summary.chunks} chunks "
            f"({summary.chunks_failed} failed)"
        )
        return summary

    def _write_records(self, report_id: str, chunk: List[NearbyUser], title: str, body: str) -> None:
        batch = self.db.batch()
        collection = self.db.collection(NOTIFICATIONS_COLLECTION)
        for user in chunk:
            batch.set(collection.document(notification_id(report_id, user.id)), {
                "user_id": user.id,
                "report_id": report_id,
                "title": title,
                "body": body,
                "type": NOTIFICATION_TYPE,
                "is_read": False,
                "created_at": firestore.SERVER_TIMESTAMP,
            })
        batch.commit()
