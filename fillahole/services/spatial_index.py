"""
Spatial index over notifiable users.

The dispatcher only needs a coarse candidate superset for a circle; exact
distance refinement happens in the dispatcher. Backing stores implement
SpatialIndex so the geohash range index can be replaced without touching
the fan-out logic.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple
import logging

from fillahole.models.notification import NearbyUser
from fillahole.utils.firestore_helpers import where_filter
from fillahole.utils.geo import geohash_query_bounds

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
GEOHASH_FIELD = "location.geohash"


class SpatialIndex(ABC):

    @abstractmethod
    def candidates(self, center: Tuple[float, float], radius_m: float) -> List[NearbyUser]:
        """
        Users that may lie within radius_m of center.

        May over-approximate (and may repeat a user); never under-approximates
        for users that have an indexed location.
        """
        pass


class GeohashUserIndex(SpatialIndex):
    """
    Geohash range index over the `users` collection.

    Each user document carries `location.geohash`; one ordered range query
    per query bound yields the candidates. Only users with `role` equal to
    the configured role are returned.
    """

    def __init__(self, db, role: Optional[str] = "citizen"):
        self.db = db
        self.role = role

    def candidates(self, center: Tuple[float, float], radius_m: float) -> List[NearbyUser]:
        bounds = geohash_query_bounds(center, radius_m)
        users: List[NearbyUser] = []
        seen: Dict[str, bool] = {}

        for start, end in bounds:
            query = self.db.collection(USERS_COLLECTION)
            if self.role:
                query = where_filter(query, "role", "==", self.role)
            query = query.order_by(GEOHASH_FIELD).start_at([start]).end_before([end])

            for doc in query.stream():
                if doc.id in seen:
                    continue
                seen[doc.id] = True
                users.append(NearbyUser.from_document(doc.id, doc.to_dict() or {}))

        logger.debug(f"Geohash index: {len(bounds)} bounds, {len(users)} candidates around {center}")
        return users
