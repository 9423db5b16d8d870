"""
Small Firestore helpers shared by the services.

NOTE: firebase_admin still accepts positional where() arguments; the
deprecation warning in newer SDKs does not affect behaviour, and the
in-memory MockFirestore only implements the positional form.
"""

from datetime import datetime, timezone
from typing import Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")


def where_filter(query, field_path: str, op_string: str, value):
    """
    Usage:
        query = where_filter(collection, "category", "==", "Infrastructure")
        query = where_filter(query, "trust.decision", "==", "VERIFIED")
    """
    return query.where(field_path, op_string, value)


def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive lists of at most `size` items."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    chunk: List[T] = []
    for item in items:
        chunk.append(item)
        if len(chunk) == size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def snapshot_to_dict(doc) -> dict:
    """Document data with its id folded in."""
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def parse_timestamp(value) -> Optional[datetime]:
    """Timezone-aware UTC datetime from a Firestore timestamp, datetime or ISO string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if hasattr(value, "timestamp"):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
    return None
