"""
In-memory Firestore stand-in for local development (USE_MOCK_DB=true) and tests.

Implements the subset of the google-cloud-firestore surface used by the
services: collections and sub-collections, document get/set/update with
dotted field paths and SERVER_TIMESTAMP, where/order_by/cursor/limit
queries, write batches and serialised transactions. Writes go through one
re-entrant lock, so concurrent jobs see a consistent store.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from firebase_admin import firestore

logger = logging.getLogger(__name__)

_MISSING = object()


def _clone(data):
    """Deep copy that keeps the SERVER_TIMESTAMP sentinel itself, so it can still be resolved."""
    return copy.deepcopy(data, {id(firestore.SERVER_TIMESTAMP): firestore.SERVER_TIMESTAMP})


def _get_field(data: Dict, field_path: str):
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _set_field(data: Dict, field_path: str, value) -> None:
    parts = field_path.split(".")
    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    current[parts[-1]] = value


_DATETIME_TAG = "__datetime__"


def _encode_json(value):
    """Timestamps survive a save/load cycle as tagged ISO strings."""
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    return str(value)


def _decode_json(obj: Dict):
    if len(obj) == 1 and _DATETIME_TAG in obj:
        return datetime.fromisoformat(obj[_DATETIME_TAG])
    return obj


def _resolve_sentinels(value):
    if value is firestore.SERVER_TIMESTAMP:
        return datetime.now(timezone.utc)
    if isinstance(value, dict):
        return {k: _resolve_sentinels(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_sentinels(v) for v in value]
    return value


def _matches(value, op: str, expected) -> bool:
    if value is _MISSING:
        return False
    if op == "==":
        return value == expected
    if op == "!=":
        return value != expected
    if op == "in":
        return value in expected
    if op == "not-in":
        return value not in expected
    if op == "array_contains":
        return isinstance(value, list) and expected in value
    if op == "array_contains_any":
        return isinstance(value, list) and any(e in value for e in expected)
    try:
        if op == "<":
            return value < expected
        if op == "<=":
            return value <= expected
        if op == ">":
            return value > expected
        if op == ">=":
            return value >= expected
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op}")


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict]):
        self.reference = reference
        self._data = data

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path: str):
        if self._data is None:
            return None
        value = _get_field(self._data, field_path)
        return None if value is _MISSING else copy.deepcopy(value)


class MockDocumentReference:
    def __init__(self, db: "MockFirestore", collection_path: str, doc_id: str):
        self._db = db
        self._collection_path = collection_path
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self._collection_path}/{self.id}"

    def collection(self, name: str) -> "MockCollectionReference":
        return MockCollectionReference(self._db, f"{self.path}/{name}")

    def get(self, transaction=None) -> MockDocumentSnapshot:
        return MockDocumentSnapshot(self, self._db._read(self._collection_path, self.id))

    def set(self, data: Dict, merge: bool = False) -> None:
        self._db._write(self._collection_path, self.id, data, merge=merge)

    def update(self, data: Dict) -> None:
        self._db._update(self._collection_path, self.id, data)

    def delete(self) -> None:
        self._db._delete(self._collection_path, self.id)


class MockQuery:
    def __init__(self, db: "MockFirestore", collection_path: str):
        self._db = db
        self._collection_path = collection_path
        self._filters: List[Tuple[str, str, Any]] = []
        self._orders: List[Tuple[str, str]] = []
        self._start: Optional[Tuple[list, bool]] = None
        self._end: Optional[Tuple[list, bool]] = None
        self._limit: Optional[int] = None

    def _copy(self) -> "MockQuery":
        clone = MockQuery(self._db, self._collection_path)
        clone._filters = list(self._filters)
        clone._orders = list(self._orders)
        clone._start = self._start
        clone._end = self._end
        clone._limit = self._limit
        return clone

    def where(self, field_path: str, op_string: str, value) -> "MockQuery":
        clone = self._copy()
        clone._filters.append((field_path, op_string, value))
        return clone

    def order_by(self, field_path: str, direction: str = firestore.Query.ASCENDING) -> "MockQuery":
        clone = self._copy()
        clone._orders.append((field_path, direction))
        return clone

    def limit(self, count: int) -> "MockQuery":
        clone = self._copy()
        clone._limit = count
        return clone

    def _cursor_values(self, values) -> list:
        if not self._orders:
            raise ValueError("Cursors require an order_by() clause")
        if isinstance(values, dict):
            return [values[field] for field, _ in self._orders if field in values]
        return list(values)

    def start_at(self, values) -> "MockQuery":
        clone = self._copy()
        clone._start = (clone._cursor_values(values), True)
        return clone

    def start_after(self, values) -> "MockQuery":
        clone = self._copy()
        clone._start = (clone._cursor_values(values), False)
        return clone

    def end_at(self, values) -> "MockQuery":
        clone = self._copy()
        clone._end = (clone._cursor_values(values), True)
        return clone

    def end_before(self, values) -> "MockQuery":
        clone = self._copy()
        clone._end = (clone._cursor_values(values), False)
        return clone

    def _sort_key(self, data: Dict) -> list:
        return [_get_field(data, field) for field, _ in self._orders]

    def _compare_cursor(self, key: list, cursor: list) -> int:
        """-1/0/1 comparing a sort key prefix against a cursor, honouring direction."""
        for (field, direction), value, bound in zip(self._orders, key, cursor):
            if value == bound:
                continue
            less = value < bound
            if direction == firestore.Query.DESCENDING:
                less = not less
            return -1 if less else 1
        return 0

    def stream(self, transaction=None):
        return iter(self.get())

    def get(self, transaction=None) -> List[MockDocumentSnapshot]:
        rows = self._db._scan(self._collection_path)

        results = []
        for doc_id, data in rows:
            if not all(_matches(_get_field(data, f), op, v) for f, op, v in self._filters):
                continue
            # Firestore drops documents missing an ordered field
            if any(_get_field(data, field) is _MISSING for field, _ in self._orders):
                continue
            results.append((doc_id, data))

        for field, direction in reversed(self._orders):
            results.sort(
                key=lambda row: _get_field(row[1], field),
                reverse=direction == firestore.Query.DESCENDING,
            )

        if self._start is not None:
            cursor, inclusive = self._start
            lowest = 0 if inclusive else 1
            results = [r for r in results if self._compare_cursor(self._sort_key(r[1]), cursor) >= lowest]
        if self._end is not None:
            cursor, inclusive = self._end
            highest = 0 if inclusive else -1
            results = [r for r in results if self._compare_cursor(self._sort_key(r[1]), cursor) <= highest]
        if self._limit is not None:
            results = results[: self._limit]

        return [
            MockDocumentSnapshot(MockDocumentReference(self._db, self._collection_path, doc_id), data)
            for doc_id, data in results
        ]


class MockCollectionReference(MockQuery):
    @property
    def id(self) -> str:
        return self._collection_path.rsplit("/", 1)[-1]

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._db, self._collection_path, document_id or uuid.uuid4().hex[:20])

    def add(self, data: Dict):
        ref = self.document()
        ref.set(data)
        return datetime.now(timezone.utc), ref


class MockWriteBatch:
    """Buffers writes until commit(); nothing is visible before then."""

    def __init__(self, db: "MockFirestore"):
        self._db = db
        self._ops: List[Tuple[str, MockDocumentReference, Dict, bool]] = []

    def set(self, reference: MockDocumentReference, document_data: Dict, merge: bool = False):
        self._ops.append(("set", reference, _clone(document_data), merge))
        return self

    def update(self, reference: MockDocumentReference, field_updates: Dict):
        self._ops.append(("update", reference, _clone(field_updates), False))
        return self

    def delete(self, reference: MockDocumentReference):
        self._ops.append(("delete", reference, {}, False))
        return self

    def commit(self) -> list:
        with self._db._lock:
            # Validate updates first so a missing document aborts the whole batch
            for op, ref, _, _ in self._ops:
                if op == "update" and self._db._read(ref._collection_path, ref.id) is None:
                    raise ValueError(f"No document to update: {ref.path}")
            for op, ref, data, merge in self._ops:
                if op == "set":
                    self._db._write(ref._collection_path, ref.id, data, merge=merge, persist=False)
                elif op == "update":
                    self._db._update(ref._collection_path, ref.id, data, persist=False)
                else:
                    self._db._delete(ref._collection_path, ref.id, persist=False)
            self._db._save()
        results = list(self._ops)
        self._ops = []
        return results


class MockTransaction(MockWriteBatch):
    """Reads go straight to the store; writes apply on commit. Runs under the store lock."""

    def get(self, ref_or_query):
        if isinstance(ref_or_query, MockDocumentReference):
            return ref_or_query.get()
        return ref_or_query.stream()


class MockFirestore:
    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._lock = threading.RLock()
        self._store: Dict[str, Dict[str, Dict]] = {}
        if path and os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                self._store = json.load(f, object_hook=_decode_json)
            logger.info(f"[MOCK FIRESTORE] Loaded {sum(len(d) for d in self._store.values())} documents from {path}")

    # Public surface

    def collection(self, name: str) -> MockCollectionReference:
        return MockCollectionReference(self, name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            names = [p for p in self._store if "/" not in p]
        return [MockCollectionReference(self, n) for n in names]

    def batch(self) -> MockWriteBatch:
        return MockWriteBatch(self)

    def transaction(self) -> MockTransaction:
        return MockTransaction(self)

    def run_transaction(self, fn: Callable, *args, **kwargs):
        """Run fn(transaction, ...) serialised against every other write."""
        with self._lock:
            transaction = self.transaction()
            result = fn(transaction, *args, **kwargs)
            transaction.commit()
            return result

    # Storage primitives

    def _scan(self, collection_path: str) -> List[Tuple[str, Dict]]:
        with self._lock:
            return [(k, copy.deepcopy(v)) for k, v in self._store.get(collection_path, {}).items()]

    def _read(self, collection_path: str, doc_id: str) -> Optional[Dict]:
        with self._lock:
            data = self._store.get(collection_path, {}).get(doc_id)
            return copy.deepcopy(data) if data is not None else None

    def _write(self, collection_path: str, doc_id: str, data: Dict, merge: bool = False, persist: bool = True):
        resolved = _resolve_sentinels(_clone(data))
        with self._lock:
            docs = self._store.setdefault(collection_path, {})
            if merge and doc_id in docs:
                docs[doc_id].update(resolved)
            else:
                docs[doc_id] = resolved
            if persist:
                self._save()

    def _update(self, collection_path: str, doc_id: str, data: Dict, persist: bool = True):
        with self._lock:
            docs = self._store.get(collection_path, {})
            if doc_id not in docs:
                raise ValueError(f"No document to update: {collection_path}/{doc_id}")
            for field_path, value in data.items():
                _set_field(docs[doc_id], field_path, _resolve_sentinels(_clone(value)))
            if persist:
                self._save()

    def _delete(self, collection_path: str, doc_id: str, persist: bool = True):
        with self._lock:
            self._store.get(collection_path, {}).pop(doc_id, None)
            if persist:
                self._save()

    def _save(self) -> None:
        if not self._path:
            return
        with self._lock:
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._store, f, default=_encode_json, indent=2)


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    return MockFirestore(path)
