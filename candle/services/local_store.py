"""
In-memory data store that mimics the Firestore client surface we use.
Used when no Firebase credentials are found (local dev and tests).
Optionally persists collections as JSON files so data survives restarts.
"""

import copy
import json
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from candle.utils.exceptions import FirestoreError
from candle.utils.logger import get_logger

logger = get_logger(__name__)


def _json_serial(obj):
    """JSON serializer for objects not serializable by default."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"Type {type(obj)} not serializable")


class LocalStore:
    """Dict-backed data store that mimics Firestore operations."""

    def __init__(self, data_dir: Optional[str] = None):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()
        self._data_dir = Path(data_dir) if data_dir else None

        if self._data_dir is not None:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._load_data()

    def _load_data(self):
        """Load every persisted collection from the data dir."""
        for path in sorted(self._data_dir.glob("*.json")):
            with open(path) as f:
                items = json.load(f)
            self.collections[path.stem.replace(".", "/")] = {
                item.get("id", str(uuid.uuid4())): item for item in items
            }
        logger.info(f"LocalStore loaded {len(self.collections)} collections from {self._data_dir}")

    def _persist_collection(self, name: str):
        """Write a collection to disk as JSON."""
        path = self._data_dir / f"{name.replace('/', '.')}.json"
        items = list(self.collections.get(name, {}).values())
        with open(path, "w") as f:
            json.dump(items, f, indent=2, default=_json_serial)

    def _persist(self, collection_name: str):
        """Persist after write operations; memory-only stores skip this."""
        if self._data_dir is None:
            return
        try:
            self._persist_collection(collection_name)
        except OSError as e:
            logger.warning(f"LocalStore persist failed for {collection_name}: {e}")

    def collection(self, name: str) -> "CollectionRef":
        with self._lock:
            if name not in self.collections:
                self.collections[name] = {}
        return CollectionRef(self, name)

    def batch(self) -> "WriteBatch":
        return WriteBatch(self)

    def run_transaction(self, callback: Callable[["LocalTransaction"], Any]) -> Any:
        """Run callback with a transaction; writes apply only if it returns."""
        with self._lock:
            transaction = LocalTransaction(self)
            result = callback(transaction)
            transaction.commit()
            return result

    def reset(self):
        """Drop every collection (tests)."""
        with self._lock:
            self.collections.clear()


class CollectionRef:
    """Mimics Firestore collection reference and query."""

    def __init__(self, store: LocalStore, name: str):
        self._store = store
        self._data = store.collections[name]
        self._name = name
        self._filters = []
        self._order_by = []
        self._limit_val = None
        self._offset_val = 0
        self._start_after = None

    @property
    def id(self) -> str:
        return self._name

    def _copy(self) -> "CollectionRef":
        new_ref = CollectionRef(self._store, self._name)
        new_ref._filters = list(self._filters)
        new_ref._order_by = list(self._order_by)
        new_ref._limit_val = self._limit_val
        new_ref._offset_val = self._offset_val
        new_ref._start_after = self._start_after
        return new_ref

    def document(self, doc_id: Optional[str] = None) -> "DocumentRef":
        return DocumentRef(self._store, self._name, doc_id or uuid.uuid4().hex)

    def where(self, field: str, op: str, value) -> "CollectionRef":
        new_ref = self._copy()
        new_ref._filters.append((field, op, value))
        return new_ref

    def order_by(self, field: str, direction: str = "ASCENDING") -> "CollectionRef":
        new_ref = self._copy()
        new_ref._order_by.append((field, direction))
        return new_ref

    def limit(self, count: int) -> "CollectionRef":
        new_ref = self._copy()
        new_ref._limit_val = count
        return new_ref

    def offset(self, count: int) -> "CollectionRef":
        new_ref = self._copy()
        new_ref._offset_val = count
        return new_ref

    def start_after(self, snapshot: "DocumentSnapshot") -> "CollectionRef":
        new_ref = self._copy()
        new_ref._start_after = snapshot.id
        return new_ref

    @staticmethod
    def _matches(doc: dict, field: str, op: str, value) -> bool:
        doc_val = doc.get(field)
        if op == "==":
            return doc_val == value
        if doc_val is None:
            return False
        if op == "!=":
            return doc_val != value
        if op == ">=":
            return doc_val >= value
        if op == "<=":
            return doc_val <= value
        if op == ">":
            return doc_val > value
        if op == "<":
            return doc_val < value
        if op == "in":
            return doc_val in value
        if op == "array_contains":
            return isinstance(doc_val, list) and value in doc_val
        raise ValueError(f"Unsupported operator: {op}")

    def get(self, transaction: Optional["LocalTransaction"] = None) -> List["DocumentSnapshot"]:
        with self._store._lock:
            results = [copy.deepcopy(doc) for doc in self._data.values()]

        for field, op, value in self._filters:
            results = [doc for doc in results if self._matches(doc, field, op, value)]

        # Sort by the last key first so earlier order_by clauses win
        for field, direction in reversed(self._order_by):
            present = [d for d in results if d.get(field) is not None]
            missing = [d for d in results if d.get(field) is None]
            present.sort(key=lambda d: d[field], reverse=direction == "DESCENDING")
            results = present + missing

        if self._start_after is not None:
            ids = [doc.get("id") for doc in results]
            if self._start_after in ids:
                results = results[ids.index(self._start_after) + 1:]

        if self._offset_val:
            results = results[self._offset_val:]

        if self._limit_val:
            results = results[: self._limit_val]

        return [
            DocumentSnapshot(doc["id"], doc, DocumentRef(self._store, self._name, doc["id"]))
            for doc in results
        ]

    def stream(self, transaction: Optional["LocalTransaction"] = None):
        return iter(self.get(transaction=transaction))

    def add(self, data: dict):
        doc_ref = self.document(data.get("id"))
        doc_ref.set(data)
        return None, doc_ref


class DocumentRef:
    """Mimics Firestore document reference."""

    def __init__(self, store: LocalStore, collection_name: str, doc_id: str):
        self._store = store
        self._name = collection_name
        self._id = doc_id

    @property
    def id(self) -> str:
        return self._id

    @property
    def _data(self) -> dict:
        return self._store.collections.setdefault(self._name, {})

    def get(self, transaction: Optional["LocalTransaction"] = None) -> "DocumentSnapshot":
        with self._store._lock:
            doc = self._data.get(self._id)
            return DocumentSnapshot(self._id, copy.deepcopy(doc), self)

    def set(self, data: dict, merge: bool = False):
        with self._store._lock:
            data = copy.deepcopy(data)
            if merge and self._id in self._data:
                self._data[self._id].update(data)
            else:
                data["id"] = self._id
                self._data[self._id] = data
        self._store._persist(self._name)

    def update(self, data: dict):
        with self._store._lock:
            if self._id not in self._data:
                raise FirestoreError(f"No document to update: {self._name}/{self._id}", "not-found")
            self._data[self._id].update(copy.deepcopy(data))
        self._store._persist(self._name)

    def delete(self):
        with self._store._lock:
            self._data.pop(self._id, None)
        self._store._persist(self._name)

    def collection(self, name: str) -> "CollectionRef":
        """Subcollection under this document, e.g. users/{uid}/settings."""
        return self._store.collection(f"{self._name}/{self._id}/{name}")


class DocumentSnapshot:
    """Mimics Firestore document snapshot."""

    def __init__(self, doc_id: str, data: Optional[dict], reference: Optional[DocumentRef] = None):
        self.id = doc_id
        self._data = data
        self.reference = reference

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[dict]:
        return self._data

    def get(self, field: str, default=None):
        if self._data is None:
            return default
        return self._data.get(field, default)


class WriteBatch:
    """Mimics a Firestore write batch: queued writes applied on commit."""

    def __init__(self, store: LocalStore):
        self._store = store
        self._writes: List[Callable[[], None]] = []

    def set(self, ref: DocumentRef, data: dict, merge: bool = False):
        self._writes.append(lambda: ref.set(data, merge=merge))

    def update(self, ref: DocumentRef, data: dict):
        self._writes.append(lambda: ref.update(data))

    def delete(self, ref: DocumentRef):
        self._writes.append(ref.delete)

    def commit(self):
        with self._store._lock:
            for write in self._writes:
                write()
        self._writes = []


class LocalTransaction(WriteBatch):
    """Transaction handle; the store lock is held for its whole lifetime."""

    def get(self, ref: DocumentRef) -> DocumentSnapshot:
        return ref.get(transaction=self)


# ── Singleton ────────────────────────────────────────────────────

_local_store: Optional[LocalStore] = None


def get_local_store() -> LocalStore:
    """Get or create the singleton LocalStore instance."""
    global _local_store
    if _local_store is None:
        from candle.config import get_settings

        _local_store = LocalStore(get_settings().local_data_dir or None)
    return _local_store
