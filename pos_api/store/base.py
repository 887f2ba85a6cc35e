# pos_api/store/base.py
"""
Document store contract shared by the Mongo-backed store and the in-memory store.

Documents are plain dicts. Every document returned by a store carries its
identifier under ``"id"``; the identifier is never part of the stored body.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId


class _Sentinel:
    def __init__(self, name: str):
        self.name = name

    def __repr__(self):
        return f"<{self.name}>"


# Resolved by the store at write time.
SERVER_TIMESTAMP = _Sentinel("SERVER_TIMESTAMP")
# Removes the field on update.
DELETE_FIELD = _Sentinel("DELETE_FIELD")

FILTER_OPERATORS = ("==", "!=", "<", "<=", ">", ">=", "in")

Filter = Tuple[str, str, Any]


def new_id() -> str:
    """Generate an opaque document id."""
    return str(ObjectId())


class TransactionConflict(Exception):
    """A concurrent commit invalidated the transaction's read snapshot."""


class Write:
    """A staged write: ``op`` is one of set / update / delete."""

    __slots__ = ("op", "collection", "doc_id", "data")

    def __init__(self, op: str, collection: str, doc_id: str, data: Optional[dict] = None):
        self.op = op
        self.collection = collection
        self.doc_id = doc_id
        self.data = data

    def __repr__(self):
        return f"Write({self.op}, {self.collection}/{self.doc_id})"


class WriteBatch:
    """
    Collects writes and applies them as one atomic unit on ``commit()``.
    """

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self.writes: List[Write] = []

    def set(self, collection: str, doc_id: str, data: dict) -> "WriteBatch":
        self.writes.append(Write("set", collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, changes: dict) -> "WriteBatch":
        self.writes.append(Write("update", collection, doc_id, dict(changes)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self.writes.append(Write("delete", collection, doc_id))
        return self

    def __len__(self):
        return len(self.writes)

    def commit(self) -> int:
        if not self.writes:
            return 0
        self._store.commit_writes(self.writes)
        return len(self.writes)


class Transaction:
    """
    Handle passed to the function given to ``DocumentStore.run_transaction``.

    Reads observe one consistent snapshot. Writes are only staged and land
    together when the store commits. All reads must happen before the first
    write is staged.
    """

    def __init__(self):
        self.writes: List[Write] = []

    def _guard_read(self):
        if self.writes:
            raise RuntimeError("Transaction reads must be issued before any write is staged")

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def get_many(self, collection: str, doc_ids: Sequence[str]) -> List[Optional[dict]]:
        return [self.get(collection, doc_id) for doc_id in doc_ids]

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        self.writes.append(Write("set", collection, doc_id, dict(data)))

    def update(self, collection: str, doc_id: str, changes: dict) -> None:
        self.writes.append(Write("update", collection, doc_id, dict(changes)))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(Write("delete", collection, doc_id))


class DocumentStore:
    """Abstract document store."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise NotImplementedError

    def get_many(self, collection: str, doc_ids: Sequence[str]) -> List[Optional[dict]]:
        """Batched multi-get. The result is aligned with ``doc_ids``; missing ids yield None."""
        raise NotImplementedError

    def add(self, collection: str, data: dict) -> str:
        doc_id = new_id()
        self.set(collection, doc_id, data)
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, changes: dict) -> bool:
        """Partial update with dotted field paths. Returns False if the document is missing."""
        raise NotImplementedError

    def delete(self, collection: str, doc_id: str) -> bool:
        raise NotImplementedError

    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        raise NotImplementedError

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        """Exact cardinality of a query without fetching the documents."""
        raise NotImplementedError

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def commit_writes(self, writes: List[Write]) -> None:
        raise NotImplementedError

    def run_transaction(self, fn: Callable[[Transaction], Any], max_attempts: int = 5) -> Any:
        """
        Run ``fn`` inside a multi-document transaction and commit its staged writes.

        On a snapshot conflict the whole function is re-run with a fresh snapshot,
        up to ``max_attempts`` times; after that ``ConflictError`` is raised.
        Any exception raised by ``fn`` discards the staged writes and propagates.
        """
        raise NotImplementedError

    def ensure_indexes(self) -> None:
        """Create the indexes the tenant-scoped queries rely on."""


def check_filters(filters: Iterable[Filter]) -> List[Filter]:
    checked = []
    for field, op, value in filters:
        if op not in FILTER_OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        checked.append((field, op, value))
    return checked


def split_path(path: str) -> List[str]:
    return path.split(".")


def get_path(doc: Dict[str, Any], path: str, default=None):
    current: Any = doc
    for part in split_path(path):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current
