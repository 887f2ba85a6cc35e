# pos_api/store/memory.py
"""
Thread-safe in-memory document store.

Transactions are optimistic: each read records the version of the document
it saw, and commit verifies under the store lock that none of those versions
moved before applying the staged writes.
"""
from __future__ import annotations

import copy
import random
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from ..utils.errors import ConflictError
from ..utils.logger import Log
from .base import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    DocumentStore,
    Filter,
    Transaction,
    TransactionConflict,
    Write,
    check_filters,
    get_path,
    split_path,
)


def _now():
    return datetime.now(timezone.utc)


def _resolve_value(value, now):
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_value(v, now) for k, v in value.items() if v is not DELETE_FIELD}
    if isinstance(value, list):
        return [_resolve_value(v, now) for v in value]
    return copy.deepcopy(value)


def _apply_update(doc: dict, changes: dict, now) -> None:
    for path, value in changes.items():
        parts = split_path(path)
        target = doc
        for part in parts[:-1]:
            nested = target.get(part)
            if not isinstance(nested, dict):
                if value is DELETE_FIELD:
                    target = None
                    break
                nested = {}
                target[part] = nested
            target = nested
        if target is None:
            continue
        if value is DELETE_FIELD:
            target.pop(parts[-1], None)
        else:
            target[parts[-1]] = _resolve_value(value, now)


_MISSING = object()


def _matches(doc: dict, filters: List[Filter]) -> bool:
    for field, op, expected in filters:
        actual = get_path(doc, field, _MISSING)
        if op == "==":
            if (None if actual is _MISSING else actual) != expected:
                return False
        elif op == "!=":
            if actual is not _MISSING and actual == expected:
                return False
        elif op == "in":
            if actual is _MISSING or actual not in expected:
                return False
        else:
            if actual is _MISSING or actual is None:
                return False
            if op == "<" and not actual < expected:
                return False
            if op == "<=" and not actual <= expected:
                return False
            if op == ">" and not actual > expected:
                return False
            if op == ">=" and not actual >= expected:
                return False
    return True


class _MemoryTransaction(Transaction):
    def __init__(self, store: "InMemoryDocumentStore"):
        super().__init__()
        self._store = store
        self.read_versions: Dict[tuple, int] = {}

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        self._guard_read()
        with self._store._lock:
            key = (collection, doc_id)
            self.read_versions[key] = self._store._versions.get(key, 0)
            return self._store._read(collection, doc_id)


class InMemoryDocumentStore(DocumentStore):

    def __init__(self, retry_backoff: float = 0.002):
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, dict]] = {}
        self._versions: Dict[tuple, int] = {}
        self.retry_backoff = retry_backoff
        self.transaction_attempts = 0

    # ---------------- internal ----------------
    def _col(self, collection: str) -> Dict[str, dict]:
        return self._collections.setdefault(collection, {})

    def _read(self, collection: str, doc_id: str) -> Optional[dict]:
        body = self._col(collection).get(doc_id)
        if body is None:
            return None
        record = copy.deepcopy(body)
        record["id"] = doc_id
        return record

    def _bump(self, collection: str, doc_id: str) -> None:
        key = (collection, doc_id)
        self._versions[key] = self._versions.get(key, 0) + 1

    def _apply(self, write: Write, now) -> None:
        col = self._col(write.collection)
        if write.op == "set":
            body = _resolve_value(write.data, now)
            body.pop("id", None)
            col[write.doc_id] = body
        elif write.op == "update":
            body = col.get(write.doc_id)
            if body is None:
                raise KeyError(f"{write.collection}/{write.doc_id}")
            _apply_update(body, write.data, now)
        elif write.op == "delete":
            col.pop(write.doc_id, None)
        else:
            raise ValueError(f"Unknown write op: {write.op}")
        self._bump(write.collection, write.doc_id)

    # ---------------- single document ----------------
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            return self._read(collection, doc_id)

    def get_many(self, collection: str, doc_ids: Sequence[str]) -> List[Optional[dict]]:
        with self._lock:
            return [self._read(collection, doc_id) for doc_id in doc_ids]

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        with self._lock:
            self._apply(Write("set", collection, doc_id, data), _now())

    def update(self, collection: str, doc_id: str, changes: dict) -> bool:
        with self._lock:
            if doc_id not in self._col(collection):
                return False
            self._apply(Write("update", collection, doc_id, changes), _now())
            return True

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            existed = doc_id in self._col(collection)
            if existed:
                self._apply(Write("delete", collection, doc_id), _now())
            return existed

    # ---------------- queries ----------------
    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        checked = check_filters(filters)
        with self._lock:
            records = [
                self._read(collection, doc_id)
                for doc_id, body in self._col(collection).items()
                if _matches(body, checked)
            ]
        if order_by:
            present = [r for r in records if get_path(r, order_by) is not None]
            absent = [r for r in records if get_path(r, order_by) is None]
            present.sort(key=lambda r: get_path(r, order_by), reverse=descending)
            records = present + absent
        if limit is not None:
            records = records[:limit]
        return records

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        checked = check_filters(filters)
        with self._lock:
            return sum(1 for body in self._col(collection).values() if _matches(body, checked))

    # ---------------- batches / transactions ----------------
    def commit_writes(self, writes: List[Write]) -> None:
        with self._lock:
            for write in writes:
                if write.op == "update" and write.doc_id not in self._col(write.collection):
                    raise KeyError(f"{write.collection}/{write.doc_id}")
            now = _now()
            for write in writes:
                self._apply(write, now)

    def _commit_transaction(self, txn: _MemoryTransaction) -> None:
        with self._lock:
            for key, seen in txn.read_versions.items():
                if self._versions.get(key, 0) != seen:
                    raise TransactionConflict(f"{key[0]}/{key[1]} changed since it was read")
            self.commit_writes(txn.writes)

    def run_transaction(self, fn: Callable[[Transaction], Any], max_attempts: int = 5) -> Any:
        log_tag = "[memory.py][InMemoryDocumentStore][run_transaction]"
        for attempt in range(1, max_attempts + 1):
            with self._lock:
                self.transaction_attempts += 1
            txn = _MemoryTransaction(self)
            result = fn(txn)
            try:
                self._commit_transaction(txn)
                return result
            except TransactionConflict as e:
                Log.info(f"{log_tag} attempt {attempt}/{max_attempts} conflicted: {e}")
                time.sleep(self.retry_backoff * attempt * random.uniform(0.5, 1.5))

        raise ConflictError(
            "The transaction could not be committed because of concurrent updates. Please retry."
        )
