# pos_api/store/mongo.py
"""
MongoDB implementation of the document store.

Documents are stored with a string ``_id``; transactions run inside a client
session with snapshot read concern so every read of an attempt sees the same
snapshot, and a concurrent commit to any written document surfaces as a
TransientTransactionError which restarts the attempt.
"""
from __future__ import annotations

import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, DeleteOne, MongoClient, ReplaceOne, UpdateOne
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from ..utils.errors import ConflictError
from ..utils.logger import Log
from .base import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    DocumentStore,
    Filter,
    Transaction,
    Write,
    check_filters,
)

_OPERATORS = {
    "!=": "$ne",
    "<": "$lt",
    "<=": "$lte",
    ">": "$gt",
    ">=": "$gte",
    "in": "$in",
}


def _now():
    return datetime.now(timezone.utc)


def _to_record(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    doc["id"] = str(doc.pop("_id"))
    return doc


def _resolve_insert(value, now):
    if value is SERVER_TIMESTAMP:
        return now
    if isinstance(value, dict):
        return {k: _resolve_insert(v, now) for k, v in value.items() if v is not DELETE_FIELD}
    if isinstance(value, list):
        return [_resolve_insert(v, now) for v in value]
    return value


def _update_spec(changes: dict) -> dict:
    """Translate a dotted-path partial update into $set / $unset / $currentDate."""
    now = _now()
    set_fields, unset_fields, current_date = {}, {}, {}
    for path, value in changes.items():
        if value is DELETE_FIELD:
            unset_fields[path] = ""
        elif value is SERVER_TIMESTAMP:
            current_date[path] = True
        else:
            set_fields[path] = _resolve_insert(value, now)
    spec = {}
    if set_fields:
        spec["$set"] = set_fields
    if unset_fields:
        spec["$unset"] = unset_fields
    if current_date:
        spec["$currentDate"] = current_date
    return spec


def _mongo_filter(filters: Iterable[Filter]) -> dict:
    selector: dict = {}
    for field, op, value in check_filters(filters):
        key = "_id" if field == "id" else field
        if op == "==":
            if key in selector and isinstance(selector[key], dict):
                selector[key]["$eq"] = value
            else:
                selector[key] = value
        else:
            clause = selector.setdefault(key, {})
            if not isinstance(clause, dict):
                clause = selector[key] = {"$eq": clause}
            clause[_OPERATORS[op]] = list(value) if op == "in" else value
    return selector


def _body(data: dict) -> dict:
    body = _resolve_insert(dict(data), _now())
    body.pop("id", None)
    return body


def _as_operation(write: Write):
    if write.op == "set":
        body = _body(write.data)
        body["_id"] = write.doc_id
        return ReplaceOne({"_id": write.doc_id}, body, upsert=True)
    if write.op == "update":
        return UpdateOne({"_id": write.doc_id}, _update_spec(write.data))
    if write.op == "delete":
        return DeleteOne({"_id": write.doc_id})
    raise ValueError(f"Unknown write op: {write.op}")


class _MongoTransaction(Transaction):
    def __init__(self, store: "MongoDocumentStore", session):
        super().__init__()
        self._store = store
        self._session = session

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        self._guard_read()
        doc = self._store.db[collection].find_one({"_id": doc_id}, session=self._session)
        return _to_record(doc)

    def get_many(self, collection: str, doc_ids: Sequence[str]) -> List[Optional[dict]]:
        self._guard_read()
        found = {
            str(doc["_id"]): doc
            for doc in self._store.db[collection].find({"_id": {"$in": list(doc_ids)}}, session=self._session)
        }
        return [_to_record(dict(found[i])) if i in found else None for i in doc_ids]


class MongoDocumentStore(DocumentStore):

    def __init__(self, client: MongoClient, db_name: str, retry_backoff: float = 0.05):
        self.client = client
        self.db = client[db_name]
        self.retry_backoff = retry_backoff

    @classmethod
    def from_uri(cls, uri: str, db_name: str, **kwargs) -> "MongoDocumentStore":
        client = MongoClient(uri, tz_aware=True, retryWrites=True)
        return cls(client, db_name, **kwargs)

    def ensure_indexes(self) -> None:
        for name in ("categories", "products", "sales"):
            self.db[name].create_index([("business_id", ASCENDING), ("created_at", DESCENDING)])
        self.db.products.create_index([("business_id", ASCENDING), ("category_id", ASCENDING)])
        self.db.businesses.create_index([("owner_id", ASCENDING), ("created_at", DESCENDING)])
        self.db.transactions.create_index([("business_id", ASCENDING)])
        self.db.auth_principals.create_index([("email", ASCENDING)], unique=True)

    # ---------------- single document ----------------
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return _to_record(self.db[collection].find_one({"_id": doc_id}))

    def get_many(self, collection: str, doc_ids: Sequence[str]) -> List[Optional[dict]]:
        found = {str(doc["_id"]): doc for doc in self.db[collection].find({"_id": {"$in": list(doc_ids)}})}
        return [_to_record(dict(found[i])) if i in found else None for i in doc_ids]

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        body = _body(data)
        self.db[collection].replace_one({"_id": doc_id}, dict(body, _id=doc_id), upsert=True)

    def update(self, collection: str, doc_id: str, changes: dict) -> bool:
        result = self.db[collection].update_one({"_id": doc_id}, _update_spec(changes))
        return result.matched_count > 0

    def delete(self, collection: str, doc_id: str) -> bool:
        return self.db[collection].delete_one({"_id": doc_id}).deleted_count > 0

    # ---------------- queries ----------------
    def query(
        self,
        collection: str,
        filters: Iterable[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[dict]:
        cursor = self.db[collection].find(_mongo_filter(filters))
        if order_by:
            cursor = cursor.sort(order_by, DESCENDING if descending else ASCENDING)
        if limit:
            cursor = cursor.limit(int(limit))
        return [_to_record(doc) for doc in cursor]

    def count(self, collection: str, filters: Iterable[Filter] = ()) -> int:
        return self.db[collection].count_documents(_mongo_filter(filters))

    # ---------------- batches / transactions ----------------
    def _flush(self, writes: List[Write], session) -> None:
        by_collection: dict = {}
        for write in writes:
            by_collection.setdefault(write.collection, []).append(_as_operation(write))
        for collection, operations in by_collection.items():
            self.db[collection].bulk_write(operations, ordered=True, session=session)

    def commit_writes(self, writes: List[Write]) -> None:
        with self.client.start_session() as session:
            session.with_transaction(
                lambda s: self._flush(writes, s),
                write_concern=WriteConcern("majority"),
            )

    def _commit_with_retry(self, session, max_attempts: int = 5) -> None:
        for attempt in range(1, max_attempts + 1):
            try:
                session.commit_transaction()
                return
            except (ConnectionFailure, OperationFailure) as exc:
                if exc.has_error_label("UnknownTransactionCommitResult") and attempt < max_attempts:
                    Log.warning(
                        f"[mongo.py][MongoDocumentStore] commit result unknown, "
                        f"retrying commit ({attempt}/{max_attempts})"
                    )
                    continue
                if exc.has_error_label("UnknownTransactionCommitResult"):
                    raise ConflictError("The transaction commit result could not be confirmed. Please retry.")
                raise

    def run_transaction(self, fn: Callable[[Transaction], Any], max_attempts: int = 5) -> Any:
        log_tag = "[mongo.py][MongoDocumentStore][run_transaction]"
        for attempt in range(1, max_attempts + 1):
            with self.client.start_session() as session:
                session.start_transaction(
                    read_concern=ReadConcern("snapshot"),
                    write_concern=WriteConcern("majority"),
                )
                txn = _MongoTransaction(self, session)
                try:
                    result = fn(txn)
                    self._flush(txn.writes, session)
                    self._commit_with_retry(session)
                    return result
                except PyMongoError as exc:
                    if session.in_transaction:
                        session.abort_transaction()
                    if exc.has_error_label("TransientTransactionError"):
                        Log.info(f"{log_tag} attempt {attempt}/{max_attempts} conflicted: {exc}")
                        time.sleep(self.retry_backoff * attempt * random.uniform(0.5, 1.5))
                        continue
                    raise
                except Exception:
                    if session.in_transaction:
                        session.abort_transaction()
                    raise

        raise ConflictError(
            "The transaction could not be committed because of concurrent updates. Please retry."
        )
