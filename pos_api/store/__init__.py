from .base import (
    DELETE_FIELD,
    SERVER_TIMESTAMP,
    DocumentStore,
    Transaction,
    TransactionConflict,
    WriteBatch,
    new_id,
)
from .memory import InMemoryDocumentStore
from .mongo import MongoDocumentStore

__all__ = [
    "DELETE_FIELD",
    "SERVER_TIMESTAMP",
    "DocumentStore",
    "Transaction",
    "TransactionConflict",
    "WriteBatch",
    "new_id",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
]
