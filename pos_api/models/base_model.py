# pos_api/models/base_model.py

from ..store import SERVER_TIMESTAMP
from ..constants.service_code import STATUS
from ..utils.logger import Log


class BaseModel:
    """
    A base class for models providing common CRUD operations over the injected
    document store. Tenant-owned models filter every query by ``business_id``.
    """
    collection_name = None

    def __init__(self, store):
        self.store = store

    def get_by_id(self, record_id):
        """
        Retrieve a record by its ID. Returns None when it does not exist.
        """
        if not record_id:
            return None
        return self.store.get(self.collection_name, record_id)

    def create(self, data):
        """
        Insert a record with server-side timestamps and return it as stored.
        """
        body = dict(data)
        body.setdefault("status", STATUS["ACTIVE"])
        body["created_at"] = SERVER_TIMESTAMP
        body["updated_at"] = SERVER_TIMESTAMP
        record_id = self.store.add(self.collection_name, body)
        return self.store.get(self.collection_name, record_id)

    def update(self, record_id, **updates):
        """
        Partially update a record. Returns False when the record is missing.
        """
        updates["updated_at"] = SERVER_TIMESTAMP
        return self.store.update(self.collection_name, record_id, updates)

    def delete(self, record_id):
        return self.store.delete(self.collection_name, record_id)

    def list_for_business(self, business_id, filters=(), order_by="created_at", descending=True, limit=None):
        query_filters = [("business_id", "==", business_id)] + list(filters)
        return self.store.query(
            self.collection_name,
            query_filters,
            order_by=order_by,
            descending=descending,
            limit=limit,
        )

    def bulk_delete_for_business(self, record_ids, business_id):
        """
        Delete the given records that exist and belong to ``business_id``.

        One batched read, then one atomic batched write. Missing or foreign ids
        are skipped; the number actually deleted is returned.
        """
        unique_ids = list(dict.fromkeys(record_ids))
        docs = self.store.get_many(self.collection_name, unique_ids)

        batch = self.store.batch()
        for doc in docs:
            if doc is not None and doc.get("business_id") == business_id:
                batch.delete(self.collection_name, doc["id"])

        deleted = batch.commit()
        Log.info(
            f"[base_model.py][{self.__class__.__name__}][bulk_delete_for_business]"
            f"[{business_id}] requested={len(unique_ids)} deleted={deleted}"
        )
        return deleted

    def delete_all_for_business(self, business_id, batch_size=400):
        """
        Remove every record of the tenant in batches. Returns the number removed.
        """
        removed = 0
        while True:
            docs = self.store.query(
                self.collection_name,
                [("business_id", "==", business_id)],
                limit=batch_size,
            )
            if not docs:
                return removed
            batch = self.store.batch()
            for doc in docs:
                batch.delete(self.collection_name, doc["id"])
            removed += batch.commit()
