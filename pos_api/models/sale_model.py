# pos_api/models/sale_model.py

from ..constants.service_code import COLLECTIONS
from .base_model import BaseModel


class Sale(BaseModel):
    """Sales are immutable once committed; they are written by SaleService only."""
    collection_name = COLLECTIONS["SALES"]

    def list_between(self, business_id, start=None, end=None, limit=None):
        filters = []
        if start is not None:
            filters.append(("created_at", ">=", start))
        if end is not None:
            filters.append(("created_at", "<=", end))
        return self.list_for_business(business_id, filters=filters, limit=limit)
