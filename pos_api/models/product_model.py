# pos_api/models/product_model.py

from ..constants.service_code import COLLECTIONS
from ..utils.helpers import to_money
from .base_model import BaseModel


class Product(BaseModel):
    """
    A sellable item. ``price`` is kept at currency precision and ``stock`` is
    only ever decremented inside the sale transaction.
    """
    collection_name = COLLECTIONS["PRODUCTS"]

    def create_product(self, business_id, name, price, stock=0, category_id=None, details=None):
        return self.create({
            "name": name,
            "category_id": category_id or None,
            "price": float(to_money(price)),
            "stock": int(stock or 0),
            "details": details or "",
            "business_id": business_id,
        })

    def list_for_business(self, business_id, category_id=None, **kwargs):
        filters = [("category_id", "==", category_id)] if category_id else []
        return super().list_for_business(business_id, filters=filters, **kwargs)
