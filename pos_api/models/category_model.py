# pos_api/models/category_model.py

from ..constants.service_code import COLLECTIONS
from .base_model import BaseModel


class Category(BaseModel):
    collection_name = COLLECTIONS["CATEGORIES"]

    def create_category(self, business_id, name, description=None, color=None):
        return self.create({
            "name": name,
            "description": description or "",
            "color": color or "#000000",
            "business_id": business_id,
        })
