# pos_api/models/business_model.py

from ..constants.service_code import COLLECTIONS, SUBSCRIPTION_STATUS
from ..store import SERVER_TIMESTAMP
from ..utils.plan.plans import DEFAULT_PLAN
from .base_model import BaseModel


class Business(BaseModel):
    """
    The tenant. Owns categories, products and sales through ``business_id``
    and carries the subscription the limit gate reads.
    """
    collection_name = COLLECTIONS["BUSINESSES"]

    def create_business(self, owner_id, name, address="", contact="", business_type="retail",
                        currency="USD", timezone="UTC"):
        return self.create({
            "name": name,
            "address": address or "",
            "contact": contact or "",
            "type": business_type or "retail",
            "owner_id": owner_id,
            "settings": {
                "currency": currency or "USD",
                "timezone": timezone or "UTC",
            },
            "subscription": {
                "plan": DEFAULT_PLAN,
                "status": SUBSCRIPTION_STATUS["ACTIVE"],
            },
        })

    def list_for_owner(self, owner_id):
        return self.store.query(
            self.collection_name,
            [("owner_id", "==", owner_id)],
            order_by="created_at",
            descending=True,
        )

    def set_subscription(self, business_id, **fields):
        """Update ``subscription.*`` fields; a missing business returns False."""
        changes = {f"subscription.{k}": v for k, v in fields.items()}
        changes["subscription.updated_at"] = SERVER_TIMESTAMP
        changes["updated_at"] = SERVER_TIMESTAMP
        return self.store.update(self.collection_name, business_id, changes)
