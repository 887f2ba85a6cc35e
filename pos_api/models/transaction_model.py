# pos_api/models/transaction_model.py

from ..constants.service_code import COLLECTIONS, TRANSACTION_STATUS
from ..store import SERVER_TIMESTAMP
from .base_model import BaseModel


class BillingTransaction(BaseModel):
    """
    A subscription checkout attempt. Created as ``pending`` when the checkout
    link is issued and completed by the billing webhook.
    """
    collection_name = COLLECTIONS["TRANSACTIONS"]

    def create_pending(self, business_id, plan_id, user_id, checkout_url):
        return self.create({
            "business_id": business_id,
            "plan_id": plan_id,
            "user_id": user_id,
            "status": TRANSACTION_STATUS["PENDING"],
            "type": "subscription_upgrade",
            "checkout_url": checkout_url,
        })

    def mark_completed(self, transaction_id, checkout_id=None, order_id=None, verified_via="webhook"):
        updates = {
            "status": TRANSACTION_STATUS["COMPLETED"],
            "verified_via": verified_via,
            "completed_at": SERVER_TIMESTAMP,
        }
        if checkout_id:
            updates["checkout_id"] = checkout_id
        if order_id:
            updates["order_id"] = order_id
        return self.update(transaction_id, **updates)
