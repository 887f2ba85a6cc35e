# services/pos/subscription_service.py

from ...constants.service_code import SUBSCRIPTION_STATUS, TRANSACTION_STATUS
from ...models.business_model import Business
from ...models.transaction_model import BillingTransaction
from ...store import SERVER_TIMESTAMP
from ...utils.errors import ValidationError
from ...utils.logger import Log
from ..tenant_service import require_tenant_resource


def _metadata_value(metadata, *keys):
    for key in keys:
        if metadata.get(key):
            return metadata[key]
    return None


class SubscriptionService:
    """
    Plan upgrades through the billing provider:
      - create_checkout issues a hosted checkout link and a pending transaction
      - the webhook completes the transaction and moves the business to the plan
      - cancel revokes at the provider, then marks the subscription canceled
    """

    def __init__(self, store, gateway):
        self.store = store
        self.gateway = gateway
        self.businesses = Business(store)
        self.transactions = BillingTransaction(store)

    def _require_owned_business(self, context, business_id):
        return require_tenant_resource(
            self.businesses.get_by_id(business_id),
            context,
            owner_only=True,
            label="Business",
            tenant_field="id",
        )

    # ---------------- checkout ----------------
    def create_checkout(self, context, plan_id, business_id):
        log_tag = f"[subscription_service.py][SubscriptionService][create_checkout][{business_id}][{plan_id}]"

        if not self.gateway.get_checkout_link(plan_id):
            raise ValidationError("Invalid plan_id")
        self._require_owned_business(context, business_id)

        transaction = self.transactions.create_pending(business_id, plan_id, context.uid, checkout_url=None)
        checkout_url = self.gateway.build_checkout_url(
            plan_id,
            {
                "transaction_id": transaction["id"],
                "business_id": business_id,
                "plan_id": plan_id,
                "user_id": context.uid,
            },
            customer_email=context.email,
        )
        self.transactions.update(transaction["id"], checkout_url=checkout_url, checkout_id="LINK_BASED")

        Log.info(f"{log_tag} checkout issued transaction={transaction['id']}")
        return {"checkout_url": checkout_url, "transaction_id": transaction["id"]}

    # ---------------- webhook ----------------
    def handle_webhook(self, event):
        if not isinstance(event, dict) or not event.get("type") or not isinstance(event.get("data"), dict):
            raise ValidationError("Invalid payload")

        event_type = event["type"]
        payload = event["data"]
        Log.info(f"[subscription_service.py][SubscriptionService][handle_webhook] Polar webhook: {event_type}")

        if event_type == "order.paid":
            return self._handle_order_paid(payload)
        if event_type.startswith("subscription."):
            return self._handle_subscription_update(payload)
        return "ignored"

    def _handle_order_paid(self, payload):
        log_tag = "[subscription_service.py][SubscriptionService][_handle_order_paid]"
        metadata = payload.get("metadata") or {}
        transaction_id = _metadata_value(metadata, "transaction_id", "transactionId", "reference_id")

        if not transaction_id:
            Log.warning(f"{log_tag} order.paid missing transaction_id metadata")
            return "missing_transaction"

        transaction = self.transactions.get_by_id(transaction_id)
        if transaction is None:
            Log.warning(f"{log_tag} transaction {transaction_id} not found")
            return "missing_transaction"

        if transaction.get("status") == TRANSACTION_STATUS["COMPLETED"]:
            Log.info(f"{log_tag} transaction {transaction_id} already completed")
            return "already_processed"

        self.transactions.mark_completed(transaction_id, order_id=payload.get("id"), verified_via="polar_order")

        business_id = transaction.get("business_id")
        plan_id = transaction.get("plan_id")
        if business_id and plan_id:
            self._update_business_subscription(
                business_id,
                plan=plan_id,
                status=SUBSCRIPTION_STATUS["ACTIVE"],
                polar_subscription_id=payload.get("subscription_id"),
                customer_id=payload.get("customer_id"),
                product_id=payload.get("product_id"),
            )
        return "processed"

    def _handle_subscription_update(self, subscription):
        metadata = subscription.get("metadata") or {}
        business_id = _metadata_value(metadata, "business_id", "businessId")

        if not business_id:
            transaction_id = _metadata_value(metadata, "transaction_id", "transactionId", "reference_id")
            transaction = self.transactions.get_by_id(transaction_id) if transaction_id else None
            if transaction:
                business_id = transaction.get("business_id")

        if not business_id:
            Log.warning("[subscription_service.py][SubscriptionService][_handle_subscription_update] no business resolved")
            return "missing_business"

        self._update_business_subscription(
            business_id,
            status=subscription.get("status"),
            polar_subscription_id=subscription.get("id"),
            customer_id=subscription.get("customer_id"),
            product_id=subscription.get("product_id"),
        )
        return "processed"

    def _update_business_subscription(self, business_id, **fields):
        """
        Second step of a webhook. A failure here is logged and left for the
        provider's redelivery; the webhook still acknowledges.
        """
        log_tag = f"[subscription_service.py][SubscriptionService][_update_business_subscription][{business_id}]"
        changes = {k: v for k, v in fields.items() if v is not None}
        try:
            updated = self.businesses.set_subscription(business_id, **changes)
        except Exception as e:
            Log.error(f"{log_tag} failed to update business subscription: {e}")
            return False

        if not updated:
            Log.error(f"{log_tag} business not found; subscription not updated")
            return False
        Log.info(f"{log_tag} subscription updated {changes}")
        return True

    # ---------------- cancel ----------------
    def cancel_subscription(self, context, business_id):
        business = self._require_owned_business(context, business_id)

        subscription = business.get("subscription") or {}
        if not subscription.get("polar_subscription_id"):
            raise ValidationError("No active subscription found to cancel")

        cancelled_upstream = self.gateway.cancel_subscription(subscription["polar_subscription_id"])

        self.businesses.set_subscription(
            business_id,
            status=SUBSCRIPTION_STATUS["CANCELED"],
            canceled_at=SERVER_TIMESTAMP,
        )
        Log.info(
            f"[subscription_service.py][SubscriptionService][cancel_subscription][{business_id}] "
            f"canceled (upstream={cancelled_upstream})"
        )
        return {"cancelled_upstream": cancelled_upstream}
