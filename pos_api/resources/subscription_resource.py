# pos_api/resources/subscription_resource.py
from flask import render_template, request
from flask.views import MethodView
from flask_smorest import Blueprint

from ..extensions import get_billing_gateway, get_store
from ..schemas.common_schema import ApiResponseSchema
from ..schemas.subscription_schema import (
    CancelSubscriptionSchema,
    CreateCheckoutSchema,
    PaymentSuccessQuerySchema,
)
from ..security.auth import token_required
from ..services.pos.subscription_service import SubscriptionService
from ..services.tenant_service import TenantContext
from ..utils.errors import AuthenticationError
from ..utils.helpers import request_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log

blp_subscription = Blueprint("Subscription", __name__, description="Subscription plans and billing (Polar)")


def _service():
    return SubscriptionService(get_store(), get_billing_gateway())


@blp_subscription.route("/subscription/create-checkout", methods=["POST"])
class CreateCheckoutResource(MethodView):

    @token_required
    @blp_subscription.arguments(CreateCheckoutSchema)
    @blp_subscription.response(200, ApiResponseSchema)
    @blp_subscription.doc(
        summary="Start a plan upgrade (owner only)",
        description="Returns a hosted checkout URL. The plan becomes active when the payment webhook arrives.",
        security=[{"Bearer": []}],
    )
    def post(self, checkout_data):
        context = TenantContext.from_current_user(get_store())
        log_tag = request_log_tag(
            "subscription_resource.py",
            "CreateCheckoutResource",
            "post",
            target_business_id=checkout_data["business_id"],
            plan=checkout_data["plan_id"],
        )

        result = _service().create_checkout(context, checkout_data["plan_id"], checkout_data["business_id"])

        Log.info(f"{log_tag} checkout created transaction={result['transaction_id']}")
        return prepared_response(True, "OK", "Checkout created", data=result)


@blp_subscription.route("/subscription/cancel-subscription", methods=["POST"])
class CancelSubscriptionResource(MethodView):

    @token_required
    @blp_subscription.arguments(CancelSubscriptionSchema)
    @blp_subscription.response(200, ApiResponseSchema)
    @blp_subscription.doc(summary="Cancel the business's paid subscription (owner only)", security=[{"Bearer": []}])
    def post(self, cancel_data):
        context = TenantContext.from_current_user(get_store())
        log_tag = request_log_tag(
            "subscription_resource.py",
            "CancelSubscriptionResource",
            "post",
            target_business_id=cancel_data["business_id"],
        )

        result = _service().cancel_subscription(context, cancel_data["business_id"])

        Log.info(f"{log_tag} subscription canceled")
        return prepared_response(True, "OK", "Subscription canceled successfully", data=result)


@blp_subscription.route("/subscription/webhook", methods=["POST"])
class PolarWebhookResource(MethodView):

    @blp_subscription.response(200, ApiResponseSchema)
    @blp_subscription.doc(
        summary="Polar webhook receiver",
        description="Verifies the Standard Webhooks signature when POLAR_WEBHOOK_SECRET is set.",
    )
    def post(self):
        log_tag = "[subscription_resource.py][PolarWebhookResource][post]"
        body = request.get_data()

        if not get_billing_gateway().verify_webhook_signature(request.headers, body):
            Log.warning(f"{log_tag} rejected delivery with invalid signature")
            raise AuthenticationError("Invalid webhook signature")

        outcome = _service().handle_webhook(request.get_json(silent=True))

        Log.info(f"{log_tag} outcome={outcome}")
        return prepared_response(True, "OK", "Webhook received", data={"result": outcome})


@blp_subscription.route("/subscription/payment-success", methods=["GET"])
class PaymentSuccessResource(MethodView):

    @blp_subscription.arguments(PaymentSuccessQuerySchema, location="query")
    @blp_subscription.doc(summary="Landing page after a completed checkout")
    def get(self, query):
        return render_template("payment_success.html", checkout_id=query.get("checkout_id"))
