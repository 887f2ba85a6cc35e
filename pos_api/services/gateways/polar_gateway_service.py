# services/gateways/polar_gateway_service.py
from urllib.parse import urlencode

import requests

from ...utils.errors import UpstreamError
from ...utils.logger import Log
from ...utils.payments.polar_utils import verify_polar_signature


class PolarGatewayService:
    """
    Thin client for the Polar billing API.

    Checkout uses hosted checkout links; the metadata passed as
    ``metadata[key]=value`` query parameters comes back on the webhook events.
    """

    def __init__(self, access_token, checkout_links, api_base_url="https://api.polar.sh/v1",
                 checkout_base_url="https://buy.polar.sh", webhook_secret=None, timeout=15):
        self.access_token = access_token
        self.checkout_links = {k.lower(): v for k, v in (checkout_links or {}).items() if v}
        self.api_base_url = api_base_url.rstrip("/")
        self.checkout_base_url = checkout_base_url.rstrip("/")
        self.webhook_secret = webhook_secret
        self.timeout = timeout

    def get_checkout_link(self, plan_id):
        return self.checkout_links.get(str(plan_id or "").lower())

    def build_checkout_url(self, plan_id, metadata, customer_email=None):
        link_id = self.get_checkout_link(plan_id)
        if not link_id:
            return None

        params = []
        if customer_email:
            params.append(("customer_email", customer_email))
        for key, value in metadata.items():
            if value is not None:
                params.append((f"metadata[{key}]", str(value)))

        return f"{self.checkout_base_url}/{link_id}?{urlencode(params)}"

    def verify_webhook_signature(self, headers, body):
        """Deliveries are accepted unsigned only when no webhook secret is configured."""
        if not self.webhook_secret:
            return True
        return verify_polar_signature(self.webhook_secret, headers, body)

    def cancel_subscription(self, external_id):
        """
        Revoke the subscription at Polar.

        Returns True when Polar cancelled it and False when Polar no longer
        knows it (404), in which case the caller proceeds with the local
        cancellation. Any other failure raises UpstreamError.
        """
        log_tag = f"[polar_gateway_service.py][PolarGatewayService][cancel_subscription][{external_id}]"
        url = f"{self.api_base_url}/subscriptions/{external_id}"
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

        try:
            response = requests.delete(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            Log.error(f"{log_tag} request failed: {e}")
            raise UpstreamError("Billing provider unreachable", upstream_message=str(e))

        if response.status_code == 404:
            Log.warning(f"{log_tag} subscription unknown to Polar; cancelling locally")
            return False

        if not response.ok:
            Log.error(f"{log_tag} Polar API {response.status_code}: {response.text}")
            raise UpstreamError(
                "Failed to cancel subscription with billing provider",
                upstream_status=response.status_code,
                upstream_message=response.text,
            )

        Log.info(f"{log_tag} cancelled at Polar")
        return True
