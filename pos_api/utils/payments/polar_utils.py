# utils/payments/polar_utils.py

import base64
import hashlib
import hmac
import time

from ...utils.logger import Log

# Standard Webhooks replay window
TIMESTAMP_TOLERANCE_SECONDS = 300


def _signing_key(secret):
    """
    Standard Webhooks secrets may be given as ``whsec_<base64>``; anything else
    is used as the raw key.
    """
    if secret.startswith("whsec_"):
        return base64.b64decode(secret[len("whsec_"):])
    return secret.encode("utf-8")


def compute_polar_signature(secret, webhook_id, timestamp, body):
    """
    Base64 HMAC-SHA256 of ``{webhook-id}.{webhook-timestamp}.{body}``.
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    signed_content = f"{webhook_id}.{timestamp}.{body}".encode("utf-8")
    digest = hmac.new(_signing_key(secret), signed_content, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_polar_signature(secret, headers, body, now=None):
    """
    Verify a Polar webhook delivery.

    Args:
        secret: POLAR_WEBHOOK_SECRET
        headers: request headers (``webhook-id``, ``webhook-timestamp``, ``webhook-signature``)
        body: raw request body (bytes or str)

    Returns:
        Bool - True if one of the ``v1,<sig>`` entries matches and the timestamp is fresh
    """
    log_tag = "[polar_utils.py][verify_polar_signature]"

    webhook_id = headers.get("webhook-id")
    timestamp = headers.get("webhook-timestamp")
    signature_header = headers.get("webhook-signature")

    if not webhook_id or not timestamp or not signature_header:
        Log.warning(f"{log_tag} missing signature headers")
        return False

    try:
        sent_at = int(timestamp)
    except (TypeError, ValueError):
        Log.warning(f"{log_tag} invalid timestamp header: {timestamp}")
        return False

    current = int(now if now is not None else time.time())
    if abs(current - sent_at) > TIMESTAMP_TOLERANCE_SECONDS:
        Log.warning(f"{log_tag} timestamp outside tolerance")
        return False

    expected = compute_polar_signature(secret, webhook_id, timestamp, body)
    for entry in signature_header.split(" "):
        version, _, signature = entry.partition(",")
        if version == "v1" and hmac.compare_digest(signature, expected):
            return True

    Log.warning(f"{log_tag} signature mismatch for webhook-id={webhook_id}")
    return False
