# pos_api/utils/rate_limits.py

from flask import request
from flask_limiter.util import get_remote_address

from ..utils.extensions import limiter


# ---------- KEY FUNCTIONS ----------

def _get_request_data():
    """Safely get JSON or form data as a dict."""
    data = request.get_json(silent=True)
    if not data:
        data = request.form or request.values
    return data or {}


def login_key_func():
    """
    Rate-limit per email where possible, else fall back to IP.
    """
    email = _get_request_data().get("email")
    if email:
        return f"login:{str(email).lower()[:100]}"
    return get_remote_address()


def default_ip_key_func():
    """Standard per-IP rate limiting."""
    return get_remote_address()


# ---------- LOGIN HELPERS ----------

def login_user_limiter(
    entity_name: str = "login",
    limit_str: str = "5 per 5 minutes; 20 per hour",
    scope: str | None = None,
):
    """
    Per-account limit for login endpoints. Blocks credential stuffing against one email.
    """
    scope = scope or f"{entity_name}-user"
    return limiter.shared_limit(
        limit_str,
        scope=scope,
        key_func=login_key_func,
        methods=["POST"],
        error_message=f"Too many {entity_name} attempts for this account. Please try again later.",
    )


# ---------- REGISTER HELPERS ----------

def register_rate_limiter(
    entity_name: str = "registration",
    limit_str: str = "5 per minute; 20 per hour",
    scope: str | None = None,
):
    """
    Per-IP limit for registration endpoints.
    """
    scope = scope or f"{entity_name}-ip"
    return limiter.shared_limit(
        limit_str,
        scope=scope,
        key_func=default_ip_key_func,
        methods=["POST"],
        error_message=f"Too many {entity_name} attempts. Please try again later.",
    )


# ---------- PASSWORD RESET HELPERS ----------

def password_reset_limiter(
    entity_name: str = "password reset",
    limit_str: str = "3 per 5 minutes; 10 per hour",
    scope: str | None = None,
):
    """
    Per-IP limit for endpoints that send email. Prevents mail flooding.
    """
    scope = scope or f"{entity_name}-ip"
    return limiter.shared_limit(
        limit_str,
        scope=scope,
        key_func=default_ip_key_func,
        methods=["POST"],
        error_message=f"Too many {entity_name} requests. Please try again later.",
    )
