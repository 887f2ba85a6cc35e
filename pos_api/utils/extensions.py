# pos_api/utils/extensions.py

from flask import request, g, has_request_context
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .logger import Log


def _get_client_ip():
    """Safely get client IP, returns 'unknown' if outside request context."""
    if has_request_context():
        return get_remote_address() or "unknown"
    return "unknown"


def log_rate_limit_breach(request_limit):
    """
    Callback when a rate limit is breached.

    Called automatically by Flask-Limiter when any rate limit is exceeded.
    """
    client_ip = _get_client_ip()
    user_id = (g.get("current_user") or {}).get("uid") or "anonymous"

    try:
        limit_str = str(request_limit.limit)
    except AttributeError:
        limit_str = "unknown"

    Log.warning(
        f"[RATE_LIMIT_BREACH][{client_ip}] "
        f"user={user_id}, limit={limit_str}, key={getattr(request_limit, 'key', 'unknown')}, "
        f"method={request.method}, path={request.path}, endpoint={request.endpoint or 'unknown'}"
    )


# storage_uri and enabled flag come from app.config (RATELIMIT_STORAGE_URI / RATELIMIT_ENABLED)
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    on_breach=log_rate_limit_breach,
)
