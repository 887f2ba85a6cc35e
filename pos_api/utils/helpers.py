from datetime import timezone
from decimal import Decimal, ROUND_HALF_UP

from flask import request, g


def make_log_tag(file, resource, method, ip, user_id, role, auth_business_id, target_business_id, **kwargs):
    # Base tag
    log_tag = (
        f"[{file}]"
        f"[{resource}]"
        f"[{method}]"
        f"[ip:{ip}]"
        f"[user:{user_id}]"
        f"[role:{role}]"
        f"[auth_business:{auth_business_id}]"
        f"[target_business:{target_business_id}]"
    )

    # Append extra context fields
    for key, value in kwargs.items():
        log_tag += f"[{key}:{value}]"

    return log_tag


def request_log_tag(file, resource, method, target_business_id=None, **kwargs):
    """make_log_tag() filled from the current request and g.current_user."""
    user_info = g.get("current_user", {}) or {}
    return make_log_tag(
        file,
        resource,
        method,
        request.remote_addr,
        user_info.get("uid"),
        user_info.get("role"),
        user_info.get("business_id"),
        target_business_id if target_business_id is not None else user_info.get("business_id"),
        **kwargs,
    )


def to_money(value) -> Decimal:
    """Quantize a number to two decimal places (currency precision)."""
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def as_utc(value):
    """Interpret naive datetimes (e.g. from query strings) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
