# pos_api/utils/plan/enforce.py
from functools import wraps

from flask import current_app

from ...extensions import get_store
from ...services.tenant_service import TenantContext
from .quota_enforcer import SubscriptionLimitGate


def enforce_plan_limit(resource):
    """
    Gate a view on the caller's plan for ``resource``. Must run after
    token_required; a caller with no business is refused before counting.
    Raises PlanLimitError, rendered as 403 by the app error handler.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            store = get_store()
            context = TenantContext.from_current_user(store)
            business_id = context.require_business()

            gate = SubscriptionLimitGate(
                store,
                limits_disabled=current_app.config.get("DISABLE_PLAN_LIMITS", False),
            )
            gate.enforce(business_id, resource)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
