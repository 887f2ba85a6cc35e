# pos_api/utils/plan/quota_enforcer.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ...utils.errors import PlanLimitError
from ...utils.logger import Log
from .plan_resolver import PlanResolver
from .plans import LIMIT_RULES, UNLIMITED


@dataclass
class LimitDecision:
    allowed: bool
    plan: str
    resource: str
    reason: Optional[str] = None
    current_usage: Optional[int] = None
    limit: Any = None
    meta: Dict[str, Any] = field(default_factory=dict)


class SubscriptionLimitGate:
    """
    Per-plan resource gate:
      - boolean quotas are feature flags
      - UNLIMITED (or a resource the plan does not list) always allows
      - integer quotas count the tenant's documents exactly and allow while count < quota

    An unknown plan name fails open: it is logged and allowed.
    With ``limits_disabled`` every check allows (DISABLE_PLAN_LIMITS=true).
    """

    def __init__(self, store, limits_disabled: bool = False):
        self.store = store
        self.limits_disabled = limits_disabled
        self.resolver = PlanResolver(store)

    def _count(self, business_id: str, resource: str) -> int:
        collection = (LIMIT_RULES.get(resource) or {}).get("collection") or resource
        return self.store.count(collection, [("business_id", "==", business_id)])

    def check(self, business_id: str, resource: str) -> LimitDecision:
        log_tag = f"[quota_enforcer.py][SubscriptionLimitGate][check][{business_id}][{resource}]"

        plan_name, plan = self.resolver.get_active_plan(business_id)

        if self.limits_disabled:
            return LimitDecision(True, plan_name, resource, reason="limits_disabled")

        if plan is None:
            Log.warning(f"{log_tag} unknown plan '{plan_name}', allowing")
            return LimitDecision(True, plan_name, resource, reason="unknown_plan")

        limit = (plan.get("limits") or {}).get(resource, UNLIMITED)

        if isinstance(limit, bool):
            if limit:
                return LimitDecision(True, plan_name, resource, limit=True)
            return LimitDecision(
                False,
                plan_name,
                resource,
                reason="FEATURE_NOT_AVAILABLE",
                limit=False,
                meta={"feature": resource, "plan": plan_name},
            )

        if limit == UNLIMITED or limit is None:
            return LimitDecision(True, plan_name, resource, limit=UNLIMITED)

        current = self._count(business_id, resource)
        if current < int(limit):
            return LimitDecision(True, plan_name, resource, current_usage=current, limit=limit)

        Log.info(f"{log_tag} limit reached {current}/{limit}")
        return LimitDecision(
            False,
            plan_name,
            resource,
            reason="LIMIT_REACHED",
            current_usage=current,
            limit=limit,
            meta={"current_usage": current, "limit": limit, "plan": plan_name},
        )

    def enforce(self, business_id: str, resource: str) -> LimitDecision:
        decision = self.check(business_id, resource)
        if decision.allowed:
            return decision

        if decision.reason == "FEATURE_NOT_AVAILABLE":
            raise PlanLimitError(
                decision.reason,
                f"Access to {resource} is not allowed on {decision.plan} plan.",
                meta=decision.meta,
            )
        raise PlanLimitError(
            decision.reason,
            f"{decision.plan} plan limit reached for {resource}. Limit is {decision.limit}.",
            meta=decision.meta,
        )
