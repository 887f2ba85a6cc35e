# pos_api/utils/plan/plan_resolver.py
from ...constants.service_code import COLLECTIONS
from .plans import DEFAULT_PLAN, SUBSCRIPTION_PLANS


class PlanResolver:
    """
    Resolves the plan of a business from ``business.subscription.plan``.

    A missing business, subscription or plan name resolves to the default plan.
    A plan name that is not in SUBSCRIPTION_PLANS resolves to ``(name, None)``.
    """

    def __init__(self, store):
        self.store = store

    @staticmethod
    def normalise(plan_name):
        return str(plan_name).strip().upper() if plan_name else DEFAULT_PLAN

    def get_plan_name(self, business_id):
        business = self.store.get(COLLECTIONS["BUSINESSES"], business_id) or {}
        return self.normalise((business.get("subscription") or {}).get("plan"))

    def get_active_plan(self, business_id):
        plan_name = self.get_plan_name(business_id)
        return plan_name, SUBSCRIPTION_PLANS.get(plan_name)
