# pos_api/services/tenant_service.py
"""
Tenant context for the authenticated caller.

Claims on a bearer token are a snapshot taken when the token was issued. Right
after a business is created the caller's token may still lack ``business_id``;
in that case the mirrored ``users/<uid>`` document is consulted instead.
"""
from dataclasses import dataclass, field
from typing import Optional

from flask import g

from ..constants.service_code import ERROR_MESSAGES, ROLES
from ..models.business_model import Business
from ..models.user_model import User
from ..utils.errors import AuthenticationError, AuthorizationError, NotFoundError
from ..utils.logger import Log


@dataclass
class TenantContext:
    uid: str
    role: str = ROLES["USER"]
    business_id: Optional[str] = None
    email: Optional[str] = None
    from_profile: bool = False
    claims: dict = field(default_factory=dict)

    @classmethod
    def from_current_user(cls, store, fresh=False):
        """
        Build the context from g.current_user. With ``fresh``, or when the claim
        carries no business or names one that was deleted, the users profile
        document is read as well.
        """
        user_info = g.get("current_user")
        if not user_info or not user_info.get("uid"):
            raise AuthenticationError("Authentication Required")

        context = cls(
            uid=user_info["uid"],
            role=user_info.get("role") or ROLES["USER"],
            business_id=user_info.get("business_id"),
            email=user_info.get("email"),
            claims=user_info.get("claims") or {},
        )

        if context.business_id and Business(store).get_by_id(context.business_id) is None:
            Log.info(
                f"[tenant_service.py][TenantContext][from_current_user][{context.uid}] "
                f"business {context.business_id} no longer exists (token claims are stale)"
            )
            context.business_id = None
            context.role = ROLES["USER"]

        if fresh or not context.business_id:
            profile = User(store).get_by_id(context.uid)
            if profile and profile.get("business_id"):
                if context.business_id != profile["business_id"]:
                    Log.info(
                        f"[tenant_service.py][TenantContext][from_current_user][{context.uid}] "
                        f"using business from profile (token claims are stale)"
                    )
                context.business_id = profile["business_id"]
                context.role = profile.get("role") or context.role
                context.from_profile = True
        return context

    @property
    def is_owner(self):
        return self.role == ROLES["OWNER"]

    def require_business(self):
        if not self.business_id:
            raise AuthorizationError(ERROR_MESSAGES["NO_BUSINESS"])
        return self.business_id


def require_tenant_resource(doc, context, owner_only=False, label="Resource", tenant_field="business_id"):
    """
    The single ordering for resource checks: existence, then tenant, then role.

    For businesses ``tenant_field`` is ``"id"`` and ownership is checked
    against ``owner_id``.
    """
    if doc is None:
        raise NotFoundError(f"{label} not found")

    if tenant_field == "id":
        belongs = doc.get("owner_id") == context.uid or doc.get("id") == context.business_id
    else:
        belongs = context.business_id is not None and doc.get(tenant_field) == context.business_id
    if not belongs:
        raise AuthorizationError("Unauthorized")

    if owner_only:
        is_owner = doc.get("owner_id") == context.uid if tenant_field == "id" else context.is_owner
        if not is_owner:
            raise AuthorizationError("Unauthorized")
    return doc
