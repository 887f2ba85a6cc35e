# pos_api/services/business_service.py

from ..constants.service_code import AUTHENTICATION_MESSAGES, MEMBER_ROLES, ROLES
from ..models.business_model import Business
from ..models.category_model import Category
from ..models.product_model import Product
from ..models.sale_model import Sale
from ..models.user_model import User
from ..utils.errors import AuthorizationError, NotFoundError, ValidationError
from ..utils.logger import Log
from .tenant_service import require_tenant_resource

UPDATABLE_FIELDS = ("name", "address", "contact", "type", "settings", "status")


class BusinessService:
    """
    Tenant lifecycle. Every change of a principal's role or business updates
    both the identity claims and the users profile; already-issued tokens keep
    their old claims until the client refreshes.
    """

    def __init__(self, store, identity_provider):
        self.store = store
        self.identity = identity_provider
        self.businesses = Business(store)
        self.users = User(store)

    def _assign(self, uid, role, business_id):
        claims = {"role": role}
        if business_id:
            claims["business_id"] = business_id
        self.identity.set_claims(uid, claims)
        self.users.set_membership(uid, role, business_id)

    def create_business(self, context, data):
        log_tag = f"[business_service.py][BusinessService][create_business][{context.uid}]"
        settings = data.get("settings") or {}
        business = self.businesses.create_business(
            owner_id=context.uid,
            name=data["name"],
            address=data.get("address"),
            contact=data.get("contact"),
            business_type=data.get("type"),
            currency=settings.get("currency"),
            timezone=settings.get("timezone"),
        )
        Log.info(f"{log_tag} business created id={business['id']}")

        self._assign(context.uid, ROLES["OWNER"], business["id"])
        return {
            "business_id": business["id"],
            "business": business,
            "note": AUTHENTICATION_MESSAGES["REFRESH_TOKEN_NOTE"],
        }

    def list_owned(self, context):
        return self.businesses.list_for_owner(context.uid)

    def get_profile(self, context):
        if not context.business_id:
            raise NotFoundError("No business associated with this user")
        business = self.businesses.get_by_id(context.business_id)
        if business is None:
            raise NotFoundError("Business not found")
        return business

    def get_business(self, context, business_id):
        return require_tenant_resource(
            self.businesses.get_by_id(business_id), context, label="Business", tenant_field="id"
        )

    def _require_owned(self, context, business_id):
        business = self.businesses.get_by_id(business_id)
        require_tenant_resource(business, context, owner_only=True, label="Business", tenant_field="id")
        return business

    def update_business(self, context, business_id, data):
        self._require_owned(context, business_id)
        updates = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
        if "settings" in updates:
            for key, value in (updates.pop("settings") or {}).items():
                updates[f"settings.{key}"] = value
        if not updates:
            raise ValidationError("No updatable fields provided")
        self.businesses.update(business_id, **updates)
        return self.businesses.get_by_id(business_id)

    def delete_business(self, context, business_id, cascade=False):
        """
        Remove the tenant. Without ``cascade`` the tenant's categories, products
        and sales are left in place; with it they are swept in batches first.
        """
        log_tag = f"[business_service.py][BusinessService][delete_business][{context.uid}][{business_id}]"
        self._require_owned(context, business_id)

        removed = {}
        if cascade:
            for model in (Sale(self.store), Product(self.store), Category(self.store)):
                removed[model.collection_name] = model.delete_all_for_business(business_id)
            Log.info(f"{log_tag} cascade removed {removed}")

        members = [m for m in self.users.list_members(business_id) if m["id"] != context.uid]
        self.businesses.delete(business_id)

        self._assign(context.uid, ROLES["USER"], None)
        for member in members:
            self._assign(member["id"], ROLES["USER"], None)

        Log.info(f"{log_tag} business deleted; {len(members)} member(s) detached")
        return {"removed": removed, "note": AUTHENTICATION_MESSAGES["REFRESH_TOKEN_NOTE"]}

    def add_member(self, context, email, password, role, display_name=None):
        """
        Create a manager/staff principal inside the caller's business. Owner only.
        """
        business_id = context.require_business()
        if not context.is_owner:
            raise AuthorizationError("Unauthorized. Only the owner can add members.")
        if role not in MEMBER_ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(MEMBER_ROLES)}")

        principal = self.identity.create_principal(email, password, display_name)
        self.users.create_profile(
            principal["uid"],
            principal["email"],
            display_name=display_name,
            role=role,
            business_id=business_id,
        )
        self.identity.set_claims(principal["uid"], {"role": role, "business_id": business_id})
        Log.info(
            f"[business_service.py][BusinessService][add_member][{business_id}] "
            f"member {principal['uid']} added as {role}"
        )
        return self.users.get_by_id(principal["uid"])

    def list_members(self, context):
        return self.users.list_members(context.require_business())
