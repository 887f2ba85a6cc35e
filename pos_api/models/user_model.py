# pos_api/models/user_model.py

from ..constants.service_code import COLLECTIONS, ROLES, STATUS
from ..store import SERVER_TIMESTAMP
from .base_model import BaseModel


class User(BaseModel):
    """
    Profile document mirrored from the identity principal. The document id is
    the principal id, so it is written with ``set`` rather than ``add``.
    """
    collection_name = COLLECTIONS["USERS"]

    def create_profile(self, uid, email, display_name=None, role=ROLES["USER"], business_id=None):
        self.store.set(self.collection_name, uid, {
            "email": email,
            "display_name": display_name or "",
            "role": role,
            "business_id": business_id,
            "status": STATUS["ACTIVE"],
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        })
        return self.get_by_id(uid)

    def set_membership(self, uid, role, business_id):
        """Upsert the role/tenant fields, creating a bare profile when none exists."""
        if not self.update(uid, role=role, business_id=business_id):
            self.store.set(self.collection_name, uid, {
                "role": role,
                "business_id": business_id,
                "status": STATUS["ACTIVE"],
                "created_at": SERVER_TIMESTAMP,
                "updated_at": SERVER_TIMESTAMP,
            })

    def list_members(self, business_id):
        return self.store.query(
            self.collection_name,
            [("business_id", "==", business_id)],
            order_by="created_at",
        )
