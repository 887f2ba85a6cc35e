# pos_api/security/auth.py
from functools import wraps

from flask import g, request

from ..constants.service_code import AUTHENTICATION_MESSAGES, ROLES
from ..extensions import get_identity_provider
from ..utils.errors import AuthenticationError
from ..utils.logger import Log


def _bearer_token():
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    parts = auth_header.split()
    return parts[1] if len(parts) == 2 else None


def token_required(f):
    """
    Verify the bearer token and expose the caller on ``g.current_user`` as
    ``{uid, email, role, business_id, claims}``. Claims are the snapshot
    carried by the token.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise AuthenticationError(AUTHENTICATION_MESSAGES["AUTHENTICATION_REQUIRED"])

        try:
            decoded = get_identity_provider().verify_bearer_token(token)
        except AuthenticationError as e:
            Log.info(f"[auth.py][token_required][{request.remote_addr}] {e.message}")
            raise

        claims = decoded.get("claims") or {}
        g.current_user = {
            "uid": decoded["uid"],
            "email": decoded.get("email"),
            "role": claims.get("role") or ROLES["USER"],
            "business_id": claims.get("business_id"),
            "claims": claims,
        }
        return f(*args, **kwargs)

    return decorated
