# services/identity_provider.py
"""
Identity provider backed by the document store.

Principals live in their own collection, separate from the mirrored ``users``
profile documents. Bearer tokens are signed HS256 JWTs that embed a snapshot of
the principal's custom claims at issue time: changing claims never alters a
token that was already issued, so callers must refresh their token (sign in
again or exchange a refresh token) before new claims take effect.
"""
import hashlib
import re
import secrets
import time
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
import phonenumbers
from phonenumbers.phonenumberutil import NumberParseException

from ..constants.service_code import COLLECTIONS
from ..store import SERVER_TIMESTAMP, DELETE_FIELD
from ..utils.errors import AuthenticationError, UpstreamError
from ..utils.logger import Log

TOKEN_TYPE_ID = "id"
TOKEN_TYPE_REFRESH = "refresh"
MIN_PASSWORD_LENGTH = 6

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

PROFILE_FIELDS = ("display_name", "photo_url", "phone_number")


def _hash_token(raw):
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class IdentityProvider:
    collection = COLLECTIONS["PRINCIPALS"]

    def __init__(
        self,
        store,
        secret_key,
        id_token_ttl=3600,
        refresh_token_ttl=60 * 60 * 24 * 30,
        reset_token_ttl=3600,
        reset_url=None,
        mailer=None,
        bcrypt_rounds=12,
    ):
        self.store = store
        self.secret_key = secret_key
        self.id_token_ttl = id_token_ttl
        self.refresh_token_ttl = refresh_token_ttl
        self.reset_token_ttl = reset_token_ttl
        self.reset_url = reset_url
        self.mailer = mailer
        self.bcrypt_rounds = bcrypt_rounds

    # ---------------- principals ----------------
    @staticmethod
    def _public(principal):
        if principal is None:
            return None
        return {
            "uid": principal["id"],
            "email": principal.get("email"),
            "display_name": principal.get("display_name"),
            "photo_url": principal.get("photo_url"),
            "phone_number": principal.get("phone_number"),
            "custom_claims": principal.get("custom_claims") or {},
            "disabled": principal.get("disabled", False),
        }

    def _get(self, uid):
        if not uid:
            return None
        return self.store.get(self.collection, uid)

    def _require(self, uid):
        principal = self._get(uid)
        if principal is None:
            raise UpstreamError(
                "There is no user record corresponding to the provided identifier.",
                upstream_status=404,
                upstream_message="USER_NOT_FOUND",
                status_key="NOT_FOUND",
            )
        return principal

    def _find_by_email(self, email):
        matches = self.store.query(self.collection, [("email", "==", email.strip().lower())], limit=1)
        return matches[0] if matches else None

    def _hash_password(self, password):
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds)).decode("utf-8")

    @staticmethod
    def _check_password_strength(password):
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise UpstreamError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters",
                upstream_status=400,
                upstream_message="WEAK_PASSWORD",
                status_key="BAD_REQUEST",
            )

    @staticmethod
    def _normalise_phone(phone):
        try:
            number = phonenumbers.parse(phone, None)
            if phonenumbers.is_valid_number(number):
                return phonenumbers.format_number(number, phonenumbers.PhoneNumberFormat.E164)
        except NumberParseException:
            pass
        raise UpstreamError(
            "The phone number must be a non-empty E.164 standard compliant identifier string.",
            upstream_status=400,
            upstream_message="INVALID_PHONE_NUMBER",
            status_key="BAD_REQUEST",
        )

    def create_principal(self, email, password, display_name=None):
        log_tag = "[identity_provider.py][IdentityProvider][create_principal]"
        email = (email or "").strip().lower()
        if not EMAIL_REGEX.match(email):
            raise UpstreamError(
                "The email address is improperly formatted.",
                upstream_status=400,
                upstream_message="INVALID_EMAIL",
                status_key="BAD_REQUEST",
            )
        self._check_password_strength(password)

        if self._find_by_email(email) is not None:
            Log.info(f"{log_tag} email already registered")
            raise UpstreamError(
                "The email address is already in use by another account.",
                upstream_status=409,
                upstream_message="EMAIL_EXISTS",
                status_key="CONFLICT",
            )

        uid = self.store.add(self.collection, {
            "email": email,
            "password_hash": self._hash_password(password),
            "display_name": display_name or "",
            "custom_claims": {},
            "disabled": False,
            "tokens_valid_after": 0,
            "created_at": SERVER_TIMESTAMP,
        })
        Log.info(f"{log_tag} principal created uid={uid}")
        return self._public(self._get(uid))

    def get_principal(self, uid):
        return self._public(self._require(uid))

    def update_principal(self, uid, **profile):
        self._require(uid)
        changes = {k: v for k, v in profile.items() if k in PROFILE_FIELDS and v is not None}
        if changes.get("phone_number"):
            changes["phone_number"] = self._normalise_phone(changes["phone_number"])
        if changes:
            self.store.update(self.collection, uid, changes)
        return self._public(self._get(uid))

    def delete_principal(self, uid):
        self._require(uid)
        self.store.delete(self.collection, uid)
        Log.info(f"[identity_provider.py][IdentityProvider][delete_principal] uid={uid}")

    def set_claims(self, uid, claims):
        """
        Replace the principal's custom claims. Takes effect for tokens issued afterwards.
        """
        self._require(uid)
        cleaned = {k: v for k, v in (claims or {}).items() if v is not None}
        self.store.update(self.collection, uid, {"custom_claims": cleaned})
        Log.info(f"[identity_provider.py][IdentityProvider][set_claims] uid={uid} claims={cleaned}")

    # ---------------- tokens ----------------
    def _encode(self, principal, token_type, ttl):
        now = int(time.time())
        payload = {
            "sub": principal["id"],
            "email": principal.get("email"),
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
            "jti": secrets.token_hex(8),
        }
        if token_type == TOKEN_TYPE_ID:
            payload["claims"] = principal.get("custom_claims") or {}
        return jwt.encode(payload, self.secret_key, algorithm="HS256")

    def _token_response(self, principal):
        return {
            "id_token": self._encode(principal, TOKEN_TYPE_ID, self.id_token_ttl),
            "refresh_token": self._encode(principal, TOKEN_TYPE_REFRESH, self.refresh_token_ttl),
            "expires_in": self.id_token_ttl,
            "local_id": principal["id"],
            "email": principal.get("email"),
        }

    def _decode(self, token, expected_type, check_revoked=True):
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        if payload.get("type") != expected_type:
            raise AuthenticationError("Invalid token")

        principal = None
        if check_revoked:
            principal = self._get(payload.get("sub"))
            if principal is None or principal.get("disabled"):
                raise AuthenticationError("Invalid token")
            if payload.get("iat", 0) < int(principal.get("tokens_valid_after") or 0):
                raise AuthenticationError("Token has been revoked")
        return payload, principal

    def sign_in_with_password(self, email, password):
        principal = self._find_by_email(email or "")
        valid = (
            principal is not None
            and not principal.get("disabled")
            and bcrypt.checkpw((password or "").encode("utf-8"), principal["password_hash"].encode("utf-8"))
        )
        if not valid:
            raise UpstreamError(
                "Login failed",
                upstream_status=400,
                upstream_message="INVALID_LOGIN_CREDENTIALS",
                status_key="UNAUTHORIZED",
            )
        return self._token_response(principal)

    def refresh_id_token(self, refresh_token):
        """Exchange a refresh token for a new id token carrying the current claims."""
        _, principal = self._decode(refresh_token, TOKEN_TYPE_REFRESH)
        return self._token_response(principal)

    def verify_bearer_token(self, token, check_revoked=True):
        payload, _ = self._decode(token, TOKEN_TYPE_ID, check_revoked=check_revoked)
        return {
            "uid": payload["sub"],
            "email": payload.get("email"),
            "claims": payload.get("claims") or {},
        }

    def revoke_refresh_tokens(self, uid):
        self.store.update(self.collection, uid, {"tokens_valid_after": int(time.time())})

    # ---------------- password reset ----------------
    def send_password_reset(self, email):
        log_tag = "[identity_provider.py][IdentityProvider][send_password_reset]"
        principal = self._find_by_email(email or "")
        if principal is None:
            Log.info(f"{log_tag} no principal for the requested email; nothing sent")
            return False

        raw_token = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.reset_token_ttl)
        self.store.update(self.collection, principal["id"], {
            "password_reset": {"token_hash": _hash_token(raw_token), "expires_at": expires_at},
        })

        reset_link = f"{self.reset_url}?oobCode={raw_token}" if self.reset_url else raw_token
        if self.mailer is None:
            raise UpstreamError("Password reset email could not be sent", upstream_message="MAILER_NOT_CONFIGURED")
        try:
            self.mailer(principal["email"], reset_link)
        except Exception as e:
            Log.error(f"{log_tag} mail dispatch failed: {e}")
            raise UpstreamError("Error sending email", upstream_message=str(e))

        Log.info(f"{log_tag} password reset dispatched uid={principal['id']}")
        return True

    def confirm_password_reset(self, oob_code, new_password):
        self._check_password_strength(new_password)
        token_hash = _hash_token(oob_code or "")
        matches = self.store.query(self.collection, [("password_reset.token_hash", "==", token_hash)], limit=1)
        principal = matches[0] if matches else None
        expires_at = ((principal or {}).get("password_reset") or {}).get("expires_at")
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        if principal is None or expires_at is None or expires_at < datetime.now(timezone.utc):
            raise UpstreamError(
                "The password reset code is invalid or has expired.",
                upstream_status=400,
                upstream_message="INVALID_OOB_CODE",
                status_key="BAD_REQUEST",
            )

        self.store.update(self.collection, principal["id"], {
            "password_hash": self._hash_password(new_password),
            "password_reset": DELETE_FIELD,
        })
        # signs out every existing session
        self.revoke_refresh_tokens(principal["id"])
        Log.info(f"[identity_provider.py][IdentityProvider][confirm_password_reset] uid={principal['id']}")
        return principal["id"]
