# pos_api/resources/auth_resource.py
from flask import g
from flask.views import MethodView
from flask_smorest import Blueprint

from ..constants.service_code import ROLES
from ..extensions import get_identity_provider, get_store
from ..models.user_model import User
from ..schemas.auth_schema import (
    ForgotPasswordSchema,
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    ResetPasswordSchema,
    UpdateUserSchema,
)
from ..schemas.common_schema import ApiResponseSchema
from ..security.auth import token_required
from ..utils.errors import NotFoundError
from ..utils.helpers import request_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.rate_limits import login_user_limiter, password_reset_limiter, register_rate_limiter

blp_auth = Blueprint("Auth", __name__, description="Authentication Management")


@blp_auth.route("/auth/register", methods=["POST"])
class RegisterResource(MethodView):

    @register_rate_limiter("registration")
    @blp_auth.arguments(RegisterSchema)
    @blp_auth.response(201, ApiResponseSchema)
    @blp_auth.doc(summary="Register a user. New users have role 'user' and no business.")
    def post(self, user_data):
        log_tag = request_log_tag("auth_resource.py", "RegisterResource", "post")
        identity = get_identity_provider()

        principal = identity.create_principal(
            user_data["email"], user_data["password"], user_data.get("display_name")
        )
        profile = User(get_store()).create_profile(
            principal["uid"], principal["email"], display_name=user_data.get("display_name"), role=ROLES["USER"]
        )
        identity.set_claims(principal["uid"], {"role": ROLES["USER"]})

        Log.info(f"{log_tag} user registered uid={principal['uid']}")
        return prepared_response(True, "CREATED", "User registered successfully", data=profile)


@blp_auth.route("/auth/login", methods=["POST"])
class LoginResource(MethodView):

    @login_user_limiter("login")
    @blp_auth.arguments(LoginSchema)
    @blp_auth.response(200, ApiResponseSchema)
    @blp_auth.doc(summary="Sign in with email and password; returns an id token and a refresh token")
    def post(self, login_data):
        tokens = get_identity_provider().sign_in_with_password(login_data["email"], login_data["password"])
        Log.info(f"{request_log_tag('auth_resource.py', 'LoginResource', 'post')} login ok uid={tokens['local_id']}")
        return prepared_response(True, "OK", "Login successful", data=tokens)


@blp_auth.route("/auth/refresh", methods=["POST"])
class RefreshTokenResource(MethodView):

    @blp_auth.arguments(RefreshTokenSchema)
    @blp_auth.response(200, ApiResponseSchema)
    @blp_auth.doc(summary="Exchange a refresh token for an id token carrying the current claims")
    def post(self, token_data):
        tokens = get_identity_provider().refresh_id_token(token_data["refresh_token"])
        return prepared_response(True, "OK", "Token refreshed", data=tokens)


@blp_auth.route("/auth/forgot-password", methods=["POST"])
class ForgotPasswordResource(MethodView):

    @password_reset_limiter("password reset")
    @blp_auth.arguments(ForgotPasswordSchema)
    @blp_auth.response(200, ApiResponseSchema)
    def post(self, data):
        get_identity_provider().send_password_reset(data["email"])
        return prepared_response(True, "OK", "Password reset email sent")


@blp_auth.route("/auth/reset-password", methods=["POST"])
class ResetPasswordResource(MethodView):

    @password_reset_limiter("password reset")
    @blp_auth.arguments(ResetPasswordSchema)
    @blp_auth.response(200, ApiResponseSchema)
    def post(self, data):
        get_identity_provider().confirm_password_reset(data["oob_code"], data["new_password"])
        return prepared_response(True, "OK", "Password has been reset. Please sign in again.")


@blp_auth.route("/auth/me", methods=["GET"])
class MeResource(MethodView):

    @token_required
    @blp_auth.response(200, ApiResponseSchema)
    @blp_auth.doc(security=[{"Bearer": []}])
    def get(self):
        uid = g.current_user["uid"]
        profile = User(get_store()).get_by_id(uid)
        if profile is None:
            raise NotFoundError("User profile not found")

        principal = get_identity_provider().get_principal(uid)
        profile.setdefault("phone_number", principal.get("phone_number"))
        profile.setdefault("photo_url", principal.get("photo_url"))
        return prepared_response(True, "OK", "User profile", data=profile)


@blp_auth.route("/auth/update", methods=["PUT"])
class UpdateUserResource(MethodView):

    @token_required
    @blp_auth.arguments(UpdateUserSchema)
    @blp_auth.response(200, ApiResponseSchema)
    @blp_auth.doc(security=[{"Bearer": []}])
    def put(self, update_data):
        uid = g.current_user["uid"]
        log_tag = request_log_tag("auth_resource.py", "UpdateUserResource", "put")

        principal = get_identity_provider().update_principal(uid, **update_data)
        if update_data.get("phone_number"):
            update_data["phone_number"] = principal["phone_number"]
        if update_data:
            User(get_store()).update(uid, **update_data)

        Log.info(f"{log_tag} profile updated fields={sorted(update_data)}")
        return prepared_response(True, "OK", "Profile updated successfully")


@blp_auth.route("/auth/delete", methods=["DELETE"])
class DeleteAccountResource(MethodView):

    @token_required
    @blp_auth.response(200, ApiResponseSchema)
    @blp_auth.doc(security=[{"Bearer": []}])
    def delete(self):
        uid = g.current_user["uid"]
        log_tag = request_log_tag("auth_resource.py", "DeleteAccountResource", "delete")

        get_identity_provider().delete_principal(uid)
        User(get_store()).delete(uid)

        Log.info(f"{log_tag} account deleted")
        return prepared_response(True, "OK", "Account deleted successfully")
