# pos_api/resources/business_resource.py
from flask.views import MethodView
from flask_smorest import Blueprint

from ..extensions import get_identity_provider, get_store
from ..schemas.business_schema import (
    BusinessDeleteQuerySchema,
    BusinessMemberSchema,
    BusinessSchema,
    BusinessUpdateSchema,
)
from ..schemas.common_schema import ApiResponseSchema
from ..security.auth import token_required
from ..services.business_service import BusinessService
from ..services.tenant_service import TenantContext
from ..utils.helpers import request_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log

blp_business = Blueprint("Business", __name__, description="Business (tenant) Management")


def _service():
    return BusinessService(get_store(), get_identity_provider())


@blp_business.route("/business", methods=["POST", "GET"])
class BusinessResource(MethodView):

    @token_required
    @blp_business.arguments(BusinessSchema)
    @blp_business.response(201, ApiResponseSchema)
    @blp_business.doc(
        summary="Create a business",
        description="""
            The caller becomes the owner. The new role and business_id are set as
            claims, which only appear in tokens issued afterwards: refresh the
            id token before using them.
        """,
        security=[{"Bearer": []}],
    )
    def post(self, business_data):
        store = get_store()
        context = TenantContext.from_current_user(store)
        log_tag = request_log_tag("business_resource.py", "BusinessResource", "post")

        result = _service().create_business(context, business_data)

        Log.info(f"{log_tag} business created id={result['business_id']}")
        return prepared_response(
            True,
            "CREATED",
            "Business created successfully",
            data=result["business"],
            business_id=result["business_id"],
            note=result["note"],
        )

    @token_required
    @blp_business.response(200, ApiResponseSchema)
    @blp_business.doc(summary="List the businesses owned by the caller", security=[{"Bearer": []}])
    def get(self):
        context = TenantContext.from_current_user(get_store())
        return prepared_response(True, "OK", "Businesses", data=_service().list_owned(context))


@blp_business.route("/business/profile", methods=["GET"])
class BusinessProfileResource(MethodView):

    @token_required
    @blp_business.response(200, ApiResponseSchema)
    @blp_business.doc(security=[{"Bearer": []}])
    def get(self):
        context = TenantContext.from_current_user(get_store())
        return prepared_response(True, "OK", "Business profile", data=_service().get_profile(context))


@blp_business.route("/business/members", methods=["POST", "GET"])
class BusinessMembersResource(MethodView):

    @token_required
    @blp_business.arguments(BusinessMemberSchema)
    @blp_business.response(201, ApiResponseSchema)
    @blp_business.doc(summary="Add a manager or staff member (owner only)", security=[{"Bearer": []}])
    def post(self, member_data):
        context = TenantContext.from_current_user(get_store())
        log_tag = request_log_tag(
            "business_resource.py", "BusinessMembersResource", "post", target_business_id=context.business_id
        )

        member = _service().add_member(
            context,
            member_data["email"],
            member_data["password"],
            member_data["role"],
            display_name=member_data.get("display_name"),
        )

        Log.info(f"{log_tag} member added uid={member['id']}")
        return prepared_response(True, "CREATED", "Member added successfully", data=member)

    @token_required
    @blp_business.response(200, ApiResponseSchema)
    @blp_business.doc(security=[{"Bearer": []}])
    def get(self):
        context = TenantContext.from_current_user(get_store())
        return prepared_response(True, "OK", "Members", data=_service().list_members(context))


@blp_business.route("/business/<string:business_id>", methods=["GET", "PUT", "DELETE"])
class BusinessByIdResource(MethodView):

    @token_required
    @blp_business.response(200, ApiResponseSchema)
    @blp_business.doc(security=[{"Bearer": []}])
    def get(self, business_id):
        context = TenantContext.from_current_user(get_store())
        return prepared_response(True, "OK", "Business", data=_service().get_business(context, business_id))

    @token_required
    @blp_business.arguments(BusinessUpdateSchema)
    @blp_business.response(200, ApiResponseSchema)
    @blp_business.doc(summary="Update business settings (owner only)", security=[{"Bearer": []}])
    def put(self, update_data, business_id):
        context = TenantContext.from_current_user(get_store())
        log_tag = request_log_tag(
            "business_resource.py", "BusinessByIdResource", "put", target_business_id=business_id
        )

        business = _service().update_business(context, business_id, update_data)

        Log.info(f"{log_tag} business updated")
        return prepared_response(True, "OK", "Business updated successfully", data=business)

    @token_required
    @blp_business.arguments(BusinessDeleteQuerySchema, location="query")
    @blp_business.response(200, ApiResponseSchema)
    @blp_business.doc(
        summary="Delete a business (owner only)",
        description="Owned categories, products and sales are kept unless cascade=true.",
        security=[{"Bearer": []}],
    )
    def delete(self, query, business_id):
        context = TenantContext.from_current_user(get_store())
        log_tag = request_log_tag(
            "business_resource.py", "BusinessByIdResource", "delete", target_business_id=business_id
        )

        result = _service().delete_business(context, business_id, cascade=query.get("cascade", False))

        Log.info(f"{log_tag} business deleted cascade={query.get('cascade', False)}")
        return prepared_response(
            True,
            "OK",
            "Business deleted successfully",
            data=result["removed"] or None,
            note=result["note"],
        )
