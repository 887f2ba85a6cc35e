# pos_api/resources/category_resource.py
from flask.views import MethodView
from flask_smorest import Blueprint

from ..extensions import get_store
from ..models.category_model import Category
from ..schemas.category_schema import CategorySchema, CategoryUpdateSchema
from ..schemas.common_schema import ApiResponseSchema, BulkDeleteSchema
from ..security.auth import token_required
from ..services.tenant_service import TenantContext, require_tenant_resource
from ..utils.errors import ValidationError
from ..utils.helpers import request_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.plan.enforce import enforce_plan_limit

blp_category = Blueprint("Category", __name__, description="Category Management")


@blp_category.route("/categories", methods=["POST", "GET"])
class CategoryResource(MethodView):

    @token_required
    @enforce_plan_limit("categories")
    @blp_category.arguments(CategorySchema)
    @blp_category.response(201, ApiResponseSchema)
    @blp_category.doc(summary="Create a category", security=[{"Bearer": []}])
    def post(self, item_data):
        store = get_store()
        context = TenantContext.from_current_user(store)
        business_id = context.require_business()
        log_tag = request_log_tag("category_resource.py", "CategoryResource", "post", target_business_id=business_id)

        category = Category(store).create_category(
            business_id,
            item_data["name"],
            description=item_data.get("description"),
            color=item_data.get("color"),
        )

        Log.info(f"{log_tag} category created id={category['id']}")
        return prepared_response(True, "CREATED", "Category created successfully", data=category)

    @token_required
    @blp_category.response(200, ApiResponseSchema)
    @blp_category.doc(summary="List the business's categories, newest first", security=[{"Bearer": []}])
    def get(self):
        store = get_store()
        context = TenantContext.from_current_user(store)
        categories = Category(store).list_for_business(context.require_business())
        return prepared_response(True, "OK", "Categories", data=categories)


@blp_category.route("/categories/bulk-delete", methods=["DELETE"])
class CategoryBulkDeleteResource(MethodView):

    @token_required
    @blp_category.arguments(BulkDeleteSchema)
    @blp_category.response(200, ApiResponseSchema)
    @blp_category.doc(
        summary="Delete several categories",
        description="Ids that do not exist or belong to another business are skipped.",
        security=[{"Bearer": []}],
    )
    def delete(self, item_data):
        store = get_store()
        context = TenantContext.from_current_user(store)
        business_id = context.require_business()
        log_tag = request_log_tag(
            "category_resource.py", "CategoryBulkDeleteResource", "delete", target_business_id=business_id
        )

        deleted = Category(store).bulk_delete_for_business(item_data["ids"], business_id)

        Log.info(f"{log_tag} deleted={deleted} requested={len(item_data['ids'])}")
        return prepared_response(
            True, "OK", f"{deleted} categories deleted successfully", data={"deleted": deleted}
        )


@blp_category.route("/categories/<string:category_id>", methods=["GET", "PUT", "DELETE"])
class CategoryByIdResource(MethodView):

    @token_required
    @blp_category.response(200, ApiResponseSchema)
    @blp_category.doc(security=[{"Bearer": []}])
    def get(self, category_id):
        store = get_store()
        context = TenantContext.from_current_user(store)
        category = require_tenant_resource(Category(store).get_by_id(category_id), context, label="Category")
        return prepared_response(True, "OK", "Category", data=category)

    @token_required
    @blp_category.arguments(CategoryUpdateSchema)
    @blp_category.response(200, ApiResponseSchema)
    @blp_category.doc(security=[{"Bearer": []}])
    def put(self, update_data, category_id):
        store = get_store()
        context = TenantContext.from_current_user(store)
        model = Category(store)
        require_tenant_resource(model.get_by_id(category_id), context, label="Category")

        if not update_data:
            raise ValidationError("No updatable fields provided")
        model.update(category_id, **update_data)

        Log.info(f"{request_log_tag('category_resource.py', 'CategoryByIdResource', 'put')} updated {category_id}")
        return prepared_response(True, "OK", "Category updated successfully", data=model.get_by_id(category_id))

    @token_required
    @blp_category.response(200, ApiResponseSchema)
    @blp_category.doc(security=[{"Bearer": []}])
    def delete(self, category_id):
        store = get_store()
        context = TenantContext.from_current_user(store)
        model = Category(store)
        require_tenant_resource(model.get_by_id(category_id), context, label="Category")

        model.delete(category_id)

        Log.info(f"{request_log_tag('category_resource.py', 'CategoryByIdResource', 'delete')} deleted {category_id}")
        return prepared_response(True, "OK", "Category deleted successfully")
