# pos_api/resources/product_resource.py
from flask.views import MethodView
from flask_smorest import Blueprint

from ..extensions import get_store
from ..models.category_model import Category
from ..models.product_model import Product
from ..schemas.common_schema import ApiResponseSchema, BulkDeleteSchema
from ..schemas.product_schema import ProductQuerySchema, ProductSchema, ProductUpdateSchema
from ..security.auth import token_required
from ..services.tenant_service import TenantContext, require_tenant_resource
from ..utils.errors import ValidationError
from ..utils.helpers import request_log_tag, to_money
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.plan.enforce import enforce_plan_limit

blp_product = Blueprint("Product", __name__, description="Product Management")


def _check_category(store, context, category_id):
    """A product may only reference a category of the same business."""
    if category_id:
        require_tenant_resource(Category(store).get_by_id(category_id), context, label="Category")


@blp_product.route("/products", methods=["POST", "GET"])
class ProductResource(MethodView):

    @token_required
    @enforce_plan_limit("products")
    @blp_product.arguments(ProductSchema)
    @blp_product.response(201, ApiResponseSchema)
    @blp_product.doc(summary="Create a product", security=[{"Bearer": []}])
    def post(self, item_data):
        store = get_store()
        context = TenantContext.from_current_user(store)
        business_id = context.require_business()
        log_tag = request_log_tag("product_resource.py", "ProductResource", "post", target_business_id=business_id)

        _check_category(store, context, item_data.get("category_id"))

        product = Product(store).create_product(
            business_id,
            item_data["name"],
            item_data["price"],
            stock=item_data.get("stock"),
            category_id=item_data.get("category_id"),
            details=item_data.get("details"),
        )

        Log.info(f"{log_tag} product created id={product['id']}")
        return prepared_response(True, "CREATED", "Product created successfully", data=product)

    @token_required
    @blp_product.arguments(ProductQuerySchema, location="query")
    @blp_product.response(200, ApiResponseSchema)
    @blp_product.doc(summary="List products, optionally by category", security=[{"Bearer": []}])
    def get(self, query):
        store = get_store()
        context = TenantContext.from_current_user(store)
        products = Product(store).list_for_business(
            context.require_business(), category_id=query.get("category_id")
        )
        return prepared_response(True, "OK", "Products", data=products)


@blp_product.route("/products/bulk-delete", methods=["DELETE"])
class ProductBulkDeleteResource(MethodView):

    @token_required
    @blp_product.arguments(BulkDeleteSchema)
    @blp_product.response(200, ApiResponseSchema)
    @blp_product.doc(
        summary="Delete several products",
        description="Ids that do not exist or belong to another business are skipped.",
        security=[{"Bearer": []}],
    )
    def delete(self, item_data):
        store = get_store()
        context = TenantContext.from_current_user(store)
        business_id = context.require_business()
        log_tag = request_log_tag(
            "product_resource.py", "ProductBulkDeleteResource", "delete", target_business_id=business_id
        )

        deleted = Product(store).bulk_delete_for_business(item_data["ids"], business_id)

        Log.info(f"{log_tag} deleted={deleted} requested={len(item_data['ids'])}")
        return prepared_response(
            True, "OK", f"{deleted} products deleted successfully", data={"deleted": deleted}
        )


@blp_product.route("/products/<string:product_id>", methods=["GET", "PUT", "DELETE"])
class ProductByIdResource(MethodView):

    @token_required
    @blp_product.response(200, ApiResponseSchema)
    @blp_product.doc(security=[{"Bearer": []}])
    def get(self, product_id):
        store = get_store()
        context = TenantContext.from_current_user(store)
        product = require_tenant_resource(Product(store).get_by_id(product_id), context, label="Product")
        return prepared_response(True, "OK", "Product", data=product)

    @token_required
    @blp_product.arguments(ProductUpdateSchema)
    @blp_product.response(200, ApiResponseSchema)
    @blp_product.doc(security=[{"Bearer": []}])
    def put(self, update_data, product_id):
        store = get_store()
        context = TenantContext.from_current_user(store)
        model = Product(store)
        require_tenant_resource(model.get_by_id(product_id), context, label="Product")

        if not update_data:
            raise ValidationError("No updatable fields provided")
        _check_category(store, context, update_data.get("category_id"))
        if "price" in update_data:
            update_data["price"] = float(to_money(update_data["price"]))
        model.update(product_id, **update_data)

        Log.info(f"{request_log_tag('product_resource.py', 'ProductByIdResource', 'put')} updated {product_id}")
        return prepared_response(True, "OK", "Product updated successfully", data=model.get_by_id(product_id))

    @token_required
    @blp_product.response(200, ApiResponseSchema)
    @blp_product.doc(security=[{"Bearer": []}])
    def delete(self, product_id):
        store = get_store()
        context = TenantContext.from_current_user(store)
        model = Product(store)
        require_tenant_resource(model.get_by_id(product_id), context, label="Product")

        model.delete(product_id)

        Log.info(f"{request_log_tag('product_resource.py', 'ProductByIdResource', 'delete')} deleted {product_id}")
        return prepared_response(True, "OK", "Product deleted successfully")
