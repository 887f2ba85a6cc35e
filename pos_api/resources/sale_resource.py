# pos_api/resources/sale_resource.py
from flask import current_app
from flask.views import MethodView
from flask_smorest import Blueprint

from ..extensions import get_store
from ..schemas.common_schema import ApiResponseSchema
from ..schemas.sale_schema import SaleQuerySchema, SaleSchema, SaleSummaryQuerySchema
from ..security.auth import token_required
from ..services.pos.sale_service import SaleService
from ..services.tenant_service import TenantContext
from ..utils.helpers import as_utc, request_log_tag
from ..utils.json_response import prepared_response
from ..utils.logger import Log
from ..utils.plan.enforce import enforce_plan_limit

blp_sale = Blueprint("Sale", __name__, description="Sales (point of sale transactions)")


def _service(store):
    return SaleService(
        store,
        max_attempts=current_app.config.get("SALE_TRANSACTION_MAX_ATTEMPTS", 5),
        total_tolerance=current_app.config.get("SALE_TOTAL_TOLERANCE", "0.01"),
    )


@blp_sale.route("/sales", methods=["POST", "GET"])
class SaleResource(MethodView):

    @token_required
    @blp_sale.arguments(SaleSchema)
    @blp_sale.response(201, ApiResponseSchema)
    @blp_sale.doc(
        summary="Record a sale",
        description="""
            Stock of every product in the sale is decremented atomically with the
            sale record. Lines naming the same product are merged. If any line
            fails (unknown product, other business, insufficient stock) nothing
            is written and every failing line is reported.
        """,
        security=[{"Bearer": []}],
    )
    def post(self, sale_data):
        store = get_store()
        context = TenantContext.from_current_user(store)
        log_tag = request_log_tag("sale_resource.py", "SaleResource", "post")

        sale = _service(store).create_sale(
            context,
            sale_data["items"],
            total=sale_data.get("total"),
            payment_method=sale_data.get("payment_method"),
            customer_id=sale_data.get("customer_id"),
        )

        Log.info(f"{log_tag} sale created id={sale['id']} total={sale['total']}")
        return prepared_response(True, "CREATED", "Sale created successfully", data=sale)

    @token_required
    @blp_sale.arguments(SaleQuerySchema, location="query")
    @blp_sale.response(200, ApiResponseSchema)
    @blp_sale.doc(summary="List sales, newest first", security=[{"Bearer": []}])
    def get(self, query):
        store = get_store()
        context = TenantContext.from_current_user(store)
        sales = _service(store).list_sales(
            context,
            start_date=as_utc(query.get("start_date")),
            end_date=as_utc(query.get("end_date")),
            limit=query.get("limit"),
        )
        return prepared_response(True, "OK", "Sales", data=sales)


@blp_sale.route("/sales/summary", methods=["GET"])
class SaleSummaryResource(MethodView):

    @token_required
    @enforce_plan_limit("reports")
    @blp_sale.arguments(SaleSummaryQuerySchema, location="query")
    @blp_sale.response(200, ApiResponseSchema)
    @blp_sale.doc(summary="Sales report for a date range", security=[{"Bearer": []}])
    def get(self, query):
        store = get_store()
        context = TenantContext.from_current_user(store)
        summary = _service(store).sales_summary(
            context,
            start_date=as_utc(query.get("start_date")),
            end_date=as_utc(query.get("end_date")),
        )
        return prepared_response(True, "OK", "Sales summary", data=summary)


@blp_sale.route("/sales/<string:sale_id>", methods=["GET"])
class SaleByIdResource(MethodView):

    @token_required
    @blp_sale.response(200, ApiResponseSchema)
    @blp_sale.doc(security=[{"Bearer": []}])
    def get(self, sale_id):
        store = get_store()
        context = TenantContext.from_current_user(store)
        return prepared_response(True, "OK", "Sale", data=_service(store).get_sale(context, sale_id))
