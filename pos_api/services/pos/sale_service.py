# pos_api/services/pos/sale_service.py
"""
Sale transaction engine.

A sale runs as one store transaction:

    READ      every distinct product of the sale, before any write is staged
    VALIDATE  existence, tenant, stock and the client total; all failures collected
    MUTATE    one ``stock -= quantity`` write per product
    COMMIT    the sale document is staged with the stock writes and committed

A commit conflict re-runs the whole function against a fresh snapshot; the
store raises ConflictError once its attempts are exhausted. Any validation
failure aborts with nothing written.
"""
from collections import OrderedDict
from decimal import Decimal, InvalidOperation

from ...constants.service_code import COLLECTIONS, MAX_LINE_QUANTITY, MAX_SALE_AMOUNT, SALE_STATUS
from ...models.sale_model import Sale
from ...store import SERVER_TIMESTAMP, new_id
from ...utils.errors import (
    CrossTenantAccess,
    InsufficientStock,
    ProductNotFound,
    SaleAbortedError,
    ValidationError,
)
from ...utils.helpers import to_money
from ...utils.logger import Log
from ..tenant_service import require_tenant_resource

PRODUCTS = COLLECTIONS["PRODUCTS"]
SALES = COLLECTIONS["SALES"]


def _amount(value, label, errors):
    try:
        amount = to_money(value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {label}", errors=errors)
    if not amount.is_finite() or amount < 0 or amount > MAX_SALE_AMOUNT:
        raise ValidationError(f"{label.capitalize()} must be between 0 and {MAX_SALE_AMOUNT}", errors=errors)
    return amount


class SaleService:

    def __init__(self, store, max_attempts=5, total_tolerance="0.01"):
        self.store = store
        self.max_attempts = max_attempts
        self.total_tolerance = Decimal(str(total_tolerance))
        self.sales = Sale(store)

    # ---------------- normalisation ----------------
    @staticmethod
    def normalise_items(items):
        """
        Merge lines that reference the same product, preserving first-seen order.
        Returns ``OrderedDict[product_id] -> {"quantity": int, "price": Decimal | None}``.
        """
        if not items:
            raise ValidationError("Items array is required")

        lines = OrderedDict()
        for index, item in enumerate(items):
            product_id = (item or {}).get("product_id")
            quantity = (item or {}).get("quantity")
            if not product_id:
                raise ValidationError("Each item requires a product_id", errors={"items": {index: "product_id"}})
            if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= MAX_LINE_QUANTITY:
                raise ValidationError(
                    f"Quantity must be an integer between 1 and {MAX_LINE_QUANTITY}",
                    errors={"items": {index: "quantity"}},
                )

            price = item.get("price")
            if price is not None:
                price = _amount(price, "price", {"items": {index: "price"}})

            line = lines.get(product_id)
            if line is None:
                lines[product_id] = {"quantity": quantity, "price": price}
                continue

            if price is not None and line["price"] is not None and price != line["price"]:
                raise ValidationError(f"Conflicting prices for product {product_id}")
            line["quantity"] += quantity
            if line["quantity"] > MAX_LINE_QUANTITY:
                raise ValidationError(
                    f"Quantity must be an integer between 1 and {MAX_LINE_QUANTITY}",
                    errors={"items": {index: "quantity"}},
                )
            if line["price"] is None:
                line["price"] = price
        return lines

    # ---------------- create ----------------
    def create_sale(self, context, items, total=None, payment_method="cash", customer_id=None):
        business_id = context.require_business()
        lines = self.normalise_items(items)
        product_ids = list(lines)
        client_total = _amount(total, "total", {"total": "invalid"}) if total is not None else None

        log_tag = (
            f"[sale_service.py][SaleService][create_sale]"
            f"[business:{business_id}][user:{context.uid}]"
        )
        Log.info(f"{log_tag} {len(items)} line(s), {len(product_ids)} distinct product(s)")

        def run(txn):
            # READ
            products = txn.get_many(PRODUCTS, product_ids)

            # VALIDATE
            failures = []
            for product_id, product in zip(product_ids, products):
                requested = lines[product_id]["quantity"]
                if product is None:
                    failures.append(ProductNotFound(product_id))
                elif product.get("business_id") != business_id:
                    failures.append(CrossTenantAccess(product_id))
                elif int(product.get("stock") or 0) < requested:
                    failures.append(InsufficientStock(
                        product_id,
                        available=int(product.get("stock") or 0),
                        requested=requested,
                        product_name=product.get("name"),
                    ))
            if failures:
                raise SaleAbortedError(failures)

            sale_items = []
            computed_total = Decimal("0.00")
            for product_id, product in zip(product_ids, products):
                line = lines[product_id]
                try:
                    unit_price = line["price"] if line["price"] is not None else to_money(product.get("price") or 0)
                    line_total = to_money(unit_price * line["quantity"])
                except (InvalidOperation, ValueError):
                    raise ValidationError(
                        f"Line amount for product {product_id} is out of range",
                        errors={"items": {product_id: "price"}},
                    )
                computed_total += line_total
                sale_items.append({
                    "product_id": product_id,
                    "product_name": product.get("name"),
                    "quantity": line["quantity"],
                    "price": float(unit_price),
                    "line_total": float(line_total),
                })

            if client_total is not None and abs(client_total - computed_total) > self.total_tolerance:
                raise ValidationError(
                    "Sale total does not match the sum of its items",
                    errors={"total": float(client_total), "expected_total": float(computed_total)},
                )

            # MUTATE
            for product_id, product in zip(product_ids, products):
                txn.update(PRODUCTS, product_id, {
                    "stock": int(product.get("stock") or 0) - lines[product_id]["quantity"],
                    "updated_at": SERVER_TIMESTAMP,
                })

            # COMMIT (staged with the stock writes)
            sale_id = new_id()
            txn.set(SALES, sale_id, {
                "business_id": business_id,
                "user_id": context.uid,
                "customer_id": customer_id or None,
                "items": sale_items,
                "total": float(computed_total),
                "payment_method": payment_method or "cash",
                "status": SALE_STATUS["COMPLETED"],
                "created_at": SERVER_TIMESTAMP,
            })
            return sale_id

        try:
            sale_id = self.store.run_transaction(run, max_attempts=self.max_attempts)
        except SaleAbortedError as e:
            Log.info(f"{log_tag} aborted: {[f.reason for f in e.failures]}")
            raise

        Log.info(f"{log_tag} sale committed id={sale_id}")
        return self.store.get(SALES, sale_id)

    # ---------------- reads ----------------
    def list_sales(self, context, start_date=None, end_date=None, limit=None):
        return self.sales.list_between(context.require_business(), start_date, end_date, limit)

    def get_sale(self, context, sale_id):
        return require_tenant_resource(self.sales.get_by_id(sale_id), context, label="Sale")

    def sales_summary(self, context, start_date=None, end_date=None):
        sales = self.sales.list_between(context.require_business(), start_date, end_date)

        revenue = Decimal("0.00")
        items_sold = 0
        by_method = {}
        for sale in sales:
            amount = to_money(sale.get("total") or 0)
            revenue += amount
            items_sold += sum(int(i.get("quantity") or 0) for i in sale.get("items") or [])
            bucket = by_method.setdefault(sale.get("payment_method") or "cash", {"count": 0, "revenue": Decimal("0.00")})
            bucket["count"] += 1
            bucket["revenue"] += amount

        count = len(sales)
        return {
            "sales_count": count,
            "revenue": float(revenue),
            "items_sold": items_sold,
            "average_sale": float(to_money(revenue / count)) if count else 0.0,
            "by_payment_method": {
                method: {"count": b["count"], "revenue": float(b["revenue"])}
                for method, b in by_method.items()
            },
        }
