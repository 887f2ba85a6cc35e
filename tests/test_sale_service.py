"""
Sale transaction engine: atomicity, no oversell under concurrency, duplicate
lines, tenant checks and the total policy.
"""
import threading

import pytest

from pos_api.constants.service_code import COLLECTIONS
from pos_api.models.business_model import Business
from pos_api.models.product_model import Product
from pos_api.services.pos.sale_service import SaleService
from pos_api.services.tenant_service import TenantContext
from pos_api.store import InMemoryDocumentStore, TransactionConflict
from pos_api.utils.errors import (
    AuthorizationError,
    ConflictError,
    CrossTenantAccess,
    InsufficientStock,
    ProductNotFound,
    SaleAbortedError,
    ValidationError,
)

SALES = COLLECTIONS["SALES"]


@pytest.fixture
def mem():
    return InMemoryDocumentStore(retry_backoff=0.001)


@pytest.fixture
def business(mem):
    return Business(mem).create_business("owner-1", "Test Cafe")


@pytest.fixture
def context(business):
    return TenantContext(uid="owner-1", role="owner", business_id=business["id"])


@pytest.fixture
def service(mem):
    return SaleService(mem, max_attempts=100)


def make_product(mem, business_id, stock, price="5.00", name="Latte"):
    return Product(mem).create_product(business_id, name, price, stock=stock)


def stock_of(mem, product_id):
    return Product(mem).get_by_id(product_id)["stock"]


class TestAtomicity:

    def test_one_failing_line_aborts_the_whole_sale(self, mem, service, context):
        """No stock moves and no sale is written when any line exceeds stock."""
        a = make_product(mem, context.business_id, stock=10)
        b = make_product(mem, context.business_id, stock=3, name="Muffin")

        with pytest.raises(SaleAbortedError) as exc:
            service.create_sale(context, [
                {"product_id": a["id"], "quantity": 2},
                {"product_id": b["id"], "quantity": 5},
            ])

        failure = exc.value.failures[0]
        assert isinstance(failure, InsufficientStock)
        assert failure.available == 3 and failure.requested == 5
        assert exc.value.status_key == "CONFLICT"
        assert stock_of(mem, a["id"]) == 10
        assert stock_of(mem, b["id"]) == 3
        assert mem.count(SALES) == 0

    def test_every_failing_line_is_reported(self, mem, service, context):
        a = make_product(mem, context.business_id, stock=1)

        with pytest.raises(SaleAbortedError) as exc:
            service.create_sale(context, [
                {"product_id": "does-not-exist", "quantity": 1},
                {"product_id": a["id"], "quantity": 2},
            ])

        reasons = [f["reason"] for f in exc.value.to_errors()]
        assert reasons == ["product_not_found", "insufficient_stock"]
        assert exc.value.status_key == "NOT_FOUND"

    def test_exhausted_retries_raise_conflict_and_write_nothing(self, context):
        class AlwaysConflicting(InMemoryDocumentStore):
            def _commit_transaction(self, txn):
                raise TransactionConflict("forced")

        mem = AlwaysConflicting(retry_backoff=0)
        mem.set(COLLECTIONS["BUSINESSES"], context.business_id, {"owner_id": context.uid})
        product = make_product(mem, context.business_id, stock=5)

        with pytest.raises(ConflictError):
            SaleService(mem, max_attempts=3).create_sale(context, [{"product_id": product["id"], "quantity": 1}])

        assert mem.transaction_attempts == 3
        assert stock_of(mem, product["id"]) == 5
        assert mem.count(SALES) == 0


class TestConcurrency:

    def _race(self, service, context, product_id, quantity, workers):
        barrier = threading.Barrier(workers)
        results = []
        lock = threading.Lock()

        def sell():
            barrier.wait()
            try:
                service.create_sale(context, [{"product_id": product_id, "quantity": quantity}])
                outcome = "ok"
            except SaleAbortedError as e:
                outcome = e.failures[0]
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=sell) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return results

    def test_two_sales_for_the_last_units(self, mem, service, context):
        """Stock 5, two concurrent sales of 3: exactly one wins."""
        product = make_product(mem, context.business_id, stock=5)

        results = self._race(service, context, product["id"], quantity=3, workers=2)

        assert results.count("ok") == 1
        failures = [r for r in results if r != "ok"]
        assert len(failures) == 1 and isinstance(failures[0], InsufficientStock)
        assert stock_of(mem, product["id"]) == 2
        assert mem.count(SALES) == 1

    def test_no_oversell_with_many_workers(self, mem, service, context):
        stock, quantity, workers = 7, 2, 10
        product = make_product(mem, context.business_id, stock=stock)

        results = self._race(service, context, product["id"], quantity=quantity, workers=workers)

        assert results.count("ok") == stock // quantity
        assert stock_of(mem, product["id"]) == stock - (stock // quantity) * quantity
        assert mem.count(SALES) == stock // quantity


class TestLines:

    def test_duplicate_lines_are_merged(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10)

        sale = service.create_sale(context, [
            {"product_id": product["id"], "quantity": 2},
            {"product_id": product["id"], "quantity": 3},
        ])

        assert stock_of(mem, product["id"]) == 5
        assert len(sale["items"]) == 1
        assert sale["items"][0]["quantity"] == 5
        assert sale["total"] == 25.0

    def test_duplicate_lines_with_conflicting_prices_are_rejected(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10)

        with pytest.raises(ValidationError):
            service.create_sale(context, [
                {"product_id": product["id"], "quantity": 1, "price": "5.00"},
                {"product_id": product["id"], "quantity": 1, "price": "4.00"},
            ])
        assert stock_of(mem, product["id"]) == 10

    def test_catalog_price_is_used_when_line_has_none(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10, price="3.50")

        sale = service.create_sale(context, [{"product_id": product["id"], "quantity": 3}])

        assert sale["items"][0]["price"] == 3.5
        assert sale["total"] == 10.5
        assert sale["payment_method"] == "cash"
        assert sale["user_id"] == context.uid

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, None])
    def test_invalid_quantity_is_rejected(self, service, context, quantity):
        with pytest.raises(ValidationError):
            service.create_sale(context, [{"product_id": "p1", "quantity": quantity}])

    def test_empty_sale_is_rejected(self, service, context):
        with pytest.raises(ValidationError):
            service.create_sale(context, [])


class TestTenantChecks:

    def test_product_of_another_business_is_refused(self, mem, service, context):
        other = Business(mem).create_business("owner-2", "Beta Bakery")
        foreign = make_product(mem, other["id"], stock=10)

        with pytest.raises(SaleAbortedError) as exc:
            service.create_sale(context, [{"product_id": foreign["id"], "quantity": 1}])

        assert isinstance(exc.value.failures[0], CrossTenantAccess)
        assert exc.value.status_key == "FORBIDDEN"
        assert stock_of(mem, foreign["id"]) == 10

    def test_unknown_product(self, service, context):
        with pytest.raises(SaleAbortedError) as exc:
            service.create_sale(context, [{"product_id": "missing", "quantity": 1}])
        assert isinstance(exc.value.failures[0], ProductNotFound)

    def test_caller_without_business(self, service):
        with pytest.raises(AuthorizationError):
            service.create_sale(TenantContext(uid="u-1"), [{"product_id": "p", "quantity": 1}])

    def test_get_sale_of_another_business(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10)
        sale = service.create_sale(context, [{"product_id": product["id"], "quantity": 1}])

        intruder = TenantContext(uid="owner-2", role="owner", business_id="other-business")
        with pytest.raises(AuthorizationError):
            service.get_sale(intruder, sale["id"])


class TestTotalPolicy:

    def test_matching_total_within_tolerance(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10)

        sale = service.create_sale(
            context, [{"product_id": product["id"], "quantity": 2, "price": "5.00"}], total="10.01"
        )
        assert sale["total"] == 10.0

    def test_mismatched_total_rejects_without_writing(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10)

        with pytest.raises(ValidationError) as exc:
            service.create_sale(context, [{"product_id": product["id"], "quantity": 2}], total="12.00")

        assert exc.value.errors["expected_total"] == 10.0
        assert stock_of(mem, product["id"]) == 10
        assert mem.count(SALES) == 0

    @pytest.mark.parametrize("total", [1e30, "1e30", "NaN", "abc", -5])
    def test_unusable_total_is_rejected(self, mem, service, context, total):
        product = make_product(mem, context.business_id, stock=10)

        with pytest.raises(ValidationError):
            service.create_sale(context, [{"product_id": product["id"], "quantity": 1}], total=total)

        assert stock_of(mem, product["id"]) == 10
        assert mem.count(SALES) == 0

    def test_oversized_line_price_is_rejected(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10)

        with pytest.raises(ValidationError):
            service.create_sale(context, [{"product_id": product["id"], "quantity": 1, "price": "1e30"}])
        assert mem.count(SALES) == 0

    def test_oversized_catalog_price_aborts_inside_the_transaction(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=10)
        mem.update(COLLECTIONS["PRODUCTS"], product["id"], {"price": 1e30})

        with pytest.raises(ValidationError):
            service.create_sale(context, [{"product_id": product["id"], "quantity": 2}])

        assert stock_of(mem, product["id"]) == 10
        assert mem.count(SALES) == 0

    def test_merged_quantity_is_bounded(self, service, context):
        with pytest.raises(ValidationError):
            service.create_sale(context, [
                {"product_id": "p1", "quantity": 60_000},
                {"product_id": "p1", "quantity": 60_000},
            ])


class TestSummary:

    def test_summary_groups_by_payment_method(self, mem, service, context):
        product = make_product(mem, context.business_id, stock=20, price="2.00")
        service.create_sale(context, [{"product_id": product["id"], "quantity": 1}], payment_method="cash")
        service.create_sale(context, [{"product_id": product["id"], "quantity": 3}], payment_method="card")

        summary = service.sales_summary(context)

        assert summary["sales_count"] == 2
        assert summary["revenue"] == 8.0
        assert summary["items_sold"] == 4
        assert summary["average_sale"] == 4.0
        assert summary["by_payment_method"]["card"] == {"count": 1, "revenue": 6.0}
