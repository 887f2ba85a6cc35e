# pos_api/utils/errors.py
"""
API error taxonomy. Every error maps to a key of HTTP_STATUS_CODES and is
rendered by the app-level handler through prepared_response().
"""


class ApiError(Exception):
    status_key = "INTERNAL_SERVER_ERROR"

    def __init__(self, message, errors=None, status_key=None):
        super().__init__(message)
        self.message = message
        self.errors = errors
        if status_key:
            self.status_key = status_key

    def to_errors(self):
        return self.errors


class ValidationError(ApiError):
    """Missing or malformed input. Never retried."""
    status_key = "BAD_REQUEST"


class AuthenticationError(ApiError):
    status_key = "UNAUTHORIZED"


class AuthorizationError(ApiError):
    """Valid principal, wrong tenant or role."""
    status_key = "FORBIDDEN"


class NotFoundError(ApiError):
    status_key = "NOT_FOUND"


class ConflictError(ApiError):
    """Transaction snapshot kept getting invalidated; safe for the caller to retry."""
    status_key = "SERVICE_UNAVAILABLE"


class UpstreamError(ApiError):
    """The identity or billing provider rejected or failed a call."""
    status_key = "BAD_GATEWAY"

    def __init__(self, message, upstream_status=None, upstream_message=None, status_key=None):
        errors = None
        if upstream_status is not None or upstream_message is not None:
            errors = [{"upstream_status": upstream_status, "upstream_message": upstream_message}]
        super().__init__(message, errors=errors, status_key=status_key)
        self.upstream_status = upstream_status
        self.upstream_message = upstream_message


class PlanLimitError(ApiError):
    status_key = "FORBIDDEN"

    def __init__(self, code, message, meta=None):
        super().__init__(message, errors=meta)
        self.code = code
        self.meta = meta or {}

    def to_errors(self):
        return dict(self.meta, code=self.code)


# ---------------- Sale line failures ----------------

class SaleLineError(Exception):
    reason = "invalid_line"
    status_key = "BAD_REQUEST"

    def __init__(self, product_id, message):
        super().__init__(message)
        self.product_id = product_id
        self.message = message

    def to_dict(self):
        return {"product_id": self.product_id, "reason": self.reason, "message": self.message}


class ProductNotFound(SaleLineError):
    reason = "product_not_found"
    status_key = "NOT_FOUND"

    def __init__(self, product_id):
        super().__init__(product_id, f"Product {product_id} not found")


class CrossTenantAccess(SaleLineError):
    reason = "cross_tenant_access"
    status_key = "FORBIDDEN"

    def __init__(self, product_id):
        super().__init__(product_id, f"Product {product_id} does not belong to your business")


class InsufficientStock(SaleLineError):
    reason = "insufficient_stock"
    status_key = "CONFLICT"

    def __init__(self, product_id, available, requested, product_name=None):
        label = product_name or product_id
        super().__init__(
            product_id,
            f"Insufficient stock for product: {label} (available {available}, requested {requested})",
        )
        self.available = available
        self.requested = requested

    def to_dict(self):
        data = super().to_dict()
        data.update(available=self.available, requested=self.requested)
        return data


class SaleAbortedError(ApiError):
    """
    Raised when any line of a sale fails validation. Nothing was written.
    The status follows the first failing line.
    """

    def __init__(self, failures):
        self.failures = list(failures)
        first = self.failures[0]
        super().__init__("Transaction failed", status_key=first.status_key)

    def to_errors(self):
        return [failure.to_dict() for failure in self.failures]
