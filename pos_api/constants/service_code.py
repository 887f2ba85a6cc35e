HTTP_STATUS_CODES = {
    "OK": 200,
    "CREATED": 201,
    "NO_CONTENT": 204,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "CONFLICT": 409,
    "VALIDATION_ERROR": 422,
    "TOO_MANY_REQUESTS": 429,
    "INTERNAL_SERVER_ERROR": 500,
    "BAD_GATEWAY": 502,
    "SERVICE_UNAVAILABLE": 503,
}

ERROR_MESSAGES = {
    "VALIDATION_FAILED": "Validation failed. Please check your inputs.",
    "UNAUTHORIZED_ACCESS": "You are not authorized to access this resource.",
    "RESOURCE_NOT_FOUND": "The requested resource could not be found.",
    "SERVER_ERROR": "An unexpected error occurred. Please try again later.",
    "NO_BUSINESS": "No business associated with user",
}

AUTHENTICATION_MESSAGES = {
    "AUTHENTICATION_REQUIRED": "Authentication Required",
    "TOKEN_EXPIRED": "Token expired",
    "INVALID_TOKEN": "Invalid token",
    "REFRESH_TOKEN_NOTE": "Please refresh the ID token on the client to get the new permissions.",
}

# Principal roles carried in token claims
ROLES = {
    "OWNER": "owner",
    "MANAGER": "manager",
    "STAFF": "staff",
    "USER": "user",
}

MEMBER_ROLES = (ROLES["MANAGER"], ROLES["STAFF"])

STATUS = {
    "ACTIVE": "active",
    "DELETED": "deleted",
}

SALE_STATUS = {
    "COMPLETED": "completed",
}

TRANSACTION_STATUS = {
    "PENDING": "pending",
    "COMPLETED": "completed",
}

SUBSCRIPTION_STATUS = {
    "ACTIVE": "active",
    "CANCELED": "canceled",
}

PAYMENT_METHODS = ["cash", "card", "mobile_money", "bank_transfer", "other"]

# upper bounds for sale amounts and line quantities
MAX_SALE_AMOUNT = 1_000_000_000
MAX_LINE_QUANTITY = 100_000

COLLECTIONS = {
    "USERS": "users",
    "PRINCIPALS": "auth_principals",
    "BUSINESSES": "businesses",
    "CATEGORIES": "categories",
    "PRODUCTS": "products",
    "SALES": "sales",
    "TRANSACTIONS": "transactions",
}
