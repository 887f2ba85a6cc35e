from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from .errors import ApiError
from .json_response import prepared_response
from .logger import Log


# Handle ApiError and its subclasses
def handle_api_error(error: ApiError):
    Log.info(f"[error_handlers.py][handle_api_error] {error.__class__.__name__}: {error.message}")
    return prepared_response(False, error.status_key, error.message, errors=error.to_errors())


# Handle PermissionError
def handle_permission_error(error):
    return prepared_response(False, "FORBIDDEN", str(error))


# Handle marshmallow ValidationError raised outside flask-smorest argument parsing
def handle_validation_error(error: ValidationError):
    return prepared_response(False, "BAD_REQUEST", "Validation Error", errors=error.messages)


def handle_rate_limit(e):
    # e.description contains whatever you passed as error_message=
    return prepared_response(
        False,
        "TOO_MANY_REQUESTS",
        e.description or "Too many requests, please try again later.",
    )


def handle_unexpected_error(error):
    if isinstance(error, HTTPException):
        return error
    Log.error(f"[error_handlers.py][handle_unexpected_error] {error.__class__.__name__}: {error}", exc_info=True)
    return prepared_response(False, "INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later.")


def handle_unprocessable_entity(error):
    # flask-smorest aborts with 422 when request arguments fail schema validation
    messages = (getattr(error, "data", None) or {}).get("messages")
    return prepared_response(False, "BAD_REQUEST", "Validation Error", errors=messages)
