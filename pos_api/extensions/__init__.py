# pos_api/extensions/__init__.py

from flask import current_app
from flask_cors import CORS
from .db import db, redis_connection, get_store

cors = CORS()


def get_identity_provider():
    return current_app.extensions["identity_provider"]


def get_billing_gateway():
    return current_app.extensions["billing_gateway"]


__all__ = [
    "cors",
    "db",
    "redis_connection",
    "get_store",
    "get_identity_provider",
    "get_billing_gateway",
]
