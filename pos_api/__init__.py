from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix
from marshmallow import ValidationError
from flask_smorest import Api
from flask_limiter.errors import RateLimitExceeded

from .utils.extensions import limiter
from .extensions import db, redis_connection, cors
from .config import load_config
from .routes import register_routes
from .services.email_service import DirectMailer, QueuedMailer, load_email_config
from .services.gateways.polar_gateway_service import PolarGatewayService
from .services.identity_provider import IdentityProvider
from .utils.errors import ApiError
from .utils.json_response import ApiJSONProvider
from .utils.error_handlers import (
    handle_api_error,
    handle_permission_error,
    handle_validation_error,
    handle_rate_limit,
    handle_unprocessable_entity,
    handle_unexpected_error,
)


def create_app(config_name=None, store=None, identity_provider=None, billing_gateway=None, mailer=None):
    """
    Build the POS API. Collaborators may be injected (tests pass an in-memory
    store and a recording mailer); otherwise they are built from config.
    """
    app = Flask(__name__)

    #get actual client IP
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_for=1,      # Trust X-Forwarded-For
        x_proto=1,    # Trust X-Forwarded-Proto
        x_host=1,     # Trust X-Forwarded-Host
        x_port=1,     # Trust X-Forwarded-Port
        x_prefix=1    # Trust X-Forwarded-Prefix
    )

    load_config(app, config_name)

    app.json_provider_class = ApiJSONProvider
    app.json = ApiJSONProvider(app)

    api = Api(app)

    # Initialize all extensions
    store = db.init_app(app, store)

    if mailer is None:
        if app.config["MAIL_QUEUE_ENABLED"]:
            redis_connection.init_app(app)
            mailer = QueuedMailer(redis_connection.queue)
        else:
            mailer = DirectMailer(load_email_config(app.config))

    if identity_provider is None:
        identity_provider = IdentityProvider(
            store,
            app.config["SECRET_KEY"],
            id_token_ttl=app.config["ID_TOKEN_TTL_SECONDS"],
            refresh_token_ttl=app.config["REFRESH_TOKEN_TTL_SECONDS"],
            reset_token_ttl=app.config["PASSWORD_RESET_TTL_SECONDS"],
            reset_url=app.config["PASSWORD_RESET_URL"],
            mailer=mailer,
            bcrypt_rounds=app.config["BCRYPT_ROUNDS"],
        )
    app.extensions["identity_provider"] = identity_provider

    if billing_gateway is None:
        billing_gateway = PolarGatewayService(
            app.config["POLAR_ACCESS_TOKEN"],
            app.config["POLAR_CHECKOUT_LINKS"],
            api_base_url=app.config["POLAR_API_BASE_URL"],
            checkout_base_url=app.config["POLAR_CHECKOUT_BASE_URL"],
            webhook_secret=app.config["POLAR_WEBHOOK_SECRET"],
        )
    app.extensions["billing_gateway"] = billing_gateway

    cors.init_app(app, origins=app.config["ALLOWED_ORIGINS"])
    limiter.init_app(app)

    # Register custom error handlers
    app.errorhandler(ApiError)(handle_api_error)
    app.errorhandler(PermissionError)(handle_permission_error)
    app.errorhandler(ValidationError)(handle_validation_error)
    app.errorhandler(RateLimitExceeded)(handle_rate_limit)
    app.register_error_handler(422, handle_unprocessable_entity)
    app.errorhandler(Exception)(handle_unexpected_error)

    # Register all blueprints using `api.register_blueprint(...)`
    register_routes(app, api)

    return app
