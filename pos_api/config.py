from dotenv import load_dotenv
load_dotenv()  # Load environment variables from .env file

import os


def _bool(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    """Base configuration class."""
    APP_NAME = os.getenv("APP_NAME", "POS Backend")

    SECRET_KEY = os.getenv("SECRET_KEY", "your_default_secret_key")
    DEBUG = os.getenv("FLASK_DEBUG", "False") == "True"
    TESTING = False

    # ========================================
    # DOCUMENT STORE
    # ========================================
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/?replicaSet=rs0")
    DB_NAME = os.getenv("DB_NAME", "pos_backend")
    SALE_TRANSACTION_MAX_ATTEMPTS = int(os.getenv("SALE_TRANSACTION_MAX_ATTEMPTS", 5))
    SALE_TOTAL_TOLERANCE = os.getenv("SALE_TOTAL_TOLERANCE", "0.01")

    # ========================================
    # IDENTITY / TOKENS
    # ========================================
    ID_TOKEN_TTL_SECONDS = int(os.getenv("ID_TOKEN_TTL_SECONDS", 3600))
    REFRESH_TOKEN_TTL_SECONDS = int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", 60 * 60 * 24 * 30))
    PASSWORD_RESET_TTL_SECONDS = int(os.getenv("PASSWORD_RESET_TTL_SECONDS", 3600))
    PASSWORD_RESET_URL = os.getenv("PASSWORD_RESET_URL", "http://localhost:5173/reset-password")
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

    # ========================================
    # SUBSCRIPTIONS / POLAR
    # ========================================
    DISABLE_PLAN_LIMITS = _bool("DISABLE_PLAN_LIMITS")
    POLAR_ACCESS_TOKEN = os.getenv("POLAR_ACCESS_TOKEN")
    POLAR_API_BASE_URL = os.getenv("POLAR_API_BASE_URL", "https://api.polar.sh/v1")
    POLAR_CHECKOUT_BASE_URL = os.getenv("POLAR_CHECKOUT_BASE_URL", "https://buy.polar.sh")
    POLAR_WEBHOOK_SECRET = os.getenv("POLAR_WEBHOOK_SECRET")
    POLAR_CHECKOUT_LINKS = {
        "starter": os.getenv("POLAR_STARTER_LINK", "polar_cl_yo7F72nGmXb0HaDtWGo5DPY1DqkFxT4xsPTOO0F5qfo"),
        "growth": os.getenv("POLAR_GROWTH_LINK", "polar_cl_OKU05fZlrnTppzBg0ApsbUPV0VjQi1DaMO4g32n2vWi"),
        "pro": os.getenv("POLAR_PRO_LINK", "polar_cl_LbLsX2Qf6hMOw3d1CcwYT5EXQSMTnWfL4x0uO00B28t"),
    }

    # ========================================
    # MAIL / QUEUE
    # ========================================
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    MAIL_QUEUE_ENABLED = _bool("MAIL_QUEUE_ENABLED", "true")
    MAILGUN_API_KEY = os.getenv("MAILGUN_API_KEY")
    MAILGUN_DOMAIN = os.getenv("MAILGUN_DOMAIN")
    MAILGUN_API_HOST = os.getenv("MAILGUN_API_HOST", "api.mailgun.net")
    SENDER_EMAIL = os.getenv("SENDER_EMAIL")
    MAIL_NAME = os.getenv("MAIL_NAME", "POS Backend")

    # ========================================
    # HTTP
    # ========================================
    ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",") if o.strip()]
    RATELIMIT_ENABLED = _bool("RATELIMIT_ENABLED", "true")
    RATELIMIT_STORAGE_URI = os.getenv("RATE_LIMIT_STORAGE_URI", "memory://")

    # flask-smorest
    API_TITLE = "POS Backend API"
    API_VERSION = "v1"
    OPENAPI_VERSION = "3.0.3"
    OPENAPI_URL_PREFIX = "/api"
    OPENAPI_JSON_PATH = "openapi.json"
    OPENAPI_SWAGGER_UI_PATH = "/docs"
    OPENAPI_SWAGGER_UI_URL = "https://cdn.jsdelivr.net/npm/swagger-ui-dist/"


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    MONGO_URI = os.getenv("DEV_MONGO_URI", Config.MONGO_URI)


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SECRET_KEY = "testing-secret-key-with-enough-length"
    MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017/?replicaSet=rs0")
    DB_NAME = "pos_backend_test"
    RATELIMIT_ENABLED = False
    MAIL_QUEUE_ENABLED = False
    BCRYPT_ROUNDS = 4
    DISABLE_PLAN_LIMITS = False
    POLAR_ACCESS_TOKEN = "polar_test_token"
    POLAR_WEBHOOK_SECRET = None


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    MONGO_URI = os.getenv("PROD_MONGO_URI", Config.MONGO_URI)


CONFIGS = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def load_config(app, config_name=None):
    load_dotenv()
    config_name = config_name or os.getenv("APP_ENV", "development")
    app.config.from_object(CONFIGS.get(config_name, DevelopmentConfig))
    return app.config
