import os
from datetime import timedelta

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv("JWT_ACCESS_TTL_HOURS", "12")))

    # discount codes
    CODE_TTL_SECONDS = int(os.getenv("CODE_TTL_SECONDS", "300"))
    MANUAL_CODE_LENGTH = int(os.getenv("MANUAL_CODE_LENGTH", "6"))
    MANUAL_CODE_ALPHABET = os.getenv("MANUAL_CODE_ALPHABET", "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789")
    MANUAL_CODE_PREFIX = os.getenv("MANUAL_CODE_PREFIX", "MPM-")
    MANUAL_CODE_ATTEMPTS = int(os.getenv("MANUAL_CODE_ATTEMPTS", "10"))

    # spending limits; the app_settings row wins over DEFAULT_MONTHLY_LIMIT
    DEFAULT_MONTHLY_LIMIT = os.getenv("DEFAULT_MONTHLY_LIMIT", "5000")
    MAX_PURCHASE_AMOUNT = os.getenv("MAX_PURCHASE_AMOUNT", "100000")
    SPEND_BASIS = os.getenv("SPEND_BASIS", "original")  # "original" or "final"

    @staticmethod
    def init_app(app):

        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{os.path.join(app.instance_path, 'app.db')}"
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    LOG_LEVEL = "WARNING"
    JWT_SECRET_KEY = "test-secret-with-enough-length-for-hs256"

    @staticmethod
    def init_app(app):
        # the test fixture provides SQLALCHEMY_DATABASE_URI
        app.config.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite://")
