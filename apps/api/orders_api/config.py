from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_APP_MODES = {"demo", "pilot", "production"}


class Settings(BaseSettings):
    app_name: str = "Marketplace Orders Service"
    app_mode: str = Field(default="pilot", validation_alias="ORDERS_APP_MODE")

    database_url: str = Field(
        default="sqlite+pysqlite:///./orders.db",
        validation_alias="ORDERS_DATABASE_URL",
    )
    auto_create_schema: bool = Field(default=True, validation_alias="ORDERS_AUTO_CREATE_SCHEMA")
    require_migrations: bool = Field(default=False, validation_alias="ORDERS_REQUIRE_MIGRATIONS")
    cors_allowed_origins: str = "http://localhost:3000,http://localhost:4000"
    testing: bool = Field(default=False, validation_alias="ORDERS_TESTING")

    client_url: str = "http://localhost:3000"

    payment_gateway_base_url: str = "https://api.flutterwave.com/v3"
    payment_gateway_secret_key: str = ""
    payment_gateway_timeout_s: float = 10.0
    payment_gateway_max_retries: int = 0
    payment_gateway_backoff_s: float = 0.2

    upload_base_url: str = "https://api.cloudinary.com/v1_1"
    upload_cloud_name: str = ""
    upload_api_key: str = ""
    upload_api_secret: str = ""
    upload_timeout_s: float = 30.0

    redis_url: str = ""
    redis_socket_timeout_s: float = 2.0

    seller_updates_exchange: str = "marketplace-seller-updates"
    seller_updates_routing_key: str = "user-seller"
    buyer_updates_exchange: str = "marketplace-buyer-updates"
    buyer_updates_routing_key: str = "user-buyer"
    order_email_exchange: str = "marketplace-order-exchange"
    order_email_routing_key: str = "order-email"
    review_queue_name: str = "order-review-queue"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("app_mode")
    @classmethod
    def validate_app_mode(cls, value: str) -> str:
        mode = value.lower().strip()
        if mode not in ALLOWED_APP_MODES:
            allowed = ", ".join(sorted(ALLOWED_APP_MODES))
            raise ValueError(f"ORDERS_APP_MODE must be one of: {allowed}")
        return mode

    @field_validator("payment_gateway_max_retries")
    @classmethod
    def validate_max_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("payment_gateway_max_retries must be >= 0")
        return value


settings = Settings()


def is_production_mode() -> bool:
    return settings.app_mode == "production"


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]


def order_url(order_id: str) -> str:
    return f"{settings.client_url.rstrip('/')}/orders/{order_id}/activities"


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if settings.testing:
        return
    if not settings.payment_gateway_secret_key.strip():
        raise RuntimeError(
            "PAYMENT_GATEWAY_SECRET_KEY must be set when ORDERS_TESTING is false"
        )
    if is_production_mode() and _is_sqlite_url(settings.database_url):
        raise RuntimeError("ORDERS_DATABASE_URL must not use sqlite in ORDERS_APP_MODE=production")
    if is_production_mode() and settings.auto_create_schema:
        raise RuntimeError(
            "ORDERS_AUTO_CREATE_SCHEMA must be disabled in ORDERS_APP_MODE=production"
        )


def _is_sqlite_url(database_url: str) -> bool:
    value = database_url.strip().lower()
    return value.startswith("sqlite")
