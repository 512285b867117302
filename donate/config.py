import os
from dataclasses import dataclass


def _split_origins(raw: str):
    if raw.strip() == "*":
        return "*"
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_price_id: str = ""
    stripe_product_id: str = ""
    stripe_meter_event_name: str = "donation_amount"
    stripe_currency: str = "usd"
    stripe_api_version: str = "2024-06-20"
    stripe_max_network_retries: int = 2
    cors_origins: object = "*"
    log_level: str = "INFO"
    max_content_length: int = 1024 * 1024
    port: int = 5000

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            stripe_secret_key=env.get("STRIPE_SECRET_KEY", ""),
            stripe_publishable_key=env.get("STRIPE_PUBLISHABLE_KEY", ""),
            stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET", ""),
            stripe_price_id=env.get("STRIPE_PRICE_ID", ""),
            stripe_product_id=env.get("STRIPE_PRODUCT_ID", ""),
            stripe_meter_event_name=env.get("STRIPE_METER_EVENT_NAME", "donation_amount"),
            stripe_currency=env.get("STRIPE_CURRENCY", "usd"),
            stripe_api_version=env.get("STRIPE_API_VERSION", "2024-06-20"),
            stripe_max_network_retries=int(env.get("STRIPE_MAX_NETWORK_RETRIES", "2")),
            cors_origins=_split_origins(env.get("CORS_ORIGINS", "*")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            max_content_length=int(env.get("MAX_CONTENT_LENGTH", str(1024 * 1024))),
            port=int(env.get("PORT", "5000")),
        )
