from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "storefront-checkout"
    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/storefront.db"

    # Stripe
    stripe_api_key: str = ""
    stripe_webhook_secret: str = ""

    # Checkout
    default_currency: str = "usd"
    min_charge_amount_cents: int = 50  # Stripe floor of $0.50
    guest_user_tag: str = "guest"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    @property
    def version(self) -> str:
        return "0.1.0"


settings = Settings()
