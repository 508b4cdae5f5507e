"""Runtime settings, read from the environment (prefix ``SOLESTREAM_``) or ``.env``."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SOLESTREAM_", env_file=".env", extra="ignore")

    environment: str = "development"
    log_dir: str | None = None
    configure_logging: bool = True

    # Storefront backend (cart sync, payment intents, orders, profile)
    api_base_url: str = "http://localhost:3000/api"
    request_timeout: float = Field(10.0, gt=0)

    # Stripe client-side confirmation
    stripe_api_base: str = "https://api.stripe.com/v1"
    stripe_publishable_key: str = ""
    payment_return_url: str = "http://localhost:3000/checkout/success"

    # Adapter selection: "fake" for development/tests, "http"/"stripe" for real collaborators
    cart_gateway: str = "fake"
    payment_gateway: str = "fake"
    order_api: str = "fake"
    profile_gateway: str = "fake"

    # Pricing
    free_shipping_threshold: float = Field(100.0, ge=0)
    flat_shipping_fee: float = Field(9.99, ge=0)
    tax_rate: float = Field(0.08, ge=0, lt=1)

    # Cart persistence and reconciliation
    cart_storage_path: str = ".solestream/cart-storage.json"
    auto_sync_cart: bool = True
    reconcile_policy: str = Field("replace", pattern="^(replace|merge)$")

    # Order submission after a captured payment
    order_submit_attempts: int = Field(3, ge=1)
    order_submit_retry_delay: float = Field(0.5, ge=0)


@lru_cache
def get_settings() -> Settings:
    return Settings()
