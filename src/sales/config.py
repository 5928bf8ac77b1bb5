"""Business settings for the Sales domain.

Values come from the environment (prefix ``GESCOM_``) or a local ``.env``
file. Protean's own infrastructure configuration (databases, brokers) stays
in the Protean config selected by ``PROTEAN_ENV``.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SalesSettings(BaseSettings):
    payment_terms_days: int = Field(default=30, ge=0)
    default_vat_rate: float = Field(default=20.0, ge=0, le=100)
    order_number_prefix: str = "CMD"
    invoice_number_prefix: str = "FACT"
    numbering_max_attempts: int = Field(default=50, ge=1)
    log_dir: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_prefix="GESCOM_", extra="ignore")


settings = SalesSettings()
