"""Application configuration via environment variables."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ProviderSettings(BaseModel):
    """Credentials and endpoints for one external payment provider."""

    merchant_id: str
    api_key: str = ""
    base_url: str
    callback_url: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


def _default_providers() -> dict[str, ProviderSettings]:
    return {
        "sadad": ProviderSettings(
            merchant_id="SADAD-123456789",
            api_key="sadad-dev-key",
            base_url="https://sadad.shaparak.ir/api/v1",
            callback_url="http://localhost:8000/callbacks/sadad",
        ),
        "sep": ProviderSettings(
            merchant_id="SEP-987654321",
            api_key="sep-dev-key",
            base_url="https://sep.shaparak.ir/api",
            callback_url="http://localhost:8000/callbacks/sep",
        ),
    }


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./pos_payments.db"
    log_level: str = "INFO"

    # Shared retry / timeout policy (seconds)
    max_retry_attempts: int = 3
    retry_delay: float = 2.0
    connect_timeout: float = 3.0
    read_timeout: float = 7.0
    retry_refunds: bool = False

    max_transaction_amount: Decimal = Decimal("10000000")

    gateway_mode: str = "mock"  # "mock" or "http"
    mock_failure_rate: float = 0.05
    mock_latency_ms: int = 100

    providers: dict[str, ProviderSettings] = Field(default_factory=_default_providers)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    def provider_settings(self, provider: str) -> Optional[ProviderSettings]:
        """Look up a provider's settings by id (case-insensitive)."""
        key = getattr(provider, "value", provider)
        return self.providers.get(str(key).lower())


settings = Settings()
