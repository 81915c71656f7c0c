"""
Builds the provider registry at startup.

Each configured provider id maps to a ProviderSettings entry; enabled
providers get an adapter wrapping either the real HTTP client or the mock,
depending on ``gateway_mode``.
"""

import logging

from app.config import Settings
from app.engine.retry import RetryPolicy
from app.models.enums import PaymentProvider
from app.providers.adapter import ProviderAdapter
from app.providers.base import GatewayClient
from app.providers.mock_provider import MockGatewayClient
from app.providers.sadad import SadadAdapter, SadadHttpClient
from app.providers.sep import SepAdapter, SepHttpClient

logger = logging.getLogger("pos_payments.providers")

ADAPTERS: dict[PaymentProvider, tuple[type[ProviderAdapter], type]] = {
    PaymentProvider.SADAD: (SadadAdapter, SadadHttpClient),
    PaymentProvider.SEP: (SepAdapter, SepHttpClient),
}


def build_client(provider: PaymentProvider, settings: Settings) -> GatewayClient:
    config = settings.provider_settings(provider)
    if settings.gateway_mode == "http":
        _, client_cls = ADAPTERS[provider]
        return client_cls(
            config,
            connect_timeout=settings.connect_timeout,
            read_timeout=settings.read_timeout,
        )
    return MockGatewayClient(
        provider=provider.value,
        failure_rate=settings.mock_failure_rate,
        latency_ms=settings.mock_latency_ms,
        supports_extras=provider == PaymentProvider.SEP,
    )


def build_adapters(settings: Settings) -> dict[PaymentProvider, ProviderAdapter]:
    """Create one adapter per enabled, known provider."""
    policy = RetryPolicy.from_settings(settings)
    adapters: dict[PaymentProvider, ProviderAdapter] = {}

    for key, config in settings.providers.items():
        try:
            provider = PaymentProvider(key.lower())
        except ValueError:
            logger.warning("Ignoring unknown provider in settings: %s", key)
            continue
        if provider not in ADAPTERS:
            logger.warning("No adapter for provider %s", provider.value)
            continue
        if not config.enabled:
            logger.info("Provider %s disabled (no API key)", provider.value)
            continue

        adapter_cls, _ = ADAPTERS[provider]
        adapters[provider] = adapter_cls(
            build_client(provider, settings),
            policy=policy,
            retry_refunds=settings.retry_refunds,
        )
        logger.info("Provider %s enabled (%s mode)", provider.value, settings.gateway_mode)

    return adapters
