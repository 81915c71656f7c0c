"""
HTTP/JSON gateway client.

Shared transport for providers reached over HTTPS. Subclasses only declare
their endpoint paths and how to read the provider's reply. Transport
failures are translated into the retry module's exceptions so the adapter
above never sees an httpx error.
"""

import logging
from abc import abstractmethod
from decimal import Decimal
from typing import Any, Optional

import httpx

from app.config import ProviderSettings
from app.engine.retry import (
    RETRIABLE_STATUS_CODES,
    PermanentError,
    ProviderError,
    ProviderTimeoutError,
)
from app.providers.base import GatewayClient, GatewayReceipt

logger = logging.getLogger("pos_payments.http")

CONNECT_TIMEOUT = 3.0
READ_TIMEOUT = 7.0


class HttpGatewayClient(GatewayClient):
    """Base class for JSON-over-HTTPS providers."""

    provider_name: str = "http"
    paths: dict[str, str] = {}

    def __init__(
        self,
        config: ProviderSettings,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._config = config
        self._receipts: dict[str, GatewayReceipt] = {}
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
            headers={
                "Content-Type": "application/json",
                "Accept-Language": "en-US",
                "Authorization": f"Bearer {config.api_key}",
            },
            transport=transport,
        )

    @property
    def name(self) -> str:
        return self.provider_name

    async def aclose(self) -> None:
        await self._client.aclose()

    def _payload(self, order_ref: str, amount: Optional[Decimal] = None) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "merchantId": self._config.merchant_id,
            "orderId": order_ref,
        }
        if amount is not None:
            payload["amount"] = str(amount)
        if self._config.callback_url:
            payload["callbackUrl"] = self._config.callback_url
        return payload

    async def _post(self, operation: str, payload: dict[str, Any]) -> dict[str, Any]:
        path = self.paths.get(operation)
        if path is None:
            raise PermanentError(f"{self.name} has no endpoint for '{operation}'")

        try:
            response = await self._client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.name} {operation} timed out: {e}") from e
        except httpx.TransportError as e:
            raise ProviderError(f"{self.name} {operation} connection failed: {e}", status_code=503) from e

        logger.debug("%s %s -> %d", self.name, operation, response.status_code)

        if response.status_code in RETRIABLE_STATUS_CODES or response.status_code >= 500:
            raise ProviderError(
                f"{self.name} {operation} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise PermanentError(
                f"{self.name} {operation} rejected with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            # The provider may have acted on the request; treat as ambiguous
            raise ProviderError(f"{self.name} {operation} returned malformed JSON", status_code=502) from e
        if not isinstance(data, dict):
            raise ProviderError(f"{self.name} {operation} returned unexpected payload", status_code=502)
        return data

    @abstractmethod
    def _accepted(self, data: dict[str, Any]) -> bool:
        """True when the provider's reply signals success."""

    @abstractmethod
    def _describe(self, data: dict[str, Any]) -> str:
        """Human-readable status text from a reply."""

    @abstractmethod
    def _identifiers(self, data: dict[str, Any]) -> GatewayReceipt:
        """Provider reference / approval / transaction ids from a reply."""

    def receipt(self, order_ref: str) -> Optional[GatewayReceipt]:
        return self._receipts.get(order_ref)

    async def _settle_call(self, operation: str, order_ref: str, amount: Optional[Decimal] = None) -> bool:
        """Post a money-moving call and remember the identifiers of an accepted reply."""
        data = await self._post(operation, self._payload(order_ref, amount))
        accepted = self._accepted(data)
        if accepted:
            self._receipts[order_ref] = self._identifiers(data)
        return accepted

    async def initiate(self, amount: Decimal, order_ref: str) -> bool:
        return await self._settle_call("initiate", order_ref, amount)

    async def refund(self, amount: Decimal, order_ref: str) -> bool:
        return await self._settle_call("refund", order_ref, amount)

    async def check_status(self, order_ref: str) -> bool:
        return self._accepted(await self._post("status", self._payload(order_ref)))

    async def cancel(self, order_ref: str) -> bool:
        return self._accepted(await self._post("cancel", self._payload(order_ref)))

    async def extend(self, order_ref: str) -> bool:
        return self._accepted(await self._post("extend", self._payload(order_ref)))

    async def inquire(self, order_ref: str) -> str:
        return self._describe(await self._post("inquire", self._payload(order_ref)))


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
