"""
Sep (sep.shaparak.ir) integration.

Besides the common operations Sep can reverse a transaction, return its
details and resend the merchant notification.
"""

from typing import Any

from app.models.enums import PaymentProvider
from app.providers.adapter import ProviderAdapter
from app.providers.base import GatewayReceipt
from app.providers.http_client import HttpGatewayClient, optional_text


class SepHttpClient(HttpGatewayClient):
    """Sep replies with ``{"status": 1, "errorCode": .., "errorDesc": ..}``."""

    provider_name = PaymentProvider.SEP.value
    optional_operations = frozenset({"reverse", "transaction_details", "notify"})
    paths = {
        "initiate": "/onlinepg/token",
        "refund": "/refund",
        "status": "/verifyTransaction",
        "cancel": "/cancel",
        "extend": "/extend",
        "inquire": "/inquiry",
        "reverse": "/reverseTransaction",
        "details": "/transactionDetails",
        "notify": "/notify",
    }

    def _accepted(self, data: dict[str, Any]) -> bool:
        return str(data.get("status", "")).strip() == "1"

    def _describe(self, data: dict[str, Any]) -> str:
        if self._accepted(data):
            return str(data.get("description") or "OK")
        return f"error {data.get('errorCode', '?')}: {data.get('errorDesc', '')}".strip()

    def _identifiers(self, data: dict[str, Any]) -> GatewayReceipt:
        return GatewayReceipt(
            reference=optional_text(data.get("RRN")),
            approval_code=optional_text(data.get("TraceNo")),
            gateway_transaction_id=optional_text(data.get("RefNum")),
        )

    async def reverse(self, order_ref: str) -> bool:
        return await self._settle_call("reverse", order_ref)

    async def transaction_details(self, order_ref: str) -> str:
        return self._describe(await self._post("details", self._payload(order_ref)))

    async def notify(self, order_ref: str) -> bool:
        return self._accepted(await self._post("notify", self._payload(order_ref)))


class SepAdapter(ProviderAdapter):
    provider = PaymentProvider.SEP
