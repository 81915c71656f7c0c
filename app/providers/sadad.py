"""Sadad (sadad.shaparak.ir) integration."""

from typing import Any

from app.models.enums import PaymentProvider
from app.providers.adapter import ProviderAdapter
from app.providers.base import GatewayReceipt
from app.providers.http_client import HttpGatewayClient, optional_text


class SadadHttpClient(HttpGatewayClient):
    """
    Sadad replies with ``{"ResCode": 0, "Description": ...}``; 0 means OK.

    Accepted payments and refunds also carry ``RetrivalRefNo`` (the bank
    reference), ``SystemTraceNo`` (the approval trace) and ``Token``.
    """

    provider_name = PaymentProvider.SADAD.value
    paths = {
        "initiate": "/payment/request",
        "refund": "/payment/refund",
        "status": "/payment/verify",
        "cancel": "/payment/cancel",
        "extend": "/payment/extend",
        "inquire": "/payment/inquiry",
    }

    def _accepted(self, data: dict[str, Any]) -> bool:
        return str(data.get("ResCode", "")).strip() == "0"

    def _describe(self, data: dict[str, Any]) -> str:
        code = data.get("ResCode", "?")
        desc = data.get("Description") or ""
        return f"ResCode={code} {desc}".strip()

    def _identifiers(self, data: dict[str, Any]) -> GatewayReceipt:
        return GatewayReceipt(
            reference=optional_text(data.get("RetrivalRefNo")),
            approval_code=optional_text(data.get("SystemTraceNo")),
            gateway_transaction_id=optional_text(data.get("Token")),
        )


class SadadAdapter(ProviderAdapter):
    provider = PaymentProvider.SADAD
