"""
Mock gateway client for local runs and demos.

Simulates real provider behavior:
  - Configurable latency (default 100ms)
  - Configurable failure rate (default 5%)
  - Timeouts, transient 503s and permanent rejections
  - Provider-side dedup by order_ref and realistic reference numbers
"""

import asyncio
import random
import uuid
from decimal import Decimal
from typing import Optional

from app.config import settings
from app.engine.retry import PermanentError, ProviderError, ProviderTimeoutError
from app.providers.base import GatewayClient, GatewayReceipt

EXTRA_OPERATIONS = frozenset({"reverse", "transaction_details", "notify"})


class MockGatewayClient(GatewayClient):
    """
    In-memory stand-in for a provider.

    Keeps its own ledger of initiated/refunded orders so status checks and
    inquiries answer consistently.
    """

    def __init__(
        self,
        provider: str = "mock",
        failure_rate: Optional[float] = None,
        latency_ms: Optional[int] = None,
        supports_extras: bool = False,
    ):
        self._provider = provider
        self._failure_rate = failure_rate if failure_rate is not None else settings.mock_failure_rate
        self._latency_ms = latency_ms if latency_ms is not None else settings.mock_latency_ms
        self.optional_operations = EXTRA_OPERATIONS if supports_extras else frozenset()
        self._ledger: dict[str, str] = {}
        self._receipts: dict[str, GatewayReceipt] = {}

    @property
    def name(self) -> str:
        return self._provider

    def receipt(self, order_ref: str) -> Optional[GatewayReceipt]:
        return self._receipts.get(order_ref)

    async def _simulate(self) -> None:
        # Simulate network latency
        if self._latency_ms > 0:
            jitter = random.uniform(0.5, 1.5)
            await asyncio.sleep(self._latency_ms * jitter / 1000)

        roll = random.random()

        if roll < self._failure_rate * 0.3:
            raise ProviderTimeoutError(f"Mock {self._provider} read timeout")

        if roll < self._failure_rate * 0.6:
            raise ProviderError(
                message=f"Mock {self._provider} transient error, service temporarily unavailable",
                status_code=503,
                retriable=True,
            )

        if roll < self._failure_rate:
            raise PermanentError(f"Mock {self._provider} rejected the request: invalid terminal")

    def _issue_receipt(self, order_ref: str) -> None:
        self._receipts[order_ref] = GatewayReceipt(
            reference=f"{random.randint(10**11, 10**12 - 1)}",
            approval_code=f"{random.randint(100000, 999999)}",
            gateway_transaction_id=uuid.uuid4().hex[:20].upper(),
        )

    async def initiate(self, amount: Decimal, order_ref: str) -> bool:
        await self._simulate()
        # Dedup by order_ref: initiating an already-paid order is a no-op
        if self._ledger.get(order_ref) != "paid":
            self._issue_receipt(order_ref)
        self._ledger[order_ref] = "paid"
        return True

    async def refund(self, amount: Decimal, order_ref: str) -> bool:
        await self._simulate()
        if self._ledger.get(order_ref) != "paid":
            return False
        self._ledger[order_ref] = "refunded"
        self._issue_receipt(order_ref)
        return True

    async def check_status(self, order_ref: str) -> bool:
        await self._simulate()
        return self._ledger.get(order_ref) == "paid"

    async def cancel(self, order_ref: str) -> bool:
        await self._simulate()
        self._ledger[order_ref] = "cancelled"
        return True

    async def extend(self, order_ref: str) -> bool:
        await self._simulate()
        return order_ref in self._ledger

    async def inquire(self, order_ref: str) -> str:
        await self._simulate()
        state = self._ledger.get(order_ref, "unknown")
        return f"{self._provider.upper()} ref={uuid.uuid4().hex[:10]} state={state}"

    async def reverse(self, order_ref: str) -> bool:
        if not self.supports("reverse"):
            return await super().reverse(order_ref)
        await self._simulate()
        if self._ledger.get(order_ref) != "paid":
            return False
        self._ledger[order_ref] = "reversed"
        self._issue_receipt(order_ref)
        return True

    async def transaction_details(self, order_ref: str) -> str:
        if not self.supports("transaction_details"):
            return await super().transaction_details(order_ref)
        await self._simulate()
        return f"order={order_ref} state={self._ledger.get(order_ref, 'unknown')}"

    async def notify(self, order_ref: str) -> bool:
        if not self.supports("notify"):
            return await super().notify(order_ref)
        await self._simulate()
        return order_ref in self._ledger
