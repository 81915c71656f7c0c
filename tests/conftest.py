"""Shared test fixtures."""

import asyncio
import time
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.engine.orchestrator import PaymentOrchestrator
from app.engine.retry import RetryPolicy
from app.models.enums import PaymentProvider
from app.models.payment import Base, Order
from app.providers.base import GatewayClient, GatewayReceipt
from app.providers.sadad import SadadAdapter
from app.providers.sep import SepAdapter


class FakeGatewayClient(GatewayClient):
    """
    Scripted gateway client.

    Each operation returns a configured answer; ``fail`` makes an operation
    raise instead (every call, or only the first ``times`` calls). Calls are
    recorded with their monotonic timestamps. ``reverse`` is only offered
    when passed in ``extras``; ``issued`` is the receipt handed out for
    accepted money-moving calls.
    """

    def __init__(
        self,
        provider: str = "sadad",
        latency: float = 0.0,
        extras: frozenset = frozenset(),
        issued: Optional[GatewayReceipt] = None,
        **answers,
    ):
        self._provider = provider
        self.optional_operations = frozenset(extras)
        self.issued = issued
        self._receipts: dict[str, GatewayReceipt] = {}
        self.latency = latency
        self.answers = {
            "initiate": True,
            "refund": True,
            "check_status": True,
            "cancel": True,
            "extend": True,
            "inquire": "ResCode=0 Completed",
            "reverse": True,
        }
        self.answers.update(answers)
        self._failures: dict[str, tuple[Exception, Optional[int]]] = {}
        self.calls: list[tuple[str, float]] = []

    @property
    def name(self) -> str:
        return self._provider

    def fail(self, operation: str, error: Exception, times: Optional[int] = None) -> None:
        self._failures[operation] = (error, times)

    def heal(self, operation: str) -> None:
        self._failures.pop(operation, None)

    def count(self, operation: str) -> int:
        return sum(1 for op, _ in self.calls if op == operation)

    def times(self, operation: str) -> list[float]:
        return [t for op, t in self.calls if op == operation]

    async def _answer(self, operation: str):
        self.calls.append((operation, time.monotonic()))
        if self.latency:
            await asyncio.sleep(self.latency)
        if operation in self._failures:
            error, remaining = self._failures[operation]
            if remaining is None:
                raise error
            if remaining > 0:
                self._failures[operation] = (error, remaining - 1)
                raise error
        return self.answers[operation]

    def receipt(self, order_ref):
        return self._receipts.get(order_ref)

    async def _money(self, operation: str, order_ref: str):
        accepted = await self._answer(operation)
        if accepted and self.issued is not None:
            self._receipts[order_ref] = self.issued
        return accepted

    async def initiate(self, amount, order_ref):
        return await self._money("initiate", order_ref)

    async def refund(self, amount, order_ref):
        return await self._money("refund", order_ref)

    async def check_status(self, order_ref):
        return await self._answer("check_status")

    async def cancel(self, order_ref):
        return await self._answer("cancel")

    async def extend(self, order_ref):
        return await self._answer("extend")

    async def inquire(self, order_ref):
        return await self._answer("inquire")

    async def reverse(self, order_ref):
        if not self.supports("reverse"):
            return await super().reverse(order_ref)
        return await self._money("reverse", order_ref)


FAST_POLICY = RetryPolicy(max_attempts=3, delay=0.01)


@pytest_asyncio.fixture
async def session_factory():
    """Fresh in-memory database per test; sessions share one connection."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def sadad_client():
    return FakeGatewayClient("sadad")


@pytest.fixture
def sep_client():
    return FakeGatewayClient("sep")


@pytest.fixture
def orchestrator(session_factory, sadad_client, sep_client):
    return PaymentOrchestrator(
        session_factory,
        {
            PaymentProvider.SADAD: SadadAdapter(sadad_client, policy=FAST_POLICY),
            PaymentProvider.SEP: SepAdapter(sep_client, policy=FAST_POLICY),
        },
    )


async def add_order(
    session_factory,
    order_ref: str,
    total: str = "150000",
    paid: bool = False,
    customer_id: Optional[str] = None,
) -> None:
    async with session_factory() as session:
        session.add(Order(
            order_ref=order_ref,
            total_amount=Decimal(total),
            currency="IRR",
            paid=paid,
            customer_id=customer_id,
        ))
        await session.commit()


async def load_order(session_factory, order_ref: str) -> Order:
    async with session_factory() as session:
        return await session.get(Order, order_ref)


@pytest_asyncio.fixture
async def order(session_factory):
    """An unpaid order with a 150000 total."""
    await add_order(session_factory, "ORD-1001")
    return "ORD-1001"
