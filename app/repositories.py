"""
Order and transaction stores.

Thin async repositories over an ``AsyncSession``. They never commit; the
caller owns the unit of work.
"""

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import TransactionStatus, TransactionType
from app.models.payment import Order, Transaction


class OrderRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_by_order_ref(self, order_ref: str) -> Optional[Order]:
        return await self._session.get(Order, order_ref, populate_existing=True)

    async def save(self, order: Order) -> Order:
        self._session.add(order)
        await self._session.flush()
        return order


class TransactionRepository:
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, transaction_id: str) -> Optional[Transaction]:
        return await self._session.get(Transaction, transaction_id, populate_existing=True)

    async def find_by_order_ref(
        self,
        order_ref: str,
        type: TransactionType = TransactionType.PAYMENT,
    ) -> Optional[Transaction]:
        """Latest transaction of the given type for an order."""
        result = await self._session.execute(
            select(Transaction)
            .where(Transaction.order_ref == order_ref, Transaction.type == type.value)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def list_by_order_ref(self, order_ref: str) -> list[Transaction]:
        result = await self._session.execute(
            select(Transaction)
            .where(Transaction.order_ref == order_ref)
            .order_by(Transaction.created_at.asc())
        )
        return list(result.scalars().all())

    async def list_by_status(self, status: TransactionStatus) -> list[Transaction]:
        result = await self._session.execute(
            select(Transaction)
            .where(Transaction.status == status.value)
            .order_by(Transaction.created_at.asc(), Transaction.id.asc())
        )
        return list(result.scalars().all())

    async def list_by_customer(self, customer_id: str) -> list[Transaction]:
        """Transactions of every order placed by the customer."""
        result = await self._session.execute(
            select(Transaction)
            .join(Order, Order.order_ref == Transaction.order_ref)
            .where(Order.customer_id == customer_id)
            .order_by(Transaction.created_at.asc(), Transaction.id.asc())
        )
        return list(result.scalars().all())

    async def has_children(self, transaction_id: str) -> bool:
        result = await self._session.execute(
            select(Transaction.id).where(Transaction.parent_transaction_id == transaction_id).limit(1)
        )
        return result.first() is not None

    async def exists_for_order(self, order_ref: str) -> bool:
        result = await self._session.execute(
            select(Transaction.id).where(Transaction.order_ref == order_ref).limit(1)
        )
        return result.first() is not None

    async def save(self, transaction: Transaction) -> Transaction:
        self._session.add(transaction)
        await self._session.flush()
        return transaction

    async def delete(self, transaction_id: str) -> bool:
        result = await self._session.execute(delete(Transaction).where(Transaction.id == transaction_id))
        return result.rowcount > 0
