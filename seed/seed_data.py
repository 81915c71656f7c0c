"""
Seed the database with sample POS orders.

Creates:
  - A handful of unpaid orders of realistic Rial totals
  - Edge cases: an order above the transaction ceiling, an already-paid order

Run:
    python -m seed.seed_data
"""

import asyncio
from decimal import Decimal

from app.database import async_session, init_db
from app.models.payment import Order
from app.repositories import OrderRepository


ORDERS = [
    {"order_ref": "ORD-1001", "customer_id": "CUST-01", "total_amount": Decimal("150000"), "paid": False},
    {"order_ref": "ORD-1002", "customer_id": "CUST-02", "total_amount": Decimal("48500.50"), "paid": False},
    {"order_ref": "ORD-1003", "customer_id": "CUST-01", "total_amount": Decimal("2750000"), "paid": False},
    {"order_ref": "ORD-1004", "customer_id": "CUST-03", "total_amount": Decimal("990"), "paid": False},
    {"order_ref": "ORD-1005", "customer_id": "CUST-04", "total_amount": Decimal("320000"), "paid": False},

    # Edge cases
    {"order_ref": "ORD-9001", "customer_id": "CUST-05", "total_amount": Decimal("12500000"), "paid": False},  # over ceiling
    {"order_ref": "ORD-9002", "customer_id": "CUST-06", "total_amount": Decimal("75000"), "paid": True},  # already paid
]


async def seed():
    await init_db()

    async with async_session() as session:
        orders = OrderRepository(session)
        created = 0
        for data in ORDERS:
            if await orders.find_by_order_ref(data["order_ref"]) is not None:
                continue
            await orders.save(Order(currency="IRR", **data))
            created += 1
        await session.commit()

    print(f"Seeded {created} orders ({len(ORDERS) - created} already present)")


if __name__ == "__main__":
    asyncio.run(seed())
