"""
Minimal order endpoints.

Orders belong to the wider POS system; these exist so the payment API can
be exercised on its own.

POST /orders              Register an order to be paid.
GET  /orders/{order_ref}  Current total and paid flag.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_session
from app.models.payment import Order
from app.repositories import OrderRepository

router = APIRouter(prefix="/orders", tags=["orders"])


class OrderCreate(BaseModel):
    order_ref: str = Field(min_length=1, max_length=64, pattern=r"\S")
    total_amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    currency: str = "IRR"
    customer_id: Optional[str] = None


class OrderDetail(BaseModel):
    order_ref: str
    total_amount: Decimal
    currency: str
    paid: bool
    customer_id: Optional[str] = None

    model_config = {"from_attributes": True}


@router.post("", response_model=OrderDetail, status_code=201)
async def create_order(body: OrderCreate, session: AsyncSession = Depends(get_session)):
    orders = OrderRepository(session)
    if await orders.find_by_order_ref(body.order_ref) is not None:
        raise HTTPException(status_code=409, detail=f"Order already exists: {body.order_ref}")
    order = Order(
        order_ref=body.order_ref,
        total_amount=body.total_amount,
        currency=body.currency,
        customer_id=body.customer_id,
        paid=False,
    )
    await orders.save(order)
    await session.commit()
    return OrderDetail.model_validate(order)


@router.get("/{order_ref}", response_model=OrderDetail)
async def get_order(order_ref: str, session: AsyncSession = Depends(get_session)):
    order = await OrderRepository(session).find_by_order_ref(order_ref)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order not found: {order_ref}")
    return OrderDetail.model_validate(order)
