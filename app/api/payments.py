"""
Payment endpoints.

POST /payments                         Charge an order through a provider.
GET  /payments?status=|customer_id=    Transactions by status or by customer.
GET  /payments/{order_ref}             Transactions plus full audit trail.
POST /payments/{order_ref}/refund      Refund the successful payment.
POST /payments/{order_ref}/reverse     Void the successful payment (Sep).
POST /payments/{order_ref}/retry       Retry an unpaid order.
POST /payments/{order_ref}/cancel      Cancel a pending / timed-out attempt.
POST /payments/{order_ref}/verify      Reconcile with the provider.
POST /payments/{order_ref}/extend      Extend the authorization hold.
GET  /payments/{order_ref}/inquiry     Provider-side status text.
GET  /payments/{order_ref}/duplicate   Has this order been submitted before?
POST /payments/{order_ref}/dispute | /flag | /escalate  Admin overlays.
POST /payments/{order_ref}/anonymize   Strip free-text data from the payment.
DELETE /payments/transactions/{id}     Remove a transaction that never moved money.

Every operation answers with a PaymentResult; its response_code becomes the
HTTP status.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from pydantic import BaseModel, Field

from app.api.deps import get_orchestrator
from app.domain.result import PaymentResult
from app.engine.orchestrator import PaymentOrchestrator

router = APIRouter(prefix="/payments", tags=["payments"])

# At least one non-blank character
NOT_BLANK = r"\S"

OrderRef = Annotated[str, Path(min_length=1, max_length=64, pattern=NOT_BLANK)]


class PaymentRequest(BaseModel):
    order_ref: str = Field(min_length=1, max_length=64, pattern=NOT_BLANK)
    provider: str


class RetryRequest(BaseModel):
    provider: Optional[str] = None


class NoteRequest(BaseModel):
    note: str = ""


class PaymentResponse(BaseModel):
    success: bool
    message: str
    order_ref: Optional[str] = None
    transaction_id: Optional[str] = None
    provider: Optional[str] = None
    status: Optional[str] = None
    error_kind: Optional[str] = None
    error_code: Optional[str] = None
    approval_code: Optional[str] = None
    approved: bool = False
    retryable: bool = False
    response_code: int


class TransactionDetail(BaseModel):
    id: str
    order_ref: str
    parent_transaction_id: Optional[str]
    amount: Decimal
    provider: str
    type: str
    status: str
    admin_flag: Optional[str]
    admin_note: Optional[str]
    reference_number: Optional[str]
    approval_code: Optional[str]
    gateway_transaction_id: Optional[str]
    processor_message: Optional[str]
    attempts: int
    notes: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    model_config = {"from_attributes": True}


class AuditEntry(BaseModel):
    id: int
    transaction_id: Optional[str]
    action: str
    details: Optional[dict] = None
    timestamp: Optional[datetime]


class PaymentTrace(BaseModel):
    order_ref: str
    transactions: list[TransactionDetail]
    audit_trail: list[AuditEntry]


class DuplicateResponse(BaseModel):
    order_ref: str
    duplicate: bool


def _respond(result: PaymentResult, response: Response) -> PaymentResponse:
    response.status_code = result.response_code
    return PaymentResponse(
        success=result.success,
        message=result.message,
        order_ref=result.order_ref,
        transaction_id=result.transaction_id,
        provider=result.provider,
        status=result.status.value if result.status else None,
        error_kind=result.error_kind.value if result.error_kind else None,
        error_code=result.error_code,
        approval_code=result.approval_code,
        approved=result.is_approved,
        retryable=result.is_retryable_failure,
        response_code=result.response_code,
    )


@router.post("", response_model=PaymentResponse)
async def create_payment(
    body: PaymentRequest,
    response: Response,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    """Charge an order. Replays on a paid order answer 409, never a second charge."""
    result = await orchestrator.process_payment(body.order_ref, body.provider)
    return _respond(result, response)


@router.get("/{order_ref}", response_model=PaymentTrace)
async def get_payment_trace(
    order_ref: OrderRef, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    transactions = await orchestrator.get_transactions(order_ref)
    if not transactions:
        raise HTTPException(status_code=404, detail=f"No transactions for order: {order_ref}")

    audit_trail = []
    for log in await orchestrator.get_audit_trail(order_ref):
        details = None
        if log.details:
            try:
                details = json.loads(log.details)
            except (json.JSONDecodeError, TypeError):
                details = {"raw": log.details}
        audit_trail.append(AuditEntry(
            id=log.id,
            transaction_id=log.transaction_id,
            action=log.action,
            details=details,
            timestamp=log.timestamp,
        ))

    return PaymentTrace(
        order_ref=order_ref,
        transactions=[TransactionDetail.model_validate(t) for t in transactions],
        audit_trail=audit_trail,
    )


@router.post("/{order_ref}/refund", response_model=PaymentResponse)
async def refund_payment(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.refund_payment(order_ref), response)


@router.post("/{order_ref}/reverse", response_model=PaymentResponse)
async def reverse_payment(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.reverse_payment(order_ref), response)


@router.post("/{order_ref}/retry", response_model=PaymentResponse)
async def retry_payment(
    order_ref: OrderRef,
    response: Response,
    body: Optional[RetryRequest] = None,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    method = body.provider if body else None
    return _respond(await orchestrator.retry_payment(order_ref, method), response)


@router.post("/{order_ref}/cancel", response_model=PaymentResponse)
async def cancel_payment(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.cancel_payment(order_ref), response)


@router.post("/{order_ref}/verify", response_model=PaymentResponse)
async def verify_payment(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.verify_payment_status(order_ref), response)


@router.post("/{order_ref}/extend", response_model=PaymentResponse)
async def extend_authorization(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.extend_authorization(order_ref), response)


@router.get("/{order_ref}/inquiry", response_model=PaymentResponse)
async def inquire(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.inquire_transaction(order_ref), response)


@router.get("/{order_ref}/duplicate", response_model=DuplicateResponse)
async def is_duplicate(order_ref: OrderRef, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)):
    return DuplicateResponse(
        order_ref=order_ref,
        duplicate=await orchestrator.is_duplicate_transaction(order_ref),
    )


@router.post("/{order_ref}/dispute", response_model=PaymentResponse)
async def mark_disputed(
    order_ref: OrderRef,
    body: NoteRequest,
    response: Response,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    return _respond(await orchestrator.mark_disputed(order_ref, body.note), response)


@router.post("/{order_ref}/flag", response_model=PaymentResponse)
async def flag_suspicious(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.flag_suspicious(order_ref), response)


@router.post("/{order_ref}/escalate", response_model=PaymentResponse)
async def escalate(
    order_ref: OrderRef,
    body: NoteRequest,
    response: Response,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    return _respond(await orchestrator.escalate(order_ref, body.note), response)


@router.post("/{order_ref}/anonymize", response_model=PaymentResponse)
async def anonymize(
    order_ref: OrderRef, response: Response, orchestrator: PaymentOrchestrator = Depends(get_orchestrator)
):
    return _respond(await orchestrator.anonymize_transaction(order_ref), response)


@router.get("", response_model=list[TransactionDetail])
async def list_transactions(
    status: Annotated[Optional[str], Query(pattern=NOT_BLANK)] = None,
    customer_id: Annotated[Optional[str], Query(max_length=64, pattern=NOT_BLANK)] = None,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    """Transactions filtered by status (case-insensitive) or by the ordering customer."""
    if (status is None) == (customer_id is None):
        raise HTTPException(status_code=422, detail="Filter by exactly one of: status, customer_id.")
    if status is not None:
        try:
            transactions = await orchestrator.get_transactions_by_status(status)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    else:
        transactions = await orchestrator.get_transactions_by_customer(customer_id)
    return [TransactionDetail.model_validate(t) for t in transactions]


@router.delete("/transactions/{transaction_id}", response_model=PaymentResponse)
async def delete_transaction(
    transaction_id: Annotated[str, Path(min_length=1, max_length=32, pattern=NOT_BLANK)],
    response: Response,
    orchestrator: PaymentOrchestrator = Depends(get_orchestrator),
):
    return _respond(await orchestrator.delete_transaction(transaction_id), response)
