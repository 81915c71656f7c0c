"""SQLAlchemy models for orders, payment transactions and the audit trail."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase

from app.domain.amount import Amount, InvalidAmountError
from app.models.enums import (
    AdminFlag,
    PaymentProvider,
    TransactionStatus,
    TransactionType,
)

DEFAULT_MAX_AMOUNT = Decimal("10000000")

TERMINAL_STATUSES = frozenset({
    TransactionStatus.SUCCESS,
    TransactionStatus.FAILED,
    TransactionStatus.DECLINED,
    TransactionStatus.CANCELLED,
})

ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.SUCCESS,
        TransactionStatus.FAILED,
        TransactionStatus.TIMEOUT,
        TransactionStatus.DECLINED,
        TransactionStatus.CANCELLED,
    }),
    # A timed-out attempt may be re-driven (back to PENDING) or settled directly
    # by reconciliation; it may also time out again.
    TransactionStatus.TIMEOUT: frozenset({
        TransactionStatus.PENDING,
        TransactionStatus.SUCCESS,
        TransactionStatus.FAILED,
        TransactionStatus.TIMEOUT,
        TransactionStatus.DECLINED,
        TransactionStatus.CANCELLED,
    }),
}


class InvalidTransitionError(RuntimeError):
    """Raised on a status change the state machine does not allow."""

    def __init__(self, current: TransactionStatus, target: TransactionStatus):
        super().__init__(f"Illegal transaction transition: {current.value} -> {target.value}")
        self.current = current
        self.target = target


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_txn_id() -> str:
    return f"txn_{uuid.uuid4().hex[:16]}"


class Order(Base):
    """
    The slice of a POS order the payment core needs.

    Orders are owned by the wider order-management system; payments only
    read the total and flip the ``paid`` flag.
    """

    __tablename__ = "orders"

    order_ref = Column(String(64), primary_key=True)
    customer_id = Column(String(64), nullable=True, index=True)
    total_amount = Column(Numeric(14, 2), nullable=False)
    currency = Column(String(3), default="IRR")
    paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Transaction(Base):
    """
    One payment attempt (or refund) against one order.

    The amount and identity are fixed at construction. Only status,
    provider identifiers, the admin overlay and notes change afterwards,
    and status only through ``transition_to``.
    """

    __tablename__ = "transactions"

    id = Column(String(32), primary_key=True, default=_new_txn_id)
    order_ref = Column(String(64), ForeignKey("orders.order_ref"), nullable=False, index=True)
    parent_transaction_id = Column(String(32), ForeignKey("transactions.id"), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    provider = Column(String(20), nullable=False)
    type = Column(String(20), nullable=False, default=TransactionType.PAYMENT.value)
    status = Column(String(20), nullable=False, default=TransactionStatus.PENDING.value)

    # Provider-supplied identifiers, unknown until the provider answers
    reference_number = Column(String(100), nullable=True)
    approval_code = Column(String(100), nullable=True)
    gateway_transaction_id = Column(String(100), nullable=True)
    processor_message = Column(Text, nullable=True)

    # Administrative overlay (dispute, suspicious, ...); independent of status
    admin_flag = Column(String(20), nullable=True)
    admin_note = Column(Text, nullable=True)

    attempts = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    @classmethod
    def open(
        cls,
        order_ref: str,
        amount: Amount,
        provider: PaymentProvider,
        type: TransactionType = TransactionType.PAYMENT,
        max_amount: Decimal = DEFAULT_MAX_AMOUNT,
        parent_transaction_id: Optional[str] = None,
    ) -> "Transaction":
        """Create a new PENDING transaction, validating the amount."""
        if not order_ref:
            raise ValueError("order_ref is required")
        if not amount.is_positive():
            raise InvalidAmountError(f"Transaction amount must be positive, got {amount}")
        if amount.value > max_amount:
            raise InvalidAmountError(f"Transaction amount {amount} exceeds ceiling {max_amount}")

        now = _utcnow()
        return cls(
            id=_new_txn_id(),
            order_ref=order_ref,
            parent_transaction_id=parent_transaction_id,
            amount=amount.value,
            provider=PaymentProvider(provider).value,
            type=TransactionType(type).value,
            status=TransactionStatus.PENDING.value,
            attempts=0,
            created_at=now,
            updated_at=now,
        )

    # State machine

    @property
    def current_status(self) -> TransactionStatus:
        return TransactionStatus(self.status)

    @property
    def money(self) -> Amount:
        return Amount(self.amount)

    def can_transition_to(self, target: TransactionStatus) -> bool:
        return target in ALLOWED_TRANSITIONS.get(self.current_status, frozenset())

    def transition_to(self, target: TransactionStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.current_status, target)
        self.status = target.value
        self.touch()

    def touch(self) -> None:
        now = _utcnow()
        created = self.created_at
        if created is not None and created.tzinfo is None:
            # SQLite hands back naive datetimes
            now = now.replace(tzinfo=None)
        self.updated_at = max(now, created) if created is not None else now

    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    def is_in_flight(self) -> bool:
        return self.current_status in (TransactionStatus.PENDING, TransactionStatus.TIMEOUT)

    def is_successful(self) -> bool:
        return self.current_status == TransactionStatus.SUCCESS

    def is_refundable(self) -> bool:
        return (
            self.type == TransactionType.PAYMENT.value
            and self.current_status == TransactionStatus.SUCCESS
        )

    def is_cancelable(self) -> bool:
        return self.current_status in (TransactionStatus.PENDING, TransactionStatus.TIMEOUT)

    def set_admin_flag(self, flag: AdminFlag, note: Optional[str] = None) -> None:
        self.admin_flag = AdminFlag(flag).value
        self.admin_note = note
        self.touch()

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id} order={self.order_ref} {self.type}/{self.status} "
            f"amount={self.amount} provider={self.provider}>"
        )


class AuditLog(Base):
    """
    Immutable audit trail entry.

    Every state change (transaction opened, provider call, status change,
    admin overlay) gets an entry. These are append-only and never modified.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Not a foreign key: entries outlive transactions removed by delete_transaction
    transaction_id = Column(String(32), nullable=True, index=True)
    order_ref = Column(String(64), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)
