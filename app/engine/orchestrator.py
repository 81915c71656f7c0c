"""
Payment orchestrator, the core execution engine.

Takes an order reference, routes it to a provider adapter and drives the
transaction state machine. The flow for a payment:

  1. Idempotency guard (order not paid, no attempt in flight)
  2. Open a PENDING transaction and commit it
  3. Provider call through the adapter (retries, timeouts, mapping)
  4. Settle: move the transaction to the outcome status, flip order.paid
  5. Audit logging (every state change recorded)

Concurrency guarantees:
  - Every check-then-act sequence for one order runs under that order's
    lock, so two concurrent payments cannot both pass the "not paid" check
  - Different orders never share a lock
  - No database session stays open across a provider call; the PENDING
    row is committed first, so a crash or timeout mid-call leaves a record
    that can be reconciled with verify_payment_status
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.audit.logger import append_note, log_event
from app.domain.amount import Amount, InvalidAmountError
from app.domain.result import GatewayOutcome, PaymentResult
from app.models.enums import (
    AdminFlag,
    ErrorKind,
    PaymentProvider,
    TransactionStatus,
    TransactionType,
)
from app.models.payment import DEFAULT_MAX_AMOUNT, AuditLog, Transaction
from app.providers.adapter import ProviderAdapter
from app.repositories import OrderRepository, TransactionRepository

logger = logging.getLogger("pos_payments.orchestrator")

SETTLE_ACTIONS = {
    TransactionStatus.SUCCESS: "succeeded",
    TransactionStatus.FAILED: "failed",
    TransactionStatus.DECLINED: "declined",
    TransactionStatus.TIMEOUT: "timed_out",
    TransactionStatus.CANCELLED: "cancelled",
}


class OrderLocks:
    """Per-order asyncio locks, created on demand and dropped when idle."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, order_ref: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(order_ref, asyncio.Lock())
        self._holders[order_ref] = self._holders.get(order_ref, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[order_ref] -= 1
            if self._holders[order_ref] == 0:
                del self._holders[order_ref]
                del self._locks[order_ref]

    def __len__(self) -> int:
        return len(self._locks)


def resolve_provider(method: Union[PaymentProvider, str, None]) -> Optional[PaymentProvider]:
    if isinstance(method, PaymentProvider):
        return method
    if not method:
        return None
    try:
        return PaymentProvider(str(method).strip().lower())
    except ValueError:
        return None


class PaymentOrchestrator:
    """
    Owns every Transaction write.

    Adapters only report outcomes; this class decides what to persist.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        adapters: dict[PaymentProvider, ProviderAdapter],
        max_transaction_amount: Decimal = DEFAULT_MAX_AMOUNT,
    ):
        self._session_factory = session_factory
        self._adapters = dict(adapters)
        self._max_amount = max_transaction_amount
        self._locks = OrderLocks()

    @property
    def providers(self) -> list[PaymentProvider]:
        return list(self._adapters)

    def adapter_for(self, provider: PaymentProvider) -> Optional[ProviderAdapter]:
        return self._adapters.get(provider)

    # Payments

    async def process_payment(
        self, order_ref: str, method: Union[PaymentProvider, str]
    ) -> PaymentResult:
        """
        Charge an order through the selected provider.

        At most one successful PAYMENT per order: a paid order, or one whose
        latest attempt is still in flight, is rejected as a conflict.
        """
        _require(order_ref, "order_ref")
        provider = resolve_provider(method)
        if provider is None:
            return PaymentResult.failure(
                ErrorKind.VALIDATION, f"Unknown payment method: {method}", order_ref=order_ref
            )
        adapter = self._adapters.get(provider)
        if adapter is None:
            return PaymentResult.failure(
                ErrorKind.UNSUPPORTED,
                f"No gateway configured for {provider.label}.",
                order_ref=order_ref,
                provider=provider.value,
            )

        async with self._locks.hold(order_ref):
            return await self._charge(order_ref, provider, adapter)

    async def retry_payment(
        self, order_ref: str, method: Union[PaymentProvider, str, None] = None
    ) -> PaymentResult:
        """
        Retry an unpaid order.

        A TIMEOUT attempt is re-driven in place (providers dedup by order_ref);
        otherwise a fresh attempt is made with ``method`` or the provider of
        the previous attempt.
        """
        _require(order_ref, "order_ref")
        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                order = await OrderRepository(session).find_by_order_ref(order_ref)
                if order is None:
                    return _not_found(order_ref, "Order not found.")
                if order.paid:
                    return PaymentResult.failure(
                        ErrorKind.CONFLICT, "Order is already paid.", order_ref=order_ref
                    )
                existing = await TransactionRepository(session).find_by_order_ref(order_ref)

            if existing is not None and existing.is_in_flight():
                return await self._redrive(existing)

            provider = resolve_provider(method) or (
                PaymentProvider(existing.provider) if existing is not None else None
            )
            if provider is None:
                return PaymentResult.failure(
                    ErrorKind.VALIDATION, "A payment method is required to retry.", order_ref=order_ref
                )
            adapter = self._adapters.get(provider)
            if adapter is None:
                return PaymentResult.failure(
                    ErrorKind.UNSUPPORTED,
                    f"No gateway configured for {provider.label}.",
                    order_ref=order_ref,
                    provider=provider.value,
                )
            return await self._charge(order_ref, provider, adapter)

    async def _charge(
        self, order_ref: str, provider: PaymentProvider, adapter: ProviderAdapter
    ) -> PaymentResult:
        """Open a transaction and drive it. Caller holds the order lock."""
        async with self._session_factory() as session:
            orders = OrderRepository(session)
            txns = TransactionRepository(session)

            order = await orders.find_by_order_ref(order_ref)
            if order is None:
                return _not_found(order_ref, "Order not found.")
            if order.paid:
                return PaymentResult.failure(
                    ErrorKind.CONFLICT, "Order has already been paid.", order_ref=order_ref
                )

            existing = await txns.find_by_order_ref(order_ref)
            refunded = existing is not None and await self._has_refund(txns, existing)
            if not refunded and not adapter.can_charge(existing):
                return PaymentResult.failure(
                    ErrorKind.CONFLICT,
                    f"Order already has a {existing.status} transaction; "
                    "retry or verify it instead of paying again.",
                    order_ref=order_ref,
                    transaction_id=existing.id,
                    status=existing.current_status,
                )

            try:
                txn = Transaction.open(
                    order_ref, Amount(order.total_amount), provider, max_amount=self._max_amount
                )
            except InvalidAmountError as e:
                return PaymentResult.failure(ErrorKind.VALIDATION, str(e), order_ref=order_ref)

            txn.notes = append_note(None, f"Opened {provider.label} payment for {txn.amount}")
            await txns.save(txn)
            await log_event(session, "transaction_opened", txn.id, order_ref, details={
                "provider": provider.value,
                "type": txn.type,
                "amount": str(txn.amount),
            })
            await session.commit()
            txn_id, amount = txn.id, txn.money

        logger.info("Order %s: charging %s via %s (%s)", order_ref, amount, provider.label, txn_id)
        outcome = await adapter.process_payment(amount, order_ref)
        return await self._settle(txn_id, outcome)

    async def _redrive(self, txn: Transaction) -> PaymentResult:
        """Re-issue initiate for an in-flight attempt. Caller holds the order lock."""
        provider = PaymentProvider(txn.provider)
        adapter = self._adapters.get(provider)
        if adapter is None:
            return PaymentResult.failure(
                ErrorKind.UNSUPPORTED,
                f"No gateway configured for {provider.label}.",
                order_ref=txn.order_ref,
                transaction_id=txn.id,
            )

        async with self._session_factory() as session:
            current = await TransactionRepository(session).get(txn.id)
            if current.current_status == TransactionStatus.TIMEOUT:
                current.transition_to(TransactionStatus.PENDING)
            current.notes = append_note(current.notes, "Retrying provider call")
            await log_event(session, "transaction_retried", current.id, current.order_ref, details={
                "provider": provider.value,
                "previous_attempts": current.attempts,
            })
            await session.commit()
            amount = current.money

        outcome = await adapter.retry(amount, txn.order_ref)
        return await self._settle(txn.id, outcome)

    async def _settle(self, txn_id: str, outcome: GatewayOutcome) -> PaymentResult:
        """Apply a provider outcome to a transaction and its order."""
        async with self._session_factory() as session:
            txns = TransactionRepository(session)
            orders = OrderRepository(session)
            txn = await txns.get(txn_id)
            order = await orders.find_by_order_ref(txn.order_ref)

            txn.attempts = (txn.attempts or 0) + outcome.attempts
            txn.processor_message = outcome.message
            if outcome.reference:
                txn.reference_number = outcome.reference
            if outcome.approval_code:
                txn.approval_code = outcome.approval_code
            if outcome.gateway_transaction_id:
                txn.gateway_transaction_id = outcome.gateway_transaction_id
            if outcome.status is not None:
                txn.transition_to(outcome.status)
            txn.notes = append_note(txn.notes, outcome.message)

            if order is not None and outcome.status == TransactionStatus.SUCCESS:
                if txn.type == TransactionType.PAYMENT.value:
                    order.paid = True
                elif txn.type in (TransactionType.REFUND.value, TransactionType.VOID.value):
                    order.paid = False

            action = f"{txn.type}_{SETTLE_ACTIONS.get(outcome.status, 'attempted')}"
            await log_event(session, action, txn.id, txn.order_ref, details={
                "status": txn.status,
                "attempts": outcome.attempts,
                "message": outcome.message,
                "order_paid": order.paid if order is not None else None,
            })
            await session.commit()

            logger.info(
                "Order %s: %s %s -> %s after %d attempt(s)",
                txn.order_ref, txn.type, txn.id, txn.status, outcome.attempts,
            )
            return _result(txn, outcome)

    # Refunds

    async def refund_payment(self, order_ref: str) -> PaymentResult:
        """
        Refund the order's successful payment.

        Requires a refundable PAYMENT (type PAYMENT, status SUCCESS). The
        refund is its own REFUND transaction; on success the order's paid
        flag is reopened. Nothing reaches the provider when the order has no
        payment, or only a failed one.
        """
        _require(order_ref, "order_ref")
        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                txns = TransactionRepository(session)
                payment = await txns.find_by_order_ref(order_ref)
                if payment is None:
                    return _not_found(order_ref, "No payment found for this order.")
                if not payment.is_refundable():
                    return PaymentResult.failure(
                        ErrorKind.CONFLICT,
                        f"Transaction is {payment.status} and cannot be refunded.",
                        order_ref=order_ref,
                        transaction_id=payment.id,
                        status=payment.current_status,
                    )

                provider = PaymentProvider(payment.provider)
                adapter = self._adapters.get(provider)
                if adapter is None:
                    return PaymentResult.failure(
                        ErrorKind.UNSUPPORTED,
                        f"No gateway configured for {provider.label}.",
                        order_ref=order_ref,
                        transaction_id=payment.id,
                    )

                refund = await self._find_refund(txns, payment)
                if refund is not None and (refund.is_successful() or refund.type != TransactionType.REFUND.value):
                    return _returned(order_ref, refund)
                if refund is not None:
                    # Caller-initiated retry of a refund whose outcome was unknown
                    if refund.current_status == TransactionStatus.TIMEOUT:
                        refund.transition_to(TransactionStatus.PENDING)
                    refund.notes = append_note(refund.notes, "Retrying refund")
                    await log_event(session, "refund_retried", refund.id, order_ref)
                else:
                    refund = Transaction.open(
                        order_ref,
                        payment.money,
                        provider,
                        type=TransactionType.REFUND,
                        max_amount=self._max_amount,
                        parent_transaction_id=payment.id,
                    )
                    refund.notes = append_note(None, f"Refund of {payment.id} via {provider.label}")
                    await txns.save(refund)
                    await log_event(session, "transaction_opened", refund.id, order_ref, details={
                        "provider": provider.value,
                        "type": refund.type,
                        "amount": str(refund.amount),
                        "parent": payment.id,
                    })
                await session.commit()
                refund_id, amount = refund.id, refund.money

            outcome = await adapter.process_refund(amount, order_ref)
            return await self._settle(refund_id, outcome)

    async def reverse_payment(self, order_ref: str) -> PaymentResult:
        """
        Void a successful payment through the provider's reversal call.

        The VOID transaction is committed as PENDING before the provider is
        called, so a reversal that times out is left in TIMEOUT and can be
        re-driven here or reconciled with verify_payment_status.
        """
        _require(order_ref, "order_ref")
        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                txns = TransactionRepository(session)
                payment = await txns.find_by_order_ref(order_ref)
                if payment is None:
                    return _not_found(order_ref, "Payment not found.")
                provider = PaymentProvider(payment.provider)
                adapter = self._adapters.get(provider)
                if adapter is None:
                    return _unsupported(order_ref, provider)
                if not adapter.supports("reverse"):
                    return PaymentResult.failure(
                        ErrorKind.UNSUPPORTED,
                        f"{provider.label} does not support reversal.",
                        order_ref=order_ref,
                        transaction_id=payment.id,
                        provider=provider.value,
                    )
                if not payment.is_refundable():
                    return PaymentResult.failure(
                        ErrorKind.CONFLICT,
                        f"Transaction is {payment.status} and cannot be reversed.",
                        order_ref=order_ref,
                        transaction_id=payment.id,
                        status=payment.current_status,
                    )

                void = await self._find_refund(txns, payment)
                if void is not None and (void.is_successful() or void.type != TransactionType.VOID.value):
                    return _returned(order_ref, void)
                if void is not None:
                    if void.current_status == TransactionStatus.TIMEOUT:
                        void.transition_to(TransactionStatus.PENDING)
                    void.notes = append_note(void.notes, "Retrying reversal")
                    await log_event(session, "reversal_retried", void.id, order_ref)
                else:
                    void = Transaction.open(
                        order_ref,
                        payment.money,
                        provider,
                        type=TransactionType.VOID,
                        max_amount=self._max_amount,
                        parent_transaction_id=payment.id,
                    )
                    void.notes = append_note(None, f"Reversal of {payment.id} via {provider.label}")
                    await txns.save(void)
                    await log_event(session, "transaction_opened", void.id, order_ref, details={
                        "provider": provider.value,
                        "type": void.type,
                        "amount": str(void.amount),
                        "parent": payment.id,
                    })
                await session.commit()
                void_id = void.id

            outcome = await adapter.reverse(order_ref)
            return await self._settle(void_id, outcome)

    async def _find_refund(
        self, txns: TransactionRepository, payment: Transaction
    ) -> Optional[Transaction]:
        """Latest refund/void of ``payment`` that succeeded or may still succeed."""
        candidates = [
            t for t in await txns.list_by_order_ref(payment.order_ref)
            if t.parent_transaction_id == payment.id
            and t.type in (TransactionType.REFUND.value, TransactionType.VOID.value)
            and (t.is_successful() or t.is_in_flight())
        ]
        return candidates[-1] if candidates else None

    async def _has_refund(self, txns: TransactionRepository, payment: Transaction) -> bool:
        refund = await self._find_refund(txns, payment)
        return refund is not None

    # Cancellation and reconciliation

    async def cancel_payment(self, order_ref: str) -> PaymentResult:
        """Void an attempt that has not settled (PENDING or TIMEOUT) at the provider."""
        _require(order_ref, "order_ref")
        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                txn = await TransactionRepository(session).find_by_order_ref(order_ref)
                if txn is None:
                    return _not_found(order_ref, "No payment found to cancel.")
                if not txn.is_cancelable():
                    return PaymentResult.failure(
                        ErrorKind.CONFLICT,
                        f"Transaction is {txn.status} and cannot be cancelled.",
                        order_ref=order_ref,
                        transaction_id=txn.id,
                        status=txn.current_status,
                    )
            provider = PaymentProvider(txn.provider)
            adapter = self._adapters.get(provider)
            if adapter is None:
                return _unsupported(order_ref, provider)

            outcome = await adapter.cancel(order_ref)
            if not outcome.accepted:
                return _outcome_failure(order_ref, txn.id, provider, outcome)
            return await self._settle(txn.id, outcome)

    async def verify_payment_status(self, order_ref: str) -> PaymentResult:
        """
        Ask the provider whether the payment completed.

        This is the reconciliation path for TIMEOUT (and orphaned PENDING)
        attempts: a confirmation settles them as SUCCESS and marks the order
        paid. An unconfirmed attempt keeps its status. When the payment has
        a refund or reversal still in flight, that child is reconciled
        instead.
        """
        _require(order_ref, "order_ref")
        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                txns = TransactionRepository(session)
                txn = await txns.find_by_order_ref(order_ref)
                if txn is None:
                    return _not_found(order_ref, "No payment found for this order.")
                child = await self._find_refund(txns, txn)
            provider = PaymentProvider(txn.provider)
            adapter = self._adapters.get(provider)
            if adapter is None:
                return _unsupported(order_ref, provider)

            if child is not None and child.is_in_flight():
                return await self._reconcile_return(order_ref, provider, adapter, child)

            outcome = await adapter.verify_status(order_ref)
            if outcome.accepted and txn.is_in_flight():
                logger.info("Order %s: reconciled %s as paid", order_ref, txn.id)
                return await self._settle(txn.id, outcome)

            async with self._session_factory() as session:
                await log_event(session, "status_checked", txn.id, order_ref, details={
                    "confirmed": outcome.accepted,
                    "status": txn.status,
                    "message": outcome.message,
                })
                await session.commit()

            if outcome.accepted:
                return PaymentResult.ok(
                    outcome.message,
                    order_ref=order_ref,
                    transaction_id=txn.id,
                    provider=provider.value,
                    status=txn.current_status,
                )
            return _outcome_failure(order_ref, txn.id, provider, outcome, status=txn.current_status)

    async def _reconcile_return(
        self,
        order_ref: str,
        provider: PaymentProvider,
        adapter: ProviderAdapter,
        child: Transaction,
    ) -> PaymentResult:
        """Settle an in-flight REFUND/VOID from the provider's view. Caller holds the order lock."""
        outcome = await adapter.verify_reversal(order_ref)
        if outcome.accepted:
            logger.info("Order %s: reconciled %s %s as settled", order_ref, child.type, child.id)
            return await self._settle(child.id, outcome)

        async with self._session_factory() as session:
            await log_event(session, "status_checked", child.id, order_ref, details={
                "confirmed": False,
                "type": child.type,
                "status": child.status,
                "message": outcome.message,
            })
            await session.commit()
        return _outcome_failure(order_ref, child.id, provider, outcome, status=child.current_status)

    async def extend_authorization(self, order_ref: str) -> PaymentResult:
        return await self._provider_call(order_ref, "extend_authorization", "authorization_extended")

    async def inquire_transaction(self, order_ref: str) -> PaymentResult:
        return await self._provider_call(order_ref, "inquire", "inquired")

    async def fetch_transaction_details(self, order_ref: str) -> PaymentResult:
        return await self._provider_call(order_ref, "transaction_details", "details_fetched")

    async def resend_payment_notification(self, order_ref: str) -> PaymentResult:
        return await self._provider_call(order_ref, "resend_notification", "notification_resent")

    async def _provider_call(self, order_ref: str, operation: str, action: str) -> PaymentResult:
        """Run a non-money-moving adapter operation against the order's latest payment."""
        _require(order_ref, "order_ref")
        async with self._session_factory() as session:
            txn = await TransactionRepository(session).find_by_order_ref(order_ref)
            if txn is None:
                return _not_found(order_ref, "No payment found for this order.")
        provider = PaymentProvider(txn.provider)
        adapter = self._adapters.get(provider)
        if adapter is None:
            return _unsupported(order_ref, provider)

        outcome: GatewayOutcome = await getattr(adapter, operation)(order_ref)

        async with self._session_factory() as session:
            await log_event(session, action, txn.id, order_ref, details={
                "accepted": outcome.accepted,
                "message": outcome.message,
            })
            await session.commit()

        if not outcome.accepted:
            return _outcome_failure(order_ref, txn.id, provider, outcome, status=txn.current_status)
        return PaymentResult.ok(
            outcome.message,
            order_ref=order_ref,
            transaction_id=txn.id,
            provider=provider.value,
            status=txn.current_status,
        )

    # Duplicate detection

    async def is_duplicate_transaction(self, order_ref: str) -> bool:
        """True iff any transaction already exists for the order."""
        _require(order_ref, "order_ref")
        async with self._session_factory() as session:
            return await TransactionRepository(session).exists_for_order(order_ref)

    # Administrative overlays

    async def mark_disputed(self, order_ref: str, reason: str) -> PaymentResult:
        return await self._annotate(order_ref, AdminFlag.DISPUTED, reason, "Transaction marked as disputed.")

    async def flag_suspicious(self, order_ref: str) -> PaymentResult:
        return await self._annotate(order_ref, AdminFlag.SUSPICIOUS, None, "Transaction flagged as suspicious.")

    async def escalate(self, order_ref: str, note: str) -> PaymentResult:
        return await self._annotate(order_ref, AdminFlag.ESCALATED, note, "Issue escalated to support.")

    async def tag_for_audit(self, order_ref: str, tag: str) -> PaymentResult:
        return await self._annotate(order_ref, AdminFlag.AUDIT_TAGGED, tag, "Transaction tagged for audit.")

    async def archive_transaction(self, order_ref: str) -> PaymentResult:
        return await self._annotate(order_ref, AdminFlag.ARCHIVED, None, "Transaction archived.")

    async def anonymize_transaction(self, order_ref: str) -> PaymentResult:
        """
        Strip free-text data from the order's latest payment.

        Notes, the admin note and the processor message are cleared and the
        overlay is set to ANONYMIZED. Status, amount and provider
        identifiers stay, so the ledger still reconciles.
        """
        _require(order_ref, "order_ref")
        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                txn = await TransactionRepository(session).find_by_order_ref(order_ref)
                if txn is None:
                    return _not_found(order_ref, "Payment not found.")
                txn.set_admin_flag(AdminFlag.ANONYMIZED)
                txn.notes = None
                txn.processor_message = None
                await log_event(session, f"flag_{AdminFlag.ANONYMIZED.value}", txn.id, order_ref)
                await session.commit()
                return PaymentResult.ok(
                    "Transaction anonymized.",
                    order_ref=order_ref,
                    transaction_id=txn.id,
                    provider=txn.provider,
                    status=txn.current_status,
                )

    async def _annotate(
        self, order_ref: str, flag: AdminFlag, note: Optional[str], message: str
    ) -> PaymentResult:
        """Set the admin overlay on the latest payment; status is left untouched."""
        _require(order_ref, "order_ref")
        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                txn = await TransactionRepository(session).find_by_order_ref(order_ref)
                if txn is None:
                    return _not_found(order_ref, "Payment not found.")
                txn.set_admin_flag(flag, note)
                txn.notes = append_note(txn.notes, f"{flag.value}: {note}" if note else flag.value)
                await log_event(session, f"flag_{flag.value}", txn.id, order_ref, details={"note": note})
                await session.commit()
                return PaymentResult.ok(
                    message,
                    order_ref=order_ref,
                    transaction_id=txn.id,
                    provider=txn.provider,
                    status=txn.current_status,
                )

    async def notify_admin_for_review(self, order_ref: str, message: str) -> PaymentResult:
        _require(order_ref, "order_ref")
        async with self._session_factory() as session:
            txn = await TransactionRepository(session).find_by_order_ref(order_ref)
            if txn is None:
                return _not_found(order_ref, "Payment not found.")
            await log_event(session, "admin_review_requested", txn.id, order_ref, details={"message": message})
            await session.commit()
        logger.warning("Order %s: manual review requested: %s", order_ref, message)
        return PaymentResult.ok(
            f"Admin notified for review: {message}", order_ref=order_ref, transaction_id=txn.id
        )

    # Queries

    async def get_transactions(self, order_ref: str) -> list[Transaction]:
        async with self._session_factory() as session:
            return await TransactionRepository(session).list_by_order_ref(order_ref)

    async def get_transactions_by_status(
        self, status: Union[TransactionStatus, str]
    ) -> list[Transaction]:
        """All transactions in ``status``; names match case-insensitively."""
        if not isinstance(status, TransactionStatus):
            _require(status, "status")
            try:
                status = TransactionStatus(str(status).strip().lower())
            except ValueError:
                raise ValueError(f"Unknown transaction status: {status}") from None
        async with self._session_factory() as session:
            return await TransactionRepository(session).list_by_status(status)

    async def get_transactions_by_customer(self, customer_id: str) -> list[Transaction]:
        _require(customer_id, "customer_id")
        async with self._session_factory() as session:
            return await TransactionRepository(session).list_by_customer(customer_id.strip())

    async def delete_transaction(self, transaction_id: str) -> PaymentResult:
        """
        Remove a transaction that never moved money.

        Only FAILED, DECLINED or CANCELLED transactions without refunds or
        reversals against them can go; anything successful or in flight is
        part of the ledger. Audit entries for the transaction are kept.
        """
        _require(transaction_id, "transaction_id")
        async with self._session_factory() as session:
            txn = await TransactionRepository(session).get(transaction_id)
            if txn is None:
                return PaymentResult.failure(ErrorKind.NOT_FOUND, "Payment not found.")
            order_ref = txn.order_ref

        async with self._locks.hold(order_ref):
            async with self._session_factory() as session:
                txns = TransactionRepository(session)
                txn = await txns.get(transaction_id)
                if txn is None:
                    return _not_found(order_ref, "Payment not found.")
                if not txn.is_terminal() or txn.is_successful() or await txns.has_children(txn.id):
                    return PaymentResult.failure(
                        ErrorKind.CONFLICT,
                        f"Transaction is {txn.status} and cannot be deleted.",
                        order_ref=order_ref,
                        transaction_id=txn.id,
                        status=txn.current_status,
                    )
                await log_event(session, "transaction_deleted", txn.id, order_ref, details={
                    "type": txn.type,
                    "status": txn.status,
                    "amount": str(txn.amount),
                })
                await txns.delete(txn.id)
                await session.commit()

        logger.info("Order %s: deleted transaction %s", order_ref, transaction_id)
        return PaymentResult.ok("Payment deleted.", order_ref=order_ref, transaction_id=transaction_id)

    async def get_audit_trail(self, order_ref: str) -> list[AuditLog]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AuditLog)
                .where(AuditLog.order_ref == order_ref)
                .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
            )
            return list(result.scalars().all())


def _require(value: Optional[str], name: str) -> None:
    if not value or not str(value).strip():
        raise ValueError(f"{name} is required")


def _not_found(order_ref: str, message: str) -> PaymentResult:
    return PaymentResult.failure(ErrorKind.NOT_FOUND, message, order_ref=order_ref)


def _unsupported(order_ref: str, provider: PaymentProvider) -> PaymentResult:
    return PaymentResult.failure(
        ErrorKind.UNSUPPORTED,
        f"No gateway configured for {provider.label}.",
        order_ref=order_ref,
        provider=provider.value,
    )


def _returned(order_ref: str, child: Transaction) -> PaymentResult:
    """Conflict for a payment that already has a refund or reversal against it."""
    if child.is_successful():
        verb = "refunded" if child.type == TransactionType.REFUND.value else "reversed"
        message = f"Payment has already been {verb}."
    else:
        message = f"A {child.type} of this payment is in flight ({child.status}); verify it first."
    return PaymentResult.failure(
        ErrorKind.CONFLICT,
        message,
        order_ref=order_ref,
        transaction_id=child.id,
        provider=child.provider,
        status=child.current_status,
    )


def _outcome_failure(
    order_ref: str,
    txn_id: str,
    provider: PaymentProvider,
    outcome: GatewayOutcome,
    status: Optional[TransactionStatus] = None,
) -> PaymentResult:
    return PaymentResult.failure(
        outcome.error_kind or ErrorKind.PROVIDER_ERROR,
        outcome.message,
        order_ref=order_ref,
        transaction_id=txn_id,
        provider=provider.value,
        status=status,
        response_code=outcome.response_code,
    )


def _result(txn: Transaction, outcome: GatewayOutcome) -> PaymentResult:
    common = dict(
        order_ref=txn.order_ref,
        transaction_id=txn.id,
        provider=txn.provider,
        status=txn.current_status,
        approval_code=txn.approval_code,
    )
    if outcome.accepted:
        return PaymentResult.ok(outcome.message, **common)
    return PaymentResult.failure(
        outcome.error_kind or ErrorKind.PROVIDER_ERROR,
        outcome.message,
        response_code=outcome.response_code,
        **common,
    )
