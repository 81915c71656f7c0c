"""
Provider adapters.

An adapter wraps one GatewayClient and exposes the operations the
orchestrator drives. It applies the shared retry policy, maps provider
replies and failures onto GatewayOutcome values, and never touches the
database: deciding what to persist is the orchestrator's job.

Retry eligibility per operation:
  - initiate / check_status / extend / inquire: retried (providers dedup by order_ref)
  - cancel: retried; the orchestrator only cancels a PENDING/TIMEOUT attempt
    and holds the order lock for the whole call, so the target stays
    non-terminal while retries run
  - refund / reverse: single attempt (refund retries with retry_refunds)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from app.domain.amount import Amount
from app.domain.result import GatewayOutcome
from app.engine.retry import (
    ProviderError,
    RetryPolicy,
    RetryState,
    UnsupportedOperationError,
    with_retry,
)
from app.models.enums import ErrorKind, PaymentProvider, TransactionStatus
from app.models.payment import Transaction
from app.providers.base import GatewayClient, GatewayReceipt

logger = logging.getLogger("pos_payments.adapter")


@dataclass
class _Call:
    value: Any = None
    error: Optional[Exception] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def permanent(self) -> bool:
        return isinstance(self.error, ProviderError) and not self.error.retriable

    @property
    def status_code(self) -> int:
        if isinstance(self.error, ProviderError):
            return self.error.status_code
        return 504


class ProviderAdapter:
    """Base adapter; subclasses pin the provider and its wording."""

    provider: PaymentProvider

    def __init__(
        self,
        client: GatewayClient,
        policy: Optional[RetryPolicy] = None,
        retry_refunds: bool = False,
    ):
        self._client = client
        self._policy = policy or RetryPolicy()
        self._retry_refunds = retry_refunds

    @property
    def label(self) -> str:
        return self.provider.label

    @property
    def client(self) -> GatewayClient:
        return self._client

    async def _invoke(
        self,
        operation: str,
        func: Callable[..., Any],
        *args: Any,
        policy: Optional[RetryPolicy] = None,
    ) -> _Call:
        state = RetryState()
        try:
            value = await with_retry(func, *args, policy=policy or self._policy, state=state)
            return _Call(value=value, attempts=state.attempts)
        except ProviderError as e:
            logger.warning("%s %s failed after %d attempt(s): %s", self.label, operation, state.attempts, e)
            return _Call(error=e, attempts=state.attempts)
        except Exception as e:
            # Unknown client failure: the provider may still have acted, so
            # the caller treats it like a timeout and reconciles later.
            logger.exception("%s %s raised unexpectedly", self.label, operation)
            return _Call(error=e, attempts=state.attempts)

    def _unsettled(self, call: _Call, action: str) -> GatewayOutcome:
        """Outcome for a money-moving call that did not get a clean answer."""
        if call.permanent:
            unsupported = isinstance(call.error, UnsupportedOperationError)
            return GatewayOutcome(
                accepted=False,
                status=TransactionStatus.FAILED,
                error_kind=ErrorKind.UNSUPPORTED if unsupported else ErrorKind.PROVIDER_ERROR,
                response_code=call.status_code,
                message=f"{self.label} {action} failed: {call.error}",
                attempts=call.attempts,
            )
        return GatewayOutcome(
            accepted=False,
            status=TransactionStatus.TIMEOUT,
            error_kind=ErrorKind.TIMEOUT,
            response_code=504,
            message=f"{self.label} {action} timed out after {call.attempts} attempt(s); status must be reconciled.",
            attempts=call.attempts,
        )

    def _unavailable(self, call: _Call, action: str) -> GatewayOutcome:
        """Outcome for a non-money-moving call that failed; no status change."""
        if isinstance(call.error, UnsupportedOperationError):
            kind, code = ErrorKind.UNSUPPORTED, 400
        elif call.permanent:
            kind, code = ErrorKind.PROVIDER_ERROR, call.status_code
        else:
            kind, code = ErrorKind.TIMEOUT, 504
        return GatewayOutcome(
            accepted=False,
            error_kind=kind,
            response_code=code,
            message=f"{self.label} {action} failed: {call.error}",
            attempts=call.attempts,
        )

    def _settled(self, call: _Call, status: TransactionStatus, message: str, order_ref: str) -> GatewayOutcome:
        """Accepted money-moving call, carrying whatever identifiers the provider returned."""
        receipt = self._client.receipt(order_ref) or GatewayReceipt()
        return GatewayOutcome(
            accepted=True,
            status=status,
            message=message,
            reference=receipt.reference,
            approval_code=receipt.approval_code,
            gateway_transaction_id=receipt.gateway_transaction_id,
            attempts=call.attempts,
        )

    def supports(self, operation: str) -> bool:
        return self._client.supports(operation)

    # Money-moving operations

    async def _initiate(self, amount: Amount, order_ref: str, success_message: str) -> GatewayOutcome:
        call = await self._invoke("initiate", self._client.initiate, amount.value, order_ref)
        if not call.ok:
            return self._unsettled(call, "payment")
        if not call.value:
            return GatewayOutcome(
                accepted=False,
                status=TransactionStatus.DECLINED,
                error_kind=ErrorKind.DECLINED,
                response_code=402,
                message=f"Failed to initiate {self.label} payment.",
                attempts=call.attempts,
            )
        return self._settled(call, TransactionStatus.SUCCESS, success_message, order_ref)

    async def process_payment(self, amount: Amount, order_ref: str) -> GatewayOutcome:
        return await self._initiate(amount, order_ref, f"Payment completed via {self.label}.")

    async def retry(self, amount: Amount, order_ref: str) -> GatewayOutcome:
        """Re-issue initiate for an attempt whose outcome was unknown."""
        return await self._initiate(amount, order_ref, f"Payment completed via {self.label} on retry.")

    async def process_refund(self, amount: Amount, order_ref: str) -> GatewayOutcome:
        policy = self._policy if self._retry_refunds else RetryPolicy.single_attempt()
        call = await self._invoke("refund", self._client.refund, amount.value, order_ref, policy=policy)
        if not call.ok:
            return self._unsettled(call, "refund")
        if not call.value:
            return GatewayOutcome(
                accepted=False,
                status=TransactionStatus.DECLINED,
                error_kind=ErrorKind.DECLINED,
                response_code=402,
                message=f"{self.label} refused the refund.",
                attempts=call.attempts,
            )
        return self._settled(call, TransactionStatus.SUCCESS, f"Refund completed via {self.label}.", order_ref)

    async def cancel(self, order_ref: str) -> GatewayOutcome:
        call = await self._invoke("cancel", self._client.cancel, order_ref)
        if not call.ok:
            return self._unavailable(call, "cancellation")
        if not call.value:
            return GatewayOutcome(
                accepted=False,
                error_kind=ErrorKind.DECLINED,
                response_code=402,
                message=f"Failed to cancel {self.label} payment.",
                attempts=call.attempts,
            )
        return GatewayOutcome(
            accepted=True,
            status=TransactionStatus.CANCELLED,
            message=f"{self.label} payment cancelled successfully.",
            attempts=call.attempts,
        )

    # Read / housekeeping operations

    async def verify_status(self, order_ref: str) -> GatewayOutcome:
        call = await self._invoke("check_status", self._client.check_status, order_ref)
        if not call.ok:
            return self._unavailable(call, "status check")
        if call.value:
            return GatewayOutcome(
                accepted=True,
                status=TransactionStatus.SUCCESS,
                message=f"Payment is confirmed by {self.label}.",
                attempts=call.attempts,
            )
        return GatewayOutcome(
            accepted=False,
            error_kind=ErrorKind.CONFLICT,
            response_code=409,
            message=f"Payment is not confirmed by {self.label}.",
            attempts=call.attempts,
        )

    async def verify_reversal(self, order_ref: str) -> GatewayOutcome:
        """
        Reconcile a refund or reversal whose outcome was unknown.

        ``check_status`` answering False means the provider no longer holds
        the payment as captured, so the refund or reversal took effect.
        """
        call = await self._invoke("check_status", self._client.check_status, order_ref)
        if not call.ok:
            return self._unavailable(call, "status check")
        if not call.value:
            return GatewayOutcome(
                accepted=True,
                status=TransactionStatus.SUCCESS,
                message=f"{self.label} confirms the payment was returned.",
                attempts=call.attempts,
            )
        return GatewayOutcome(
            accepted=False,
            error_kind=ErrorKind.CONFLICT,
            response_code=409,
            message=f"{self.label} still reports the payment as captured.",
            attempts=call.attempts,
        )

    async def extend_authorization(self, order_ref: str) -> GatewayOutcome:
        call = await self._invoke("extend", self._client.extend, order_ref)
        if not call.ok:
            return self._unavailable(call, "authorization extension")
        if not call.value:
            return GatewayOutcome(
                accepted=False,
                error_kind=ErrorKind.DECLINED,
                response_code=402,
                message="Failed to extend payment authorization.",
                attempts=call.attempts,
            )
        return GatewayOutcome(
            accepted=True, message="Authorization extended successfully.", attempts=call.attempts
        )

    async def inquire(self, order_ref: str) -> GatewayOutcome:
        call = await self._invoke("inquire", self._client.inquire, order_ref)
        if not call.ok:
            return self._unavailable(call, "inquiry")
        detail = call.value or ""
        return GatewayOutcome(
            accepted=True,
            message=f"Inquiry result: {detail}",
            detail=detail,
            attempts=call.attempts,
        )

    # Optional capabilities

    async def reverse(self, order_ref: str) -> GatewayOutcome:
        """Void a captured payment. Money-moving: an unanswered call ends in TIMEOUT."""
        call = await self._invoke("reverse", self._client.reverse, order_ref, policy=RetryPolicy.single_attempt())
        if not call.ok:
            return self._unsettled(call, "reversal")
        if not call.value:
            return GatewayOutcome(
                accepted=False,
                status=TransactionStatus.DECLINED,
                error_kind=ErrorKind.DECLINED,
                response_code=402,
                message="Reverse failed.",
                attempts=call.attempts,
            )
        return self._settled(call, TransactionStatus.SUCCESS, f"Transaction reversed via {self.label}.", order_ref)

    async def transaction_details(self, order_ref: str) -> GatewayOutcome:
        call = await self._invoke("transaction_details", self._client.transaction_details, order_ref)
        if not call.ok:
            return self._unavailable(call, "details lookup")
        return GatewayOutcome(accepted=True, message=f"Details: {call.value}", detail=call.value or "")

    async def resend_notification(self, order_ref: str) -> GatewayOutcome:
        call = await self._invoke("notify", self._client.notify, order_ref)
        if not call.ok:
            return self._unavailable(call, "notification")
        if not call.value:
            return GatewayOutcome(
                accepted=False, error_kind=ErrorKind.DECLINED, response_code=402, message="Notification failed."
            )
        return GatewayOutcome(accepted=True, message="Notification resent.")

    # Pure guards over an existing transaction

    def is_duplicate(self, existing: Optional[Transaction]) -> bool:
        return existing is not None

    def can_charge(self, existing: Optional[Transaction]) -> bool:
        """False when charging again could double-charge the order."""
        if existing is None:
            return True
        return not (existing.is_successful() or existing.is_in_flight())
