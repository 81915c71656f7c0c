"""
Outcome value objects.

GatewayOutcome is what a provider adapter hands back to the orchestrator:
a proposed transaction status plus whatever identifiers the provider
returned. PaymentResult is what the orchestrator hands back to its caller.
Neither is ever persisted or mutated after construction.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from app.models.enums import ErrorKind, TransactionStatus

RESPONSE_CODES: dict[Optional[ErrorKind], int] = {
    None: 200,
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.DECLINED: 402,
    ErrorKind.PROVIDER_ERROR: 502,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.UNSUPPORTED: 400,
}

RETRYABLE_RESPONSE_CODES = {408, 429, 500, 502, 503, 504}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class GatewayOutcome:
    """Result of one adapter operation. Carries no persistence side effects."""

    accepted: bool
    message: str
    status: Optional[TransactionStatus] = None
    error_kind: Optional[ErrorKind] = None
    response_code: int = 200
    reference: Optional[str] = None
    approval_code: Optional[str] = None
    gateway_transaction_id: Optional[str] = None
    detail: str = ""
    attempts: int = 1

    @property
    def is_timeout(self) -> bool:
        return self.status == TransactionStatus.TIMEOUT


@dataclass(frozen=True)
class PaymentResult:
    """Narrow output contract of every orchestrator operation."""

    success: bool
    message: str
    order_ref: Optional[str] = None
    transaction_id: Optional[str] = None
    provider: Optional[str] = None
    status: Optional[TransactionStatus] = None
    error_kind: Optional[ErrorKind] = None
    error_code: Optional[str] = None
    approval_code: Optional[str] = None
    response_code: int = 200
    timestamp: datetime = field(default_factory=_utcnow)

    @classmethod
    def ok(cls, message: str, **kwargs) -> "PaymentResult":
        kwargs.setdefault("response_code", 200)
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, **kwargs) -> "PaymentResult":
        kwargs.setdefault("response_code", RESPONSE_CODES[kind])
        kwargs.setdefault("error_code", kind.value)
        return cls(success=False, message=message, error_kind=kind, **kwargs)

    @property
    def is_failure(self) -> bool:
        return not self.success

    @property
    def is_conflict(self) -> bool:
        return self.error_kind == ErrorKind.CONFLICT

    @property
    def is_approved(self) -> bool:
        return self.success and bool(self.approval_code)

    @property
    def is_retryable_failure(self) -> bool:
        return not self.success and self.response_code in RETRYABLE_RESPONSE_CODES

    def is_from_gateway(self, name: str) -> bool:
        return bool(name) and (self.provider or "").lower() == name.lower()
