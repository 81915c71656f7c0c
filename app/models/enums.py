"""Enumerations for the payment transaction domain model."""

from enum import Enum


class PaymentProvider(str, Enum):
    """Payment methods / external providers a transaction can go through."""

    SADAD = "sadad"
    SEP = "sep"
    CASH = "cash"
    CARD = "card"
    WALLET = "wallet"
    CRYPTO = "crypto"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class TransactionType(str, Enum):
    PAYMENT = "payment"
    REFUND = "refund"
    CHARGEBACK = "chargeback"
    VOID = "void"


class TransactionStatus(str, Enum):
    """
    Lifecycle states for a transaction.

    PENDING is the only initial state. TIMEOUT is the in-flight ambiguous
    state: the provider may or may not have completed the charge, so it must
    be reconciled (status check) or re-driven (retry).
    """

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    DECLINED = "declined"
    CANCELLED = "cancelled"


class AdminFlag(str, Enum):
    """Administrative overlay on a transaction. Never changes its status."""

    DISPUTED = "disputed"
    SUSPICIOUS = "suspicious"
    ESCALATED = "escalated"
    AUDIT_TAGGED = "audit_tagged"
    ARCHIVED = "archived"
    ANONYMIZED = "anonymized"


class ErrorKind(str, Enum):
    """Categorized failure reasons carried by a PaymentResult."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    DECLINED = "declined"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"
