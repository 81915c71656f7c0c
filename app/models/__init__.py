from app.models.enums import AdminFlag, ErrorKind, PaymentProvider, TransactionStatus, TransactionType
from app.models.payment import AuditLog, Base, InvalidTransitionError, Order, Transaction

__all__ = [
    "Base",
    "Order",
    "Transaction",
    "AuditLog",
    "InvalidTransitionError",
    "AdminFlag",
    "ErrorKind",
    "PaymentProvider",
    "TransactionStatus",
    "TransactionType",
]
