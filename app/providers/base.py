"""
Abstract gateway client interface.

Every external payment provider (Sadad, Sep, ...) is reached through a
client implementing these six operations. Clients speak the provider's
transport and signal failures by raising the exceptions in
``app.engine.retry``; the provider adapters turn those into outcome values.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from app.engine.retry import UnsupportedOperationError


@dataclass(frozen=True)
class GatewayReceipt:
    """Identifiers a provider hands back when it accepts a money-moving call."""

    reference: Optional[str] = None
    approval_code: Optional[str] = None
    gateway_transaction_id: Optional[str] = None


class GatewayClient(ABC):
    """Capability set required of any provider integration."""

    #: Names of the optional operations this client actually implements.
    optional_operations: frozenset[str] = frozenset()

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g. 'sadad')."""
        ...

    @abstractmethod
    async def initiate(self, amount: Decimal, order_ref: str) -> bool:
        """
        Begin a payment. True means the provider accepted the request.

        Providers deduplicate by order_ref, so repeating this call for the
        same order is safe.

        Raises:
            ProviderError: On transient failure (will be retried).
            PermanentError: On non-retriable failure.
        """
        ...

    @abstractmethod
    async def refund(self, amount: Decimal, order_ref: str) -> bool:
        ...

    @abstractmethod
    async def check_status(self, order_ref: str) -> bool:
        """True if the provider confirms the payment completed."""
        ...

    @abstractmethod
    async def cancel(self, order_ref: str) -> bool:
        ...

    @abstractmethod
    async def extend(self, order_ref: str) -> bool:
        """Extend an authorization hold."""
        ...

    @abstractmethod
    async def inquire(self, order_ref: str) -> str:
        """Free-form provider-side status text."""
        ...

    def supports(self, operation: str) -> bool:
        return operation in self.optional_operations

    def receipt(self, order_ref: str) -> Optional[GatewayReceipt]:
        """Identifiers from the last accepted initiate/refund/reverse for the order."""
        return None

    # Optional capabilities; only some providers offer them.

    async def reverse(self, order_ref: str) -> bool:
        raise UnsupportedOperationError(f"{self.name} does not support reversal")

    async def transaction_details(self, order_ref: str) -> str:
        raise UnsupportedOperationError(f"{self.name} does not expose transaction details")

    async def notify(self, order_ref: str) -> bool:
        raise UnsupportedOperationError(f"{self.name} does not support notifications")

    async def aclose(self) -> None:
        """Release transport resources, if any."""
        return None
