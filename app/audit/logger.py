"""
Immutable audit trail for payment operations.

Every state change gets an append-only audit log entry with:
  - Transaction ID (which attempt)
  - Order ref (which order)
  - Action (what happened)
  - Details (provider outcome, error messages, overlay notes)
  - Timestamp (UTC)

These records are never modified or deleted.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payment import AuditLog

logger = logging.getLogger("pos_payments.audit")


async def log_event(
    session: AsyncSession,
    action: str,
    transaction_id: Optional[str] = None,
    order_ref: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Create an immutable audit log entry.

    Args:
        session: Database session.
        action: What happened (e.g. "transaction_opened", "payment_succeeded").
        transaction_id: The transaction this event relates to.
        order_ref: The order the transaction belongs to.
        details: Arbitrary context (serialized to JSON).

    Returns:
        The created AuditLog record.
    """
    entry = AuditLog(
        transaction_id=transaction_id,
        order_ref=order_ref,
        action=action,
        details=json.dumps(details, default=str) if details else None,
        timestamp=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | txn=%s order=%s action=%s | %s",
        transaction_id or "-",
        order_ref or "-",
        action,
        json.dumps(details, default=str)[:200] if details else "",
    )
    return entry


def append_note(existing_notes: Optional[str], message: str) -> str:
    """Append a timestamped note to a transaction's running notes field."""
    prefix = f"[{datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}] "
    new_note = prefix + message
    if not existing_notes:
        return new_note
    return f"{existing_notes}\n{new_note}"
