"""Tests for the transaction state machine."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.domain.amount import Amount, InvalidAmountError
from app.models.enums import AdminFlag, PaymentProvider, TransactionStatus, TransactionType
from app.models.payment import InvalidTransitionError, Transaction

S = TransactionStatus


def _txn(type=TransactionType.PAYMENT, amount="150000") -> Transaction:
    return Transaction.open("ORD-1", Amount(amount), PaymentProvider.SADAD, type=type)


class TestOpen:
    def test_starts_pending(self):
        txn = _txn()
        assert txn.current_status == S.PENDING
        assert txn.id.startswith("txn_")
        assert txn.amount == Decimal("150000.00")
        assert txn.provider == "sadad"
        assert txn.type == "payment"
        assert txn.updated_at >= txn.created_at

    def test_ids_are_unique(self):
        assert _txn().id != _txn().id

    def test_zero_amount_rejected(self):
        with pytest.raises(InvalidAmountError):
            _txn(amount="0")

    def test_ceiling_enforced(self):
        with pytest.raises(InvalidAmountError):
            _txn(amount="10000000.01")

    def test_ceiling_itself_allowed(self):
        assert _txn(amount="10000000").amount == Decimal("10000000.00")

    def test_order_ref_required(self):
        with pytest.raises(ValueError):
            Transaction.open("", Amount("1"), PaymentProvider.SEP)


class TestTransitions:
    @pytest.mark.parametrize("target", [S.SUCCESS, S.FAILED, S.TIMEOUT, S.DECLINED, S.CANCELLED])
    def test_pending_moves_anywhere(self, target):
        txn = _txn()
        txn.transition_to(target)
        assert txn.current_status == target

    @pytest.mark.parametrize("terminal", [S.SUCCESS, S.FAILED, S.DECLINED, S.CANCELLED])
    def test_terminal_states_are_final(self, terminal):
        txn = _txn()
        txn.transition_to(terminal)
        assert txn.is_terminal()
        for target in S:
            with pytest.raises(InvalidTransitionError):
                txn.transition_to(target)

    def test_timeout_can_be_redriven(self):
        txn = _txn()
        txn.transition_to(S.TIMEOUT)
        assert not txn.is_terminal()
        txn.transition_to(S.PENDING)
        txn.transition_to(S.SUCCESS)
        assert txn.is_successful()

    def test_timeout_can_settle_directly(self):
        txn = _txn()
        txn.transition_to(S.TIMEOUT)
        txn.transition_to(S.SUCCESS)
        assert txn.current_status == S.SUCCESS

    def test_pending_cannot_restart(self):
        with pytest.raises(InvalidTransitionError):
            _txn().transition_to(S.PENDING)

    def test_transition_bumps_updated_at(self):
        txn = _txn()
        txn.created_at = datetime.now(timezone.utc) + timedelta(seconds=5)
        txn.transition_to(S.SUCCESS)
        assert txn.updated_at >= txn.created_at


class TestPredicates:
    def test_refundable_only_for_successful_payment(self):
        txn = _txn()
        assert not txn.is_refundable()
        txn.transition_to(S.SUCCESS)
        assert txn.is_refundable()

    def test_successful_refund_is_not_refundable(self):
        refund = _txn(type=TransactionType.REFUND)
        refund.transition_to(S.SUCCESS)
        assert not refund.is_refundable()

    @pytest.mark.parametrize("status, cancelable", [
        (S.TIMEOUT, True),
        (S.SUCCESS, False),
        (S.FAILED, False),
        (S.DECLINED, False),
        (S.CANCELLED, False),
    ])
    def test_cancelable(self, status, cancelable):
        txn = _txn()
        assert txn.is_cancelable()
        txn.transition_to(status)
        assert txn.is_cancelable() is cancelable

    def test_admin_flag_leaves_status(self):
        txn = _txn()
        txn.transition_to(S.SUCCESS)
        txn.set_admin_flag(AdminFlag.DISPUTED, "customer says not received")
        assert txn.current_status == S.SUCCESS
        assert txn.is_refundable()
        assert txn.admin_flag == "disputed"
        assert txn.admin_note == "customer says not received"
