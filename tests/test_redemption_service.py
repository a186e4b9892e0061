"""Redemption coordinator tests: claims, decisions and compensation."""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from pointsledger.core.errors import (
    AccountNotFound,
    InsufficientFunds,
    InsufficientStock,
    InvalidAmount,
    InvalidTransition,
    RedemptionNotFound,
    RewardInactive,
    RewardNotFound,
    StorageUnavailable,
)
from pointsledger.models import PointEventType, PointTransaction, Redemption, RedemptionStatus
from pointsledger.services import ledger_service, redemption_service, reward_service


def _state(session, account_id, reward_id):
    balance = ledger_service.get_balance(session, account_id)
    stock = reward_service.get_reward(session, reward_id).stock
    return balance, stock


def _redemption_count(session) -> int:
    return session.execute(select(func.count(Redemption.redemption_id))).scalar_one()


def test_redeem_within_balance_and_stock(db_session, make_account, make_reward):
    """Balance 100, cost 30, stock 2: one claim leaves 70 points and 1 unit."""
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)

    redemption = redemption_service.create_redemption(
        db_session, account_id=account_id, reward_id=reward_id, quantity=1
    )

    assert redemption.status == RedemptionStatus.PENDING
    assert redemption.points_spent == 30
    assert redemption.quantity == 1
    assert _state(db_session, account_id, reward_id) == (70, 1)

    entries = ledger_service.list_transactions(db_session, account_id=account_id)
    assert entries[0].event_type == PointEventType.REDEMPTION
    assert entries[0].points_delta == -30
    assert entries[0].related_redemption_id == redemption.redemption_id


def test_redeem_multiple_units(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=20, stock=5)

    redemption = redemption_service.create_redemption(
        db_session, account_id=account_id, reward_id=reward_id, quantity=3
    )

    assert redemption.points_spent == 60
    assert _state(db_session, account_id, reward_id) == (40, 2)


def test_redeem_with_insufficient_points_changes_nothing(db_session, make_account, make_reward):
    """Balance 20, cost 30: InsufficientFunds and nothing moves."""
    account_id = make_account(balance=20)
    reward_id = make_reward(cost=30, stock=2)

    with pytest.raises(InsufficientFunds):
        redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)

    assert _state(db_session, account_id, reward_id) == (20, 2)
    assert _redemption_count(db_session) == 0


def test_stock_failure_rolls_back_the_debit(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=10, stock=1)

    with pytest.raises(InsufficientStock):
        redemption_service.create_redemption(
            db_session, account_id=account_id, reward_id=reward_id, quantity=2
        )

    assert _state(db_session, account_id, reward_id) == (100, 1)
    assert _redemption_count(db_session) == 0
    assert len(ledger_service.list_transactions(db_session, account_id=account_id)) == 1


def test_storage_failure_rolls_back_the_debit(db_session, make_account, make_reward, monkeypatch):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)

    def _broken_reserve(session, reward_id, quantity):
        raise OperationalError("UPDATE rewards", {}, Exception("disk I/O error"))

    monkeypatch.setattr(reward_service, "reserve_stock", _broken_reserve)

    with pytest.raises(StorageUnavailable):
        redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)

    assert _state(db_session, account_id, reward_id) == (100, 2)
    assert _redemption_count(db_session) == 0


def test_redeem_inactive_reward(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(active=False)

    with pytest.raises(RewardInactive):
        redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)

    assert ledger_service.get_balance(db_session, account_id) == 100


def test_redeem_unknown_account_or_reward(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward()

    with pytest.raises(RewardNotFound):
        redemption_service.create_redemption(db_session, account_id=account_id, reward_id=uuid.uuid4())
    with pytest.raises(AccountNotFound):
        redemption_service.create_redemption(db_session, account_id=uuid.uuid4(), reward_id=reward_id)

    assert _state(db_session, account_id, reward_id) == (100, 2)


@pytest.mark.parametrize("quantity", [0, -1, 11, True])
def test_redeem_quantity_bounds(db_session, make_account, make_reward, quantity):
    account_id = make_account(balance=1000)
    reward_id = make_reward(cost=1, stock=None)

    with pytest.raises(InvalidAmount):
        redemption_service.create_redemption(
            db_session, account_id=account_id, reward_id=reward_id, quantity=quantity
        )


def test_reject_refunds_points_and_stock(db_session, make_account, make_reward):
    """Rejecting the scenario A redemption restores 100 points and 2 units."""
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)
    redemption = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    admin_id = uuid.uuid4()

    rejected = redemption_service.set_redemption_status(
        db_session, redemption.redemption_id, RedemptionStatus.REJECTED, actor_id=admin_id
    )

    assert rejected.status == RedemptionStatus.REJECTED
    assert rejected.decided_by == admin_id
    assert _state(db_session, account_id, reward_id) == (100, 2)

    refund = ledger_service.list_transactions(db_session, account_id=account_id)[0]
    assert refund.event_type == PointEventType.REDEMPTION_REFUND
    assert refund.points_delta == 30
    assert refund.related_redemption_id == redemption.redemption_id


def test_second_rejection_is_refused_and_refunds_once(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)
    redemption = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    redemption_service.set_redemption_status(db_session, redemption.redemption_id, "rejected")

    with pytest.raises(InvalidTransition):
        redemption_service.set_redemption_status(db_session, redemption.redemption_id, "rejected")

    assert _state(db_session, account_id, reward_id) == (100, 2)
    refunds = db_session.execute(
        select(func.count(PointTransaction.entry_id)).where(
            PointTransaction.event_type == PointEventType.REDEMPTION_REFUND
        )
    ).scalar_one()
    assert refunds == 1


def test_approve_then_deliver(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)
    redemption = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)

    approved = redemption_service.set_redemption_status(db_session, redemption.redemption_id, "approved")
    assert approved.status == RedemptionStatus.APPROVED
    assert _state(db_session, account_id, reward_id) == (70, 1)

    with pytest.raises(InvalidTransition):
        redemption_service.set_redemption_status(db_session, redemption.redemption_id, "rejected")

    delivered = redemption_service.set_redemption_status(db_session, redemption.redemption_id, "delivered")
    assert delivered.status == RedemptionStatus.DELIVERED
    assert _state(db_session, account_id, reward_id) == (70, 1)


def test_terminal_statuses_accept_no_transition(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=10, stock=5)
    delivered = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    redemption_service.set_redemption_status(db_session, delivered.redemption_id, "approved")
    redemption_service.set_redemption_status(db_session, delivered.redemption_id, "delivered")
    rejected = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    redemption_service.set_redemption_status(db_session, rejected.redemption_id, "rejected")
    before = _state(db_session, account_id, reward_id)

    for redemption_id in (delivered.redemption_id, rejected.redemption_id):
        for status in RedemptionStatus:
            with pytest.raises(InvalidTransition):
                redemption_service.set_redemption_status(db_session, redemption_id, status)

    assert _state(db_session, account_id, reward_id) == before


def test_pending_cannot_skip_to_delivered(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)
    redemption = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)

    with pytest.raises(InvalidTransition):
        redemption_service.set_redemption_status(db_session, redemption.redemption_id, "delivered")

    assert redemption_service.get_redemption(db_session, redemption.redemption_id).status == RedemptionStatus.PENDING


def test_unknown_redemption_and_status(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward()
    redemption = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)

    with pytest.raises(RedemptionNotFound):
        redemption_service.set_redemption_status(db_session, uuid.uuid4(), "approved")
    with pytest.raises(RedemptionNotFound):
        redemption_service.get_redemption(db_session, uuid.uuid4())
    with pytest.raises(InvalidTransition):
        redemption_service.set_redemption_status(db_session, redemption.redemption_id, "cancelled")


def test_refund_uses_points_spent_after_cost_change(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)
    redemption = redemption_service.create_redemption(
        db_session, account_id=account_id, reward_id=reward_id, quantity=2
    )
    reward_service.update_reward(db_session, reward_id, {"cost": 45})

    redemption_service.set_redemption_status(db_session, redemption.redemption_id, "rejected")

    assert _state(db_session, account_id, reward_id) == (100, 2)


def test_conservation_with_intervening_operations(db_session, make_account, make_reward):
    """Rejection restores exactly what the claim took, whatever happened in between."""
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=3)
    redemption = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    balance_after_claim, stock_after_claim = _state(db_session, account_id, reward_id)

    ledger_service.award_points(db_session, account_id=account_id, points=15, reason="Class helper")
    other = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    balance_before, stock_before = _state(db_session, account_id, reward_id)

    redemption_service.set_redemption_status(db_session, redemption.redemption_id, "rejected")

    balance_after, stock_after = _state(db_session, account_id, reward_id)
    assert balance_after == balance_before + redemption.points_spent
    assert stock_after == stock_before + redemption.quantity
    assert (balance_after_claim, stock_after_claim) == (70, 2)
    assert other.points_spent == 30
    assert (balance_after, stock_after) == (85, 2)



def test_list_redemptions_filters(db_session, make_account, make_reward):
    first = make_account(balance=100, display_name="Bianca Liu")
    second = make_account(balance=100, display_name="Carlos Menon")
    reward_id = make_reward(cost=10, stock=None)
    mine = redemption_service.create_redemption(db_session, account_id=first, reward_id=reward_id)
    theirs = redemption_service.create_redemption(db_session, account_id=second, reward_id=reward_id)
    redemption_service.set_redemption_status(db_session, theirs.redemption_id, "approved")

    by_account = redemption_service.list_redemptions(db_session, account_id=first)
    assert [r.redemption_id for r in by_account] == [mine.redemption_id]
    assert by_account[0].account.display_name == "Bianca Liu"
    assert by_account[0].reward_name == "Extra recess"

    approved = redemption_service.list_redemptions(db_session, status="approved")
    assert [r.redemption_id for r in approved] == [theirs.redemption_id]

    assert len(redemption_service.list_redemptions(db_session, reward_id=reward_id)) == 2
    assert redemption_service.list_redemptions(db_session, reward_id=uuid.uuid4()) == []


def test_redemption_stats(db_session, make_account, make_reward):
    account_id = make_account(balance=200)
    reward_id = make_reward(cost=20, stock=None)
    kept = redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    refused = redemption_service.create_redemption(
        db_session, account_id=account_id, reward_id=reward_id, quantity=2
    )
    redemption_service.create_redemption(db_session, account_id=account_id, reward_id=reward_id)
    redemption_service.set_redemption_status(db_session, kept.redemption_id, "approved")
    redemption_service.set_redemption_status(db_session, refused.redemption_id, "rejected")

    assert redemption_service.redemption_stats(db_session) == {
        "pending": {"count": 1, "total_points": 20},
        "approved": {"count": 1, "total_points": 20},
        "rejected": {"count": 1, "total_points": 40},
        "delivered": {"count": 0, "total_points": 0},
    }


def test_claim_reward_returns_balance_left_by_the_debit(db_session, make_account, make_reward):
    account_id = make_account(balance=100)
    reward_id = make_reward(cost=30, stock=2)

    redemption, balance = redemption_service.claim_reward(
        db_session, account_id=account_id, reward_id=reward_id, quantity=2
    )
    ledger_service.award_points(db_session, account_id=account_id, points=5, reason="Tidy desk")

    assert redemption.points_spent == 60
    assert balance == 40
    assert ledger_service.get_balance(db_session, account_id) == 45
