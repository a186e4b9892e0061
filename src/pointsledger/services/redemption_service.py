"""Domain logic for reward redemptions.

Each mutating operation here is one atomic unit: the ledger debit or credit,
the stock movement and the redemption row commit together or not at all.
Rows are always touched in the order redemption, account, reward.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, joinedload

from ..core.config import get_settings
from ..core.errors import InvalidAmount, InvalidTransition, RedemptionNotFound, RewardInactive
from ..core.transactions import run_atomic
from ..models import PointEventType, Redemption, RedemptionStatus
from ..utils.datetime import utcnow
from . import ledger_service, reward_service
from .redemption_workflow import INITIAL_STATUS, coerce_status, validate_transition

logger = logging.getLogger(__name__)


def claim_reward(
    session: Session,
    *,
    account_id: UUID,
    reward_id: UUID,
    quantity: int = 1,
) -> tuple[Redemption, int]:
    """Claim ``quantity`` units of a reward for an account.

    The points spent are fixed here as ``cost * quantity`` and are the exact
    amount refunded should the redemption be rejected later. Returns the
    pending redemption and the balance left by the debit, read inside the
    same unit.
    """

    max_quantity = get_settings().max_claim_quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= max_quantity:
        raise InvalidAmount(f"Quantity must be between 1 and {max_quantity}.")

    def _claim() -> tuple[Redemption, int]:
        reward = reward_service.get_reward(session, reward_id)
        if not reward.active:
            raise RewardInactive(reward_id)

        points_spent = reward.cost * quantity
        entry = ledger_service.debit(
            session,
            account_id,
            points_spent,
            event_type=PointEventType.REDEMPTION,
            reason=f"Redeemed {quantity} x {reward.name}",
        )
        reward_service.reserve_stock(session, reward_id, quantity)

        redemption = Redemption(
            account_id=account_id,
            reward_id=reward_id,
            quantity=quantity,
            points_spent=points_spent,
            status=INITIAL_STATUS,
        )
        session.add(redemption)
        entry.redemption = redemption
        session.flush()
        return redemption, ledger_service.get_balance(session, account_id)

    redemption, balance = run_atomic(session, _claim, name="create redemption")
    session.refresh(redemption)
    logger.info(
        "redemption created: redemption=%s account=%s reward=%s quantity=%s points=%s",
        redemption.redemption_id,
        account_id,
        reward_id,
        quantity,
        redemption.points_spent,
    )
    return redemption, balance


def create_redemption(
    session: Session,
    *,
    account_id: UUID,
    reward_id: UUID,
    quantity: int = 1,
) -> Redemption:
    """Claim a reward and return the pending redemption."""

    redemption, _ = claim_reward(session, account_id=account_id, reward_id=reward_id, quantity=quantity)
    return redemption


def set_redemption_status(
    session: Session,
    redemption_id: UUID,
    status: Union[str, RedemptionStatus],
    *,
    actor_id: Optional[UUID] = None,
) -> Redemption:
    """Move a redemption to ``status``, compensating when it is rejected.

    The status write is a compare-and-set on the status read under lock, so
    two concurrent rejections cannot both refund.
    """

    target = coerce_status(status)

    def _decide() -> Redemption:
        redemption = session.execute(
            select(Redemption)
            .where(Redemption.redemption_id == redemption_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if redemption is None:
            raise RedemptionNotFound(redemption_id)

        transition = validate_transition(redemption.status, target)

        swapped = session.execute(
            update(Redemption)
            .where(
                Redemption.redemption_id == redemption_id,
                Redemption.status == transition.source,
            )
            .values(status=transition.target, updated_at=utcnow(), decided_by=actor_id)
            .execution_options(synchronize_session=False)
        ).rowcount
        if swapped == 0:
            current = session.execute(
                select(Redemption.status).where(Redemption.redemption_id == redemption_id)
            ).scalar_one()
            raise InvalidTransition(coerce_status(current).value, transition.target.value)

        if transition.compensates:
            refund = ledger_service.credit(
                session,
                redemption.account_id,
                redemption.points_spent,
                event_type=PointEventType.REDEMPTION_REFUND,
                reason="Redemption rejected",
                actor_id=actor_id,
            )
            refund.redemption = redemption
            reward_service.release_stock(session, redemption.reward_id, redemption.quantity)
            logger.info(
                "redemption compensated: redemption=%s account=%s points=%s quantity=%s",
                redemption.redemption_id,
                redemption.account_id,
                redemption.points_spent,
                redemption.quantity,
            )

        session.flush()
        return redemption

    redemption = run_atomic(session, _decide, name="set redemption status")
    session.refresh(redemption)
    logger.info("redemption status changed: redemption=%s status=%s", redemption_id, redemption.status.value)
    return redemption


def get_redemption(session: Session, redemption_id: UUID) -> Redemption:
    stmt = (
        select(Redemption)
        .options(joinedload(Redemption.reward), joinedload(Redemption.account))
        .where(Redemption.redemption_id == redemption_id)
    )
    redemption = session.execute(stmt).scalar_one_or_none()
    if redemption is None:
        raise RedemptionNotFound(redemption_id)
    return redemption


def list_redemptions(
    session: Session,
    *,
    account_id: Optional[UUID] = None,
    reward_id: Optional[UUID] = None,
    status: Optional[Union[str, RedemptionStatus]] = None,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[Redemption]:
    """Retrieve redemptions with optional filters, newest first."""

    stmt = (
        select(Redemption)
        .options(joinedload(Redemption.reward), joinedload(Redemption.account))
        .order_by(Redemption.created_at.desc())
        .offset(offset)
        .limit(limit)
    )

    if account_id:
        stmt = stmt.where(Redemption.account_id == account_id)
    if reward_id:
        stmt = stmt.where(Redemption.reward_id == reward_id)
    if status:
        stmt = stmt.where(Redemption.status == coerce_status(status))

    return session.execute(stmt).scalars().all()


def redemption_stats(session: Session) -> dict[str, dict[str, int]]:
    """Return redemption count and points spent per status."""

    stmt = select(
        Redemption.status,
        func.count(Redemption.redemption_id),
        func.coalesce(func.sum(Redemption.points_spent), 0),
    ).group_by(Redemption.status)

    summary = {status.value: {"count": 0, "total_points": 0} for status in RedemptionStatus}
    for status, count, total_points in session.execute(stmt).all():
        summary[coerce_status(status).value] = {"count": int(count), "total_points": int(total_points)}
    return summary
