"""Reward catalog and stock management."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import Session

from ..core.errors import InsufficientStock, InvalidAmount, RewardInactive, RewardInUse, RewardNotFound
from ..core.transactions import run_atomic
from ..models import Redemption, RedemptionStatus, Reward, RewardCategory
from ..utils.datetime import utcnow

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"name", "description", "category", "cost", "stock", "image_url", "active"})
REQUIRED_FIELDS = frozenset({"name", "description", "category", "cost", "active"})


def _require_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidAmount(f"Quantity must be a positive integer, got {quantity!r}.")


def get_reward(session: Session, reward_id: UUID) -> Reward:
    """Return a reward or raise ``RewardNotFound``."""

    reward = session.get(Reward, reward_id)
    if reward is None:
        raise RewardNotFound(reward_id)
    return reward


def reserve_stock(session: Session, reward_id: UUID, quantity: int) -> None:
    """Take ``quantity`` units out of stock in one conditional update.

    Unlimited rewards keep a NULL stock: ``NULL - quantity`` is still NULL, so
    the same statement is a no-op decrement for them.
    """

    _require_quantity(quantity)

    stmt = (
        update(Reward)
        .where(
            Reward.reward_id == reward_id,
            Reward.active.is_(True),
            or_(Reward.stock.is_(None), Reward.stock >= quantity),
        )
        .values(stock=Reward.stock - quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if session.execute(stmt).rowcount == 1:
        return

    row = session.execute(
        select(Reward.active, Reward.stock).where(Reward.reward_id == reward_id)
    ).one_or_none()
    if row is None:
        raise RewardNotFound(reward_id)
    if not row.active:
        raise RewardInactive(reward_id)
    raise InsufficientStock(reward_id, quantity, row.stock)


def release_stock(session: Session, reward_id: Optional[UUID], quantity: int) -> None:
    """Return ``quantity`` units to stock; never refuses.

    Compensation depends on this succeeding, so a missing reward is logged
    rather than raised.
    """

    if reward_id is None or quantity <= 0:
        logger.warning("release skipped: reward=%s quantity=%s", reward_id, quantity)
        return

    stmt = (
        update(Reward)
        .where(Reward.reward_id == reward_id)
        .values(stock=Reward.stock + quantity, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if session.execute(stmt).rowcount == 0:
        logger.warning("release found no reward row: reward=%s quantity=%s", reward_id, quantity)


def create_reward(
    session: Session,
    *,
    name: str,
    description: str,
    cost: int,
    stock: Optional[int] = None,
    category: str = RewardCategory.OTHER.value,
    image_url: Optional[str] = None,
    active: bool = True,
    created_by: Optional[UUID] = None,
) -> Reward:
    """Add a reward to the catalog."""

    if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
        raise InvalidAmount("Reward cost must be a positive integer.")
    if stock is not None and stock < 0:
        raise InvalidAmount("Reward stock cannot be negative.")

    reward = Reward(
        name=name,
        description=description,
        cost=cost,
        stock=stock,
        category=RewardCategory(category).value,
        image_url=image_url or None,
        active=active,
        created_by=created_by,
    )

    def _create() -> Reward:
        session.add(reward)
        session.flush()
        return reward

    run_atomic(session, _create, name="create reward")
    session.refresh(reward)
    logger.info("reward created: reward=%s cost=%s stock=%s", reward.reward_id, cost, stock)
    return reward


def update_reward(session: Session, reward_id: UUID, changes: dict[str, Any]) -> Reward:
    """Apply a partial edit to a reward's catalog fields."""

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise InvalidAmount(f"Cannot update reward fields: {', '.join(sorted(unknown))}.")
    if not changes:
        raise InvalidAmount("No fields to update.")
    cleared = sorted(field for field in REQUIRED_FIELDS if field in changes and changes[field] is None)
    if cleared:
        raise InvalidAmount(f"Reward fields cannot be null: {', '.join(cleared)}.")
    if "cost" in changes and (changes["cost"] is None or changes["cost"] <= 0):
        raise InvalidAmount("Reward cost must be a positive integer.")
    if changes.get("stock") is not None and changes["stock"] < 0:
        raise InvalidAmount("Reward stock cannot be negative.")
    if "category" in changes:
        changes = {**changes, "category": RewardCategory(changes["category"]).value}

    def _update() -> Reward:
        reward = session.execute(
            select(Reward).where(Reward.reward_id == reward_id).with_for_update()
        ).scalar_one_or_none()
        if reward is None:
            raise RewardNotFound(reward_id)
        for field, value in changes.items():
            setattr(reward, field, value)
        reward.updated_at = utcnow()
        session.flush()
        return reward

    reward = run_atomic(session, _update, name="update reward")
    session.refresh(reward)
    return reward


def delete_reward(session: Session, reward_id: UUID) -> None:
    """Delete a reward that no pending redemption references.

    The reward row is locked while counting pending redemptions so a
    concurrent claim cannot slip in between the check and the delete.
    """

    def _delete() -> None:
        reward = session.execute(
            select(Reward).where(Reward.reward_id == reward_id).with_for_update()
        ).scalar_one_or_none()
        if reward is None:
            raise RewardNotFound(reward_id)

        pending = session.execute(
            select(func.count(Redemption.redemption_id)).where(
                Redemption.reward_id == reward_id,
                Redemption.status == RedemptionStatus.PENDING,
            )
        ).scalar_one()
        if pending:
            raise RewardInUse(reward_id, pending)

        session.delete(reward)
        session.flush()

    run_atomic(session, _delete, name="delete reward")
    logger.info("reward deleted: reward=%s", reward_id)


def _catalog_filters(
    stmt,
    *,
    active: Optional[bool] = None,
    category: Optional[str] = None,
    min_cost: Optional[int] = None,
    max_cost: Optional[int] = None,
):
    if active is not None:
        stmt = stmt.where(Reward.active.is_(active))
    if category:
        stmt = stmt.where(Reward.category == category)
    if min_cost is not None:
        stmt = stmt.where(Reward.cost >= min_cost)
    if max_cost is not None:
        stmt = stmt.where(Reward.cost <= max_cost)
    return stmt


def list_rewards(
    session: Session,
    *,
    active: Optional[bool] = None,
    category: Optional[str] = None,
    min_cost: Optional[int] = None,
    max_cost: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[Reward]:
    """Retrieve catalog entries with optional filters."""

    stmt = select(Reward).order_by(Reward.created_at.desc()).offset(offset).limit(limit)
    stmt = _catalog_filters(stmt, active=active, category=category, min_cost=min_cost, max_cost=max_cost)
    return session.execute(stmt).scalars().all()


def count_rewards(
    session: Session,
    *,
    active: Optional[bool] = None,
    category: Optional[str] = None,
    min_cost: Optional[int] = None,
    max_cost: Optional[int] = None,
) -> int:
    """Count catalog entries matching the ``list_rewards`` filters."""

    stmt = select(func.count(Reward.reward_id))
    stmt = _catalog_filters(stmt, active=active, category=category, min_cost=min_cost, max_cost=max_cost)
    return session.execute(stmt).scalar_one()


def redemption_counts(session: Session, reward_ids: Sequence[UUID]) -> dict[UUID, tuple[int, int]]:
    """Map each reward id to its (total, pending) redemption counts."""

    if not reward_ids:
        return {}

    stmt = (
        select(
            Redemption.reward_id,
            func.count(Redemption.redemption_id),
            func.coalesce(func.sum(case((Redemption.status == RedemptionStatus.PENDING, 1), else_=0)), 0),
        )
        .where(Redemption.reward_id.in_(reward_ids))
        .group_by(Redemption.reward_id)
    )
    counts = {reward_id: (0, 0) for reward_id in reward_ids}
    for reward_id, total, pending in session.execute(stmt).all():
        counts[reward_id] = (int(total), int(pending))
    return counts


def reward_stats(session: Session) -> dict[str, int]:
    """Return catalog totals: all rewards, active ones and finite ones out of stock."""

    stmt = select(
        func.count(Reward.reward_id),
        func.coalesce(func.sum(case((Reward.active.is_(True), 1), else_=0)), 0),
        func.coalesce(func.sum(case((Reward.stock == 0, 1), else_=0)), 0),
    )
    total, active, out_of_stock = session.execute(stmt).one()
    return {
        "total_rewards": int(total),
        "active_rewards": int(active),
        "out_of_stock": int(out_of_stock),
    }
