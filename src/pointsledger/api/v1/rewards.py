"""Reward catalog endpoints, including redeeming a reward."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.errors import PointsEconomyError
from ...models import RewardCategory
from ...schemas import (
    RedemptionCreate,
    RedemptionReceipt,
    RewardCreate,
    RewardPage,
    RewardRead,
    RewardStats,
    RewardUpdate,
)
from ...services import ledger_service, redemption_service, reward_service

router = APIRouter(prefix="/rewards", tags=["rewards"])


def _with_counts(db: Session, rewards) -> List[RewardRead]:
    counts = reward_service.redemption_counts(db, [reward.reward_id for reward in rewards])
    items = []
    for reward in rewards:
        total, pending = counts[reward.reward_id]
        item = RewardRead.model_validate(reward)
        items.append(item.model_copy(update={"total_redemptions": total, "pending_redemptions": pending}))
    return items


@router.get("", response_model=RewardPage, summary="List rewards")
def list_rewards(
    *,
    active: Optional[bool] = Query(None, description="Filter by availability"),
    category: Optional[RewardCategory] = Query(None, description="Filter by category"),
    min_cost: Optional[int] = Query(None, ge=1, description="Cheapest cost to include"),
    max_cost: Optional[int] = Query(None, ge=1, description="Most expensive cost to include"),
    affordable_for: Optional[UUID] = Query(None, description="Only rewards this account can afford"),
    limit: int = Query(50, ge=1, le=100, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> RewardPage:
    """Browse the catalog, newest first, with redemption counts per reward."""

    if affordable_for is not None:
        try:
            balance = ledger_service.get_balance(db, affordable_for)
        except PointsEconomyError as exc:
            raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
        max_cost = balance if max_cost is None else min(max_cost, balance)

    filters = {
        "active": active,
        "category": category.value if category else None,
        "min_cost": min_cost,
        "max_cost": max_cost,
    }
    rewards = reward_service.list_rewards(db, limit=limit, offset=offset, **filters)
    return RewardPage(
        items=_with_counts(db, rewards),
        total=reward_service.count_rewards(db, **filters),
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=RewardStats, summary="Catalog totals")
def reward_stats(db: Session = Depends(get_db)) -> RewardStats:
    return RewardStats(**reward_service.reward_stats(db))


@router.get(
    "/{reward_id}",
    response_model=RewardRead,
    summary="Fetch a reward",
    responses={404: {"description": "Reward not found"}},
)
def get_reward(reward_id: UUID, db: Session = Depends(get_db)) -> RewardRead:
    try:
        reward = reward_service.get_reward(db, reward_id)
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return _with_counts(db, [reward])[0]


@router.post(
    "",
    response_model=RewardRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reward",
    responses={400: {"description": "Business rule violation"}},
)
def create_reward(payload: RewardCreate, db: Session = Depends(get_db)) -> RewardRead:
    """Add a reward to the catalog.

    Example request body::

        {
            "name": "Extra recess",
            "description": "Ten more minutes of recess for one day.",
            "cost": 30,
            "stock": 5,
            "category": "privilege"
        }
    """

    try:
        return reward_service.create_reward(
            db,
            name=payload.name,
            description=payload.description,
            cost=payload.cost,
            stock=payload.stock,
            category=payload.category.value,
            image_url=payload.image_url,
            active=payload.active,
            created_by=payload.created_by,
        )
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.patch(
    "/{reward_id}",
    response_model=RewardRead,
    summary="Edit a reward",
    responses={400: {"description": "No fields supplied"}, 404: {"description": "Reward not found"}},
)
def update_reward(reward_id: UUID, payload: RewardUpdate, db: Session = Depends(get_db)) -> RewardRead:
    changes = payload.model_dump(exclude_unset=True)
    if "category" in changes and changes["category"] is not None:
        changes["category"] = changes["category"].value
    try:
        reward = reward_service.update_reward(db, reward_id, changes)
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return _with_counts(db, [reward])[0]


@router.delete(
    "/{reward_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a reward",
    responses={404: {"description": "Reward not found"}, 409: {"description": "Reward has pending redemptions"}},
)
def delete_reward(reward_id: UUID, db: Session = Depends(get_db)) -> Response:
    try:
        reward_service.delete_reward(db, reward_id)
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{reward_id}/redeem",
    response_model=RedemptionReceipt,
    status_code=status.HTTP_201_CREATED,
    summary="Redeem a reward",
    responses={
        201: {
            "description": "Redemption recorded and awaiting review",
            "content": {
                "application/json": {
                    "example": {
                        "redemption": {
                            "redemption_id": "88888888-8888-8888-8888-888888888888",
                            "account_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
                            "reward_id": "55555555-5555-5555-5555-555555555555",
                            "quantity": 1,
                            "points_spent": 30,
                            "status": "pending",
                            "created_at": "2025-11-12T14:30:00",
                            "updated_at": "2025-11-12T14:30:00",
                        },
                        "available_balance": 70,
                    }
                }
            },
        },
        404: {"description": "Account or reward not found"},
        409: {"description": "Insufficient points or stock, or reward inactive"},
        503: {"description": "Store busy or unavailable; nothing was changed"},
    },
)
def redeem_reward(
    reward_id: UUID,
    payload: RedemptionCreate,
    db: Session = Depends(get_db),
) -> RedemptionReceipt:
    """Spend points on a reward.

    Example request body::

        {
            "account_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
            "quantity": 1
        }
    """

    try:
        redemption, balance = redemption_service.claim_reward(
            db,
            account_id=payload.account_id,
            reward_id=reward_id,
            quantity=payload.quantity,
        )
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return RedemptionReceipt(redemption=redemption, available_balance=balance)
