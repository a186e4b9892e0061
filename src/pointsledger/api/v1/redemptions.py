"""Endpoints for redemption review and history."""

from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.errors import PointsEconomyError
from ...models import RedemptionStatus
from ...schemas import RedemptionDetail, RedemptionRead, RedemptionStatusUpdate, StatusTotals
from ...services import redemption_service

router = APIRouter(prefix="/redemptions", tags=["redemptions"])


@router.get(
    "",
    response_model=List[RedemptionDetail],
    summary="List redemptions",
    responses={
        200: {
            "description": "Paged redemption list",
            "content": {
                "application/json": {
                    "example": [
                        {
                            "redemption_id": "88888888-8888-8888-8888-888888888888",
                            "account_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
                            "reward_id": "55555555-5555-5555-5555-555555555555",
                            "quantity": 1,
                            "points_spent": 30,
                            "status": "pending",
                            "created_at": "2025-11-12T14:30:00",
                            "updated_at": "2025-11-12T14:30:00",
                            "account": {
                                "account_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
                                "display_name": "Bianca Liu",
                                "role": "student",
                            },
                            "reward_name": "Extra recess",
                        }
                    ]
                }
            },
        }
    },
)
def list_redemptions(
    *,
    account_id: Optional[UUID] = Query(None, description="Filter by account UUID"),
    reward_id: Optional[UUID] = Query(None, description="Filter by reward UUID"),
    status: Optional[RedemptionStatus] = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=100, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[RedemptionDetail]:
    """Fetch redemptions with optional account, reward and status filters."""

    redemptions = redemption_service.list_redemptions(
        db,
        account_id=account_id,
        reward_id=reward_id,
        status=status,
        limit=limit,
        offset=offset,
    )
    return list(redemptions)


@router.get("/stats", response_model=Dict[str, StatusTotals], summary="Redemption totals per status")
def redemption_stats(db: Session = Depends(get_db)) -> Dict[str, StatusTotals]:
    return redemption_service.redemption_stats(db)


@router.get(
    "/{redemption_id}",
    response_model=RedemptionDetail,
    summary="Fetch a redemption",
    responses={404: {"description": "Redemption not found"}},
)
def get_redemption(redemption_id: UUID, db: Session = Depends(get_db)) -> RedemptionDetail:
    try:
        return redemption_service.get_redemption(db, redemption_id)
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.put(
    "/{redemption_id}/status",
    response_model=RedemptionRead,
    summary="Approve, reject or deliver a redemption",
    responses={
        404: {"description": "Redemption not found"},
        409: {"description": "Transition not allowed from the current status"},
        503: {"description": "Store busy or unavailable; nothing was changed"},
    },
)
def update_redemption_status(
    redemption_id: UUID,
    payload: RedemptionStatusUpdate,
    db: Session = Depends(get_db),
) -> RedemptionRead:
    """Record an administrative decision.

    Rejecting a pending redemption refunds its points and restocks the reward.

    Example request body::

        {
            "status": "rejected",
            "actor_id": "dddddddd-dddd-dddd-dddd-dddddddddddd"
        }
    """

    try:
        return redemption_service.set_redemption_status(
            db,
            redemption_id,
            payload.status,
            actor_id=payload.actor_id,
        )
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
