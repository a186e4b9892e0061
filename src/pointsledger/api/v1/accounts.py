"""Account balance and point adjustment endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.errors import PointsEconomyError
from ...schemas import (
    AccountCreate,
    AccountRead,
    BalanceRead,
    PointsAward,
    PointsAwardReceipt,
    PointTransactionRead,
)
from ...services import ledger_service

router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post(
    "",
    response_model=AccountRead,
    status_code=status.HTTP_201_CREATED,
    summary="Open an account",
)
def open_account(payload: AccountCreate, db: Session = Depends(get_db)) -> AccountRead:
    try:
        return ledger_service.open_account(
            db,
            display_name=payload.display_name,
            role=payload.role,
            opening_balance=payload.opening_balance,
        )
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc


@router.get(
    "/{account_id}/balance",
    response_model=BalanceRead,
    summary="Current balance",
    responses={404: {"description": "Account not found"}},
)
def get_balance(account_id: UUID, db: Session = Depends(get_db)) -> BalanceRead:
    try:
        balance = ledger_service.get_balance(db, account_id)
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return BalanceRead(account_id=account_id, balance=balance)


@router.post(
    "/{account_id}/points",
    response_model=PointsAwardReceipt,
    summary="Award or remove points",
    responses={
        400: {"description": "Zero points or missing reason"},
        404: {"description": "Account not found"},
        409: {"description": "Removal would leave a negative balance"},
    },
)
def award_points(
    account_id: UUID,
    payload: PointsAward,
    db: Session = Depends(get_db),
) -> PointsAwardReceipt:
    """Apply a teacher's point adjustment.

    Example request body::

        {
            "points": 15,
            "reason": "Helped a classmate resolve a conflict"
        }
    """

    try:
        entry, previous, current = ledger_service.award_points(
            db,
            account_id=account_id,
            points=payload.points,
            reason=payload.reason,
            actor_id=payload.actor_id,
        )
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return PointsAwardReceipt(
        account_id=account_id,
        previous_balance=previous,
        new_balance=current,
        points_changed=payload.points,
        entry=PointTransactionRead.model_validate(entry),
    )


@router.get(
    "/{account_id}/transactions",
    response_model=List[PointTransactionRead],
    summary="Point movement history",
    responses={404: {"description": "Account not found"}},
)
def list_transactions(
    account_id: UUID,
    limit: int = Query(50, ge=1, le=100, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[PointTransactionRead]:
    try:
        entries = ledger_service.list_transactions(db, account_id=account_id, limit=limit, offset=offset)
    except PointsEconomyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return list(entries)
