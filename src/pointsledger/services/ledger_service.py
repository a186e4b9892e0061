"""Points ledger: account balances and the movement journal.

``credit`` and ``debit`` only stage work on the session; callers compose them
into an atomic unit with :func:`pointsledger.core.transactions.run_atomic`.
A debit is a single conditional ``UPDATE`` so the sufficiency check and the
decrement cannot be separated by a concurrent writer.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..core.errors import AccountNotFound, InsufficientFunds, InvalidAmount, PointsEconomyError
from ..core.transactions import run_atomic
from ..models import CREDIT_EVENTS, DEBIT_EVENTS, Account, PointEventType, PointTransaction
from ..utils.datetime import utcnow

logger = logging.getLogger(__name__)

ACCOUNT_ROLES = ("student", "teacher", "admin")


def _require_positive(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"Point amounts must be positive integers, got {amount!r}.")


def _ensure_account(session: Session, account_id: UUID) -> Account:
    account = session.get(Account, account_id)
    if account is None:
        raise AccountNotFound(account_id)
    return account


def _current_balance(session: Session, account_id: UUID) -> Optional[int]:
    stmt = select(Account.balance).where(Account.account_id == account_id)
    return session.execute(stmt).scalar_one_or_none()


def credit(
    session: Session,
    account_id: UUID,
    amount: int,
    *,
    event_type: PointEventType = PointEventType.AWARD,
    reason: Optional[str] = None,
    actor_id: Optional[UUID] = None,
) -> PointTransaction:
    """Increase the balance and stage the matching journal entry."""

    _require_positive(amount)
    if event_type not in CREDIT_EVENTS:
        raise ValueError(f"{event_type} is not a credit event")

    stmt = (
        update(Account)
        .where(Account.account_id == account_id)
        .values(balance=Account.balance + amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if session.execute(stmt).rowcount == 0:
        raise AccountNotFound(account_id)

    entry = PointTransaction(
        account_id=account_id,
        event_type=event_type,
        points_delta=amount,
        reason=reason,
        actor_id=actor_id,
    )
    session.add(entry)
    return entry


def debit(
    session: Session,
    account_id: UUID,
    amount: int,
    *,
    event_type: PointEventType = PointEventType.DEDUCTION,
    reason: Optional[str] = None,
    actor_id: Optional[UUID] = None,
) -> PointTransaction:
    """Decrease the balance, refusing any debit that would make it negative."""

    _require_positive(amount)
    if event_type not in DEBIT_EVENTS:
        raise ValueError(f"{event_type} is not a debit event")

    stmt = (
        update(Account)
        .where(Account.account_id == account_id, Account.balance >= amount)
        .values(balance=Account.balance - amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if session.execute(stmt).rowcount == 0:
        available = _current_balance(session, account_id)
        if available is None:
            raise AccountNotFound(account_id)
        logger.info(
            "debit refused: account=%s requested=%s available=%s",
            account_id,
            amount,
            available,
        )
        raise InsufficientFunds(account_id, amount, available)

    entry = PointTransaction(
        account_id=account_id,
        event_type=event_type,
        points_delta=-amount,
        reason=reason,
        actor_id=actor_id,
    )
    session.add(entry)
    return entry


def get_balance(session: Session, account_id: UUID) -> int:
    """Return the committed balance of an account."""

    balance = _current_balance(session, account_id)
    if balance is None:
        raise AccountNotFound(account_id)
    return balance


def open_account(
    session: Session,
    *,
    display_name: str,
    role: str = "student",
    opening_balance: int = 0,
    actor_id: Optional[UUID] = None,
) -> Account:
    """Create an account for a newly registered user."""

    if role not in ACCOUNT_ROLES:
        raise PointsEconomyError(f"Unknown account role {role!r}.")
    if opening_balance < 0:
        raise InvalidAmount("Opening balance cannot be negative.")

    def _open() -> Account:
        account = Account(display_name=display_name, role=role, balance=0)
        session.add(account)
        session.flush()
        if opening_balance:
            credit(
                session,
                account.account_id,
                opening_balance,
                event_type=PointEventType.AWARD,
                reason="Opening balance",
                actor_id=actor_id,
            )
        return account

    account = run_atomic(session, _open, name="open account")
    session.refresh(account)
    logger.info("account opened: account=%s role=%s balance=%s", account.account_id, role, account.balance)
    return account


def award_points(
    session: Session,
    *,
    account_id: UUID,
    points: int,
    reason: str,
    actor_id: Optional[UUID] = None,
) -> tuple[PointTransaction, int, int]:
    """Apply a teacher's manual point adjustment.

    Positive ``points`` credit the account; negative ``points`` debit it and
    fail with ``InsufficientFunds`` rather than leaving a negative balance.
    Returns the journal entry with the balances before and after.
    """

    if isinstance(points, bool) or not isinstance(points, int) or points == 0:
        raise InvalidAmount("Points must be a non-zero integer.")
    if not reason or not reason.strip():
        raise InvalidAmount("A reason is required to adjust points.")

    def _adjust() -> tuple[PointTransaction, int, int]:
        if points > 0:
            entry = credit(
                session,
                account_id,
                points,
                event_type=PointEventType.AWARD,
                reason=reason,
                actor_id=actor_id,
            )
        else:
            entry = debit(
                session,
                account_id,
                -points,
                event_type=PointEventType.DEDUCTION,
                reason=reason,
                actor_id=actor_id,
            )
        session.flush()
        new_balance = get_balance(session, account_id)
        return entry, new_balance - points, new_balance

    entry, previous, current = run_atomic(session, _adjust, name="award points")
    logger.info(
        "points adjusted: account=%s delta=%s balance=%s->%s",
        account_id,
        points,
        previous,
        current,
    )
    return entry, previous, current


def list_transactions(
    session: Session,
    *,
    account_id: UUID,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[PointTransaction]:
    """Return the account's journal, newest first."""

    _ensure_account(session, account_id)

    stmt = (
        select(PointTransaction)
        .where(PointTransaction.account_id == account_id)
        .order_by(PointTransaction.created_at.desc(), PointTransaction.entry_id.desc())
        .offset(offset)
        .limit(limit)
    )
    return session.execute(stmt).scalars().all()
