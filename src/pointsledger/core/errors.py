"""Error taxonomy shared by the ledger, catalog and redemption services."""

from __future__ import annotations

from typing import Optional
from uuid import UUID


class PointsEconomyError(Exception):
    """Raised when a points economy rule is violated.

    Every subclass is recoverable by the caller and is raised only after the
    enclosing atomic unit has been, or will be, rolled back.
    """

    status_code = 400

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class InvalidAmount(PointsEconomyError):
    """Raised for non-positive point amounts or out-of-range quantities."""


class AccountNotFound(PointsEconomyError):
    status_code = 404

    def __init__(self, account_id: UUID) -> None:
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class InsufficientFunds(PointsEconomyError):
    status_code = 409

    def __init__(self, account_id: UUID, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient points: requested {requested}, available {available}."
        )
        self.account_id = account_id
        self.requested = requested
        self.available = available


class RewardNotFound(PointsEconomyError):
    status_code = 404

    def __init__(self, reward_id: UUID) -> None:
        super().__init__(f"Reward {reward_id} not found")
        self.reward_id = reward_id


class RewardInactive(PointsEconomyError):
    status_code = 409

    def __init__(self, reward_id: UUID) -> None:
        super().__init__(f"Reward {reward_id} is not available for redemption")
        self.reward_id = reward_id


class InsufficientStock(PointsEconomyError):
    status_code = 409

    def __init__(self, reward_id: UUID, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock: requested {requested}, available {available}."
        )
        self.reward_id = reward_id
        self.requested = requested
        self.available = available


class RewardInUse(PointsEconomyError):
    status_code = 409

    def __init__(self, reward_id: UUID, pending: int) -> None:
        super().__init__(
            f"Reward {reward_id} cannot be deleted while {pending} redemption(s) are pending"
        )
        self.reward_id = reward_id
        self.pending = pending


class RedemptionNotFound(PointsEconomyError):
    status_code = 404

    def __init__(self, redemption_id: UUID) -> None:
        super().__init__(f"Redemption {redemption_id} not found")
        self.redemption_id = redemption_id


class InvalidTransition(PointsEconomyError):
    status_code = 409

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move a redemption from {current} to {target}.")
        self.current = current
        self.target = target


class Busy(PointsEconomyError):
    """Raised when an atomic unit could not acquire its rows in time."""

    status_code = 503

    def __init__(self, detail: str = "The points store is busy, retry the request.") -> None:
        super().__init__(detail)


class StorageUnavailable(PointsEconomyError):
    """Raised when the durable store fails inside an atomic unit."""

    status_code = 503

    def __init__(self, detail: str = "The points store is unavailable.") -> None:
        super().__init__(detail)
