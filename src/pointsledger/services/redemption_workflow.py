"""Redemption lifecycle rules.

A redemption is created ``pending``. From there an administrator either
approves it (no side effect) or rejects it (the points and stock taken at
claim time are given back). Approved redemptions may later be marked
delivered. ``rejected`` and ``delivered`` are final.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Union

from ..core.errors import InvalidTransition
from ..models import RedemptionStatus

ALLOWED_TRANSITIONS: Mapping[RedemptionStatus, frozenset[RedemptionStatus]] = {
    RedemptionStatus.PENDING: frozenset({RedemptionStatus.APPROVED, RedemptionStatus.REJECTED}),
    RedemptionStatus.APPROVED: frozenset({RedemptionStatus.DELIVERED}),
    RedemptionStatus.REJECTED: frozenset(),
    RedemptionStatus.DELIVERED: frozenset(),
}

COMPENSATING_TRANSITIONS = frozenset({(RedemptionStatus.PENDING, RedemptionStatus.REJECTED)})

INITIAL_STATUS = RedemptionStatus.PENDING


@dataclass(frozen=True)
class Transition:
    """A validated move between two redemption statuses."""

    source: RedemptionStatus
    target: RedemptionStatus

    @property
    def compensates(self) -> bool:
        """True when the move must refund points and restock the reward."""
        return (self.source, self.target) in COMPENSATING_TRANSITIONS


def coerce_status(value: Union[str, RedemptionStatus]) -> RedemptionStatus:
    """Parse a status name, raising ``InvalidTransition`` for unknown ones."""

    if isinstance(value, RedemptionStatus):
        return value
    try:
        return RedemptionStatus(str(value).lower())
    except ValueError as exc:
        raise InvalidTransition("unknown", str(value)) from exc


def is_terminal(status: RedemptionStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def validate_transition(
    current: Union[str, RedemptionStatus],
    target: Union[str, RedemptionStatus],
) -> Transition:
    """Return the transition from ``current`` to ``target`` or raise ``InvalidTransition``."""

    source = coerce_status(current)
    destination = coerce_status(target)
    if destination not in ALLOWED_TRANSITIONS[source]:
        raise InvalidTransition(source.value, destination.value)
    return Transition(source=source, target=destination)
