"""Service layer exports."""

from . import (
	ledger_service,
	redemption_service,
	redemption_workflow,
	reward_service,
)

__all__ = [
	"ledger_service",
	"redemption_service",
	"redemption_workflow",
	"reward_service",
]
