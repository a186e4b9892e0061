"""Public schema exports."""

from .account import (
	AccountCreate,
	AccountRead,
	AccountSummary,
	BalanceRead,
	PointsAward,
	PointsAwardReceipt,
	PointTransactionRead,
)
from .redemption import (
	RedemptionCreate,
	RedemptionDetail,
	RedemptionRead,
	RedemptionReceipt,
	RedemptionStatusUpdate,
	StatusTotals,
)
from .reward import RewardCreate, RewardPage, RewardRead, RewardStats, RewardUpdate

__all__ = [
	"AccountCreate",
	"AccountRead",
	"AccountSummary",
	"BalanceRead",
	"PointTransactionRead",
	"PointsAward",
	"PointsAwardReceipt",
	"RedemptionCreate",
	"RedemptionDetail",
	"RedemptionRead",
	"RedemptionReceipt",
	"RedemptionStatusUpdate",
	"RewardCreate",
	"RewardPage",
	"RewardRead",
	"RewardStats",
	"RewardUpdate",
	"StatusTotals",
]
