"""Pure fund metrics shared by the API and the client."""

from .engine import (
    FundStats,
    GroupProgress,
    coerce_number,
    compute_fund_stats,
    format_amount,
    group_progress,
)

__all__ = [
    "FundStats",
    "GroupProgress",
    "coerce_number",
    "compute_fund_stats",
    "format_amount",
    "group_progress",
]
