"""Models for group-related requests and responses."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from hulugan.common import Group
from hulugan.metrics import FundStats, GroupProgress


class GroupResponse(BaseModel):
    """A group record as stored.

    :param id: Opaque unique identifier
    :param name: Display label
    :param weekly_amount: Contribution per week
    :param weeks_total: Weeks in the fund cycle
    :param paid_weeks: Weeks recorded as paid
    :param updated_at: ISO-8601 timestamp of the last write
    """

    id: str
    name: str
    weekly_amount: float
    weeks_total: int
    paid_weeks: int
    updated_at: str

    @classmethod
    def from_group(cls, group: Group) -> GroupResponse:
        return cls(
            id=group.id,
            name=group.name,
            weekly_amount=group.weekly_amount,
            weeks_total=group.weeks_total,
            paid_weeks=group.paid_weeks,
            updated_at=group.updated_at or "",
        )


class CreateGroupRequest(BaseModel):
    name: str
    weekly_amount: Decimal = Field(ge=0)
    weeks_total: int = Field(gt=0)
    paid_weeks: int = Field(default=0, ge=0)


class UpdatePaidWeeksRequest(BaseModel):
    """Request body for setting a group's paid weeks.

    Range checks against weeks_total are left to the record store.
    """

    paid_weeks: int


class GroupProgressResponse(BaseModel):
    group_id: str
    name: str
    paid_weeks: float
    weeks_total: float
    paid_amount: float
    percent: float
    rounded_percent: int

    @classmethod
    def from_progress(cls, progress: GroupProgress) -> GroupProgressResponse:
        return cls(
            group_id=progress.group_id,
            name=progress.name,
            paid_weeks=float(progress.paid_weeks),
            weeks_total=float(progress.weeks_total),
            paid_amount=float(progress.paid_amount),
            percent=progress.percent,
            rounded_percent=progress.rounded_percent,
        )


class FundSummaryResponse(BaseModel):
    """Aggregate fund figures plus per-group progress, in display order."""

    members: int
    month_weeks: float
    total_collected: float
    full_month_paid: int
    target_per_member: float
    reference_weekly_amount: float
    groups: list[GroupProgressResponse]

    @classmethod
    def from_stats(
        cls,
        stats: FundStats,
        progress: list[GroupProgress],
    ) -> FundSummaryResponse:
        return cls(
            members=stats.members,
            month_weeks=float(stats.month_weeks),
            total_collected=float(stats.total_collected),
            full_month_paid=stats.full_month_paid,
            target_per_member=float(stats.target_per_member),
            reference_weekly_amount=float(stats.reference_weekly_amount),
            groups=[GroupProgressResponse.from_progress(p) for p in progress],
        )
