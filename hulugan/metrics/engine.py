"""Fund metrics computed from a snapshot of group records.

Everything here is a pure function of its inputs. Progress is rendered
best-effort to end users, so malformed numeric fields are coerced to zero
instead of raising.

**Example Usage:**

.. code-block:: python

    stats = compute_fund_stats(groups)
    print(format_amount(stats.total_collected), stats.full_month_paid)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hulugan.common import Group

DEFAULT_MONTH_WEEKS = 4
DEFAULT_TARGET_PER_MEMBER = Decimal(40)
DEFAULT_WEEKLY_AMOUNT = Decimal(10)

_ZERO = Decimal(0)
_HUNDRED = Decimal(100)


@dataclass(frozen=True)
class GroupProgress:
    """Display-ready progress for a single group.

    :param group_id: Id of the group the figures belong to
    :param name: Display label of the group
    :param paid_weeks: Coerced paid weeks
    :param weeks_total: Coerced weeks in the cycle
    :param paid_amount: paid_weeks times weekly_amount
    :param percent: Progress in [0, 100]
    :param rounded_percent: percent rounded half-up for display
    """

    group_id: str
    name: str
    paid_weeks: int | Decimal
    weeks_total: int | Decimal
    paid_amount: Decimal
    percent: float
    rounded_percent: int


@dataclass(frozen=True)
class FundStats:
    """Aggregate figures across every group in a snapshot."""

    members: int
    month_weeks: int | Decimal
    total_collected: Decimal
    full_month_paid: int
    target_per_member: Decimal
    reference_weekly_amount: Decimal


def coerce_number(value: Any) -> Decimal:
    """Coerce a record field to a finite Decimal, using zero for anything else.

    Numeric strings are parsed. Booleans, None, NaN, infinities and
    unparseable values all become zero.

    :param value: Raw field value
    :return: The value as a Decimal
    """
    if value is None or isinstance(value, bool):
        return _ZERO

    if isinstance(value, float):
        if not math.isfinite(value):
            return _ZERO
        number = Decimal(str(value))
    elif isinstance(value, (int, Decimal)):
        number = Decimal(value)
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip() or "0")
        except InvalidOperation:
            return _ZERO
    else:
        return _ZERO

    if not number.is_finite():
        return _ZERO
    return number


def _plain(number: Decimal) -> int | Decimal:
    if number == number.to_integral_value():
        return int(number)
    return number


def clamp(value: Decimal, lower: Decimal, upper: Decimal) -> Decimal:
    return max(lower, min(upper, value))


def _percent(paid_weeks: Decimal, weeks_total: Decimal) -> Decimal:
    if weeks_total <= 0:
        return _ZERO
    return clamp(paid_weeks * _HUNDRED / weeks_total, _ZERO, _HUNDRED)


def group_progress(group: Group) -> GroupProgress:
    """Compute progress figures for one group.

    A cycle of zero weeks is reported as 0% rather than dividing by zero.

    :param group: The group snapshot
    :return: The group's progress figures
    """
    paid_weeks = coerce_number(group.paid_weeks)
    weeks_total = coerce_number(group.weeks_total)
    weekly_amount = coerce_number(group.weekly_amount)
    percent = _percent(paid_weeks, weeks_total)

    return GroupProgress(
        group_id=group.id,
        name=group.name,
        paid_weeks=_plain(paid_weeks),
        weeks_total=_plain(weeks_total),
        paid_amount=paid_weeks * weekly_amount,
        percent=float(percent),
        rounded_percent=int(percent.quantize(Decimal(1), rounding=ROUND_HALF_UP)),
    )


def compute_fund_stats(groups: Sequence[Group]) -> FundStats:
    """Compute aggregate fund statistics for an ordered group snapshot.

    The first group in the sequence is the reference for the per-member
    target, which assumes every group shares the same cycle and amount.

    :param groups: Group snapshots, most recently updated first
    :return: The aggregate statistics
    """
    members = len(groups)

    if members:
        month_weeks = _plain(max(coerce_number(g.weeks_total) for g in groups))
    else:
        month_weeks = DEFAULT_MONTH_WEEKS

    total_collected = sum(
        (coerce_number(g.paid_weeks) * coerce_number(g.weekly_amount) for g in groups),
        _ZERO,
    )

    full_month_paid = sum(
        1
        for g in groups
        if coerce_number(g.paid_weeks) >= coerce_number(g.weeks_total)
    )

    target_per_member = DEFAULT_TARGET_PER_MEMBER
    reference_weekly_amount = DEFAULT_WEEKLY_AMOUNT
    if groups:
        reference = groups[0]
        reference_weeks = coerce_number(reference.weeks_total)
        if reference_weeks:
            target_per_member = reference_weeks * coerce_number(
                reference.weekly_amount,
            )
        if reference.weekly_amount is not None:
            reference_weekly_amount = coerce_number(reference.weekly_amount)

    return FundStats(
        members=members,
        month_weeks=month_weeks,
        total_collected=total_collected,
        full_month_paid=full_month_paid,
        target_per_member=target_per_member,
        reference_weekly_amount=reference_weekly_amount,
    )


def format_amount(amount: Decimal | float) -> str:
    """Render an amount the way the fund pages display it, e.g. ``$40``."""
    number = coerce_number(amount)
    if number == number.to_integral_value():
        return f"${number.quantize(Decimal(1))}"
    return f"${number.normalize():f}"
