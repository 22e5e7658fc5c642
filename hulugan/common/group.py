"""Group snapshot data model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Group:
    """A snapshot of one savings group as read from the record store.

    Numeric fields are kept as received so that the metrics engine can
    coerce malformed values instead of failing on them.

    :param id: Opaque unique identifier
    :param name: Display label
    :param weekly_amount: Contribution per week
    :param weeks_total: Weeks in the fund cycle
    :param paid_weeks: Weeks recorded as paid
    :param updated_at: ISO-8601 timestamp of the last write
    """

    id: str
    name: str
    weekly_amount: Any
    weeks_total: Any
    paid_weeks: Any
    updated_at: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Group:
        """Build a snapshot from a decoded JSON object or database row mapping."""
        return cls(
            id=str(record.get("id", "")),
            name=str(record.get("name", "")),
            weekly_amount=record.get("weekly_amount"),
            weeks_total=record.get("weeks_total"),
            paid_weeks=record.get("paid_weeks"),
            updated_at=record.get("updated_at"),
        )
