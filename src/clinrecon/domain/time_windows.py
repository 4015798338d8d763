"""Calendar-day windows used to match cases and samples by date."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta

from clinrecon.domain.errors import MalformedInputError


@dataclass(frozen=True, slots=True)
class DayWindow:
    """Half-open UTC bounds of one calendar day: ``start <= moment < end``."""

    day: date

    @property
    def start(self) -> datetime:
        return datetime.combine(self.day, time.min, tzinfo=UTC)

    @property
    def end(self) -> datetime:
        """Midnight starting the next day, excluded from the window."""
        return self.start + timedelta(days=1)

    @classmethod
    def of(cls, moment: datetime) -> DayWindow:
        return cls(ensure_utc(moment).date())

    @classmethod
    def parse(cls, value: str) -> DayWindow:
        """Parse an ISO ``YYYY-MM-DD`` day, raising ``MalformedInputError`` otherwise."""

        try:
            return cls(date.fromisoformat(value.strip()))
        except (ValueError, AttributeError) as exc:
            raise MalformedInputError(f"Invalid calendar date: {value!r}") from exc


def ensure_utc(value: datetime) -> datetime:
    """Normalise to UTC; naive values are taken to be UTC already."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def day_key(moment: datetime) -> str:
    return DayWindow.of(moment).day.isoformat()


OPEN_CASE_WINDOW = timedelta(hours=24)

__all__ = ["OPEN_CASE_WINDOW", "DayWindow", "day_key", "ensure_utc"]
