"""Working-day resolution for a client month.

Turns a month and a ``WorkRecordConfig`` into the per-day status list and the
canonical list of working days. Precedence, highest first:

    manually included > manually excluded > holiday > weekend > working

The holiday rule only applies when the config enables the holiday source.
"""

from __future__ import annotations

import calendar
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any

import structlog

from smart_invoice.errors import InvalidConfig, InvalidMonth
from smart_invoice.holidays import UNNAMED_HOLIDAY, HolidayCatalog

logger = structlog.get_logger(__name__)

MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
WEEKEND_DAYS = {5, 6}  # Saturday, Sunday


# =============================================================================
# MONTH HELPERS
# =============================================================================


def parse_month(month: str) -> tuple[int, int]:
    """Parse a ``YYYY-MM`` string into ``(year, month)``."""
    match = MONTH_PATTERN.match(month.strip()) if isinstance(month, str) else None
    if not match:
        raise InvalidMonth(f"Invalid month {month!r}, expected YYYY-MM")
    year, month_number = int(match.group(1)), int(match.group(2))
    if not 1 <= month_number <= 12 or year < 1:
        raise InvalidMonth(f"Invalid month {month!r}, expected YYYY-MM")
    return year, month_number


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise InvalidMonth(f"Invalid date {value!r}, expected YYYY-MM-DD") from exc


def days_in_month(month: str) -> int:
    year, month_number = parse_month(month)
    return calendar.monthrange(year, month_number)[1]


def month_dates(month: str) -> list[date]:
    """Every calendar day of the month, in order."""
    year, month_number = parse_month(month)
    return [date(year, month_number, day) for day in range(1, days_in_month(month) + 1)]


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def weekend_dates(month: str) -> list[str]:
    return [day.isoformat() for day in month_dates(month) if is_weekend(day)]


def format_month_display(month: str) -> str:
    """``2026-04`` -> ``April 2026``."""
    year, month_number = parse_month(month)
    return f"{calendar.month_name[month_number]} {year}"


def period_label(month: str) -> str:
    """Human readable period, e.g. ``01-April-2026 -> 30-April-2026``."""
    year, month_number = parse_month(month)
    name = calendar.month_name[month_number]
    last_day = days_in_month(month)
    return f"01-{name}-{year} -> {last_day:02d}-{name}-{year}"


def months_in_range(start_month: str, end_month: str) -> list[str]:
    """All ``YYYY-MM`` months between two months, inclusive."""
    year, month_number = parse_month(start_month)
    end_year, end_month_number = parse_month(end_month)

    months: list[str] = []
    while (year, month_number) <= (end_year, end_month_number):
        months.append(f"{year:04d}-{month_number:02d}")
        month_number += 1
        if month_number > 12:
            month_number = 1
            year += 1
    return months


# =============================================================================
# CONFIG AND STATUS TYPES
# =============================================================================


@dataclass(frozen=True)
class WorkRecordConfig:
    """Inputs that decide which days of a month are working days."""

    use_holiday_source: bool = False
    excluded_dates: frozenset[str] = field(default_factory=frozenset)
    included_dates: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "excluded_dates", frozenset(self.excluded_dates))
        object.__setattr__(self, "included_dates", frozenset(self.included_dates))

    @property
    def overlapping_dates(self) -> frozenset[str]:
        return self.excluded_dates & self.included_dates

    def normalized(self) -> WorkRecordConfig:
        """Drop dates present in both sets from the exclusions (inclusion wins)."""
        overlap = self.overlapping_dates
        if not overlap:
            return self
        logger.warning("override_sets_overlap", dates=sorted(overlap))
        return replace(self, excluded_dates=self.excluded_dates - overlap)

    def to_dict(self) -> dict[str, Any]:
        return {
            "use_holiday_source": self.use_holiday_source,
            "excluded_dates": sorted(self.excluded_dates),
            "included_dates": sorted(self.included_dates),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkRecordConfig:
        """Build a config from stored data.

        Raises:
            InvalidConfig: An override date is not ``YYYY-MM-DD``.
        """
        dates: dict[str, frozenset[str]] = {}
        for key in ("excluded_dates", "included_dates"):
            values = data.get(key) or ()
            try:
                dates[key] = frozenset(parse_iso_date(str(v)).isoformat() for v in values)
            except InvalidMonth as e:
                raise InvalidConfig(f"Malformed {key}", details=str(e)) from e
        return cls(use_holiday_source=bool(data.get("use_holiday_source", False)), **dates)


class StatusDriver(str, Enum):
    """The rule that decided a day's working status."""

    INCLUDED = "included"
    EXCLUDED = "excluded"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"
    DEFAULT = "default"


@dataclass(frozen=True)
class DayStatus:
    """Resolved status of one calendar day."""

    date: date
    is_weekend: bool
    is_holiday: bool
    is_manually_included: bool
    is_manually_excluded: bool
    is_working: bool
    driver: StatusDriver
    holiday_name: str | None = None

    @property
    def iso(self) -> str:
        return self.date.isoformat()


@dataclass(frozen=True)
class MonthResolution:
    """Result of resolving one month."""

    month: str
    statuses: tuple[DayStatus, ...]
    working_days: tuple[str, ...]
    weekend_dates: tuple[str, ...]
    holiday_names: dict[str, str]

    @property
    def total_working_days(self) -> int:
        return len(self.working_days)

    @property
    def non_working_count(self) -> int:
        return len(self.statuses) - len(self.working_days)


# =============================================================================
# RESOLUTION
# =============================================================================


def classify_day(
    day: date,
    config: WorkRecordConfig,
    holidays: Mapping[str, str],
) -> DayStatus:
    """Classify one day according to the override/holiday/weekend precedence."""
    iso = day.isoformat()
    holiday = config.use_holiday_source and iso in holidays
    holiday_name = (holidays[iso] or UNNAMED_HOLIDAY) if holiday else None
    weekend = is_weekend(day)
    included = iso in config.included_dates
    excluded = iso in config.excluded_dates

    if included:
        driver, working = StatusDriver.INCLUDED, True
    elif excluded:
        driver, working = StatusDriver.EXCLUDED, False
    elif holiday:
        driver, working = StatusDriver.HOLIDAY, False
    elif weekend:
        driver, working = StatusDriver.WEEKEND, False
    else:
        driver, working = StatusDriver.DEFAULT, True

    return DayStatus(
        date=day,
        is_weekend=weekend,
        is_holiday=holiday,
        is_manually_included=included,
        is_manually_excluded=excluded,
        is_working=working,
        driver=driver,
        holiday_name=holiday_name,
    )


def resolve_month(
    month: str,
    config: WorkRecordConfig,
    holidays: Mapping[str, str] | None = None,
) -> MonthResolution:
    """Resolve every day of ``month`` into a status and the working-day list."""
    dates = month_dates(month)
    holidays = holidays or {}

    statuses = tuple(classify_day(day, config, holidays) for day in dates)
    holiday_names = {
        status.iso: status.holiday_name for status in statuses if status.holiday_name
    }

    return MonthResolution(
        month=month,
        statuses=statuses,
        working_days=tuple(status.iso for status in statuses if status.is_working),
        weekend_dates=tuple(status.iso for status in statuses if status.is_weekend),
        holiday_names=holiday_names,
    )


def toggle_day(
    config: WorkRecordConfig,
    day: str,
    holidays: Mapping[str, str] | None = None,
) -> WorkRecordConfig:
    """Flip a single day between working and non-working.

    Only override membership changes: toggling the same day twice restores
    the original included/excluded sets. Overlapping overrides are
    normalized first, so the day's membership is unambiguous.
    """
    config = config.normalized()
    current = classify_day(parse_iso_date(day), config, holidays or {})
    included = set(config.included_dates)
    excluded = set(config.excluded_dates)

    if current.is_working:
        if day in included:
            included.discard(day)
        else:
            excluded.add(day)
    else:
        if day in excluded:
            excluded.discard(day)
        else:
            included.add(day)

    return replace(
        config,
        included_dates=frozenset(included),
        excluded_dates=frozenset(excluded),
    )


class DayStatusResolver:
    """Resolves months against an injected holiday catalog."""

    def __init__(self, catalog: HolidayCatalog | None = None):
        self._catalog = catalog

    async def holidays_for(self, month: str, config: WorkRecordConfig) -> dict[str, str]:
        """Holidays of the month, or an empty map when the source is off."""
        year, month_number = parse_month(month)
        if not config.use_holiday_source or self._catalog is None:
            return {}
        return await self._catalog.for_month(year, month_number)

    async def resolve(self, month: str, config: WorkRecordConfig) -> MonthResolution:
        parse_month(month)
        config = config.normalized()
        holidays = await self.holidays_for(month, config)
        resolution = resolve_month(month, config, holidays)

        logger.debug(
            "month_resolved",
            month=month,
            working_days=resolution.total_working_days,
            holidays=len(resolution.holiday_names),
        )
        return resolution

    async def toggle(self, month: str, config: WorkRecordConfig, day: str) -> WorkRecordConfig:
        if not day.startswith(f"{month}-"):
            raise InvalidMonth(f"Date {day!r} is outside month {month!r}")
        holidays = await self.holidays_for(month, config)
        return toggle_day(config, day, holidays)


def working_day_numbers(working_days: Iterable[str]) -> set[int]:
    """Day-of-month numbers of ISO working days."""
    return {parse_iso_date(day).day for day in working_days}
