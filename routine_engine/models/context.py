"""
Routine Context for the Routine Engine.

The context snapshot is the {time slot, day category, location} triple the
selector matches templates against. Location is always resolved by an
external collaborator; time slot and day category can be derived here from
a datetime using configurable slot windows and weekday mappings.

Default time slots:
    early_morning  05:00 - 07:00
    morning        07:00 - 09:00
    late_morning   09:00 - 11:00
    afternoon      11:00 - 17:00
    evening        17:00 - 21:00
    night          21:00 - 05:00 (crosses midnight)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, StrEnum

UNKNOWN_LOCATION = "unknown"


class TimeSlot(StrEnum):
    """Built-in time slot tags."""

    EARLY_MORNING = "early_morning"
    MORNING = "morning"
    LATE_MORNING = "late_morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class Weekday(IntEnum):
    """Weekday numbering matching ``datetime.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


# =============================================================================
# Time Slots
# =============================================================================


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Wall-clock time with minute precision."""

    hour: int
    minute: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.hour < 24 or not 0 <= self.minute < 60:
            raise ValueError(f"Invalid time of day {self.hour:02d}:{self.minute:02d}")

    @classmethod
    def from_datetime(cls, moment: datetime) -> TimeOfDay:
        return cls(moment.hour, moment.minute)

    @property
    def total_minutes(self) -> int:
        return self.hour * 60 + self.minute


@dataclass(frozen=True)
class TimeSlotDefinition:
    """A named window of the day. ``end`` is exclusive.

    A window whose end is earlier than its start wraps past midnight.
    """

    id: str
    name: str
    start: TimeOfDay
    end: TimeOfDay
    is_built_in: bool = False

    def contains(self, time: TimeOfDay) -> bool:
        minutes = time.total_minutes
        start = self.start.total_minutes
        end = self.end.total_minutes
        if start <= end:
            return start <= minutes < end
        return minutes >= start or minutes < end


def _built_in_slot(slot: TimeSlot, start: int, end: int) -> TimeSlotDefinition:
    return TimeSlotDefinition(
        id=slot.value,
        name=slot.display_name,
        start=TimeOfDay(start),
        end=TimeOfDay(end),
        is_built_in=True,
    )


DEFAULT_TIME_SLOTS: tuple[TimeSlotDefinition, ...] = (
    _built_in_slot(TimeSlot.EARLY_MORNING, 5, 7),
    _built_in_slot(TimeSlot.MORNING, 7, 9),
    _built_in_slot(TimeSlot.LATE_MORNING, 9, 11),
    _built_in_slot(TimeSlot.AFTERNOON, 11, 17),
    _built_in_slot(TimeSlot.EVENING, 17, 21),
    _built_in_slot(TimeSlot.NIGHT, 21, 5),
)


def resolve_time_slot(
    moment: datetime,
    definitions: Sequence[TimeSlotDefinition] = DEFAULT_TIME_SLOTS,
) -> str:
    """Return the id of the first slot containing ``moment``.

    Custom definitions may leave gaps; a time no custom slot covers falls
    back to the built-in table, which covers the whole day.
    """
    time = TimeOfDay.from_datetime(moment)
    for definition in definitions:
        if definition.contains(time):
            return definition.id
    for definition in DEFAULT_TIME_SLOTS:
        if definition.contains(time):
            return definition.id
    return TimeSlot.NIGHT.value


# =============================================================================
# Day Categories
# =============================================================================


@dataclass(frozen=True)
class DayCategory:
    """A user-facing classification of days (weekday, weekend, travel...)."""

    id: str
    name: str
    is_built_in: bool = False


WEEKDAY = DayCategory(id="weekday", name="Weekday", is_built_in=True)
WEEKEND = DayCategory(id="weekend", name="Weekend", is_built_in=True)


@dataclass
class DayCategorySettings:
    """Maps weekdays to day categories.

    Unmapped weekdays (or mappings to a category that no longer exists)
    fall back to the built-in rule: Saturday and Sunday are weekend days.
    """

    categories: list[DayCategory] = field(default_factory=lambda: [WEEKDAY, WEEKEND])
    weekday_categories: dict[Weekday, str] = field(default_factory=dict)

    @staticmethod
    def default_category(weekday: Weekday) -> DayCategory:
        if weekday in (Weekday.SATURDAY, Weekday.SUNDAY):
            return WEEKEND
        return WEEKDAY

    def get_category(self, category_id: str) -> DayCategory | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def category_for_weekday(self, weekday: Weekday) -> DayCategory:
        category_id = self.weekday_categories.get(weekday)
        if category_id is not None:
            category = self.get_category(category_id)
            if category is not None:
                return category
        return self.default_category(weekday)

    def category_for(self, moment: datetime) -> DayCategory:
        return self.category_for_weekday(Weekday(moment.weekday()))

    def assign(self, weekday: Weekday, category_id: str) -> None:
        """Map a weekday to an existing category.

        Raises:
            ValueError: If no category has that id.
        """
        if self.get_category(category_id) is None:
            raise ValueError(f"Unknown day category: {category_id}")
        self.weekday_categories[weekday] = category_id

    def add_category(self, category: DayCategory) -> None:
        if self.get_category(category.id) is not None:
            raise ValueError(f"Day category already exists: {category.id}")
        self.categories.append(category)

    def remove_category(self, category_id: str) -> None:
        """Remove a custom category and unmap the weekdays that used it.

        Built-in categories cannot be removed.
        """
        category = self.get_category(category_id)
        if category is None or category.is_built_in:
            return
        self.categories.remove(category)
        self.weekday_categories = {
            day: cid for day, cid in self.weekday_categories.items() if cid != category_id
        }


# =============================================================================
# Context Snapshot
# =============================================================================


@dataclass(frozen=True)
class ContextSnapshot:
    """The current {time slot, day category, location} values."""

    time_slot: str
    day_category_id: str
    location_id: str = UNKNOWN_LOCATION

    @classmethod
    def at(
        cls,
        moment: datetime,
        location_id: str = UNKNOWN_LOCATION,
        *,
        time_slots: Sequence[TimeSlotDefinition] = DEFAULT_TIME_SLOTS,
        day_categories: DayCategorySettings | None = None,
    ) -> ContextSnapshot:
        """Build a snapshot for ``moment`` with an externally resolved location."""
        settings = day_categories if day_categories is not None else DayCategorySettings()
        return cls(
            time_slot=resolve_time_slot(moment, time_slots),
            day_category_id=settings.category_for(moment).id,
            location_id=location_id,
        )

    def as_dict(self) -> Mapping[str, str]:
        return {
            "time_slot": self.time_slot,
            "day_category_id": self.day_category_id,
            "location_id": self.location_id,
        }


__all__ = [
    "UNKNOWN_LOCATION",
    "TimeSlot",
    "Weekday",
    "TimeOfDay",
    "TimeSlotDefinition",
    "DEFAULT_TIME_SLOTS",
    "resolve_time_slot",
    "DayCategory",
    "WEEKDAY",
    "WEEKEND",
    "DayCategorySettings",
    "ContextSnapshot",
]
