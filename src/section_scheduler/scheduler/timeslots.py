"""Time algebra for weekly schedules."""

from collections import defaultdict

from .constants import DAY_END, DAY_START, SLOT_GRANULARITY, WORKING_DAYS
from .models import Day, FacultyAvailability, TimeSlot


class TimeSlotManager:
    """Generates candidate slots and answers overlap and load questions.

    All methods are pure: they take explicit collections and return new
    values without touching shared state.
    """

    def __init__(
        self,
        days: list[Day] | None = None,
        day_start: int = DAY_START,
        day_end: int = DAY_END,
        granularity_minutes: int = SLOT_GRANULARITY,
    ) -> None:
        self.days = list(days) if days else list(WORKING_DAYS)
        self.day_start = day_start
        self.day_end = day_end
        self.granularity_minutes = granularity_minutes

    @staticmethod
    def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
        """Check whether two slots overlap; touching endpoints do not."""
        return a.overlaps(b)

    def generate_slots(
        self,
        days: list[Day] | None = None,
        granularity_minutes: int | None = None,
        day_start: int | None = None,
        day_end: int | None = None,
    ) -> list[TimeSlot]:
        """Generate back-to-back slots over the working week.

        Every slot ends no later than ``day_end``.

        Args:
            days: Days to cover (defaults to the manager's working days)
            granularity_minutes: Slot length in minutes
            day_start: First start time, minutes since midnight
            day_end: Latest end time, minutes since midnight

        Returns:
            Slots ordered by day, then start time
        """
        days = days if days is not None else self.days
        length = granularity_minutes or self.granularity_minutes
        start_of_day = self.day_start if day_start is None else day_start
        end_of_day = self.day_end if day_end is None else day_end

        slots = []
        for day in sorted(days, key=lambda d: d.value):
            start = start_of_day
            while start + length <= end_of_day:
                slots.append(TimeSlot(day, start, start + length))
                start += length
        return slots

    @staticmethod
    def priority_order(slots: list[TimeSlot], prefer_morning: bool = True) -> list[TimeSlot]:
        """Order slots so consecutive picks spread across days.

        Morning-first ordering takes the earliest start on every day before
        moving to the next start time.
        """
        if prefer_morning:
            return sorted(slots, key=lambda s: (s.start_minutes, s.day.value))
        return sorted(slots, key=lambda s: (-s.start_minutes, s.day.value))

    @staticmethod
    def available_slots(
        candidates: list[TimeSlot], occupied: list[TimeSlot]
    ) -> list[TimeSlot]:
        """Drop candidates that overlap any occupied slot."""
        return [c for c in candidates if not any(c.overlaps(o) for o in occupied)]

    @staticmethod
    def build_availability_index(
        faculty: list[FacultyAvailability],
    ) -> dict[str, list[TimeSlot]]:
        """Map instructor id to declared availability windows."""
        return {f.instructor_id: list(f.available_slots) for f in faculty}

    @staticmethod
    def is_faculty_available(
        instructor_id: str,
        slot: TimeSlot,
        availability_index: dict[str, list[TimeSlot]],
    ) -> bool:
        """Check that a slot lies fully within one of the instructor's windows.

        Unknown instructors are treated as unavailable.
        """
        windows = availability_index.get(instructor_id)
        if not windows:
            return False
        return any(window.contains(slot) for window in windows)

    @staticmethod
    def total_hours(slots: list[TimeSlot]) -> float:
        return sum(slot.hours for slot in slots)

    def exceeds_max_hours(
        self, faculty: FacultyAvailability, slots: list[TimeSlot]
    ) -> bool:
        return self.total_hours(slots) > faculty.max_weekly_hours

    def faculty_utilization(
        self, faculty: FacultyAvailability, slots: list[TimeSlot]
    ) -> float:
        """Assigned hours as a percentage of the weekly cap."""
        if faculty.max_weekly_hours <= 0:
            return 0.0
        return self.total_hours(slots) / faculty.max_weekly_hours * 100

    @staticmethod
    def group_by_day(slots: list[TimeSlot]) -> dict[Day, list[TimeSlot]]:
        grouped: dict[Day, list[TimeSlot]] = defaultdict(list)
        for slot in sorted(slots, key=lambda s: s.sort_key()):
            grouped[slot.day].append(slot)
        return dict(grouped)

    @staticmethod
    def validate_slot_collection(
        slots: list[TimeSlot],
    ) -> list[tuple[TimeSlot, TimeSlot]]:
        """Return every pair of overlapping slots within one collection."""
        ordered = sorted(slots, key=lambda s: s.sort_key())
        pairs = []
        for i, first in enumerate(ordered):
            for second in ordered[i + 1 :]:
                if second.day != first.day or second.start_minutes >= first.end_minutes:
                    break
                pairs.append((first, second))
        return pairs


class BusyIndex:
    """Tracks which slots each entity (instructor, room, cohort) already holds."""

    def __init__(self) -> None:
        # entity -> reserved slots
        self._busy: dict[str, list[TimeSlot]] = defaultdict(list)

    def reserve(self, entity: str, slot: TimeSlot) -> None:
        self._busy[entity].append(slot)

    def release(self, entity: str, slot: TimeSlot) -> None:
        if slot in self._busy.get(entity, []):
            self._busy[entity].remove(slot)

    def is_free(self, entity: str, slot: TimeSlot) -> bool:
        return not any(slot.overlaps(busy) for busy in self._busy.get(entity, []))

    def slots_for(self, entity: str) -> list[TimeSlot]:
        return list(self._busy.get(entity, []))

    def hours_for(self, entity: str) -> float:
        return TimeSlotManager.total_hours(self._busy.get(entity, []))

    def entities(self) -> list[str]:
        return sorted(entity for entity, slots in self._busy.items() if slots)
