"""Room management for schedule generation."""

from .models import Room, TimeSlot
from .timeslots import BusyIndex


class RoomManager:
    """Manages room assignments for one generation run.

    Rooms are picked smallest-first among those with enough seats that are
    free at every requested slot; ties are broken by room id.
    """

    def __init__(self, rooms: list[Room]) -> None:
        """Initialize the room manager.

        Args:
            rooms: Room inventory
        """
        self.rooms = sorted(rooms, key=lambda r: (r.capacity, r.room_id))
        self._by_id = {room.room_id: room for room in self.rooms}
        self.schedule = BusyIndex()

    @property
    def max_capacity(self) -> int:
        return max((room.capacity for room in self.rooms), default=0)

    def get_room(self, room_id: str) -> Room | None:
        return self._by_id.get(room_id)

    def is_room_free(self, room_id: str, slots: list[TimeSlot]) -> bool:
        return all(self.schedule.is_free(room_id, slot) for slot in slots)

    def find_room(
        self,
        min_capacity: int,
        slots: list[TimeSlot],
        allow_undersized: bool = False,
    ) -> Room | None:
        """Find the smallest free room that seats ``min_capacity``.

        Args:
            min_capacity: Seats required
            slots: Slots the room must be free at
            allow_undersized: Fall back to the largest free room when no room
                in the inventory is big enough

        Returns:
            Selected room, or None if nothing is free
        """
        for room in self.rooms:
            if room.capacity >= min_capacity and self.is_room_free(room.room_id, slots):
                return room

        if allow_undersized and min_capacity > self.max_capacity:
            free = [r for r in self.rooms if self.is_room_free(r.room_id, slots)]
            if free:
                return sorted(free, key=lambda r: (-r.capacity, r.room_id))[0]
        return None

    def reserve(self, room_id: str, slots: list[TimeSlot]) -> None:
        for slot in slots:
            self.schedule.reserve(room_id, slot)

    def occupied_minutes(self) -> int:
        return sum(
            slot.duration_minutes
            for room_id in self.schedule.entities()
            for slot in self.schedule.slots_for(room_id)
        )
