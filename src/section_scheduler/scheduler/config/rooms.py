"""Room configuration loader."""

from pathlib import Path

from ...utils import read_table, safe_int, safe_str
from ..models import Room


class RoomConfig:
    """Loader for the room inventory from rooms.csv or rooms.xlsx."""

    def __init__(self, rooms_path: Path | None = None):
        self.rooms: list[Room] = []
        self._by_id: dict[str, Room] = {}

        if rooms_path and rooms_path.exists():
            self._load(rooms_path)

    def _load(self, path: Path) -> None:
        """Load rooms from a table with id and capacity columns."""
        df = read_table(path, ["id", "capacity"])
        for _, row in df.iterrows():
            room_id = safe_str(row["id"])
            if not room_id:
                continue
            room = Room(room_id=room_id, capacity=safe_int(row["capacity"]))
            self.rooms.append(room)
            self._by_id[room_id] = room

    def get_room(self, room_id: str) -> Room | None:
        """Get a room by id."""
        return self._by_id.get(room_id)

    def get_all_rooms(self) -> list[Room]:
        """Get all rooms."""
        return list(self.rooms)

    def get_rooms_by_capacity(self, min_capacity: int) -> list[Room]:
        """Get rooms with at least the given capacity."""
        return [r for r in self.rooms if r.capacity >= min_capacity]
