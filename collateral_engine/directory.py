"""In-memory position-ownership directory."""
from __future__ import annotations

from .errors import PositionNotFound


class InMemoryPositionDirectory:
    """Maps position ids to participants."""

    def __init__(self) -> None:
        self._owners: dict[int, str] = {}

    def assign(self, position_id: int, participant: str) -> None:
        current = self._owners.get(position_id)
        if current is not None and current != participant:
            raise ValueError(f"Position {position_id} already belongs to {current}")
        self._owners[position_id] = participant

    def owner_of(self, position_id: int) -> str:
        try:
            return self._owners[position_id]
        except KeyError:
            raise PositionNotFound(f"Unknown position id {position_id}") from None

    def position_ids(self) -> list[int]:
        return sorted(self._owners)

    def __len__(self) -> int:
        return len(self._owners)
