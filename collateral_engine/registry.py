"""Position registry — one position per participant."""
from __future__ import annotations

import logging
import threading
from typing import Iterator

from .models import EMPTY_POSITION, Position

logger = logging.getLogger(__name__)


class PositionRegistry:
    """Authoritative store of positions, keyed by participant.

    Positions are immutable values; writers replace them whole. Missing
    participants read as the empty position. The registry also hands out
    position ids from a monotonically increasing counter, one per
    participant, on first use. It keeps the running total of collateral
    held across all positions.
    """

    def __init__(self, first_position_id: int = 1) -> None:
        self._positions: dict[str, Position] = {}
        self._position_ids: dict[str, int] = {}
        self._next_position_id = first_position_id
        self._total_collateral = 0
        self._lock = threading.Lock()

    def get(self, participant: str) -> Position:
        return self._positions.get(participant, EMPTY_POSITION)

    def put(self, participant: str, position: Position) -> None:
        with self._lock:
            previous = self._positions.get(participant, EMPTY_POSITION)
            self._positions[participant] = position
            self._total_collateral += position.collateral_amount - previous.collateral_amount

    @property
    def total_collateral(self) -> int:
        """Collateral owed back to participants, summed over every position."""
        return self._total_collateral

    def position_id_of(self, participant: str) -> int | None:
        return self._position_ids.get(participant)

    def open_position_id(self, participant: str) -> tuple[int, bool]:
        """Return the participant's position id, allocating one if needed.

        The second element is True when a new id was allocated.
        """
        with self._lock:
            existing = self._position_ids.get(participant)
            if existing is not None:
                return existing, False
            position_id = self._next_position_id
            self._next_position_id += 1
            self._position_ids[participant] = position_id
            logger.debug("Allocated position id %d to %s", position_id, participant)
            return position_id, True

    @property
    def next_position_id(self) -> int:
        return self._next_position_id

    def participants(self) -> list[str]:
        return list(self._positions)

    def __iter__(self) -> Iterator[tuple[str, Position]]:
        return iter(list(self._positions.items()))

    def __len__(self) -> int:
        return len(self._positions)
