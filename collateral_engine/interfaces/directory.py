"""Position-ownership directory protocol."""
from typing import Protocol


class PositionDirectory(Protocol):
    """Maps position ids to the participant owning them."""

    def owner_of(self, position_id: int) -> str: ...
