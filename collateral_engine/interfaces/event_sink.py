"""Event sink protocol — receives audit records."""
from typing import Any, Protocol


class EventSink(Protocol):
    def emit(self, event: Any) -> None: ...
