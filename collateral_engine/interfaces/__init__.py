"""Collaborator interfaces for the liquidation engine."""
from .admin import AdminGate, Authorizer
from .directory import PositionDirectory
from .event_sink import EventSink
from .ledger import Ledger
from .notifier import Notifier
from .price_source import PriceSource

__all__ = [
    "AdminGate",
    "Authorizer",
    "EventSink",
    "Ledger",
    "Notifier",
    "PositionDirectory",
    "PriceSource",
]
