"""Audit records emitted by the engine and scanner."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deposit:
    participant: str
    amount: int


@dataclass(frozen=True)
class Borrow:
    participant: str
    amount: int


@dataclass(frozen=True)
class Repay:
    participant: str
    amount: int


@dataclass(frozen=True)
class Withdraw:
    participant: str
    amount: int


@dataclass(frozen=True)
class Liquidation:
    participant: str
    liquidator: str
    collateral_seized: int
    debt_repaid: int


@dataclass(frozen=True)
class LiquidationExecuted:
    participant: str
    liquidator: str
    collateral_seized: int
    debt_repaid: int
    profit: int


Event = Union[Deposit, Borrow, Repay, Withdraw, Liquidation, LiquidationExecuted]


class EventLog:
    """In-memory event sink; the keeper drains it after every cycle."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    def emit(self, event: Event) -> None:
        logger.debug("Event: %s", event)
        self._events.append(event)

    @property
    def events(self) -> tuple[Event, ...]:
        return tuple(self._events)

    def of_type(self, kind: type) -> list[Event]:
        return [e for e in self._events if isinstance(e, kind)]

    def drain(self) -> list[Event]:
        """Return all buffered events and clear the buffer."""
        drained, self._events = self._events, []
        return drained


def format_event(event: Event, collateral_symbol: str = "", debt_symbol: str = "") -> str:
    """Render an audit record as a short human-readable message."""
    if isinstance(event, LiquidationExecuted):
        return (
            f"⚡ Liquidation executed\n"
            f"\n"
            f"Participant: {event.participant}\n"
            f"Liquidator: {event.liquidator}\n"
            f"Seized: {event.collateral_seized} {collateral_symbol}\n"
            f"Debt repaid: {event.debt_repaid} {debt_symbol}\n"
            f"Profit: {event.profit} {collateral_symbol}"
        )
    if isinstance(event, Liquidation):
        return (
            f"🚨 Position liquidated — {event.participant}\n"
            f"Seized {event.collateral_seized} {collateral_symbol}, "
            f"cleared {event.debt_repaid} {debt_symbol}"
        )
    if isinstance(event, (Deposit, Withdraw)):
        return f"{type(event).__name__}: {event.participant} {event.amount} {collateral_symbol}"
    return f"{type(event).__name__}: {event.participant} {event.amount} {debt_symbol}"
