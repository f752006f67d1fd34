"""Liquidation scanner — picks profitable liquidations and executes them."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from .constants import MIN_PROFIT_THRESHOLD
from .engine import LendingEngine
from .errors import (
    InsufficientFunds,
    InsufficientReserves,
    LiquidationUnprofitable,
    NoLiquidatablePositions,
    PositionHealthy,
    PositionNotFound,
)
from .events import LiquidationExecuted
from .interfaces.directory import PositionDirectory
from .interfaces.event_sink import EventSink
from .interfaces.ledger import Ledger
from .models import Position
from . import valuation

logger = logging.getLogger(__name__)

# Per-item failures a batch skips instead of aborting on.
_SKIPPABLE = (
    NoLiquidatablePositions,
    PositionHealthy,
    LiquidationUnprofitable,
    InsufficientFunds,
    InsufficientReserves,
    PositionNotFound,
)


class LiquidationScanner:
    """Liquidator acting for ``account``.

    ``collateral_ledger`` and ``debt_ledger`` must act on behalf of
    ``account``: seized collateral lands there, and the debt asset it holds
    covers the positions it takes over.
    """

    def __init__(
        self,
        engine: LendingEngine,
        account: str,
        collateral_ledger: Ledger,
        debt_ledger: Ledger,
        directory: PositionDirectory | None = None,
        min_profit_threshold: int = MIN_PROFIT_THRESHOLD,
        events: EventSink | None = None,
    ) -> None:
        self._engine = engine
        self.account = account
        self._collateral_ledger = collateral_ledger
        self._debt_ledger = debt_ledger
        self._directory = directory if directory is not None else engine.directory
        self.min_profit_threshold = min_profit_threshold
        self._events = events if events is not None else engine.events

        self.total_liquidations = 0
        self.liquidation_counts: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def estimate_profit(self, position: Position) -> int:
        """Expected liquidation bonus, in collateral units."""
        config = self._engine.collateral_config()
        return valuation.estimate_profit(
            position.collateral_amount,
            self._engine.get_price(),
            config.liquidation_penalty,
            self._engine.scales.price_decimals,
        )

    def _check(self, position_id: int) -> tuple[str, Position]:
        """Resolve and vet one candidate; raises on the first failed check."""
        participant = self._directory.owner_of(position_id)

        if not self._engine.is_liquidatable(participant):
            raise NoLiquidatablePositions(f"Position {position_id} ({participant}) is healthy")

        position = self._engine.get_position(participant)
        profit = self.estimate_profit(position)
        if profit <= self.min_profit_threshold:
            raise LiquidationUnprofitable(
                f"Position {position_id}: expected profit {profit} "
                f"<= minimum {self.min_profit_threshold}"
            )
        return participant, position

    def _require_funds(self, position: Position) -> None:
        balance = self._debt_ledger.balance_of(self.account)
        if balance < position.debt_amount:
            raise InsufficientFunds(
                f"{self.account} holds {balance} {self._engine.debt_asset}, "
                f"needs {position.debt_amount}"
            )

    def find_liquidatable(self, position_ids: Iterable[int] | None = None) -> list[int]:
        """Ids of the candidates that are currently liquidatable. Executes nothing."""
        ids = self._directory_ids() if position_ids is None else list(position_ids)
        found: list[int] = []
        for position_id in ids:
            try:
                participant = self._directory.owner_of(position_id)
            except PositionNotFound:
                continue
            if self._engine.is_liquidatable(participant):
                found.append(position_id)
        return found

    def _directory_ids(self) -> list[int]:
        position_ids = getattr(self._directory, "position_ids", None)
        if position_ids is None:
            raise TypeError("Directory cannot enumerate positions; pass position_ids explicitly")
        return list(position_ids())

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, position_id: int) -> LiquidationExecuted:
        participant, position = self._check(position_id)

        self._require_funds(position)

        # The allowance covers the debt only for the duration of the call;
        # settling the debt asset is left to the ledger's owner.
        self._debt_ledger.approve(self._engine.account, position.debt_amount)
        balance_before = self._collateral_ledger.balance_of(self.account)
        try:
            result = self._engine.liquidate(self.account, participant)
        finally:
            self._debt_ledger.approve(self._engine.account, 0)
        profit = self._collateral_ledger.balance_of(self.account) - balance_before

        self.total_liquidations += 1
        self.liquidation_counts[participant] += 1

        record = LiquidationExecuted(
            participant=participant,
            liquidator=self.account,
            collateral_seized=result.collateral_seized,
            debt_repaid=result.debt_repaid,
            profit=profit,
        )
        self._events.emit(record)
        logger.info(
            "Liquidation executed: position %d (%s), profit %d %s",
            position_id, participant, profit, self._engine.collateral_asset,
        )
        return record

    def scan_and_liquidate(self, position_id: int) -> bool:
        """Liquidate one position, raising if any check fails."""
        self._execute(position_id)
        return True

    def batch_liquidate(self, position_ids: Iterable[int] | None = None) -> int:
        """Liquidate every qualifying candidate; returns how many were liquidated.

        Candidates that are healthy, unprofitable, unknown, or that the
        liquidator cannot fund are skipped. Raises ``NoLiquidatablePositions``
        only when nothing was liquidated.
        """
        ids = self._directory_ids() if position_ids is None else list(position_ids)
        liquidated = 0

        for position_id in ids:
            try:
                self._execute(position_id)
            except _SKIPPABLE as e:
                logger.warning("Skipping position %s: %s", position_id, e)
                continue
            liquidated += 1

        if liquidated == 0:
            raise NoLiquidatablePositions(f"None of {len(ids)} candidates could be liquidated")

        logger.info("Batch liquidated %d of %d candidates", liquidated, len(ids))
        return liquidated
