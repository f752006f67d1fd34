"""Lending engine — position registry operations and the liquidation executor."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from .constants import BASIS_POINTS, MAX_HEALTH_FACTOR
from .directory import InMemoryPositionDirectory
from .errors import (
    CollateralNotSupported,
    InsufficientCollateral,
    InsufficientDeposit,
    InsufficientReserves,
    InvalidAmount,
    InvalidConfiguration,
    PositionHealthy,
    TransferFailed,
    Unauthorized,
)
from .events import Borrow, Deposit, EventLog, Liquidation, Repay, Withdraw
from .guard import OperationGuard
from .interfaces.admin import Authorizer
from .interfaces.event_sink import EventSink
from .interfaces.ledger import Ledger
from .interfaces.price_source import PriceSource
from .models import (
    EMPTY_POSITION,
    AssetScales,
    CollateralConfig,
    LiquidationResult,
    Position,
    PositionHealth,
)
from .oracles.price_feed import PriceFeedAdapter
from .registry import PositionRegistry
from . import valuation

logger = logging.getLogger(__name__)


class LendingEngine:
    """Single-market lending engine: one collateral asset, one debt asset.

    Every operation re-reads the participant's position from the registry,
    validates before mutating, commits the new position, and only then moves
    funds through the ledgers. A ledger transfer that reports failure restores
    the previous position and raises ``TransferFailed``.
    """

    def __init__(
        self,
        *,
        gate: Authorizer,
        price_feed: PriceFeedAdapter,
        collateral_ledger: Ledger,
        debt_ledger: Ledger,
        collateral_asset: str = "ETH",
        debt_asset: str = "USDC",
        scales: AssetScales = AssetScales(),
        account: str = "engine",
        registry: PositionRegistry | None = None,
        directory: InMemoryPositionDirectory | None = None,
        events: EventSink | None = None,
    ) -> None:
        self._gate = gate
        self._price_feed = price_feed
        self._collateral_ledger = collateral_ledger
        self._debt_ledger = debt_ledger
        self.collateral_asset = collateral_asset
        self.debt_asset = debt_asset
        self.scales = scales
        self.account = account
        self._registry = registry if registry is not None else PositionRegistry()
        self.directory = directory if directory is not None else InMemoryPositionDirectory()
        self.events: EventSink = events if events is not None else EventLog()
        self._collateral_configs: dict[str, CollateralConfig] = {}
        self._guard = OperationGuard()

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def _require_admin(self, caller: str) -> None:
        if not self._gate.is_authorized(caller):
            raise Unauthorized(f"{caller} is not the engine administrator")

    def add_collateral_support(
        self,
        caller: str,
        asset: str,
        liquidation_threshold: int,
        liquidation_penalty: int,
    ) -> CollateralConfig:
        self._require_admin(caller)
        try:
            config = CollateralConfig(
                is_supported=True,
                liquidation_threshold=liquidation_threshold,
                liquidation_penalty=liquidation_penalty,
            )
        except ValueError as e:
            raise InvalidConfiguration(str(e)) from e
        self._collateral_configs[asset] = config
        logger.info(
            "Collateral %s supported: threshold %d bp, penalty %d bp",
            asset, liquidation_threshold, liquidation_penalty,
        )
        return config

    def add_price_feed(self, caller: str, asset: str, source: PriceSource) -> None:
        self._price_feed.add_price_feed(caller, asset, source)

    def add_secondary_feed(self, caller: str, asset: str, source: PriceSource) -> None:
        self._price_feed.add_secondary_feed(caller, asset, source)

    def set_paused(self, caller: str, paused: bool) -> None:
        self._price_feed.set_paused(caller, paused)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def collateral_config(self) -> CollateralConfig:
        config = self._collateral_configs.get(self.collateral_asset)
        if config is None or not config.is_supported:
            raise CollateralNotSupported(f"{self.collateral_asset} is not supported")
        return config

    def get_position(self, participant: str) -> Position:
        return self._registry.get(participant)

    def get_price(self) -> int:
        return self._price_feed.get_price(self.collateral_asset)

    def _health_of(self, position: Position) -> int:
        if position.debt_amount == 0:
            return MAX_HEALTH_FACTOR
        return valuation.health_factor(
            position, self.get_price(), self.collateral_config(), self.scales
        )

    def health_factor(self, participant: str) -> int:
        return self._health_of(self._registry.get(participant))

    def is_liquidatable(self, participant: str) -> bool:
        return valuation.is_liquidatable(self.health_factor(participant))

    def position_id_of(self, participant: str) -> int | None:
        return self._registry.position_id_of(participant)

    @property
    def next_position_id(self) -> int:
        return self._registry.next_position_id

    def reserves(self) -> int:
        """Collateral held by the engine account."""
        return self._collateral_ledger.balance_of(self.account)

    def spare_reserves(self) -> int:
        """Engine collateral not backing any position; liquidation penalties come from here."""
        return self.reserves() - self._registry.total_collateral

    def health_report(self) -> list[PositionHealth]:
        """Valuation of every position that has been assigned an id."""
        report: list[PositionHealth] = []
        for position_id in self.directory.position_ids():
            participant = self.directory.owner_of(position_id)
            position = self._registry.get(participant)
            report.append(
                PositionHealth(
                    position_id=position_id,
                    participant=participant,
                    collateral_amount=position.collateral_amount,
                    debt_amount=position.debt_amount,
                    health_factor=self._health_of(position),
                )
            )
        return report

    # ------------------------------------------------------------------
    # Registry operations
    # ------------------------------------------------------------------

    def _settle(
        self,
        participant: str,
        before: Position,
        after: Position,
        move: Callable[[], bool],
        failure: str,
        on_commit: Callable[[], None],
    ) -> None:
        """Commit ``after``, then run the ledger ``move``.

        A move that reports failure restores ``before`` and raises
        ``TransferFailed``. ``on_commit`` runs whenever the new position
        stands, including when a receive hook raises after the ledger has
        already credited the transfer.
        """
        self._registry.put(participant, after)
        moved = True
        try:
            moved = move()
        finally:
            if moved:
                on_commit()
        if not moved:
            self._registry.put(participant, before)
            raise TransferFailed(failure)

    def _open_position(self, participant: str) -> None:
        position_id, created = self._registry.open_position_id(participant)
        if created:
            self.directory.assign(position_id, participant)
            logger.info("Opened position %d for %s", position_id, participant)

    def restore_position(self, caller: str, participant: str, position: Position) -> None:
        """Load a position from an external snapshot without any checks or transfers."""
        self._require_admin(caller)
        with self._guard.enter(participant, "restore"):
            self._registry.put(participant, position)
            self._open_position(participant)

    def deposit(self, participant: str, amount: int) -> Position:
        if amount <= 0:
            raise InsufficientDeposit("Deposit amount must be positive")
        self.collateral_config()

        def committed() -> None:
            self._open_position(participant)
            logger.info("Deposit: %s +%d %s", participant, amount, self.collateral_asset)
            self.events.emit(Deposit(participant=participant, amount=amount))

        with self._guard.enter(participant, "deposit"):
            before = self._registry.get(participant)
            after = replace(before, collateral_amount=before.collateral_amount + amount)
            self._settle(
                participant,
                before,
                after,
                lambda: self._collateral_ledger.transfer_from(participant, self.account, amount),
                f"Could not pull {amount} {self.collateral_asset} from {participant}",
                committed,
            )
        return after

    def borrow(self, participant: str, amount: int) -> Position:
        if amount <= 0:
            raise InvalidAmount("Borrow amount must be positive")

        with self._guard.enter(participant, "borrow"):
            before = self._registry.get(participant)
            after = replace(before, debt_amount=before.debt_amount + amount)

            factor = self._health_of(after)
            if valuation.is_liquidatable(factor):
                raise InsufficientCollateral(
                    f"Borrowing {amount} would leave {participant} at health factor {factor}"
                )

            def committed() -> None:
                logger.info(
                    "Borrow: %s +%d %s (health factor %d)",
                    participant, amount, self.debt_asset, factor,
                )
                self.events.emit(Borrow(participant=participant, amount=amount))

            self._settle(
                participant,
                before,
                after,
                lambda: self._debt_ledger.transfer(participant, amount),
                f"Could not send {amount} {self.debt_asset} to {participant}",
                committed,
            )
        return after

    def repay(self, participant: str, amount: int) -> Position:
        def committed() -> None:
            logger.info("Repay: %s -%d %s", participant, amount, self.debt_asset)
            self.events.emit(Repay(participant=participant, amount=amount))

        with self._guard.enter(participant, "repay"):
            before = self._registry.get(participant)
            if amount <= 0 or amount > before.debt_amount:
                raise InvalidAmount(
                    f"Repay amount must be within 1..{before.debt_amount}, got {amount}"
                )
            after = replace(before, debt_amount=before.debt_amount - amount)
            self._settle(
                participant,
                before,
                after,
                lambda: self._debt_ledger.transfer_from(participant, self.account, amount),
                f"Could not pull {amount} {self.debt_asset} from {participant}",
                committed,
            )
        return after

    def withdraw(self, participant: str, amount: int) -> Position:
        def committed() -> None:
            logger.info("Withdraw: %s -%d %s", participant, amount, self.collateral_asset)
            self.events.emit(Withdraw(participant=participant, amount=amount))

        with self._guard.enter(participant, "withdraw"):
            before = self._registry.get(participant)
            if amount <= 0 or amount > before.collateral_amount:
                raise InvalidAmount(
                    f"Withdraw amount must be within 1..{before.collateral_amount}, got {amount}"
                )
            after = replace(before, collateral_amount=before.collateral_amount - amount)

            factor = self._health_of(after)
            if valuation.is_liquidatable(factor):
                raise InsufficientCollateral(
                    f"Withdrawing {amount} would leave {participant} at health factor {factor}"
                )

            self._settle(
                participant,
                before,
                after,
                lambda: self._collateral_ledger.transfer(participant, amount),
                f"Could not send {amount} {self.collateral_asset} to {participant}",
                committed,
            )
        return after

    # ------------------------------------------------------------------
    # Liquidation executor
    # ------------------------------------------------------------------

    def liquidate(self, caller: str, participant: str) -> LiquidationResult:
        """Seize the whole position of ``participant`` and pay ``caller``.

        The caller receives the stored collateral plus the liquidation
        penalty computed on it. The penalty is paid out of the engine's spare
        reserves, never out of collateral backing other positions; when the
        spare reserves cannot cover it the call fails with
        ``InsufficientReserves`` and nothing changes. Debt is cleared without
        pulling the debt asset.
        """
        with self._guard.enter(participant, "liquidate"):
            position = self._registry.get(participant)
            factor = self._health_of(position)
            if not valuation.is_liquidatable(factor):
                raise PositionHealthy(f"{participant} is healthy (health factor {factor})")

            config = self.collateral_config()
            penalty = valuation.liquidation_penalty(
                position.collateral_amount, config.liquidation_penalty
            )
            result = LiquidationResult(
                collateral_seized=position.collateral_amount,
                debt_repaid=position.debt_amount,
                penalty=penalty,
            )

            available = self.spare_reserves() + position.collateral_amount
            if available < result.total_payout:
                raise InsufficientReserves(
                    f"Payout {result.total_payout} exceeds the {available} available for "
                    f"{participant} ({penalty} penalty at "
                    f"{config.liquidation_penalty}/{BASIS_POINTS})"
                )

            def committed() -> None:
                logger.info(
                    "Liquidated %s by %s: seized %d (+%d penalty) %s, "
                    "cleared %d %s (health factor %d)",
                    participant, caller, result.collateral_seized, penalty,
                    self.collateral_asset, result.debt_repaid, self.debt_asset, factor,
                )
                self.events.emit(
                    Liquidation(
                        participant=participant,
                        liquidator=caller,
                        collateral_seized=result.collateral_seized,
                        debt_repaid=result.debt_repaid,
                    )
                )

            self._settle(
                participant,
                position,
                EMPTY_POSITION,
                lambda: self._collateral_ledger.transfer(caller, result.total_payout),
                f"Could not send {result.total_payout} {self.collateral_asset} to {caller}",
                committed,
            )
        return result
