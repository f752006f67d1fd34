"""Keeper — async orchestration of price refreshes, health checks and liquidations."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable

from ..config import AppConfig
from ..constants import MAX_HEALTH_FACTOR
from ..errors import NoLiquidatablePositions
from ..events import Liquidation, LiquidationExecuted, format_event
from ..interfaces.notifier import Notifier
from ..models import PositionHealth
from ..notifications import TelegramNotifier
from .factory import EngineSystem, build_system

logger = logging.getLogger(__name__)


class Keeper:
    """Runs the liquidation scanner against live prices and reports on positions."""

    def __init__(self, config: AppConfig, system: EngineSystem | None = None) -> None:
        self._config = config
        self._system = system if system is not None else build_system(config)
        self._engine = self._system.engine
        self._scanner = self._system.scanner

        self._notifiers: list[Notifier] = []
        if config.notifications.telegram.enabled:
            self._notifiers.append(TelegramNotifier(config.notifications.telegram))

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _format_amount(amount: int, decimals: int) -> str:
        return f"{amount / 10**decimals:,.4f}"

    @staticmethod
    def _format_health(health_factor: int) -> str:
        if health_factor == MAX_HEALTH_FACTOR:
            return "∞"
        return f"{health_factor / 100:.2f}"

    def _get_status(self, health_factor: int) -> str:
        if health_factor < 100:
            return "🚨 LIQUIDATABLE"
        if health_factor < self._config.keeper.warning_health_factor:
            return "⚠️ AT RISK"
        return "✅ Healthy"

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    def _build_position_line(self, health: PositionHealth) -> str:
        scales = self._engine.scales
        return (
            f"#{health.position_id} {health.participant} · {self._get_status(health.health_factor)}\n"
            f"  Collateral: {self._format_amount(health.collateral_amount, scales.collateral_decimals)} "
            f"{self._engine.collateral_asset}\n"
            f"  Debt: {self._format_amount(health.debt_amount, scales.debt_decimals)} "
            f"{self._engine.debt_asset}\n"
            f"  HF: {self._format_health(health.health_factor)}"
        )

    def _build_report(self, report: list[PositionHealth], price: int) -> str:
        body = (
            "\n\n".join(self._build_position_line(h) for h in report)
            if report
            else "No open positions."
        )
        price_str = self._format_amount(price, self._engine.scales.price_decimals)
        return (
            f"📋 Position health — {self._engine.collateral_asset} @ ${price_str}\n"
            f"\n"
            f"{body}\n"
            f"\n"
            f"{self._now_str()} UTC"
        )

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    async def _send_log(self, message: str, silent: bool = False) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=silent)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    async def _forward_events(self) -> None:
        for event in self._system.events.drain():
            if not isinstance(event, (Liquidation, LiquidationExecuted)):
                continue
            message = format_event(
                event, self._engine.collateral_asset, self._engine.debt_asset
            )
            if isinstance(event, LiquidationExecuted):
                await self._send_alert(message, subject="⚡ Liquidation executed")
            else:
                await self._send_log(message)

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def refresh_prices(self) -> None:
        """Refresh every price source that pulls from the network."""
        for source in self._system.price_sources:
            refresh = getattr(source, "refresh", None)
            if refresh is not None:
                await refresh()

    async def check_positions(self) -> list[PositionHealth]:
        """Value every position at current prices; alert on liquidatable ones."""
        await self.refresh_prices()

        price = self._engine.get_price()
        report = self._engine.health_report()

        for health in report:
            logger.info(
                "Position #%d %s · collateral %d · debt %d · HF %s",
                health.position_id,
                health.participant,
                health.collateral_amount,
                health.debt_amount,
                self._format_health(health.health_factor),
            )

        await self._send_log(self._build_report(report, price), silent=True)

        at_risk = [h for h in report if h.is_liquidatable]
        if at_risk:
            lines = "\n\n".join(self._build_position_line(h) for h in at_risk)
            await self._send_alert(
                f"{len(at_risk)} position(s) below health factor 1.00\n\n{lines}",
                subject="🚨 Liquidatable positions",
            )
        return report

    async def liquidate_once(self, position_ids: Iterable[int] | None = None) -> int:
        """Run one scanner pass over ``position_ids`` (default: every position).

        In dry-run mode, only report candidates.
        """
        await self.refresh_prices()

        if self._config.keeper.dry_run:
            candidates = self._scanner.find_liquidatable(position_ids)
            logger.info("Dry run: %d liquidatable position(s): %s", len(candidates), candidates)
            return 0

        try:
            count = self._scanner.batch_liquidate(position_ids)
        except NoLiquidatablePositions as e:
            logger.info("Nothing to liquidate: %s", e)
            count = 0

        await self._forward_events()
        return count

    async def run_continuous(self, check_interval_minutes: int | None = None) -> None:
        """Run continuous liquidation loop."""
        interval = check_interval_minutes or self._config.keeper.check_interval_minutes
        logger.info("Starting keeper loop (every %d minutes)", interval)

        while True:
            try:
                await self.liquidate_once()
                await asyncio.sleep(interval * 60)
            except Exception as e:
                logger.error("Error in keeper loop: %s", e)
                await asyncio.sleep(60)
