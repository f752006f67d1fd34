"""Wires the engine, scanner and collaborators from configuration."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from ..config import AppConfig, ManualPricesConfig
from ..engine import LendingEngine
from ..events import EventLog
from ..interfaces.admin import AdminGate
from ..ledger import InMemoryLedger
from ..models import AssetScales, Position
from ..oracles import ManualPriceSource, PriceFeedAdapter, PythPriceSource
from ..scanner import LiquidationScanner

logger = logging.getLogger(__name__)


@dataclass
class EngineSystem:
    engine: LendingEngine
    scanner: LiquidationScanner
    events: EventLog
    collateral_ledger: InMemoryLedger
    debt_ledger: InMemoryLedger
    price_sources: list[Any] = field(default_factory=list)


def _manual_source(cfg: ManualPricesConfig, clock: Callable[[], float]) -> ManualPriceSource:
    source = ManualPriceSource(decimals=cfg.decimals, clock=clock)
    for asset, price in cfg.prices.items():
        source.set_price(asset, price)
    return source


def _price_source(provider: str, config: AppConfig, clock: Callable[[], float]) -> Any:
    if provider == "pyth":
        return PythPriceSource(config.price_oracle.pyth)
    return _manual_source(config.price_oracle.manual, clock)


def build_system(config: AppConfig, clock: Callable[[], float] = time.time) -> EngineSystem:
    """Build a ready-to-run engine from ``config``.

    Seed positions are restored without transfers; the engine account is
    credited with their collateral on top of any configured balance. The
    configured ``reserve`` is minted to the engine account as the spare
    collateral liquidation penalties are paid from.
    """
    eng = config.engine
    admin = eng.admin
    gate = AdminGate(admin)
    events = EventLog()

    collateral_ledger = InMemoryLedger(
        eng.collateral_asset, eng.account, config.balances.get(eng.collateral_asset)
    )
    debt_ledger = InMemoryLedger(eng.debt_asset, eng.account, config.balances.get(eng.debt_asset))

    price_feed = PriceFeedAdapter(
        gate,
        clock=clock,
        staleness_threshold=eng.staleness_threshold,
        max_deviation=eng.max_price_deviation,
    )

    engine = LendingEngine(
        gate=gate,
        price_feed=price_feed,
        collateral_ledger=collateral_ledger,
        debt_ledger=debt_ledger,
        collateral_asset=eng.collateral_asset,
        debt_asset=eng.debt_asset,
        scales=AssetScales(
            collateral_decimals=eng.collateral_decimals,
            debt_decimals=eng.debt_decimals,
        ),
        account=eng.account,
        events=events,
    )

    for asset, settings in config.collaterals.items():
        engine.add_collateral_support(
            admin, asset, settings.liquidation_threshold, settings.liquidation_penalty
        )

    sources: list[Any] = []
    primary = _price_source(config.price_oracle.provider, config, clock)
    engine.add_price_feed(admin, eng.collateral_asset, primary)
    sources.append(primary)
    if config.price_oracle.secondary:
        secondary = _price_source(config.price_oracle.secondary, config, clock)
        engine.add_secondary_feed(admin, eng.collateral_asset, secondary)
        sources.append(secondary)

    for seed in config.positions:
        engine.restore_position(
            admin, seed.participant, Position(collateral_amount=seed.collateral, debt_amount=seed.debt)
        )
        collateral_ledger.mint(eng.account, seed.collateral)
    if config.positions:
        logger.info("Restored %d seed positions", len(config.positions))

    collateral_ledger.mint(eng.account, eng.reserve)
    spare = engine.spare_reserves()
    if spare > 0:
        logger.info("Penalty reserve: %d %s", spare, eng.collateral_asset)
    else:
        logger.warning(
            "No penalty reserve: liquidations will fail with InsufficientReserves "
            "until %s holds %s beyond the deposited collateral",
            eng.account, eng.collateral_asset,
        )

    keeper = config.keeper
    scanner = LiquidationScanner(
        engine,
        account=keeper.account,
        collateral_ledger=collateral_ledger.for_holder(keeper.account),
        debt_ledger=debt_ledger.for_holder(keeper.account),
        min_profit_threshold=keeper.min_profit_threshold,
        events=events,
    )

    return EngineSystem(
        engine=engine,
        scanner=scanner,
        events=events,
        collateral_ledger=collateral_ledger,
        debt_ledger=debt_ledger,
        price_sources=sources,
    )
