"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from collateral_engine.config import (
    AppConfig,
    CollateralSettings,
    EngineConfig,
    KeeperConfig,
    ManualPricesConfig,
    NotificationsConfig,
    PriceOracleConfig,
    SeedPosition,
    TelegramConfig,
)
from collateral_engine.engine import LendingEngine
from collateral_engine.events import EventLog
from collateral_engine.interfaces.admin import AdminGate
from collateral_engine.ledger import InMemoryLedger
from collateral_engine.oracles import ManualPriceSource, PriceFeedAdapter
from collateral_engine.scanner import LiquidationScanner

NOW = 1_700_000_000
ETH = 10**18
USDC = 10**6
PRICE = 10**8  # one unit of an 8-decimal price

ADMIN = "admin"
ENGINE = "engine"
KEEPER = "keeper"


class FakeClock:
    """Callable clock returning a settable unix timestamp."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Engine fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def gate() -> AdminGate:
    return AdminGate(ADMIN)


@pytest.fixture()
def price_source(clock: FakeClock) -> ManualPriceSource:
    source = ManualPriceSource(decimals=8, clock=clock)
    source.set_price("ETH", 2000 * PRICE)
    return source


@pytest.fixture()
def price_feed(gate: AdminGate, clock: FakeClock) -> PriceFeedAdapter:
    return PriceFeedAdapter(gate, clock=clock)


@pytest.fixture()
def collateral_ledger() -> InMemoryLedger:
    return InMemoryLedger(
        "ETH",
        ENGINE,
        {ENGINE: 5 * ETH, "alice": 100 * ETH, "bob": 100 * ETH, "carol": 100 * ETH},
    )


@pytest.fixture()
def debt_ledger() -> InMemoryLedger:
    return InMemoryLedger("USDC", ENGINE, {ENGINE: 1_000_000 * USDC, KEEPER: 1_000_000 * USDC})


@pytest.fixture()
def events() -> EventLog:
    return EventLog()


@pytest.fixture()
def engine(
    gate: AdminGate,
    price_feed: PriceFeedAdapter,
    price_source: ManualPriceSource,
    collateral_ledger: InMemoryLedger,
    debt_ledger: InMemoryLedger,
    events: EventLog,
) -> LendingEngine:
    eng = LendingEngine(
        gate=gate,
        price_feed=price_feed,
        collateral_ledger=collateral_ledger,
        debt_ledger=debt_ledger,
        collateral_asset="ETH",
        debt_asset="USDC",
        account=ENGINE,
        events=events,
    )
    eng.add_collateral_support(ADMIN, "ETH", liquidation_threshold=8000, liquidation_penalty=1000)
    eng.add_price_feed(ADMIN, "ETH", price_source)
    return eng


@pytest.fixture()
def open_position(
    engine: LendingEngine, collateral_ledger: InMemoryLedger
) -> Callable[[str, int, int], None]:
    """Approve, deposit and borrow on behalf of a participant."""

    def _open(participant: str, collateral: int, debt: int = 0) -> None:
        collateral_ledger.for_holder(participant).approve(ENGINE, collateral)
        engine.deposit(participant, collateral)
        if debt:
            engine.borrow(participant, debt)

    return _open


@pytest.fixture()
def scanner(
    engine: LendingEngine,
    collateral_ledger: InMemoryLedger,
    debt_ledger: InMemoryLedger,
) -> LiquidationScanner:
    return LiquidationScanner(
        engine,
        account=KEEPER,
        collateral_ledger=collateral_ledger.for_holder(KEEPER),
        debt_ledger=debt_ledger.for_holder(KEEPER),
    )


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config() -> AppConfig:
    return AppConfig(
        engine=EngineConfig(reserve=5 * ETH),
        collaterals={"ETH": CollateralSettings(liquidation_threshold=8000, liquidation_penalty=1000)},
        keeper=KeeperConfig(account=KEEPER, min_profit_threshold=10**16),
        price_oracle=PriceOracleConfig(
            provider="manual",
            manual=ManualPricesConfig(decimals=8, prices={"ETH": 1800 * PRICE}),
        ),
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
        ),
        balances={"USDC": {KEEPER: 100_000 * USDC}},
        positions=(
            SeedPosition(participant="alice", collateral=10 * ETH, debt=15_000 * USDC),
            SeedPosition(participant="bob", collateral=5 * ETH, debt=2_000 * USDC),
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    engine:
      admin: admin
      account: engine
      collateral_asset: ETH
      debt_asset: USDC
      collateral_decimals: 18
      debt_decimals: 6
      reserve: 5000000000000000000
    collaterals:
      ETH:
        liquidation_threshold: 8000
        liquidation_penalty: 1000
    keeper:
      account: keeper
      min_profit_threshold: 10000000000000000
      check_interval_minutes: 2
      dry_run: false
    price_oracle:
      provider: manual
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {ETH: "aaa"}
      manual:
        decimals: 8
        prices: {ETH: 200000000000}
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
    balances:
      USDC: {keeper: 100000000000}
    positions:
      - participant: alice
        collateral: 10000000000000000000
        debt: 15000000000
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
