"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import (
    BASIS_POINTS,
    MAX_PRICE_DEVIATION,
    MIN_PROFIT_THRESHOLD,
    STALENESS_THRESHOLD,
)

logger = logging.getLogger(__name__)

ORACLE_PROVIDERS = ("pyth", "manual")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    admin: str = "admin"
    account: str = "engine"
    collateral_asset: str = "ETH"
    debt_asset: str = "USDC"
    collateral_decimals: int = 18
    debt_decimals: int = 6
    staleness_threshold: int = STALENESS_THRESHOLD
    max_price_deviation: int = MAX_PRICE_DEVIATION
    reserve: int = 0


@dataclass(frozen=True)
class CollateralSettings:
    liquidation_threshold: int = 8000
    liquidation_penalty: int = 1000


@dataclass(frozen=True)
class KeeperConfig:
    account: str = "keeper"
    min_profit_threshold: int = MIN_PROFIT_THRESHOLD
    check_interval_minutes: int = 5
    warning_health_factor: int = 110
    dry_run: bool = False


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ManualPricesConfig:
    decimals: int = 8
    prices: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "pyth"
    secondary: str = ""
    pyth: PythConfig = field(default_factory=PythConfig)
    manual: ManualPricesConfig = field(default_factory=ManualPricesConfig)


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class SeedPosition:
    participant: str
    collateral: int = 0
    debt: int = 0


@dataclass(frozen=True)
class AppConfig:
    engine: EngineConfig = field(default_factory=EngineConfig)
    collaterals: dict[str, CollateralSettings] = field(default_factory=dict)
    keeper: KeeperConfig = field(default_factory=KeeperConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    balances: dict[str, dict[str, int]] = field(default_factory=dict)
    positions: tuple[SeedPosition, ...] = ()


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_engine(raw: dict[str, Any]) -> EngineConfig:
    defaults = EngineConfig()
    return EngineConfig(
        admin=str(raw.get("admin", defaults.admin)),
        account=str(raw.get("account", defaults.account)),
        collateral_asset=str(raw.get("collateral_asset", defaults.collateral_asset)),
        debt_asset=str(raw.get("debt_asset", defaults.debt_asset)),
        collateral_decimals=int(raw.get("collateral_decimals", defaults.collateral_decimals)),
        debt_decimals=int(raw.get("debt_decimals", defaults.debt_decimals)),
        staleness_threshold=int(raw.get("staleness_threshold", STALENESS_THRESHOLD)),
        max_price_deviation=int(raw.get("max_price_deviation", MAX_PRICE_DEVIATION)),
        reserve=int(raw.get("reserve", 0)),
    )


def _build_collaterals(raw: dict[str, Any]) -> dict[str, CollateralSettings]:
    collaterals: dict[str, CollateralSettings] = {}
    for asset, cfg in raw.items():
        collaterals[asset] = CollateralSettings(
            liquidation_threshold=int(cfg.get("liquidation_threshold", 8000)),
            liquidation_penalty=int(cfg.get("liquidation_penalty", 1000)),
        )
    return collaterals


def _build_keeper(raw: dict[str, Any]) -> KeeperConfig:
    return KeeperConfig(
        account=str(raw.get("account", "keeper")),
        min_profit_threshold=int(raw.get("min_profit_threshold", MIN_PROFIT_THRESHOLD)),
        check_interval_minutes=int(raw.get("check_interval_minutes", 5)),
        warning_health_factor=int(raw.get("warning_health_factor", 110)),
        dry_run=_as_bool(raw.get("dry_run", False)),
    )


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    pyth_raw = raw.get("pyth", {})
    manual_raw = raw.get("manual", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "pyth"),
        secondary=raw.get("secondary", "") or "",
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
        manual=ManualPricesConfig(
            decimals=int(manual_raw.get("decimals", 8)),
            prices={k: int(v) for k, v in manual_raw.get("prices", {}).items()},
        ),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=_as_bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


def _build_balances(raw: dict[str, Any]) -> dict[str, dict[str, int]]:
    return {
        asset: {account: int(amount) for account, amount in (accounts or {}).items()}
        for asset, accounts in raw.items()
    }


def _build_positions(raw: list[dict[str, Any]]) -> tuple[SeedPosition, ...]:
    positions: list[SeedPosition] = []
    for p in raw:
        unknown = set(p) - {"participant", "collateral", "debt"}
        if unknown:
            raise ValueError(f"Unknown seed position fields: {sorted(unknown)}")
        positions.append(
            SeedPosition(
                participant=str(p.get("participant", "")),
                collateral=int(p.get("collateral", 0)),
                debt=int(p.get("debt", 0)),
            )
        )
    return tuple(positions)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        engine=_build_engine(raw.get("engine", {})),
        collaterals=_build_collaterals(raw.get("collaterals", {})),
        keeper=_build_keeper(raw.get("keeper", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
        balances=_build_balances(raw.get("balances", {})),
        positions=_build_positions(raw.get("positions", [])),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    engine = cfg.engine
    if engine.collateral_asset not in cfg.collaterals:
        raise ValueError(
            f"No collateral settings for engine collateral '{engine.collateral_asset}'"
        )

    for asset, settings in cfg.collaterals.items():
        for name in ("liquidation_threshold", "liquidation_penalty"):
            value = getattr(settings, name)
            if not 0 <= value <= BASIS_POINTS:
                raise ValueError(
                    f"Collateral '{asset}' {name} must be within 0..{BASIS_POINTS} bp"
                )

    if engine.reserve < 0:
        raise ValueError("Engine reserve must not be negative")

    if engine.account == cfg.keeper.account:
        raise ValueError("Keeper account must differ from the engine account")

    oracle = cfg.price_oracle
    for provider in (oracle.provider, oracle.secondary):
        if provider and provider not in ORACLE_PROVIDERS:
            raise ValueError(f"Unknown price oracle provider '{provider}'")
    if oracle.secondary and oracle.secondary == oracle.provider:
        raise ValueError("Secondary price oracle must differ from the primary one")

    if "pyth" in (oracle.provider, oracle.secondary):
        if engine.collateral_asset not in oracle.pyth.feeds:
            raise ValueError(f"No Pyth feed configured for '{engine.collateral_asset}'")
    if "manual" in (oracle.provider, oracle.secondary):
        if engine.collateral_asset not in oracle.manual.prices:
            raise ValueError(f"No manual price configured for '{engine.collateral_asset}'")

    for seed in cfg.positions:
        if not seed.participant:
            raise ValueError("Seed position has no participant")
        if seed.collateral < 0 or seed.debt < 0:
            raise ValueError(f"Seed position '{seed.participant}' has negative amounts")
