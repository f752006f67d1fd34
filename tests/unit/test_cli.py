"""Unit tests for the command-line interface."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from collateral_engine import cli
from collateral_engine.cli import EXIT_LIQUIDATABLE, apply_overrides, build_parser
from collateral_engine.config import AppConfig
from collateral_engine.models import PositionHealth


class TestBuildParser:
    def test_liquidate_without_ids(self) -> None:
        args = build_parser().parse_args(["liquidate"])
        assert args.command == "liquidate"
        assert args.position_ids == []

    def test_liquidate_with_ids(self) -> None:
        args = build_parser().parse_args(["liquidate", "3", "7"])
        assert args.position_ids == [3, 7]

    def test_liquidate_rejects_non_numeric_ids(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["liquidate", "alice"])

    def test_monitor_interval(self) -> None:
        assert build_parser().parse_args(["monitor"]).interval is None
        assert build_parser().parse_args(["monitor", "10"]).interval == 10

    def test_global_flags(self) -> None:
        args = build_parser().parse_args(
            ["--config", "/tmp/c.yaml", "--log-level", "DEBUG", "--dry-run", "check"]
        )
        assert (args.config, args.log_level, args.dry_run) == ("/tmp/c.yaml", "DEBUG", True)

    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main([])
        assert exc.value.code == 1


class TestApplyOverrides:
    def test_dry_run_flag(self, sample_app_config: AppConfig) -> None:
        args = build_parser().parse_args(["--dry-run", "liquidate"])
        config = apply_overrides(sample_app_config, args)
        assert config.keeper.dry_run is True
        assert sample_app_config.keeper.dry_run is False

    def test_without_flag_keeps_config(self, sample_app_config: AppConfig) -> None:
        args = build_parser().parse_args(["liquidate"])
        assert apply_overrides(sample_app_config, args) is sample_app_config


def _health(hf: int) -> PositionHealth:
    return PositionHealth(
        position_id=1, participant="alice", collateral_amount=1, debt_amount=1, health_factor=hf
    )


class TestMain:
    @pytest.fixture()
    def keeper(self, sample_app_config: AppConfig):
        keeper = AsyncMock()
        with patch.object(cli, "load_config", return_value=sample_app_config), \
                patch.object(cli, "Keeper", return_value=keeper) as keeper_cls:
            keeper.cls = keeper_cls
            yield keeper

    def test_check_exit_status_when_liquidatable(self, keeper: AsyncMock) -> None:
        keeper.check_positions.return_value = [_health(96), _health(360)]
        with pytest.raises(SystemExit) as exc:
            cli.main(["check"])
        assert exc.value.code == EXIT_LIQUIDATABLE

    def test_check_exit_status_when_healthy(self, keeper: AsyncMock) -> None:
        keeper.check_positions.return_value = [_health(360)]
        with pytest.raises(SystemExit) as exc:
            cli.main(["check"])
        assert exc.value.code == 0

    def test_liquidate_passes_ids(self, keeper: AsyncMock) -> None:
        with pytest.raises(SystemExit):
            cli.main(["liquidate", "2", "5"])
        keeper.liquidate_once.assert_awaited_once_with([2, 5])

    def test_liquidate_defaults_to_every_position(self, keeper: AsyncMock) -> None:
        with pytest.raises(SystemExit):
            cli.main(["--dry-run", "liquidate"])
        keeper.liquidate_once.assert_awaited_once_with(None)
        assert keeper.cls.call_args[0][0].keeper.dry_run is True
