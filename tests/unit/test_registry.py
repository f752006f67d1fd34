"""Unit tests for the position registry, directory and operation guard."""
from __future__ import annotations

import threading
import time

import pytest

from collateral_engine.directory import InMemoryPositionDirectory
from collateral_engine.errors import PositionNotFound, ReentrantCall
from collateral_engine.guard import OperationGuard
from collateral_engine.models import EMPTY_POSITION, Position
from collateral_engine.registry import PositionRegistry


class TestPositionRegistry:
    def test_missing_participant_reads_empty(self) -> None:
        assert PositionRegistry().get("nobody") == EMPTY_POSITION

    def test_put_replaces_position(self) -> None:
        registry = PositionRegistry()
        registry.put("alice", Position(collateral_amount=5, debt_amount=1))
        assert registry.get("alice") == Position(collateral_amount=5, debt_amount=1)
        assert len(registry) == 1

    def test_total_collateral_follows_every_write(self) -> None:
        registry = PositionRegistry()
        registry.put("alice", Position(collateral_amount=10))
        registry.put("bob", Position(collateral_amount=7, debt_amount=3))
        assert registry.total_collateral == 17

        registry.put("alice", Position(collateral_amount=4))
        registry.put("bob", EMPTY_POSITION)
        assert registry.total_collateral == 4

    def test_position_ids_increment(self) -> None:
        registry = PositionRegistry()
        assert registry.open_position_id("alice") == (1, True)
        assert registry.open_position_id("bob") == (2, True)
        assert registry.open_position_id("alice") == (1, False)
        assert registry.next_position_id == 3

    def test_iterates_snapshot(self) -> None:
        registry = PositionRegistry()
        registry.put("alice", Position(collateral_amount=1))
        for participant, _ in registry:
            registry.put(participant + "-2", Position())
        assert sorted(registry.participants()) == ["alice", "alice-2"]


class TestDirectory:
    def test_owner_of(self) -> None:
        directory = InMemoryPositionDirectory()
        directory.assign(7, "alice")
        assert directory.owner_of(7) == "alice"
        assert directory.position_ids() == [7]

    def test_unknown_id(self) -> None:
        with pytest.raises(PositionNotFound):
            InMemoryPositionDirectory().owner_of(1)

    def test_cannot_reassign(self) -> None:
        directory = InMemoryPositionDirectory()
        directory.assign(1, "alice")
        directory.assign(1, "alice")
        with pytest.raises(ValueError):
            directory.assign(1, "bob")


class TestOperationGuard:
    def test_marks_in_progress_and_releases(self) -> None:
        guard = OperationGuard()
        assert not guard.in_progress
        with guard.enter("alice", "deposit"):
            assert guard.in_progress
        assert not guard.in_progress

    def test_nested_entry_rejected(self) -> None:
        guard = OperationGuard()
        with guard.enter("alice", "liquidate"):
            with pytest.raises(ReentrantCall):
                with guard.enter("alice", "borrow"):
                    pass
            with pytest.raises(ReentrantCall):
                with guard.enter("bob", "deposit"):
                    pass

    def test_released_after_exception(self) -> None:
        guard = OperationGuard()
        with pytest.raises(RuntimeError):
            with guard.enter("alice", "borrow"):
                raise RuntimeError("boom")
        with guard.enter("alice", "borrow"):
            pass

    def test_same_participant_serialized_across_threads(self) -> None:
        guard = OperationGuard()
        active = 0
        peak = 0
        lock = threading.Lock()

        def work() -> None:
            nonlocal active, peak
            with guard.enter("alice", "deposit"):
                with lock:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.01)
                with lock:
                    active -= 1

        threads = [threading.Thread(target=work) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert peak == 1
        assert guard.tracked_participants == 0

    def test_locks_dropped_when_idle(self) -> None:
        guard = OperationGuard()
        for i in range(100):
            with guard.enter(f"participant-{i}", "deposit"):
                assert guard.tracked_participants == 1
        assert guard.tracked_participants == 0

    def test_lock_dropped_after_exception(self) -> None:
        guard = OperationGuard()
        with pytest.raises(RuntimeError):
            with guard.enter("alice", "borrow"):
                raise RuntimeError("boom")
        assert guard.tracked_participants == 0
