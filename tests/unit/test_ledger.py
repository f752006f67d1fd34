"""Unit tests for the in-memory ledger."""
from __future__ import annotations

from collateral_engine.ledger import InMemoryLedger


class TestInMemoryLedger:
    def test_transfer(self) -> None:
        ledger = InMemoryLedger("ETH", "engine", {"engine": 10})
        assert ledger.transfer("alice", 4)
        assert ledger.balance_of("engine") == 6
        assert ledger.balance_of("alice") == 4

    def test_transfer_insufficient_balance(self) -> None:
        ledger = InMemoryLedger("ETH", "engine", {"engine": 1})
        assert not ledger.transfer("alice", 2)
        assert ledger.balance_of("engine") == 1

    def test_transfer_from_requires_allowance(self) -> None:
        ledger = InMemoryLedger("ETH", "engine", {"alice": 10})
        assert not ledger.transfer_from("alice", "engine", 5)

        ledger.for_holder("alice").approve("engine", 5)
        assert ledger.allowance("alice", "engine") == 5
        assert ledger.transfer_from("alice", "engine", 5)
        assert ledger.balance_of("engine") == 5
        assert ledger.allowance("alice", "engine") == 0

    def test_views_share_balances(self) -> None:
        ledger = InMemoryLedger("USDC", "engine", {"engine": 10})
        keeper = ledger.for_holder("keeper")
        ledger.transfer("keeper", 3)
        assert keeper.balance_of("keeper") == 3
        assert keeper.transfer("engine", 3)
        assert ledger.balance_of("engine") == 10

    def test_receive_hook(self) -> None:
        ledger = InMemoryLedger("ETH", "engine", {"engine": 10})
        received: list[tuple[str, str, int]] = []
        ledger.on_receive("alice", lambda sender, to, amount: received.append((sender, to, amount)))

        ledger.transfer("alice", 2)
        ledger.on_receive("alice", None)
        ledger.transfer("alice", 2)

        assert received == [("engine", "alice", 2)]

    def test_negative_amounts_rejected(self) -> None:
        ledger = InMemoryLedger("ETH", "engine", {"engine": 10})
        assert not ledger.transfer("alice", -1)
        assert not ledger.approve("alice", -1)
