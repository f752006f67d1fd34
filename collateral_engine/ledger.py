"""In-memory ledger — stand-in for the external asset custody layer."""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)

# (sender, recipient, amount), fired after the recipient has been credited.
ReceiveHook = Callable[[str, str, int], None]


class _Book:
    """Balances and allowances of one asset, shared by every holder view."""

    def __init__(self) -> None:
        self.balances: defaultdict[str, int] = defaultdict(int)
        self.allowances: defaultdict[tuple[str, str], int] = defaultdict(int)
        self.hooks: dict[str, ReceiveHook] = {}
        self.lock = threading.RLock()


class InMemoryLedger:
    """Balance store for one asset, acting on behalf of ``holder``.

    Transfers are committed immediately and never rolled back. A recipient may
    register a receive hook, which is invoked synchronously after it has been
    credited; hooks can call back into the engine the way a contract
    recipient would.
    """

    def __init__(
        self, symbol: str, holder: str, balances: dict[str, int] | None = None
    ) -> None:
        self.symbol = symbol
        self.holder = holder
        self._book = _Book()
        for account, amount in (balances or {}).items():
            self.mint(account, amount)

    def for_holder(self, holder: str) -> InMemoryLedger:
        """Return a view of the same balances acting on behalf of ``holder``."""
        view = InMemoryLedger.__new__(InMemoryLedger)
        view.symbol = self.symbol
        view.holder = holder
        view._book = self._book
        return view

    # ------------------------------------------------------------------
    # Ledger protocol
    # ------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        return self._book.balances.get(account, 0)

    def transfer(self, to: str, amount: int) -> bool:
        return self._move(self.holder, to, amount)

    def transfer_from(self, sender: str, to: str, amount: int) -> bool:
        book = self._book
        with book.lock:
            allowed = book.allowances.get((sender, self.holder), 0)
            if sender != self.holder and allowed < amount:
                logger.debug(
                    "%s allowance %s -> %s too low: %d < %d",
                    self.symbol, sender, self.holder, allowed, amount,
                )
                return False
            if book.balances.get(sender, 0) < amount:
                return False
            if sender != self.holder:
                book.allowances[(sender, self.holder)] = allowed - amount
        return self._move(sender, to, amount)

    def approve(self, spender: str, amount: int) -> bool:
        if amount < 0:
            return False
        with self._book.lock:
            self._book.allowances[(self.holder, spender)] = amount
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def allowance(self, owner: str, spender: str) -> int:
        return self._book.allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        with self._book.lock:
            self._book.balances[account] += amount

    def on_receive(self, account: str, hook: ReceiveHook | None) -> None:
        """Register (or clear, with None) a receive hook for ``account``."""
        if hook is None:
            self._book.hooks.pop(account, None)
        else:
            self._book.hooks[account] = hook

    def _move(self, sender: str, to: str, amount: int) -> bool:
        book = self._book
        if amount < 0:
            return False
        with book.lock:
            if book.balances.get(sender, 0) < amount:
                logger.debug(
                    "%s transfer %s -> %s failed: balance %d < %d",
                    self.symbol, sender, to, book.balances.get(sender, 0), amount,
                )
                return False
            book.balances[sender] -= amount
            book.balances[to] += amount

        hook = book.hooks.get(to)
        if hook is not None:
            hook(sender, to, amount)
        return True
