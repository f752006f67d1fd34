"""Ledger protocol — fungible balance store for one asset."""
from typing import Protocol


class Ledger(Protocol):
    """Balance store acting on behalf of a single holder account.

    ``transfer`` moves funds out of the holder's own balance; ``transfer_from``
    spends an allowance previously granted with ``approve``.
    """

    symbol: str

    def balance_of(self, account: str) -> int: ...

    def transfer(self, to: str, amount: int) -> bool: ...

    def transfer_from(self, sender: str, to: str, amount: int) -> bool: ...

    def approve(self, spender: str, amount: int) -> bool: ...
