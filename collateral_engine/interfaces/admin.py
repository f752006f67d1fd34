"""Administrative gate for configuration-changing calls."""
from __future__ import annotations

from typing import Protocol


class Authorizer(Protocol):
    def is_authorized(self, caller: str) -> bool: ...


class AdminGate:
    """Capability check comparing the caller against a stored admin identity."""

    def __init__(self, admin: str) -> None:
        if not admin:
            raise ValueError("Admin identity must not be empty")
        self._admin = admin

    @property
    def admin(self) -> str:
        return self._admin

    def is_authorized(self, caller: str) -> bool:
        return caller == self._admin
