"""Engine exception hierarchy."""
from __future__ import annotations


class EngineError(Exception):
    """Base class for every failure raised by the engine."""


# ---------------------------------------------------------------------------
# Input errors: rejected synchronously, never partially applied
# ---------------------------------------------------------------------------


class InputError(EngineError):
    pass


class InsufficientDeposit(InputError):
    pass


class InvalidAmount(InputError):
    pass


class CollateralNotSupported(InputError):
    pass


class InvalidConfiguration(InputError):
    pass


# ---------------------------------------------------------------------------
# State-precondition errors: rejected before any mutation
# ---------------------------------------------------------------------------


class PreconditionError(EngineError):
    pass


class InsufficientCollateral(PreconditionError):
    pass


class PositionHealthy(PreconditionError):
    pass


class InsufficientFunds(PreconditionError):
    pass


class InsufficientReserves(PreconditionError):
    pass


class NoLiquidatablePositions(PreconditionError):
    pass


class LiquidationUnprofitable(PreconditionError):
    pass


class PositionNotFound(PreconditionError):
    pass


class ReentrantCall(PreconditionError):
    pass


# ---------------------------------------------------------------------------
# Oracle errors: propagate as hard failures
# ---------------------------------------------------------------------------


class OracleError(EngineError):
    pass


class Paused(OracleError):
    pass


class StalePrice(OracleError):
    pass


class InvalidPrice(OracleError):
    pass


class FeedNotFound(OracleError):
    pass


class PriceDeviationTooHigh(OracleError):
    pass


# ---------------------------------------------------------------------------
# Other
# ---------------------------------------------------------------------------


class Unauthorized(EngineError):
    pass


class TransferFailed(EngineError):
    pass
