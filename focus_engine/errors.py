"""Engine error types."""

from __future__ import annotations


class FocusEngineError(Exception):
    """Base class for errors raised by the engine."""


class HostContractError(FocusEngineError, ValueError):
    """The host passed a value outside one of the engine's closed enums or ids."""
