from __future__ import annotations


class ConfigurationError(ValueError):
    """
    Raised before any tick executes when a workload or run setting is invalid.

    ``field`` names the offending input (for example ``"quantum"`` or
    ``"P3.burst_time"``) and ``reason`` says what is wrong with it.
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class SimulationError(RuntimeError):
    """Raised when a run is driven incorrectly, e.g. stepping a finished run."""


class InvariantViolation(SimulationError):
    """Fatal: the run state is inconsistent and the run must be abandoned."""
