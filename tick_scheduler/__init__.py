"""
Tick scheduler package.

A deterministic, tick-stepped CPU scheduling simulator (FCFS, SJF, Priority,
Round Robin) with a command-line front end for replaying and comparing runs.
"""

from .engine import RunState, iter_snapshots, new_run, run_to_completion, simulate, snapshot, step
from .errors import ConfigurationError, InvariantViolation, SimulationError
from .models import Process, ScheduledSlice, SimulationResult, Snapshot
from .policies import Policy

__all__ = [
    "ConfigurationError",
    "InvariantViolation",
    "Policy",
    "Process",
    "RunState",
    "ScheduledSlice",
    "SimulationError",
    "SimulationResult",
    "Snapshot",
    "cli",
    "iter_snapshots",
    "new_run",
    "run_to_completion",
    "simulate",
    "snapshot",
    "step",
]
