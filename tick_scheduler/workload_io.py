from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from .errors import ConfigurationError
from .models import Process
from .policies import Policy, requires_quantum


def load_workload(path: str | Path) -> List[Process]:
    """
    Load a workload from a JSON or CSV file into a list of Process objects.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_json(path)
    if suffix == ".csv":
        return _load_csv(path)

    raise ConfigurationError("path", f"unsupported workload format '{suffix}' (use .json or .csv)")


def _load_json(path: Path) -> List[Process]:
    with path.open("r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigurationError("path", f"invalid JSON in {path}: {exc}") from exc

    if not isinstance(raw, list):
        raise ConfigurationError("workload", "JSON workload must be a list of process objects")

    return [_process_from_mapping(entry, position) for position, entry in enumerate(raw, start=1)]


def _load_csv(path: Path) -> List[Process]:
    processes: List[Process] = []
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for position, row in enumerate(reader, start=1):
            processes.append(_process_from_mapping(row, position))
    return processes


def _process_from_mapping(mapping, position: int) -> Process:
    if not isinstance(mapping, Mapping):
        raise ConfigurationError(f"workload[{position}]", f"expected an object, got {mapping!r}")

    # Unnamed entries are numbered the way processes are added by hand: P1, P2, ...
    pid_val = mapping.get("pid")
    pid = str(pid_val).strip() if pid_val is not None else ""
    pid = pid or f"P{position}"

    arrival_time = _int_field(mapping, pid, "arrival_time")
    burst_time = _int_field(mapping, pid, "burst_time")
    priority = _int_field(mapping, pid, "priority", default=0)

    return Process(
        pid=pid,
        arrival_time=arrival_time,
        burst_time=burst_time,
        priority=priority,
    )


def _int_field(mapping, pid: str, name: str, default: Optional[int] = None) -> int:
    value = mapping.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return default
        raise ConfigurationError(f"{pid}.{name}", "missing value")
    if isinstance(value, bool):
        raise ConfigurationError(f"{pid}.{name}", f"expected an integer, got {value!r}")
    try:
        if isinstance(value, str):
            # int() keeps every digit; a float round-trip would not.
            return int(value.strip())
        if int(value) != value:
            raise ValueError
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ConfigurationError(f"{pid}.{name}", f"expected an integer, got {value!r}") from exc


def validate_workload(
    processes: Sequence[Process],
    policy: Policy,
    quantum: Optional[int] = None,
) -> None:
    """
    Reject a run configuration before any tick executes.

    Raises ConfigurationError naming the first offending field.
    """
    if not processes:
        raise ConfigurationError("workload", "workload must contain at least one process")

    if requires_quantum(policy):
        if quantum is None:
            raise ConfigurationError("quantum", "Round Robin requires a quantum")
        if isinstance(quantum, bool) or not isinstance(quantum, int) or quantum <= 0:
            raise ConfigurationError("quantum", f"quantum must be a positive integer, got {quantum!r}")

    seen = set()
    for i, p in enumerate(processes, start=1):
        if not isinstance(p.pid, str) or not p.pid.strip():
            raise ConfigurationError(f"workload[{i}].pid", "empty process id")
        for name in ("arrival_time", "burst_time", "priority"):
            value = getattr(p, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{p.pid}.{name}", f"expected an integer, got {value!r}")
        if p.arrival_time < 0:
            raise ConfigurationError(f"{p.pid}.arrival_time", "arrival time must be >= 0")
        if p.burst_time <= 0:
            raise ConfigurationError(f"{p.pid}.burst_time", "burst time must be > 0")
        if p.priority < 0:
            raise ConfigurationError(f"{p.pid}.priority", "priority must be >= 0")
        if p.pid in seen:
            raise ConfigurationError(f"{p.pid}.pid", "duplicate process id")
        seen.add(p.pid)
