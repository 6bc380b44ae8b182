from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

from .models import ProcessRecord


class Policy(Enum):
    FCFS = "fcfs"
    SJF = "sjf"
    PRIORITY = "priority"
    RR = "rr"

    @classmethod
    def parse(cls, name: "str | Policy") -> "Policy":
        if isinstance(name, Policy):
            return name
        key = str(name).strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown scheduling policy '{name}' (choose from {choices})") from None


_ALIASES = {
    "round_robin": "rr",
    "round-robin": "rr",
    "shortest_job_first": "sjf",
    "first_come_first_served": "fcfs",
}

LABELS = {
    Policy.FCFS: "FCFS",
    Policy.SJF: "SJF (non-preemptive)",
    Policy.PRIORITY: "Priority (non-preemptive)",
    Policy.RR: "Round Robin",
}

Selection = Tuple[ProcessRecord, List[ProcessRecord]]
Selector = Callable[[Sequence[ProcessRecord]], Selection]


def requires_quantum(policy: Policy) -> bool:
    return policy is Policy.RR


def select_fifo(ready_queue: Sequence[ProcessRecord]) -> Selection:
    """
    Pop the head of the queue. Used by FCFS and Round Robin.
    """
    if not ready_queue:
        raise ValueError("Cannot select from an empty ready queue")
    return ready_queue[0], list(ready_queue[1:])


def _select_min(ready_queue: Sequence[ProcessRecord], key) -> Selection:
    if not ready_queue:
        raise ValueError("Cannot select from an empty ready queue")
    # Ties fall back to earlier arrival, then original workload position.
    pos = min(
        range(len(ready_queue)),
        key=lambda i: (key(ready_queue[i]), ready_queue[i].arrival_time, ready_queue[i].index),
    )
    remaining = list(ready_queue[:pos]) + list(ready_queue[pos + 1:])
    return ready_queue[pos], remaining


def select_shortest(ready_queue: Sequence[ProcessRecord]) -> Selection:
    """
    Shortest Job First: the smallest remaining time wins.
    """
    return _select_min(ready_queue, lambda r: r.remaining_time)


def select_highest_priority(ready_queue: Sequence[ProcessRecord]) -> Selection:
    """
    Lower numeric priority value means higher priority.
    """
    return _select_min(ready_queue, lambda r: r.priority)


SELECTORS: Dict[Policy, Selector] = {
    Policy.FCFS: select_fifo,
    Policy.SJF: select_shortest,
    Policy.PRIORITY: select_highest_priority,
    Policy.RR: select_fifo,
}

_missing = [p.name for p in Policy if p not in SELECTORS]
if _missing:
    raise RuntimeError(f"No selector registered for policies: {', '.join(_missing)}")


def select_next(policy: Policy, ready_queue: Sequence[ProcessRecord]) -> Selection:
    """
    Choose the next record to run and return it with the rest of the queue.

    The input queue is left untouched; the returned queue keeps the relative
    order of everything that was not selected.
    """
    return SELECTORS[policy](ready_queue)
