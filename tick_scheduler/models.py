from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

NOT_STARTED = -1


@dataclass(frozen=True)
class Process:
    pid: str
    arrival_time: int
    burst_time: int
    priority: int = 0


@dataclass(eq=False)
class ProcessRecord:
    """
    Run-time view of one process for a single simulation run.

    Records compare by identity: each one belongs to exactly one run.

    ``index`` is the position of the process in the original workload and is
    the last tie-breaker whenever two records tie under a policy.
    """

    process: Process
    index: int
    remaining_time: int = field(init=False)
    start_time: int = NOT_STARTED
    completion_time: Optional[int] = None

    def __post_init__(self) -> None:
        self.remaining_time = self.process.burst_time

    @property
    def pid(self) -> str:
        return self.process.pid

    @property
    def arrival_time(self) -> int:
        return self.process.arrival_time

    @property
    def burst_time(self) -> int:
        return self.process.burst_time

    @property
    def priority(self) -> int:
        return self.process.priority

    @property
    def is_completed(self) -> bool:
        return self.completion_time is not None

    @property
    def turnaround_time(self) -> int:
        if self.completion_time is None:
            raise ValueError(f"Process {self.pid} has not completed yet")
        return self.completion_time - self.arrival_time

    @property
    def waiting_time(self) -> int:
        return self.turnaround_time - self.burst_time

    @property
    def response_time(self) -> int:
        if self.start_time == NOT_STARTED:
            raise ValueError(f"Process {self.pid} was never dispatched")
        return self.start_time - self.arrival_time


@dataclass(frozen=True)
class ScheduledSlice:
    """
    One contiguous slice of execution ``[start_time, end_time)`` for a process.
    """

    pid: str
    start_time: int
    end_time: int

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class Snapshot:
    """
    State of a run after one completed tick, for hosts driving live views.

    ``clock`` is the next tick to run. ``tick`` is the tick just executed and
    ``executed_id`` the process that occupied it; ``running_id`` is None when
    that process finished on this tick.
    """

    clock: int
    ready_queue_ids: List[str]
    running_id: Optional[str]
    completed_ids: List[str]
    tick: Optional[int] = None
    executed_id: Optional[str] = None


@dataclass
class ProcessMetrics:
    pid: str
    arrival_time: int
    burst_time: int
    priority: int
    start_time: int
    completion_time: int
    waiting_time: int
    turnaround_time: int
    response_time: int


@dataclass
class Metrics:
    avg_waiting: float = 0.0
    avg_turnaround: float = 0.0
    avg_response: float = 0.0


@dataclass
class SystemMetrics:
    cpu_busy_time: int
    makespan: int
    throughput: float
    cpu_utilization: float
    idle_time: int = 0


@dataclass
class SimulationResult:
    policy: str
    algorithm: str
    quantum: Optional[int]
    completed: List[ProcessRecord] = field(default_factory=list)
    processes: List[ProcessMetrics] = field(default_factory=list)
    timeline: Dict[str, List[ScheduledSlice]] = field(default_factory=dict)
    metrics: Metrics = field(default_factory=Metrics)
    system: Optional[SystemMetrics] = None

    def slices(self) -> List[ScheduledSlice]:
        """All slices of every process, ordered by start time."""
        merged = [sl for slices in self.timeline.values() for sl in slices]
        return sorted(merged, key=lambda s: (s.start_time, s.end_time))
