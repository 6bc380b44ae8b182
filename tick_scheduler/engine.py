"""
Tick-stepped CPU scheduling engine.

A run is one explicit ``RunState`` value. ``step()`` advances it by exactly one
executed tick and returns it; the caller reassigns and decides when (or
whether) to call again. The engine never sleeps or waits, so a host can pace a
live replay however it likes, or stop at any tick boundary.

Every tick performs, in this order:

    1. admission    processes arriving at ``clock`` join the back of the queue,
                    in workload order
    2. preemption   (Round Robin) an occupant that used its whole quantum goes
                    to the back of the queue, behind fresh arrivals
    3. selection    an empty CPU takes the next process chosen by the policy
    4. execution    the occupant runs for one tick
    5. completion   a process with no remaining time leaves the CPU
    6. fast-forward a tick with nothing to run jumps ``clock`` to the next
                    arrival and starts over at 1 without recording anything
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from .errors import ConfigurationError, InvariantViolation, SimulationError
from .metrics import compute_system_metrics, process_metrics, summarize_process_metrics
from .models import NOT_STARTED, Process, ProcessRecord, SimulationResult, Snapshot
from .policies import LABELS, Policy, requires_quantum, select_next
from .timeline import TimelineBuilder
from .workload_io import validate_workload

logger = logging.getLogger(__name__)


@dataclass
class RunState:
    policy: Policy
    quantum: Optional[int]
    records: List[ProcessRecord]
    clock: int = 0
    ready_queue: List[ProcessRecord] = field(default_factory=list)
    running: Optional[ProcessRecord] = None
    quantum_counter: int = 0
    completed: List[ProcessRecord] = field(default_factory=list)
    timeline: TimelineBuilder = field(default_factory=TimelineBuilder)
    last_tick: Optional[int] = None
    last_executed: Optional[ProcessRecord] = None

    @property
    def total(self) -> int:
        return len(self.records)


def new_run(
    workload: Sequence[Process],
    policy: Policy | str,
    quantum: Optional[int] = None,
) -> RunState:
    """
    Validate the configuration and build a fresh run state at clock 0.

    Raises ConfigurationError before anything executes. The quantum is only
    kept for Round Robin.
    """
    try:
        policy = Policy.parse(policy)
    except ValueError as exc:
        raise ConfigurationError("policy", str(exc)) from exc
    validate_workload(workload, policy, quantum)

    records = [ProcessRecord(process=p, index=i) for i, p in enumerate(workload)]
    state = RunState(
        policy=policy,
        quantum=quantum if requires_quantum(policy) else None,
        records=records,
    )
    logger.info(
        f"Starting {LABELS[policy]} run with {len(records)} processes"
        + (f" (quantum={state.quantum})" if state.quantum is not None else "")
    )
    return state


def is_finished(state: RunState) -> bool:
    return len(state.completed) == state.total


def step(state: RunState) -> RunState:
    """
    Execute the next tick that has work in it and return the updated state.
    """
    if is_finished(state):
        raise SimulationError("Run already finished; no ticks remain")

    while True:
        _admit_arrivals(state)
        _preempt_expired(state)
        _dispatch(state)

        if state.running is not None:
            _execute_tick(state)
            state.clock += 1
            return state

        _fast_forward(state)


def _admit_arrivals(state: RunState) -> None:
    for record in state.records:
        if record.arrival_time != state.clock:
            continue
        if record.is_completed or record is state.running or record in state.ready_queue:
            continue
        state.ready_queue.append(record)
        logger.debug(f"t={state.clock}: {record.pid} admitted")


def _preempt_expired(state: RunState) -> None:
    if state.policy is not Policy.RR or state.running is None:
        return
    if state.quantum_counter != state.quantum:
        return

    incumbent = state.running
    state.ready_queue.append(incumbent)
    state.running = None
    state.quantum_counter = 0
    logger.debug(f"t={state.clock}: {incumbent.pid} preempted ({incumbent.remaining_time} left)")


def _dispatch(state: RunState) -> None:
    if state.running is not None or not state.ready_queue:
        return

    record, state.ready_queue = select_next(state.policy, state.ready_queue)
    if record.start_time == NOT_STARTED:
        record.start_time = state.clock
    state.running = record
    state.quantum_counter = 0
    logger.debug(f"t={state.clock}: {record.pid} dispatched")


def _execute_tick(state: RunState) -> None:
    record = state.running
    record.remaining_time -= 1
    state.timeline.record(record.pid, state.clock)
    state.quantum_counter += 1
    state.last_tick = state.clock
    state.last_executed = record

    # Completion wins over a preemption that would otherwise fire next tick.
    if record.remaining_time == 0:
        record.completion_time = state.clock + 1
        state.completed.append(record)
        state.running = None
        state.quantum_counter = 0
        logger.debug(f"t={state.clock}: {record.pid} completed at {record.completion_time}")


def _fast_forward(state: RunState) -> None:
    future = [r.arrival_time for r in state.records if r.arrival_time > state.clock]
    if not future:
        logger.error(
            f"t={state.clock}: CPU idle with {state.total - len(state.completed)} "
            "unfinished processes and no future arrivals"
        )
        raise InvariantViolation(
            f"Idle at t={state.clock} with unfinished processes but no future arrivals"
        )

    target = min(future)
    logger.debug(f"t={state.clock}: idle, fast-forwarding to t={target}")
    state.clock = target


def snapshot(state: RunState) -> Snapshot:
    return Snapshot(
        clock=state.clock,
        ready_queue_ids=[r.pid for r in state.ready_queue],
        running_id=state.running.pid if state.running is not None else None,
        completed_ids=[r.pid for r in state.completed],
        tick=state.last_tick,
        executed_id=state.last_executed.pid if state.last_executed is not None else None,
    )


def iter_snapshots(state: RunState) -> Iterator[Snapshot]:
    """
    Step the run to completion, yielding a snapshot after every tick.

    Nothing happens until the caller pulls the next snapshot, and abandoning
    the iterator simply leaves the run where it stopped.
    """
    while not is_finished(state):
        state = step(state)
        yield snapshot(state)


def collect_result(state: RunState) -> SimulationResult:
    """
    Build the final result. Its records are copies, detached from the run state.
    """
    if not is_finished(state):
        raise SimulationError(
            f"Run is not finished ({len(state.completed)}/{state.total} processes completed)"
        )

    result = SimulationResult(
        policy=state.policy.value,
        algorithm=LABELS[state.policy],
        quantum=state.quantum,
        completed=[copy.copy(r) for r in state.completed],
        processes=[process_metrics(r) for r in state.completed],
        timeline=state.timeline.build(),
        metrics=summarize_process_metrics(state.completed),
    )
    compute_system_metrics(result)
    return result


def run_to_completion(state: RunState) -> SimulationResult:
    while not is_finished(state):
        state = step(state)

    result = collect_result(state)
    logger.info(
        f"{result.algorithm} finished at t={state.clock}: "
        f"avg waiting {result.metrics.avg_waiting:.2f}, "
        f"avg turnaround {result.metrics.avg_turnaround:.2f}"
    )
    return result


def simulate(
    workload: Sequence[Process],
    policy: Policy | str,
    quantum: Optional[int] = None,
) -> SimulationResult:
    """
    Run a workload under one policy from start to finish.
    """
    return run_to_completion(new_run(workload, policy, quantum))
