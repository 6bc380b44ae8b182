import pytest

from tick_scheduler.engine import (
    collect_result,
    is_finished,
    iter_snapshots,
    new_run,
    run_to_completion,
    simulate,
    snapshot,
    step,
)
from tick_scheduler.errors import InvariantViolation, SimulationError
from tick_scheduler.models import Process


def _procs():
    return [
        Process("P1", arrival_time=0, burst_time=5, priority=2),
        Process("P2", arrival_time=1, burst_time=3, priority=1),
        Process("P3", arrival_time=2, burst_time=8, priority=3),
    ]


def _spans(result):
    return {pid: [[s.start_time, s.end_time] for s in slices] for pid, slices in result.timeline.items()}


def test_fcfs_two_processes():
    res = simulate([Process("P1", 0, 5), Process("P2", 1, 3)], "fcfs")
    assert _spans(res) == {"P1": [[0, 5]], "P2": [[5, 8]]}
    assert res.metrics.avg_waiting == 2.0
    assert res.metrics.avg_turnaround == 6.0


def test_fcfs_waiting_times():
    res = simulate(_procs(), "fcfs")
    assert [p.pid for p in res.processes] == ["P1", "P2", "P3"]
    assert [p.waiting_time for p in res.processes] == [0, 4, 6]


def test_sjf_picks_shortest_at_each_decision():
    workload = [
        Process("P1", 0, 7),
        Process("P2", 2, 4),
        Process("P3", 4, 1),
        Process("P4", 5, 4),
    ]
    res = simulate(workload, "sjf")
    assert _spans(res) == {"P1": [[0, 7]], "P3": [[7, 8]], "P2": [[8, 12]], "P4": [[12, 16]]}
    assert [r.pid for r in res.completed] == ["P1", "P3", "P2", "P4"]


def test_priority_is_non_preemptive():
    res = simulate(_procs(), "priority")
    # P2 has the best priority but P1 already holds the CPU at t=1.
    assert _spans(res) == {"P1": [[0, 5]], "P2": [[5, 8]], "P3": [[8, 16]]}


def test_rr_admits_arrivals_ahead_of_preempted_process():
    res = simulate([Process("P1", 0, 5), Process("P2", 1, 3)], "rr", quantum=2)
    assert _spans(res) == {"P1": [[0, 2], [4, 6], [7, 8]], "P2": [[2, 4], [6, 7]]}
    assert [r.pid for r in res.completed] == ["P2", "P1"]
    assert res.metrics.avg_waiting == 3.0
    assert res.metrics.avg_turnaround == 7.0


def test_rr_same_tick_arrival_precedes_preempted_incumbent():
    # P2 arrives exactly when P1's quantum expires.
    state = new_run([Process("P1", 0, 4), Process("P2", 2, 2)], "rr", quantum=2)
    state = step(state)
    state = step(state)
    state = step(state)
    assert state.running.pid == "P2"
    assert [r.pid for r in state.ready_queue] == ["P1"]


def test_rr_completion_on_quantum_boundary_is_not_preemption():
    state = new_run([Process("P1", 0, 2), Process("P2", 0, 2)], "rr", quantum=2)
    state = step(state)
    state = step(state)
    assert [r.pid for r in state.completed] == ["P1"]
    assert state.running is None
    assert [r.pid for r in state.ready_queue] == ["P2"]

    res = run_to_completion(state)
    assert _spans(res) == {"P1": [[0, 2]], "P2": [[2, 4]]}


def test_rr_lone_process_keeps_one_interval():
    res = simulate([Process("P1", 0, 5)], "rr", quantum=1)
    assert _spans(res) == {"P1": [[0, 5]]}


def test_rr_start_time_set_on_first_dispatch_only():
    res = simulate([Process("P1", 0, 5), Process("P2", 1, 3)], "rr", quantum=2)
    starts = {r.pid: r.start_time for r in res.completed}
    assert starts == {"P1": 0, "P2": 2}


def test_idle_gap_is_fast_forwarded():
    state = new_run([Process("P1", 0, 1), Process("P2", 5, 1)], "fcfs")

    state = step(state)
    assert state.clock == 1
    assert snapshot(state).tick == 0

    state = step(state)
    assert snapshot(state).tick == 5
    assert state.clock == 6
    assert is_finished(state)

    res = collect_result(state)
    assert _spans(res) == {"P1": [[0, 1]], "P2": [[5, 6]]}
    assert res.system.idle_time == 4


def test_late_first_arrival_starts_at_arrival():
    res = simulate([Process("P1", 3, 2)], "sjf")
    assert _spans(res) == {"P1": [[3, 5]]}
    assert res.completed[0].start_time == 3
    assert res.completed[0].waiting_time == 0


def test_sjf_tie_breaks_by_workload_order():
    workload = [Process("X", 0, 4), Process("B", 1, 2), Process("A", 1, 2)]
    for _ in range(3):
        res = simulate(workload, "sjf")
        assert [r.pid for r in res.completed] == ["X", "B", "A"]


def test_sjf_tie_breaks_by_arrival_before_workload_order():
    workload = [Process("X", 0, 4), Process("L", 2, 2), Process("E", 1, 2)]
    res = simulate(workload, "sjf")
    assert [r.pid for r in res.completed] == ["X", "E", "L"]


def test_priority_tie_breaks_by_workload_order():
    workload = [Process("X", 0, 3, 0), Process("B", 1, 2, 1), Process("A", 1, 1, 1)]
    res = simulate(workload, "priority")
    assert _spans(res) == {"X": [[0, 3]], "B": [[3, 5]], "A": [[5, 6]]}


@pytest.mark.parametrize("policy,quantum", [("fcfs", None), ("sjf", None), ("priority", None), ("rr", 1), ("rr", 3)])
def test_conservation_and_determinism(policy, quantum):
    workload = _procs() + [Process("P4", 3, 2, 0), Process("P5", 30, 4, 1)]
    first = simulate(workload, policy, quantum)
    second = simulate(workload, policy, quantum)

    assert first.timeline == second.timeline
    assert first.metrics == second.metrics

    # Never two processes on the same tick.
    ticks = [t for sl in first.slices() for t in range(sl.start_time, sl.end_time)]
    assert len(ticks) == len(set(ticks))

    # Every process gets exactly its burst.
    for p in workload:
        assert sum(sl.duration for sl in first.timeline[p.pid]) == p.burst_time

    for rec in first.completed:
        assert rec.remaining_time == 0
        assert rec.turnaround_time == rec.completion_time - rec.arrival_time
        assert rec.waiting_time == rec.turnaround_time - rec.burst_time


def test_snapshots_stream_every_tick():
    state = new_run([Process("P1", 0, 2), Process("P2", 1, 1)], "fcfs")
    snaps = list(iter_snapshots(state))

    assert [s.tick for s in snaps] == [0, 1, 2]
    assert [s.executed_id for s in snaps] == ["P1", "P1", "P2"]
    assert snaps[0].running_id == "P1"
    assert snaps[1].running_id is None
    assert snaps[1].ready_queue_ids == ["P2"]
    assert snaps[1].completed_ids == ["P1"]
    assert snaps[-1].completed_ids == ["P1", "P2"]
    assert snaps[-1].clock == 3


def test_runs_do_not_share_state():
    workload = [Process("P1", 0, 2)]
    a = new_run(workload, "fcfs")
    b = new_run(workload, "fcfs")
    a = step(a)
    assert b.clock == 0
    assert b.records[0].remaining_time == 2


def test_step_after_finish_raises():
    state = new_run([Process("P1", 0, 1)], "fcfs")
    state = step(state)
    with pytest.raises(SimulationError):
        step(state)


def test_collect_result_requires_finished_run():
    state = new_run([Process("P1", 0, 2)], "fcfs")
    with pytest.raises(SimulationError):
        collect_result(state)


def test_idle_with_no_future_arrival_is_fatal():
    state = new_run([Process("P1", 0, 2)], "fcfs")
    # Skipping past the only arrival leaves nothing that could ever run.
    state.clock = 1
    with pytest.raises(InvariantViolation):
        step(state)


def test_quantum_ignored_for_non_rr():
    res = simulate(_procs(), "fcfs", quantum=3)
    assert res.quantum is None
    assert res.policy == "fcfs"


def test_result_records_are_detached_from_run_state():
    state = new_run([Process("P1", 0, 2)], "fcfs")
    res = run_to_completion(state)
    assert res.completed[0] is not state.completed[0]

    res.completed[0].completion_time = 99
    assert state.completed[0].completion_time == 2
    assert res.processes[0].completion_time == 2
