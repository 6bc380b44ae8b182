from __future__ import annotations

from typing import Sequence

from .models import Metrics, ProcessMetrics, ProcessRecord, SimulationResult, SystemMetrics


def process_metrics(record: ProcessRecord) -> ProcessMetrics:
    """
    Flatten a completed record into its per-process metrics row.
    """
    turnaround_time = record.turnaround_time
    return ProcessMetrics(
        pid=record.pid,
        arrival_time=record.arrival_time,
        burst_time=record.burst_time,
        priority=record.priority,
        start_time=record.start_time,
        completion_time=record.completion_time,
        waiting_time=record.waiting_time,
        turnaround_time=turnaround_time,
        response_time=record.response_time,
    )


def summarize_process_metrics(completed: Sequence[ProcessRecord]) -> Metrics:
    """
    Return averages of the key per-process metrics for quick comparison.
    """
    if not completed:
        return Metrics(avg_waiting=0.0, avg_turnaround=0.0, avg_response=0.0)

    n = len(completed)
    return Metrics(
        avg_waiting=sum(r.waiting_time for r in completed) / n,
        avg_turnaround=sum(r.turnaround_time for r in completed) / n,
        avg_response=sum(r.response_time for r in completed) / n,
    )


def compute_system_metrics(result: SimulationResult) -> SystemMetrics:
    """
    Compute throughput and CPU utilization given populated per-process metrics
    and timeline slices.
    """
    if not result.processes:
        system = SystemMetrics(cpu_busy_time=0, makespan=0, throughput=0.0, cpu_utilization=0.0)
        result.system = system
        return system

    makespan = max(p.completion_time for p in result.processes)
    cpu_busy_time = sum(slice_.duration for slice_ in result.slices())

    throughput = len(result.processes) / makespan if makespan > 0 else 0.0
    cpu_utilization = cpu_busy_time / makespan if makespan > 0 else 0.0

    system = SystemMetrics(
        cpu_busy_time=cpu_busy_time,
        makespan=makespan,
        throughput=throughput,
        cpu_utilization=cpu_utilization,
        idle_time=makespan - cpu_busy_time,
    )
    result.system = system
    return system
