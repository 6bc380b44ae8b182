from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .engine import iter_snapshots, new_run, run_to_completion
from .errors import ConfigurationError
from .gantt import build_rich_gantt, render_gantt
from .models import SimulationResult
from .policies import Policy, requires_quantum
from .workload_io import load_workload

logger = logging.getLogger(__name__)

POLICY_NAMES = [p.value for p in Policy]


def _non_negative_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if not value >= 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tick-scheduler",
        description="Tick-by-tick CPU scheduling simulator (FCFS, SJF, Priority, RR).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity; DEBUG traces every tick (default: WARNING).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a scheduling policy on a workload file.")
    run_parser.add_argument(
        "--algorithm",
        "-a",
        required=True,
        help=f"Policy to use ({', '.join(POLICY_NAMES)}).",
    )
    run_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    run_parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=None,
        help="Time quantum for round-robin (ignored by FCFS, SJF, Priority).",
    )
    run_parser.add_argument(
        "--step",
        action="store_true",
        help="Replay the run tick by tick in the terminal.",
    )
    run_parser.add_argument(
        "--step-delay",
        type=_non_negative_float,
        default=0.3,
        help="Seconds to wait between ticks when --step is used (default: 0.3).",
    )
    run_parser.add_argument(
        "--plain",
        action="store_true",
        help="Draw the Gantt chart as plain text instead of colored lanes.",
    )

    compare_parser = subparsers.add_parser(
        "compare",
        help="Run several policies on the same workload and compare average metrics.",
    )
    compare_parser.add_argument(
        "--workload",
        "-w",
        required=True,
        help="Path to JSON or CSV workload file.",
    )
    compare_parser.add_argument(
        "--algorithms",
        "-a",
        nargs="+",
        default=list(POLICY_NAMES),
        help=f"Policies to compare (default: {' '.join(POLICY_NAMES)}).",
    )
    compare_parser.add_argument(
        "--quantum",
        "-q",
        type=int,
        default=2,
        help="Time quantum used for RR when included (default: 2).",
    )

    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
    )


def _print_result(result: SimulationResult, console: Console, plain: bool = False) -> None:
    console.print(f"[bold]Algorithm:[/bold] {result.algorithm}")
    if result.quantum is not None:
        console.print(f"[bold]Quantum:[/bold] {result.quantum}")

    console.print()

    makespan = result.system.makespan if result.system else 0
    if plain:
        console.print(render_gantt(result.slices()), markup=False, highlight=False)
    else:
        console.print(build_rich_gantt(result.timeline, makespan))

    console.print()

    headers = [
        "PID",
        "Arrive",
        "Burst",
        "Priority",
        "Start",
        "Complete",
        "Wait",
        "Turnaround",
        "Response",
    ]

    proc_table = Table(title="Per-process metrics (completion order)", box=box.SIMPLE_HEAVY)
    for h in headers:
        justify = "center" if h in {"PID", "Priority"} else "right"
        proc_table.add_column(h, justify=justify)

    for p in result.processes:
        proc_table.add_row(
            p.pid,
            str(p.arrival_time),
            str(p.burst_time),
            str(p.priority),
            str(p.start_time),
            str(p.completion_time),
            str(p.waiting_time),
            str(p.turnaround_time),
            str(p.response_time),
        )

    console.print(proc_table)
    console.print()

    summary = result.metrics
    sys_table = Table(title="System metrics", box=box.SIMPLE_HEAVY)
    sys_table.add_column("Metric")
    sys_table.add_column("Value", justify="right")

    sys_table.add_row("Avg waiting", f"{summary.avg_waiting:.2f}")
    sys_table.add_row("Avg turnaround", f"{summary.avg_turnaround:.2f}")
    sys_table.add_row("Avg response", f"{summary.avg_response:.2f}")
    if result.system:
        sys = result.system
        sys_table.add_row("Makespan", str(sys.makespan))
        sys_table.add_row("Idle ticks", str(sys.idle_time))
        sys_table.add_row("Throughput (proc/tick)", f"{sys.throughput:.3f}")
        sys_table.add_row("CPU utilization", f"{sys.cpu_utilization*100:.1f}%")

    console.print(sys_table)


def _replay(state, console: Console, delay: float) -> None:
    """
    Drive the run one tick at a time, printing the queue after every tick.

    Pacing happens here only; the engine itself never waits.
    """
    console.print(f"[bold]Simulating {state.policy.value}[/bold] ({state.total} processes)")
    console.print("[dim]Press Ctrl+C to skip the replay.[/dim]")

    previous_tick: Optional[int] = None
    for snap in iter_snapshots(state):
        if previous_tick is not None and snap.tick > previous_tick + 1:
            console.print(f"[dim]t={previous_tick + 1}..{snap.tick - 1}: idle[/dim]")
        previous_tick = snap.tick

        ready = " ".join(snap.ready_queue_ids) or "-"
        done = " ".join(snap.completed_ids) or "-"
        finished = "" if snap.running_id else " [yellow](done)[/yellow]"
        console.print(
            f"t={snap.tick:3d}: [green]{snap.executed_id}[/green]{finished}"
            f"  ready: {ready}  completed: {done}"
        )
        time.sleep(delay)


def _run(args: argparse.Namespace, console: Console) -> int:
    processes = load_workload(Path(args.workload))
    state = new_run(processes, args.algorithm, quantum=args.quantum)

    if args.step:
        try:
            _replay(state, console, delay=args.step_delay)
        except KeyboardInterrupt:
            console.print("[yellow]Replay skipped.[/yellow]")

    result = run_to_completion(state)
    _print_result(result, console, plain=args.plain)
    return 0


def _compare(args: argparse.Namespace, console: Console) -> int:
    workload_path = Path(args.workload)
    processes = load_workload(workload_path)

    summary_table = Table(title=f"Algorithm comparison: {workload_path}", box=box.SIMPLE_HEAVY)
    summary_table.add_column("Algorithm")
    summary_table.add_column("Quantum", justify="right")
    summary_table.add_column("Avg waiting", justify="right")
    summary_table.add_column("Avg turnaround", justify="right")
    summary_table.add_column("Avg response", justify="right")
    summary_table.add_column("Makespan", justify="right")

    results: List[SimulationResult] = []
    for name in args.algorithms:
        try:
            policy = Policy.parse(name)
        except ValueError as exc:
            raise ConfigurationError("algorithms", str(exc)) from exc
        q = args.quantum if requires_quantum(policy) else None
        results.append(run_to_completion(new_run(processes, policy, quantum=q)))

    for result in results:
        summary_table.add_row(
            result.algorithm,
            "" if result.quantum is None else str(result.quantum),
            f"{result.metrics.avg_waiting:.2f}",
            f"{result.metrics.avg_turnaround:.2f}",
            f"{result.metrics.avg_response:.2f}",
            str(result.system.makespan) if result.system else "",
        )

    console.print(summary_table)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    console = Console()

    try:
        if args.command == "run":
            return _run(args, console)
        if args.command == "compare":
            return _compare(args, console)
    except ConfigurationError as exc:
        logger.debug(f"Rejected configuration: {exc}")
        console.print(f"[red]Invalid {escape(exc.field)}:[/red] {escape(exc.reason)}")
        return 2

    parser.error(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
