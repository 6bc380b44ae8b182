from __future__ import annotations

from typing import Dict, List, Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .models import ScheduledSlice

COLORS = ["red", "green", "yellow", "blue", "magenta", "cyan"]


def render_gantt(slices: Sequence[ScheduledSlice]) -> str:
    """
    Plain-text single-line Gantt chart; idle ticks are drawn as dots.
    """
    if not slices:
        return "(no execution)"

    slices = sorted(slices, key=lambda s: (s.start_time, s.end_time))

    line = "|"
    labels = " "
    time_marks = "0"
    last_time = 0

    for sl in slices:
        idle_gap = sl.start_time - last_time
        if idle_gap > 0:
            line += "." * idle_gap
            labels += " " * idle_gap
            last_time = sl.start_time
            time_marks += f" {last_time}"

        width = sl.duration
        line += "=" * width
        labels += sl.pid[:width].ljust(width)
        last_time = sl.end_time
        time_marks += f" {last_time}"

    line += "|"

    return "\n".join(
        [
            "Gantt Chart:",
            line,
            labels,
            time_marks,
        ]
    )


def _time_axis(makespan: int, step: int) -> Text:
    axis = Text(style="dim")
    for t in range(0, makespan + 1, step):
        axis.append(str(t).ljust(step))
    return axis


def build_rich_gantt(timeline: Dict[str, List[ScheduledSlice]], makespan: int) -> Panel:
    """
    Build a Rich Panel with one lane per process and colored blocks on the
    ticks it occupied.
    """
    if not timeline or makespan <= 0:
        return Panel("No execution", title="Gantt Chart")

    # Lanes in order of first dispatch.
    order = sorted(timeline, key=lambda pid: timeline[pid][0].start_time if timeline[pid] else makespan)
    label_width = max(len(pid) for pid in order)

    table = Table.grid(padding=(0, 1))
    table.add_column(justify="right", style="bold")
    table.add_column()

    for idx, pid in enumerate(order):
        color = COLORS[idx % len(COLORS)]
        lane = Text()
        cursor = 0
        for sl in timeline[pid]:
            if sl.start_time > cursor:
                lane.append("·" * (sl.start_time - cursor), style="dim")
            lane.append(" " * sl.duration, style=f"on {color}")
            cursor = sl.end_time
        if cursor < makespan:
            lane.append("·" * (makespan - cursor), style="dim")
        table.add_row(pid.rjust(label_width), lane)

    # One character per tick, so marks must be spaced at least as wide as the labels.
    step = 1 if makespan < 10 else 2 if makespan <= 20 else 5
    table.add_row("", _time_axis(makespan, step))

    return Panel.fit(table, title="Gantt Chart")
