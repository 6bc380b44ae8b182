from __future__ import annotations

from typing import Dict, List

from .models import ScheduledSlice


class TimelineBuilder:
    """
    Run-length encodes per-tick CPU occupancy into slices per process.

    Ticks must be recorded in clock order. A tick that starts exactly where the
    process's last slice ends extends that slice instead of opening a new one,
    so a process that keeps the CPU across several ticks (or is preempted and
    immediately re-dispatched) shows up as a single slice.
    """

    def __init__(self) -> None:
        self._slices: Dict[str, List[ScheduledSlice]] = {}

    def record(self, pid: str, tick: int) -> None:
        slices = self._slices.setdefault(pid, [])
        if slices and slices[-1].end_time == tick:
            last = slices[-1]
            slices[-1] = ScheduledSlice(pid=pid, start_time=last.start_time, end_time=tick + 1)
            return
        if slices and slices[-1].end_time > tick:
            raise ValueError(f"Tick {tick} for {pid} recorded out of order")
        slices.append(ScheduledSlice(pid=pid, start_time=tick, end_time=tick + 1))

    def build(self) -> Dict[str, List[ScheduledSlice]]:
        return {pid: list(slices) for pid, slices in self._slices.items()}

    def slices(self) -> List[ScheduledSlice]:
        merged = [sl for slices in self._slices.values() for sl in slices]
        return sorted(merged, key=lambda s: (s.start_time, s.end_time))

    def busy_ticks(self) -> int:
        return sum(sl.duration for slices in self._slices.values() for sl in slices)
