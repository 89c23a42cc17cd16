"""Per-request timing plus process memory and system CPU snapshots via psutil."""

import time
from dataclasses import dataclass

import psutil

from reqlog.models import CpuUsage, LogRecord, MemoryUsage, utc_timestamp

_CPU_STATES = ("user", "nice", "system", "idle", "irq")


@dataclass(frozen=True)
class MetricsSnapshot:
    response_time_ms: float
    memory_usage: MemoryUsage
    cpu_usage: CpuUsage


class MetricsCollector:
    """Reads timing, memory and CPU counters at the moment a response completes.

    CPU figures are aggregated over all logical CPUs since boot, so they
    describe the machine, not the individual request.
    """

    def __init__(self, clock=None, process=None, cpu_times_func=None, time_func=None):
        self._clock = clock or time.perf_counter
        self._process = process or psutil.Process()
        self._cpu_times = cpu_times_func or (lambda: psutil.cpu_times(percpu=True))
        self._time_func = time_func

    def mark(self) -> float:
        """Monotonic start mark for a request."""
        return self._clock()

    def elapsed_ms(self, start_mark: float) -> float:
        elapsed = (self._clock() - start_mark) * 1000
        return round(max(elapsed, 0.0), 3)

    def memory_usage(self) -> MemoryUsage:
        info = self._process.memory_info()
        shared = getattr(info, "shared", 0)
        return MemoryUsage(
            rss=info.rss,
            heap_total=info.vms,
            heap_used=max(info.rss - shared, 0),
            external=shared,
        )

    def cpu_usage(self) -> CpuUsage:
        totals = dict.fromkeys(_CPU_STATES, 0.0)
        for cpu in self._cpu_times():
            for state in _CPU_STATES:
                totals[state] += getattr(cpu, state, 0.0)

        total = sum(totals.values())
        if total <= 0:
            return CpuUsage(user=0.0, system=0.0, idle=0.0, total=0.0)

        return CpuUsage(
            user=round(totals["user"] / total * 100, 2),
            system=round(totals["system"] / total * 100, 2),
            idle=round(totals["idle"] / total * 100, 2),
            total=total,
        )

    def snapshot(self, start_mark: float) -> MetricsSnapshot:
        return MetricsSnapshot(
            response_time_ms=self.elapsed_ms(start_mark),
            memory_usage=self.memory_usage(),
            cpu_usage=self.cpu_usage(),
        )

    def build_record(self, method: str, url: str, status_code: int, start_mark: float) -> LogRecord:
        snap = self.snapshot(start_mark)
        now = self._time_func() if self._time_func else None
        return LogRecord(
            method=method,
            url=url,
            status_code=status_code,
            response_time_ms=snap.response_time_ms,
            timestamp=utc_timestamp(now),
            memory_usage=snap.memory_usage,
            cpu_usage=snap.cpu_usage,
        )
