"""Per-core CPU load sampling from the kernel's jiffy counters."""

from __future__ import annotations

import os
import re
import time
from collections import deque
from pathlib import Path

_CORE_JIFFIES = re.compile(
    r"^cpu(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s+(\d+)\s+(\d+)"  # groups 5 and 6: idle, iowait
)
_MIN_INTERVAL = 0.1  # seconds between samples, shorter ones may give negative loads
_DEFAULT_CLOCK_TICKS = 100


def parse_idle_cpu_stat(text: str, n_cores: int) -> list[int]:
    """Return the idle plus iowait jiffies of each core found in /proc/stat text.

    Cores that do not appear keep a count of zero. Raises RuntimeError when a
    core number is not below ``n_cores``.
    """
    idle = [0] * n_cores
    for line in text.splitlines():
        match = _CORE_JIFFIES.search(line)
        if match is None:
            continue
        core_id = int(match.group(1))
        if core_id >= n_cores:
            raise RuntimeError("The number of cores has changed")
        idle[core_id] = int(match.group(5)) + int(match.group(6))
    return idle


def _clock_ticks() -> int:
    if hasattr(os, "sysconf"):
        try:
            ticks = os.sysconf("SC_CLK_TCK")
        except (ValueError, OSError):
            ticks = -1
        if ticks > 0:
            return ticks
    return _DEFAULT_CLOCK_TICKS


class _PerformanceCounter:
    """Turns successive readings of the stat file into per-core loads."""

    def __init__(self, stat_path: Path, n_cores: int) -> None:
        self._stat_path = stat_path
        self._n_cores = n_cores
        self._clock_ticks = _clock_ticks()
        self._prev_idle = self._read_idle()
        self._prev_time = time.monotonic()

    def _read_idle(self) -> list[int]:
        try:
            text = self._stat_path.read_text()
        except OSError:
            text = ""
        return parse_idle_cpu_stat(text, self._n_cores)

    def cpu_load(self) -> list[float]:
        idle = self._read_idle()
        now = time.monotonic()
        elapsed = now - self._prev_time
        if elapsed <= _MIN_INTERVAL:
            return []
        load = [
            1.0 - (cur - prev) / self._clock_ticks / elapsed
            for cur, prev in zip(idle, self._prev_idle)
        ]
        self._prev_idle = idle
        self._prev_time = now
        return load


class CpuMonitor:
    """Keeps a bounded history of per-core CPU loads and their running means."""

    def __init__(self, n_cores: int | None = None, stat_path: str | os.PathLike = "/proc/stat") -> None:
        self._n_cores = n_cores if n_cores is not None else (os.cpu_count() or 0)
        self._stat_path = Path(stat_path)
        self._samples = 0
        self._history_size = 0
        self._load_sum = [0.0] * self._n_cores
        self._history: deque[list[float]] = deque()
        self._counter: _PerformanceCounter | None = None

    @property
    def history_size(self) -> int:
        """Number of samples kept; zero disables sampling."""
        return self._history_size

    @history_size.setter
    def history_size(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"history size must not be negative, got {size}")
        if self._history_size == 0 and size != 0:
            self._counter = _PerformanceCounter(self._stat_path, self._n_cores)
        elif self._history_size != 0 and size == 0:
            self._counter = None
        self._history_size = size
        while len(self._history) > size:
            self._history.popleft()

    def collect_data(self) -> None:
        """Take a sample; too frequent calls are silently ignored."""
        if self._counter is None:
            raise RuntimeError("CPU monitor is disabled; set a history size first")
        load = self._counter.cpu_load()
        if not load:
            return
        self._load_sum = [total + value for total, value in zip(self._load_sum, load)]
        self._samples += 1
        self._history.append(load)
        if len(self._history) > self._history_size:
            self._history.popleft()

    def last_history(self) -> list[list[float]]:
        """The kept samples, oldest first, each a list of per-core loads in [0, 1]."""
        return [list(sample) for sample in self._history]

    def mean_cpu_load(self) -> list[float]:
        """Mean load of each core over all samples taken."""
        if not self._samples:
            return [0.0] * len(self._load_sum)
        return [total / self._samples for total in self._load_sum]