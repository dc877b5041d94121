"""Memory and swap usage sampling from the kernel's meminfo file."""

from __future__ import annotations

import os
import re
from collections import deque
from dataclasses import dataclass
from pathlib import Path

_MEM_LINE = re.compile(r"^(.+):\s+(\d+) kB$")
_KIB_PER_GIB = 1024 * 1024


@dataclass(frozen=True)
class MemState:
    """Total memory, used memory and used swap, all in GiB."""

    mem_total: float
    used_mem: float
    used_swap: float


def parse_meminfo(text: str) -> MemState:
    """Compute the memory state from /proc/meminfo text.

    Raises RuntimeError if the text has no non-zero MemTotal.
    """
    values = {"MemAvailable": 0.0, "SwapFree": 0.0, "MemTotal": 0.0, "SwapTotal": 0.0}
    for line in text.splitlines():
        match = _MEM_LINE.fullmatch(line)
        if match is not None and match.group(1) in values:
            values[match.group(1)] = float(match.group(2)) / _KIB_PER_GIB
    mem_total = values["MemTotal"]
    if mem_total == 0:
        raise RuntimeError("Can't get MemTotal")
    return MemState(
        mem_total,
        mem_total - values["MemAvailable"],
        values["SwapTotal"] - values["SwapFree"],
    )


class MemoryMonitor:
    """Keeps a bounded history of memory and swap usage with running statistics."""

    def __init__(self, meminfo_path: str | os.PathLike = "/proc/meminfo") -> None:
        self._path = Path(meminfo_path)
        self._samples = 0
        self._history_size = 0
        self._mem_sum = 0.0
        self._swap_sum = 0.0
        self._max_mem = 0.0
        self._max_swap = 0.0
        self._mem_total = 0.0
        self._max_mem_total = 0.0
        self._history: deque[tuple[float, float]] = deque()
        self._enabled = False

    def _read_state(self) -> MemState:
        try:
            text = self._path.read_text()
        except OSError:
            text = ""
        return parse_meminfo(text)

    @property
    def history_size(self) -> int:
        """Number of samples kept; zero disables sampling."""
        return self._history_size

    @history_size.setter
    def history_size(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"history size must not be negative, got {size}")
        if self._history_size == 0 and size != 0:
            self._enabled = True
            self._mem_total = self._read_state().mem_total
        elif self._history_size != 0 and size == 0:
            self._enabled = False
        self._history_size = size
        while len(self._history) > size:
            self._history.popleft()

    def collect_data(self) -> None:
        """Take a sample of memory and swap usage."""
        if not self._enabled:
            raise RuntimeError("memory monitor is disabled; set a history size first")
        state = self._read_state()
        self._max_mem_total = max(self._max_mem_total, state.mem_total)
        self._mem_sum += state.used_mem
        self._swap_sum += state.used_swap
        self._samples += 1
        self._max_mem = max(self._max_mem, state.used_mem)
        self._max_swap = max(self._max_swap, state.used_swap)
        self._history.append((state.used_mem, state.used_swap))
        if len(self._history) > self._history_size:
            self._history.popleft()

    def last_history(self) -> list[tuple[float, float]]:
        """The kept (used memory, used swap) samples in GiB, oldest first."""
        return list(self._history)

    def mean_mem(self) -> float:
        return self._mem_sum / self._samples if self._samples else 0.0

    def mean_swap(self) -> float:
        return self._swap_sum / self._samples if self._samples else 0.0

    def max_mem(self) -> float:
        return self._max_mem

    def max_swap(self) -> float:
        return self._max_swap

    def mem_total(self) -> float:
        """Total memory read when the monitor was enabled."""
        return self._mem_total

    def max_mem_total(self) -> float:
        """Largest total memory seen while sampling."""
        return self._max_mem_total