"""On-frame graphs of CPU and memory usage, toggled by key presses."""

from __future__ import annotations

import time
from contextlib import contextmanager
from enum import Enum
from functools import lru_cache
from typing import Iterable, Iterator

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from adaskit.cpu_monitor import CpuMonitor
from adaskit.memory_monitor import MemoryMonitor

_COLLECT_INTERVAL = 1.0  # seconds between samples taken while drawing
_SWAP_THRESHOLD = 10.0 / 1024  # 10 MiB in GiB

Color = tuple[int, int, int]


class MonitorType(Enum):
    CPU_AVERAGE = 0
    DISTRIBUTION_CPU = 1
    MEMORY = 2


_KEY_TO_MONITOR: dict[str, MonitorType] = {
    "C": MonitorType.CPU_AVERAGE,
    "D": MonitorType.DISTRIBUTION_CPU,
    "M": MonitorType.MEMORY,
}


def keys_to_monitors(keys: str) -> set[MonitorType]:
    """Turn a key string such as "CDM" into the set of monitors it names.

    The string "h" alone means no monitors. Raises ValueError for an unknown
    key or for "h" combined with other keys.
    """
    enabled: set[MonitorType] = set()
    if keys == "h":
        return enabled
    for key in keys:
        if key == "h":
            raise ValueError(
                "Unacceptable combination of monitor types-can't show and hide info at the same time"
            )
        monitor = _KEY_TO_MONITOR.get(key.upper())
        if monitor is None:
            raise ValueError("Unknown monitor type")
        enabled.add(monitor)
    return enabled


@lru_cache(maxsize=1)
def _font() -> ImageFont.ImageFont:
    return ImageFont.load_default()


@contextmanager
def _drawing(region: np.ndarray) -> Iterator[ImageDraw.ImageDraw]:
    """Draw on an array region; the drawing is clipped to it and written back."""
    image = Image.fromarray(np.ascontiguousarray(region))
    yield ImageDraw.Draw(image)
    region[...] = np.asarray(image)


def _blend(region: np.ndarray) -> None:
    region[...] = np.clip(np.rint(region / 2.0) + 127, 0, 255).astype(np.uint8)


def _put_text(
    draw: ImageDraw.ImageDraw, text: str, graph_width: int, baseline: int, color: Color
) -> None:
    font = _font()
    text_width = draw.textlength(text, font=font)
    bottom = draw.textbbox((0, 0), text, font=font)[3]
    x = int((graph_width - text_width) / 2)
    draw.text((x, baseline - bottom), text, fill=color, font=font)


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class Presenter:
    """Draws enabled resource monitors as small graphs on top of video frames."""

    def __init__(
        self,
        enabled_monitors: str | Iterable[MonitorType] = (),
        y_pos: int = 20,
        graph_size: tuple[int, int] = (150, 60),
        history_size: int = 20,
        cpu_monitor: CpuMonitor | None = None,
        memory_monitor: MemoryMonitor | None = None,
    ) -> None:
        width, height = graph_size
        if width <= 0 or height <= 0:
            raise ValueError(f"graph size must be positive, got {graph_size}")
        self.y_pos = y_pos
        self.graph_size = (width, height)
        self.graph_padding = max(1, int(width * 0.05))
        self._history_size = history_size
        self._prev_time: float | None = None
        self._cpu = cpu_monitor if cpu_monitor is not None else CpuMonitor()
        self._memory = memory_monitor if memory_monitor is not None else MemoryMonitor()
        self._distribution_cpu_enabled = False

        if isinstance(enabled_monitors, str):
            monitors = keys_to_monitors(enabled_monitors)
        else:
            monitors = set(enabled_monitors)
        for monitor in sorted(monitors, key=lambda m: m.value):
            self.add_remove_monitor(monitor)

    @property
    def distribution_cpu_enabled(self) -> bool:
        return self._distribution_cpu_enabled

    def _sample_layout(self) -> tuple[int, int]:
        """Return the x step between samples and how many samples fit the graph."""
        width = self.graph_size[0]
        if self._history_size <= 1:
            return 1, 1
        step = max(1, width // (self._history_size - 1))
        return step, (width + step - 1) // step + 1

    def add_remove_monitor(self, monitor: MonitorType) -> None:
        """Toggle one monitor on or off."""
        _, updated_history_size = self._sample_layout()
        cpu = self._cpu
        if monitor is MonitorType.CPU_AVERAGE:
            if cpu.history_size > 1:
                cpu.history_size = 1 if self._distribution_cpu_enabled else 0
            else:
                cpu.history_size = updated_history_size
        elif monitor is MonitorType.DISTRIBUTION_CPU:
            if self._distribution_cpu_enabled:
                self._distribution_cpu_enabled = False
                if cpu.history_size == 1:
                    cpu.history_size = 0
            else:
                self._distribution_cpu_enabled = True
                cpu.history_size = max(1, cpu.history_size)
        elif monitor is MonitorType.MEMORY:
            if self._memory.history_size > 1:
                self._memory.history_size = 0
            else:
                self._memory.history_size = updated_history_size
        else:
            raise ValueError(f"unknown monitor {monitor!r}")

    def handle_key(self, key: int | str) -> None:
        """React to C, D, M (toggle one monitor) and H (toggle all); ignore other keys."""
        if isinstance(key, str):
            if len(key) != 1:
                raise ValueError(f"expected a single key, got {key!r}")
            char = key.upper()
        else:
            if key < 0 or key > 0x10FFFF:
                return
            char = chr(key).upper()

        if char == "H":
            if self._cpu.history_size == 0 and self._memory.history_size <= 1:
                self.add_remove_monitor(MonitorType.CPU_AVERAGE)
                self.add_remove_monitor(MonitorType.DISTRIBUTION_CPU)
                self.add_remove_monitor(MonitorType.MEMORY)
            else:
                self._cpu.history_size = 0
                self._distribution_cpu_enabled = False
                self._memory.history_size = 0
            return
        monitor = _KEY_TO_MONITOR.get(char)
        if monitor is not None:
            self.add_remove_monitor(monitor)

    def draw_graphs(self, frame: np.ndarray) -> None:
        """Sample the monitors at most once a second and draw their graphs on the frame in place."""
        if (
            not isinstance(frame, np.ndarray)
            or frame.ndim != 3
            or frame.shape[2] != 3
            or frame.dtype != np.uint8
        ):
            raise ValueError("frame must be a height x width x 3 array of uint8")

        now = time.monotonic()
        if self._prev_time is None or now - self._prev_time >= _COLLECT_INTERVAL:
            self._prev_time = now
            if self._cpu.history_size != 0:
                self._cpu.collect_data()
            if self._memory.history_size > 1:
                self._memory.collect_data()

        rows, cols = frame.shape[:2]
        width, height = self.graph_size
        padding = self.graph_padding

        cpu_shown = self._cpu.history_size > 1
        memory_shown = self._memory.history_size > 1
        enabled = int(cpu_shown) + int(self._distribution_cpu_enabled) + int(memory_shown)
        panel_width = width * enabled + max(0, enabled - 1) * padding
        while panel_width > cols:
            panel_width = max(0, panel_width - width - padding)
            enabled -= 1

        graph_pos = max(0, (cols - 1 - panel_width) // 2)
        split = height // 5
        rect_height = height - split
        sample_step, possible_history = self._sample_layout()

        def graph_region(x: int) -> np.ndarray | None:
            x0, y0 = max(x, 0), max(self.y_pos, 0)
            x1, y1 = min(x + width, cols), min(self.y_pos + height, rows)
            if x1 <= x0 or y1 <= y0:
                return None
            region = frame[y0:y1, x0:x1]
            _blend(region)
            return region

        def draw_border(x: int) -> None:
            with _drawing(frame) as draw:
                draw.rectangle(
                    [x, self.y_pos + split, x + width - 1, self.y_pos + height - 1],
                    outline=(0, 0, 0),
                )

        if cpu_shown and possible_history > 1:
            enabled -= 1
            if enabled >= 0:
                history = self._cpu.last_history()
                graph = graph_region(graph_pos)
                if graph is None:
                    return
                line_x = graph.shape[1] - 1
                points: list[tuple[int, int]] = []
                for sample in reversed(history):
                    points.append((line_x, height - int(_mean(sample) * rect_height)))
                    line_x -= sample_step
                points.reverse()
                text = "CPU"
                if history:
                    text += f": {_mean(history[-1]) * 100:.1f}%"
                with _drawing(graph) as draw:
                    if len(points) > 1:
                        draw.line(points, fill=(255, 0, 0), width=2)
                    elif points:
                        draw.point(points, fill=(255, 0, 0))
                    _put_text(draw, text, width, split - 1, (70, 0, 0))
                draw_border(graph_pos)
                graph_pos += width + padding

        if self._distribution_cpu_enabled:
            enabled -= 1
            if enabled >= 0:
                history = self._cpu.last_history()
                graph = graph_region(graph_pos)
                if graph is None:
                    return
                graph_rows, graph_cols = graph.shape[:2]
                text = "Core load"
                with _drawing(graph) as draw:
                    if history and history[-1]:
                        last = history[-1]
                        step = (graph_cols + len(last) - 1) // len(last)
                        x = 0
                        for core_load in last:
                            pillar_height = int(rect_height * core_load)
                            if step > 0 and pillar_height > 0:
                                draw.rectangle(
                                    [x, graph_rows - pillar_height, x + step - 1, graph_rows - 1],
                                    fill=(255, 0, 0),
                                    outline=(0, 0, 0),
                                )
                            x += step
                        y_line = graph_rows - int(rect_height * _mean(last))
                        draw.line([(0, y_line), (graph_cols, y_line)], fill=(0, 255, 0), width=2)
                    if history:
                        text += f": {_mean(history[-1]) * 100:.1f}%"
                    _put_text(draw, text, width, split - 1, (0, 70, 0))
                draw_border(graph_pos)
                graph_pos += width + padding

        if memory_shown and possible_history > 1:
            enabled -= 1
            if enabled >= 0:
                history = self._memory.last_history()
                graph = graph_region(graph_pos)
                if graph is None:
                    return
                graph_rows, graph_cols = graph.shape[:2]
                memory = self._memory
                value_range = min(
                    memory.max_mem_total() + memory.max_swap(),
                    (memory.max_mem() + memory.max_swap()) * 1.2,
                )
                with _drawing(graph) as draw:
                    if len(history) > 1 and value_range > 0:
                        hist_x = graph_cols - 1
                        newest_first = history[::-1]
                        for (mem, swap), (prev_mem, prev_swap) in zip(newest_first, newest_first[1:]):
                            normal = memory.mem_total() * 0.95 > mem or swap < _SWAP_THRESHOLD
                            color = (0, 255, 255) if normal else (0, 0, 255)
                            right = (hist_x, graph_rows - int(rect_height * (mem + swap) / value_range))
                            left = (
                                hist_x - sample_step,
                                graph_rows - int(rect_height * (prev_mem + prev_swap) / value_range),
                            )
                            draw.line([right, left], fill=color, width=2)
                            hist_x -= sample_step
                    if history:
                        mem, swap = history[-1]
                        text = f"{mem:.1f} + {swap:.1f} GiB"
                    else:
                        text = "Memory"
                    _put_text(draw, text, width, split - 1, (0, 35, 35))
                draw_border(graph_pos)

    def report_means(self) -> list[str]:
        """Lines summarising the mean resource usage of the enabled monitors."""
        lines: list[str] = []
        cpu_shown = self._cpu.history_size > 1
        memory_shown = self._memory.history_size > 1
        if cpu_shown or self._distribution_cpu_enabled or memory_shown:
            lines.append("Resources usage:")
        if cpu_shown:
            per_core = "".join(f"{mean * 100:.1f}% " for mean in self._cpu.mean_cpu_load())
            lines.append("\tMean core utilization: " + per_core)
        if self._distribution_cpu_enabled:
            mean = _mean(self._cpu.mean_cpu_load())
            lines.append(f"\tMean CPU utilization: {mean * 100:.1f}%")
        if memory_shown:
            lines.append(f"\tMemory mean usage: {self._memory.mean_mem():.1f} GiB")
            lines.append(f"\tMean swap usage: {self._memory.mean_swap():.1f} GiB")
        return lines