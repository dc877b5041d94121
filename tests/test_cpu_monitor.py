from unittest import mock

import pytest

from adaskit.cpu_monitor import CpuMonitor, parse_idle_cpu_stat


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _stat_text(idles):
    lines = ["cpu  100 0 100 999 0 0 0 0 0 0"]
    for core, idle in enumerate(idles):
        lines.append(f"cpu{core} 10 0 10 {idle} 0 0 0 0 0 0")
    lines.append("intr 12345")
    return "\n".join(lines) + "\n"


@pytest.fixture
def clock():
    c = _Clock()
    with mock.patch("time.monotonic", c), mock.patch("os.sysconf", return_value=100, create=True):
        yield c


@pytest.fixture
def stat_file(tmp_path):
    path = tmp_path / "stat"
    path.write_text(_stat_text([500, 700]))
    return path


def test_parse_reads_idle_per_core():
    assert parse_idle_cpu_stat(_stat_text([500, 700]), 2) == [500, 700]


def test_parse_adds_iowait_to_idle():
    text = "cpu0 1 2 3 40 5 0 0\n"
    direct = parse_idle_cpu_stat("cpu0 1 2 3 45 0 0 0\n", 1)
    assert parse_idle_cpu_stat(text, 1) == direct


def test_parse_missing_core_stays_zero():
    assert parse_idle_cpu_stat("cpu1 1 2 3 7 0\n", 3) == [0, 7, 0]


def test_parse_ignores_aggregate_line():
    assert parse_idle_cpu_stat("cpu  1 2 3 4 5 6\n", 2) == [0, 0]


def test_parse_rejects_unknown_core():
    with pytest.raises(RuntimeError, match="number of cores"):
        parse_idle_cpu_stat(_stat_text([1, 2, 3]), 2)


def test_new_monitor_is_disabled(stat_file):
    monitor = CpuMonitor(2, stat_file)
    assert monitor.history_size == 0
    assert monitor.mean_cpu_load() == [0.0, 0.0]
    assert monitor.last_history() == []


def test_collect_when_disabled_raises(stat_file):
    monitor = CpuMonitor(2, stat_file)
    with pytest.raises(RuntimeError):
        monitor.collect_data()


def test_negative_history_size_rejected(stat_file):
    monitor = CpuMonitor(2, stat_file)
    with pytest.raises(ValueError):
        monitor.history_size = -1
    assert monitor.history_size == 0


def test_too_frequent_sample_is_ignored(clock, stat_file):
    monitor = CpuMonitor(2, stat_file)
    monitor.history_size = 5
    clock.now = 0.05
    monitor.collect_data()
    assert monitor.last_history() == []


def test_no_idle_time_means_full_load(clock, stat_file):
    monitor = CpuMonitor(2, stat_file)
    monitor.history_size = 5
    clock.now = 1.0
    monitor.collect_data()
    assert monitor.last_history() == [[1.0, 1.0]]


def test_all_idle_ticks_mean_no_load(clock, stat_file):
    monitor = CpuMonitor(2, stat_file)
    monitor.history_size = 5
    clock.now = 1.0
    stat_file.write_text(_stat_text([600, 700]))
    monitor.collect_data()
    history = monitor.last_history()
    assert history[0][0] == pytest.approx(0.0)
    assert history[0][1] == pytest.approx(1.0)


def test_history_is_bounded_and_trimmed(clock, stat_file):
    monitor = CpuMonitor(2, stat_file)
    monitor.history_size = 2
    idles = [500, 700]
    for step in range(1, 4):
        clock.now = float(step)
        idles = [idles[0] + 10 * step, idles[1]]
        stat_file.write_text(_stat_text(idles))
        monitor.collect_data()
    history = monitor.last_history()
    assert len(history) == 2
    last = history[-1]
    monitor.history_size = 1
    assert monitor.last_history() == [last]


def test_mean_is_average_of_samples(clock, stat_file):
    monitor = CpuMonitor(2, stat_file)
    monitor.history_size = 1
    clock.now = 1.0
    stat_file.write_text(_stat_text([550, 700]))
    monitor.collect_data()
    clock.now = 2.0
    monitor.collect_data()
    first_core = [0.5, 1.0]
    means = monitor.mean_cpu_load()
    assert means[0] == pytest.approx(sum(first_core) / len(first_core))
    assert means[1] == pytest.approx(1.0)
    assert len(monitor.last_history()) == 1


def test_disabling_stops_sampling(clock, stat_file):
    monitor = CpuMonitor(2, stat_file)
    monitor.history_size = 3
    monitor.history_size = 0
    assert monitor.history_size == 0
    with pytest.raises(RuntimeError):
        monitor.collect_data()