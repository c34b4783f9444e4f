"""Tests for host inspection through psutil."""

from types import SimpleNamespace

import psutil
import pytest

from headless_mac import system
from headless_mac.advisor import estimate_inference_workload
from headless_mac.system import GIB, SystemProbe, binary_supports_arm64


class FakeProcess:
    """Stand-in for psutil.Process as yielded by process_iter(["name"])."""

    def __init__(self, pid, name, rss=0, error=None):
        self.pid = pid
        self.info = {"name": name}
        self._rss = rss
        self._error = error

    def memory_info(self):
        if self._error is not None:
            raise self._error
        return SimpleNamespace(rss=self._rss)


@pytest.fixture
def processes(monkeypatch):
    procs = []
    monkeypatch.setattr(system.psutil, "process_iter", lambda attrs=None: iter(procs))
    return procs


class TestResources:
    def test_floors_to_whole_gb(self, monkeypatch):
        monkeypatch.setattr(system.psutil, "virtual_memory", lambda: SimpleNamespace(total=int(15.9 * GIB)))
        monkeypatch.setattr(system.psutil, "cpu_count", lambda: 8)
        resources = SystemProbe().resources()
        assert resources.total_ram_gb == 15
        assert resources.total_cpu_cores == 8

    def test_never_zero(self, monkeypatch):
        monkeypatch.setattr(system.psutil, "virtual_memory", lambda: SimpleNamespace(total=512 * 1024**2))
        monkeypatch.setattr(system.psutil, "cpu_count", lambda: None)
        resources = SystemProbe().resources()
        assert resources.total_ram_gb == 1
        assert resources.total_cpu_cores == 1


class TestProcesses:
    def test_pids_match_exact_name(self, processes):
        processes += [
            FakeProcess(10, "ollama"),
            FakeProcess(11, "ollama-runner"),
            FakeProcess(12, "ollama"),
        ]
        assert SystemProbe().pids("ollama") == [10, 12]
        assert SystemProbe().process_running("ollama")
        assert not SystemProbe().process_running("colima")

    def test_rss_summed_across_processes(self, processes):
        processes += [
            FakeProcess(10, "ollama", rss=3 * GIB),
            FakeProcess(11, "ollama", rss=int(2.5 * GIB)),
            FakeProcess(12, "Finder", rss=20 * GIB),
        ]
        assert SystemProbe().process_rss_gb("ollama") == 5

    def test_unreadable_processes_skipped(self, processes):
        processes += [
            FakeProcess(10, "ollama", error=psutil.AccessDenied(10)),
            FakeProcess(11, "ollama", rss=4 * GIB),
        ]
        assert SystemProbe().process_rss_gb("ollama") == 4

    def test_all_unreadable_is_none(self, processes):
        processes += [
            FakeProcess(10, "ollama", error=psutil.AccessDenied(10)),
            FakeProcess(11, "ollama", error=psutil.NoSuchProcess(11)),
        ]
        assert SystemProbe().process_rss_gb("ollama") is None

    def test_no_process_is_none(self, processes):
        assert SystemProbe().process_rss_gb("ollama") is None

    def test_under_one_gb_uses_fallback_estimate(self, processes):
        processes.append(FakeProcess(10, "ollama", rss=700 * 1024**2))
        observed = SystemProbe().process_rss_gb("ollama")
        assert observed == 0
        estimate = estimate_inference_workload(True, observed)
        assert estimate.estimated_ram_gb == 8
        assert estimate.from_observation is False


def test_binary_supports_arm64():
    assert binary_supports_arm64("/usr/local/bin/ollama: Mach-O universal binary [x86_64] [arm64]")
    assert not binary_supports_arm64("/usr/local/bin/ollama: Mach-O 64-bit executable x86_64")
