"""Tests for the external tool adapters (pmset, launchd, Colima, run_step)."""

import plistlib
import subprocess
from pathlib import Path

import pytest

from headless_mac.backends import colima as colima_backend
from headless_mac.backends.base import ServiceUnit, probe, run_step
from headless_mac.backends.colima import ColimaVM, start_args
from headless_mac.backends.launchd import LaunchdSupervisor
from headless_mac.backends.pmset import PmsetPowerControl, parse_pmset
from headless_mac.errors import SetupError

PMSET_OUTPUT = """\
System-wide power settings:
Currently in use:
 standby              0
 Sleep On Power Button 1
 womp                 1
 autorestart          0
 hibernatefile        /var/vm/sleepimage
 powernap             0
 networkoversleep     0
 disksleep            0
 sleep                0 (sleep prevented by caffeinate)
 tcpkeepalive         1
 displaysleep         10
 disablesleep         1
 sleep                5
"""


class FakeRun:
    """Stand-in for subprocess.run that records argv."""

    def __init__(self, returncode=0, stdout="", stderr=""):
        self.calls = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def __call__(self, args, **kwargs):
        self.calls.append((list(args), kwargs))
        if kwargs.get("check") and self.returncode != 0:
            raise subprocess.CalledProcessError(self.returncode, args)
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)

    @property
    def argv(self):
        return [args for args, _ in self.calls]


@pytest.fixture
def fake_run(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


class TestRunStep:
    def test_success(self, fake_run):
        run_step(["brew", "update"], "brew update")
        assert fake_run.argv == [["brew", "update"]]
        assert fake_run.calls[0][1]["check"] is True

    def test_sudo_prefix(self, fake_run):
        run_step(["pmset", "-a", "sleep", "0"], "Set sleep", sudo=True)
        assert fake_run.argv == [["sudo", "pmset", "-a", "sleep", "0"]]

    def test_failure_names_step(self, fake_run):
        fake_run.returncode = 2
        with pytest.raises(SetupError, match="Download Ollama failed") as exc:
            run_step(["curl", "-L", "x"], "Download Ollama")
        assert exc.value.step == "Download Ollama"

    def test_missing_binary(self, monkeypatch):
        def missing(args, **kwargs):
            raise FileNotFoundError(args[0])

        monkeypatch.setattr(subprocess, "run", missing)
        with pytest.raises(SetupError, match="not found"):
            run_step(["colima", "start"], "Start Colima")

    def test_probe_missing_binary_is_none(self, monkeypatch):
        def missing(args, **kwargs):
            raise FileNotFoundError(args[0])

        monkeypatch.setattr(subprocess, "run", missing)
        assert probe(["colima", "status"]) is None


class TestPmset:
    def test_parse(self):
        settings = parse_pmset(PMSET_OUTPUT)
        assert settings["sleep"] == "0"
        assert settings["disablesleep"] == "1"
        assert settings["womp"] == "1"
        assert settings["displaysleep"] == "10"
        assert "System-wide" not in settings

    def test_parse_empty(self):
        assert parse_pmset("") == {}

    def test_apply_in_order(self, fake_run):
        PmsetPowerControl().apply({"sleep": 0, "womp": 1})
        assert fake_run.argv == [
            ["sudo", "pmset", "-a", "sleep", "0"],
            ["sudo", "pmset", "-a", "womp", "1"],
        ]

    def test_get_settings(self, fake_run):
        fake_run.stdout = PMSET_OUTPUT
        assert PmsetPowerControl().get_settings()["tcpkeepalive"] == "1"


class TestServiceUnit:
    def test_to_plist(self):
        unit = ServiceUnit(
            label="com.ollama.server",
            program_arguments=["/usr/local/bin/ollama", "serve"],
            plist_path=Path("/Library/LaunchDaemons/com.ollama.server.plist"),
            keep_alive=True,
            working_directory="/tmp",
            environment={"OLLAMA_NUM_PARALLEL": 4},
            stdout_path="/tmp/ollama.log",
            stderr_path="/tmp/ollama.err",
            system=True,
        )
        plist = unit.to_plist()
        assert plist["Label"] == "com.ollama.server"
        assert plist["ProgramArguments"] == ["/usr/local/bin/ollama", "serve"]
        assert plist["RunAtLoad"] is True
        assert plist["KeepAlive"] is True
        assert plist["WorkingDirectory"] == "/tmp"
        assert plist["EnvironmentVariables"] == {"OLLAMA_NUM_PARALLEL": "4"}
        assert plist["StandardOutPath"] == "/tmp/ollama.log"
        assert plist["StandardErrorPath"] == "/tmp/ollama.err"

    def test_minimal_plist_omits_optional_keys(self):
        unit = ServiceUnit(label="x", program_arguments=["x"], plist_path=Path("/tmp/x.plist"))
        assert set(unit.to_plist()) == {"Label", "ProgramArguments", "RunAtLoad", "KeepAlive"}


class TestLaunchd:
    def _user_unit(self, tmp_path):
        return ServiceUnit(
            label="com.colima",
            program_arguments=["/opt/homebrew/bin/colima", "start", "--foreground"],
            plist_path=tmp_path / "LaunchAgents" / "com.colima.plist",
            stdout_path="/tmp/colima.log",
        )

    def test_install_user_unit(self, tmp_path):
        unit = self._user_unit(tmp_path)
        path = LaunchdSupervisor().install(unit)
        assert path == unit.plist_path
        with open(path, "rb") as f:
            data = plistlib.load(f)
        assert data["Label"] == "com.colima"
        assert data["ProgramArguments"][-1] == "--foreground"
        assert LaunchdSupervisor().is_installed(unit)

    def test_install_system_unit_uses_sudo(self, tmp_path, fake_run):
        unit = ServiceUnit(
            label="com.ollama.server",
            program_arguments=["ollama", "serve"],
            plist_path=tmp_path / "com.ollama.server.plist",
            system=True,
        )
        LaunchdSupervisor().install(unit)
        dst = str(unit.plist_path)
        assert fake_run.argv == [
            ["sudo", "tee", dst],
            ["sudo", "chown", "root:wheel", dst],
            ["sudo", "chmod", "644", dst],
        ]
        written = plistlib.loads(fake_run.calls[0][1]["input"])
        assert written["Label"] == "com.ollama.server"

    def test_load_unloads_first(self, tmp_path, fake_run):
        unit = self._user_unit(tmp_path)
        LaunchdSupervisor().load(unit)
        assert fake_run.argv == [
            ["launchctl", "unload", str(unit.plist_path)],
            ["launchctl", "load", str(unit.plist_path)],
        ]

    def test_is_loaded(self, tmp_path, fake_run):
        fake_run.stdout = "PID\tStatus\tLabel\n-\t0\tcom.colima\n"
        assert LaunchdSupervisor().is_loaded(self._user_unit(tmp_path))

    def test_uninstall_missing(self, tmp_path, fake_run):
        assert LaunchdSupervisor().uninstall(self._user_unit(tmp_path)) is False
        assert fake_run.calls == []


class TestColima:
    def test_start_args_apple_silicon(self):
        assert start_args(4, 16, 100, apple_silicon=True) == [
            "colima", "start",
            "--arch", "aarch64",
            "--cpu", "4", "--memory", "16", "--disk", "100",
            "--vm-type", "vz", "--vz-rosetta", "--mount-type", "virtiofs", "--network-address",
        ]

    def test_start_args_intel(self):
        assert start_args(2, 8, 60, apple_silicon=False) == [
            "colima", "start", "--cpu", "2", "--memory", "8", "--disk", "60",
        ]

    def test_start_passes_vm_type(self, fake_run):
        ColimaVM(vm_type="qemu").start(4, 16, 100, apple_silicon=True)
        assert "qemu" in fake_run.argv[0]

    def test_is_running_from_exit_code(self, fake_run):
        assert ColimaVM().is_running() is True
        fake_run.returncode = 1
        assert ColimaVM().is_running() is False

    def test_status_includes_stderr(self, fake_run):
        fake_run.stderr = "colima is running using macOS Virtualization.Framework"
        assert "Virtualization.Framework" in ColimaVM().status()

    def test_docker_info_filtered(self, fake_run):
        fake_run.stdout = " Server Version: 27.3.1\n Plugins:\n CPUs: 4\n Total Memory: 15.6GiB\n"
        info = ColimaVM().docker_info()
        assert "Plugins" not in info
        assert "CPUs: 4" in info

    def test_delete_is_forced(self, fake_run):
        ColimaVM().delete()
        assert fake_run.argv == [["colima", "delete", "--force"]]

    def test_not_installed(self, monkeypatch):
        monkeypatch.setattr(colima_backend.shutil, "which", lambda name: None)
        assert ColimaVM().is_installed() is False
