"""Tests for Homebrew setup and shell integration."""

import pytest

from headless_mac.components import homebrew
from headless_mac.components.homebrew import (
    HomebrewComponent,
    add_shellenv,
    backup_file,
    comment_out_shellenv,
    has_shellenv,
    shellenv_line,
    strip_shellenv,
)
from headless_mac.errors import Cancelled


@pytest.fixture
def zprofile(tmp_path, monkeypatch):
    path = tmp_path / ".zprofile"
    monkeypatch.setattr(homebrew, "SHELL_CONFIG", path)
    monkeypatch.setenv("PATH", "/usr/bin:/bin")
    return path


class TestShellenv:
    def test_line(self):
        assert shellenv_line("/opt/homebrew") == 'eval "$(/opt/homebrew/bin/brew shellenv)"'

    def test_missing_file(self, tmp_path):
        assert not has_shellenv(tmp_path / "nope")

    def test_add_is_idempotent(self, tmp_path):
        path = tmp_path / ".zprofile"
        path.write_text("export EDITOR=vim\n")
        assert add_shellenv(path, "/opt/homebrew") is True
        assert add_shellenv(path, "/opt/homebrew") is False
        text = path.read_text()
        assert text.count("brew shellenv") == 1
        assert "# Homebrew" in text
        assert text.startswith("export EDITOR=vim\n")

    def test_commented_line_is_inactive(self, tmp_path):
        path = tmp_path / ".zprofile"
        path.write_text('# eval "$(/opt/homebrew/bin/brew shellenv)"\n')
        assert not has_shellenv(path)

    def test_comment_out(self, tmp_path):
        path = tmp_path / ".zprofile"
        add_shellenv(path, "/opt/homebrew")
        assert comment_out_shellenv(path) == 1
        assert not has_shellenv(path)
        assert comment_out_shellenv(path) == 0

    def test_strip(self, tmp_path):
        path = tmp_path / ".zprofile"
        path.write_text("export A=1\n")
        add_shellenv(path, "/opt/homebrew")
        assert strip_shellenv(path) == 2
        assert path.read_text().strip() == "export A=1"

    def test_backup(self, tmp_path):
        path = tmp_path / ".zprofile"
        path.write_text("x\n")
        backup = backup_file(path)
        assert backup.name.startswith(".zprofile.backup.")
        assert backup.read_text() == "x\n"


class TestHomebrewComponent:
    def test_setup_already_installed_updates(self, host, console, zprofile):
        console.answers = [True, True]
        HomebrewComponent(host).setup()
        assert host.brew.calls == [("update",)]

    def test_setup_installs_and_adds_to_path(self, host, console, zprofile, monkeypatch):
        host.brew.available = False
        console.answers = [True]
        HomebrewComponent(host).setup()
        assert ("run_installer",) in host.brew.calls
        assert has_shellenv(zprofile)
        assert "/opt/homebrew/bin" in homebrew.os.environ["PATH"].split(":")

    def test_setup_cancelled(self, host, console, zprofile):
        console.answers = [False]
        with pytest.raises(Cancelled):
            HomebrewComponent(host).setup()
        assert host.brew.calls == []

    def test_disable_comments_out(self, host, zprofile):
        add_shellenv(zprofile, "/opt/homebrew")
        HomebrewComponent(host).disable(confirm=False)
        assert not has_shellenv(zprofile)
        assert list(zprofile.parent.glob(".zprofile.backup.*"))

    def test_remove_needs_two_confirmations(self, host, console, zprofile):
        console.answers = [True, False]
        with pytest.raises(Cancelled):
            HomebrewComponent(host).remove()
        assert host.brew.calls == []

    def test_remove(self, host, zprofile):
        add_shellenv(zprofile, "/opt/homebrew")
        HomebrewComponent(host).remove(confirm=False)
        assert "brew shellenv" not in zprofile.read_text()
        assert host.brew.calls == [("run_uninstaller",)]

    def test_summary(self, host):
        assert HomebrewComponent(host).summary()[0] == "Status: ✓ Installed"
        host.brew.available = False
        assert HomebrewComponent(host).summary() == ["Status: ✗ Not installed"]
