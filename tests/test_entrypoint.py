"""Tests for the FitTrack launcher in ``__main__.py``."""

from __future__ import annotations

import importlib.util
import io
import sys
import types
from contextlib import redirect_stdout
from pathlib import Path

import pytest


def load_entrypoint_module():
    """Load the project entrypoint module without running it as ``__main__``."""
    module_path = Path(__file__).resolve().parents[1] / "__main__.py"
    spec = importlib.util.spec_from_file_location("fittrack_entry", module_path)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def entry_module():
    return load_entrypoint_module()


@pytest.fixture()
def stub_required(monkeypatch):
    """Install stand-in PySide6 and numpy modules so checks never touch real Qt."""
    for name, version in (("PySide6", "6.7"), ("numpy", "1.26")):
        module = types.ModuleType(name)
        module.__version__ = version
        monkeypatch.setitem(sys.modules, name, module)


@pytest.fixture()
def launched(entry_module, monkeypatch):
    """Replace ``main.main`` and record the argument lists it receives."""
    calls = []
    fake_main = types.ModuleType("main")

    def run_main(argv):
        calls.append(argv)
        return 0

    fake_main.main = run_main
    monkeypatch.setattr(entry_module, "setup_environment", lambda: None)
    monkeypatch.setitem(sys.modules, "main", fake_main)
    return calls


def run_launcher(entry_module, argv):
    buffer = io.StringIO()
    with redirect_stdout(buffer):
        exit_code = entry_module.main(argv)
    return exit_code, buffer.getvalue()


def test_launcher_flags_are_split_from_tracker_options(entry_module):
    args, remaining = entry_module.parse_arguments(
        ["--simulate", "run.json", "-d", "--data-saver", "--log-dir", "logs"]
    )

    assert args.debug
    assert args.log_dir == "logs"
    assert remaining == ["--simulate", "run.json", "--data-saver"]
    assert entry_module.forwarded_arguments(args, remaining) == [
        "--simulate", "run.json", "--data-saver", "--debug", "--log-dir", "logs",
    ]


def test_nothing_extra_forwarded_without_launcher_flags(entry_module):
    args, remaining = entry_module.parse_arguments(["--network-tier", "3g"])

    forwarded = entry_module.forwarded_arguments(args, remaining)

    assert forwarded == ["--network-tier", "3g"]
    assert forwarded is not remaining


def test_missing_qt_addons_lists_unimportable_modules(entry_module, monkeypatch):
    monkeypatch.setitem(sys.modules, "PySide6.QtPositioning", None)
    monkeypatch.setitem(sys.modules, "PySide6.QtNetwork", types.ModuleType("PySide6.QtNetwork"))

    assert entry_module.missing_qt_addons() == ["QtPositioning"]


def test_missing_addon_warns_but_passes(entry_module, monkeypatch, stub_required):
    monkeypatch.setattr(entry_module, "missing_qt_addons", lambda: ["QtNetwork"])

    buffer = io.StringIO()
    with redirect_stdout(buffer):
        result = entry_module.check_dependencies()

    output = buffer.getvalue()
    assert result is True
    assert "OK PySide6" in output
    assert "WARNING PySide6.QtNetwork: not available, start with --network-tier" in output


def test_missing_required_package_skips_addon_check(entry_module, monkeypatch, stub_required):
    monkeypatch.setitem(sys.modules, "numpy", None)

    def unexpected():
        raise AssertionError("add-ons checked despite missing requirements")

    monkeypatch.setattr(entry_module, "missing_qt_addons", unexpected)

    buffer = io.StringIO()
    with redirect_stdout(buffer):
        result = entry_module.check_dependencies()

    output = buffer.getvalue()
    assert result is False
    assert "ERROR numpy" in output
    assert "pip install --user numpy" in output


@pytest.mark.parametrize("deps_ok, expected", [(True, 0), (False, 1)])
def test_check_deps_exits_without_starting(entry_module, monkeypatch, launched, deps_ok, expected):
    monkeypatch.setattr(entry_module, "check_dependencies", lambda: deps_ok)

    exit_code, _ = run_launcher(entry_module, ["--check-deps", "--simulate", "random"])

    assert exit_code == expected
    assert launched == []


def test_missing_dependencies_block_startup_unless_forced(entry_module, monkeypatch, launched):
    monkeypatch.setattr(entry_module, "check_dependencies", lambda: False)

    exit_code, output = run_launcher(entry_module, ["--simulate", "random"])
    assert exit_code == 1
    assert "Use --force" in output
    assert launched == []

    exit_code, output = run_launcher(entry_module, ["--force", "--simulate", "random"])
    assert exit_code == 0
    assert "--force specified" in output
    assert launched == [["--simulate", "random"]]


def test_tracker_options_are_forwarded(entry_module, monkeypatch, launched):
    monkeypatch.setattr(entry_module, "check_dependencies", lambda: True)

    exit_code, _ = run_launcher(
        entry_module, ["--simulate", "random", "--debug", "--network-tier", "2g", "--log-dir", "logs"]
    )

    assert exit_code == 0
    assert launched == [["--simulate", "random", "--network-tier", "2g", "--debug", "--log-dir", "logs"]]


def test_startup_failure_is_reported(entry_module, monkeypatch):
    fake_main = types.ModuleType("main")

    def run_main(argv):
        raise RuntimeError("no display")

    fake_main.main = run_main
    monkeypatch.setattr(entry_module, "setup_environment", lambda: None)
    monkeypatch.setattr(entry_module, "check_dependencies", lambda: True)
    monkeypatch.setitem(sys.modules, "main", fake_main)

    exit_code, output = run_launcher(entry_module, [])

    assert exit_code == 1
    assert "RuntimeError: no display" in output
    assert "Run with --debug" in output
