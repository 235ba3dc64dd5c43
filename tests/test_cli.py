import json
import subprocess
import sys

import pytest
from typer.testing import CliRunner

from cargo_size import cargo as cargo_mod
from cargo_size import main as cli
from cargo_size.config import VERSION

from elfgen import FIRMWARE_SECTIONS, SHF_ALLOC, SHF_EXECINSTR, SHF_WRITE, SHT_NOBITS, SHT_PROGBITS

runner = CliRunner()

MEMORY_X = """
MEMORY
{
  FLASH : ORIGIN = 0x08000000, LENGTH = 128K
  RAM : ORIGIN = 0x20000000, LENGTH = 20K
}
"""

HOST_SECTIONS = [
    (".text", SHT_PROGBITS, SHF_ALLOC | SHF_EXECINSTR, 1400000, 0x1000),
    (".rodata", SHT_PROGBITS, SHF_ALLOC, 86351, 0x160000),
    (".data", SHT_PROGBITS, SHF_ALLOC | SHF_WRITE, 1000, 0x200000),
    (".bss", SHT_NOBITS, SHF_ALLOC | SHF_WRITE, 3656, 0x2003E8),
    (".debug_line", SHT_PROGBITS, 0, 500000, 0),
]


@pytest.fixture
def crate(tmp_path, monkeypatch):
    root = tmp_path / "blinky"
    (root / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text('[package]\nname = "blinky"\nversion = "0.1.0"\n')
    monkeypatch.delenv("CARGO_TARGET_DIR", raising=False)
    monkeypatch.delenv("CARGO_BUILD_TARGET", raising=False)
    monkeypatch.chdir(root)
    return root


@pytest.fixture
def builds(monkeypatch):
    """Подменяем cargo build; возвращаем список запущенных команд."""
    calls = []

    def fake_run(cmd, cwd=None):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(cargo_mod.subprocess, "run", fake_run)
    return calls


def read_events(log):
    return [json.loads(line) for line in log.read_text().splitlines()]


def test_report_with_memory_layout(crate, builds, make_elf, event_log):
    (crate / "memory.x").write_text(MEMORY_X)
    make_elf(FIRMWARE_SECTIONS, crate / "target" / "thumbv7m-none-eabi" / "debug" / "blinky")

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0, result.output
    assert "Printing Memory Usage" in result.output
    assert "Program: 55652 bytes (42.5% full)" in result.output
    assert "Data: 8 bytes (0.0% full)" in result.output
    assert builds == [["cargo", "build"]]

    kinds = [e["kind"] for e in read_events(event_log)]
    assert kinds == ["build", "binary", "layout", "report"]


def test_report_without_memory_layout(crate, builds, make_elf, event_log):
    make_elf(HOST_SECTIONS, crate / "target" / "debug" / "blinky")

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0, result.output
    assert "Program: 1486351 bytes" in result.output
    assert "Data: 4656 bytes" in result.output
    assert "%" not in result.output
    layout_event = [e for e in read_events(event_log) if e["kind"] == "layout"][0]
    assert layout_event["payload"]["available"] is False


def test_invalid_memory_layout_is_silent(crate, builds, make_elf):
    (crate / "memory.x").write_text("MEMORY {\n  FLASH : ORIGIN = 0, LENGTH = 64K\n}\n")
    make_elf(HOST_SECTIONS, crate / "target" / "debug" / "blinky")

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0, result.output
    assert "%" not in result.output
    assert "Error" not in result.output


def test_run_from_subdirectory(crate, builds, make_elf, monkeypatch):
    make_elf(HOST_SECTIONS, crate / "target" / "debug" / "blinky")
    monkeypatch.chdir(crate / "src")
    result = runner.invoke(cli.app, [])
    assert result.exit_code == 0, result.output
    assert "Program: 1486351 bytes" in result.output


def test_release_and_target(crate, builds, make_elf):
    make_elf(FIRMWARE_SECTIONS, crate / "target" / "thumbv6m-none-eabi" / "release" / "blinky")
    result = runner.invoke(cli.app, ["--release", "--target", "thumbv6m-none-eabi"])
    assert result.exit_code == 0, result.output
    assert builds == [["cargo", "build", "--release", "--target", "thumbv6m-none-eabi"]]
    assert "Program: 55652 bytes" in result.output


def test_json_output(crate, builds, make_elf):
    (crate / "memory.x").write_text(MEMORY_X)
    make_elf(FIRMWARE_SECTIONS, crate / "target" / "debug" / "blinky")
    result = runner.invoke(cli.app, ["--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["program"]["percent"] == 42.5
    assert data["data"] == {"bytes": 8, "capacity": 20480, "region": "RAM", "percent": 0.0}


def test_verbose_lists_sections(crate, builds, make_elf):
    make_elf(FIRMWARE_SECTIONS, crate / "target" / "debug" / "blinky")
    result = runner.invoke(cli.app, ["--verbose"])
    assert result.exit_code == 0, result.output
    assert ".vector_table" in result.output
    assert ".bss" in result.output
    assert ".debug_info" not in result.output


def test_build_failure(crate, monkeypatch, make_elf, event_log):
    monkeypatch.setattr(cargo_mod.subprocess, "run", lambda cmd, cwd=None: subprocess.CompletedProcess(cmd, 101))
    make_elf(FIRMWARE_SECTIONS, crate / "target" / "debug" / "blinky")

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 1
    assert "Build failed" in result.output
    assert "Program:" not in result.output
    errors = [e for e in read_events(event_log) if e["kind"] == "error"]
    assert errors[0]["payload"]["type"] == "BuildFailed"


@pytest.mark.parametrize("content", [b"", b"\x7fELF\x01\x01\x01" + b"\0" * 9 + b"\x02\x00"])
def test_invalid_binary(crate, builds, content):
    binary = crate / "target" / "debug" / "blinky"
    binary.parent.mkdir(parents=True)
    binary.write_bytes(content)

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 1
    assert "Invalid binary format" in result.output
    assert "Program:" not in result.output


def test_binary_not_found(crate, builds):
    (crate / "target" / "debug").mkdir(parents=True)
    result = runner.invoke(cli.app, [])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_not_a_project(tmp_path, monkeypatch, builds):
    monkeypatch.chdir(tmp_path)
    result = runner.invoke(cli.app, [])
    assert result.exit_code == 1
    assert "Not a cargo project" in result.output
    assert builds == []


def test_invalid_manifest(crate, builds):
    (crate / "Cargo.toml").write_text("[package]\nversion = '0.1.0'\n")
    result = runner.invoke(cli.app, [])
    assert result.exit_code == 1
    assert "Invalid manifest" in result.output
    assert builds == []


def test_unwritable_journal_does_not_break_report(crate, builds, make_elf, tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    monkeypatch.setattr(cli, "LOG_FILE", blocker / "session.jsonl")
    (crate / "memory.x").write_text(MEMORY_X)
    make_elf(FIRMWARE_SECTIONS, crate / "target" / "debug" / "blinky")

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0, result.output
    assert "Program: 55652 bytes (42.5% full)" in result.output


def test_unwritable_journal_keeps_single_error_line(crate, tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    monkeypatch.setattr(cli, "LOG_FILE", blocker / "session.jsonl")
    monkeypatch.setattr(cargo_mod.subprocess, "run", lambda cmd, cwd=None: subprocess.CompletedProcess(cmd, 101))

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 1
    lines = [line for line in result.output.splitlines() if line.strip()]
    assert len(lines) == 1
    assert "Build failed" in lines[0]


@pytest.mark.parametrize("flag", ["-h", "--help"])
def test_help(flag):
    result = runner.invoke(cli.app, [flag])
    assert result.exit_code == 0
    assert "--release" in result.output


def test_version():
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert f"cargo-size {VERSION}" in result.output


def test_repeated_runs_are_identical(crate, builds, make_elf):
    (crate / "memory.x").write_text(MEMORY_X)
    make_elf(FIRMWARE_SECTIONS, crate / "target" / "debug" / "blinky")
    first = runner.invoke(cli.app, ["--json"])
    second = runner.invoke(cli.app, ["--json"])
    assert first.output == second.output


def test_main_drops_cargo_subcommand(monkeypatch):
    seen = []
    monkeypatch.setattr(sys, "argv", ["cargo-size", "size", "--release"])
    monkeypatch.setattr(cli, "app", lambda: seen.append(list(sys.argv)))
    cli.main()
    assert seen == [["cargo-size", "--release"]]
