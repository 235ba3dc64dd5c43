from __future__ import annotations
import json, sys
from datetime import datetime, timezone

import typer
from rich import print, print_json
from rich.markup import escape

from .config import APP_NAME, VERSION, LOG_FILE
from .cargo import Cargo
from .errors import SizeError
from .firmware.elf import SectionKind, read_sections, sum_usage
from .firmware.locate import find_binary
from .firmware.map import load_layout
from .firmware.report import build_report, format_report

app = typer.Typer(
    add_completion=False,
    help="Print the flash and RAM usage of a cargo firmware binary.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

INDENT = " " * 13


def _log_event(kind: str, payload: dict):
    record = {
        "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "kind": kind,
        "payload": payload,
    }
    # журнал необязателен: если писать некуда, запись пропускаем
    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")
    except OSError:
        return


def _version(value: bool):
    if value:
        print(f"{APP_NAME} {VERSION}")
        raise typer.Exit()


@app.command(help="Build the binary if needed and print its flash and RAM usage.")
def size(
    release: bool = typer.Option(False, "--release", help="Print the size of the release binary (debug if absent)"),
    target: str = typer.Option(None, "--target", help="Cross-compilation target triple"),
    bin_name: str = typer.Option(None, "--bin", help="Binary to measure (default: from Cargo.toml)"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Also list every allocated section"),
    version: bool = typer.Option(False, "--version", "-v", callback=_version, is_eager=True,
                                 help="Print the version number and exit"),
):
    """
    Собрать бинарь (если нужно) и показать, сколько flash/RAM он занимает.
    Проценты выводятся, только если в корне крейта есть корректный memory.x.
    """
    try:
        cargo = Cargo.discover()
        name = cargo.binary_name(bin_name)
        build = cargo.build_target(release=release, triple=target)
        cmd = cargo.build(build, bin_name)
        _log_event("build", {"root": str(cargo.root), "command": cmd})

        binary = find_binary(build, name)
        sections = read_sections(binary)
        usage = sum_usage(sections)
        _log_event("binary", {"path": str(binary), "program": usage.program_bytes, "data": usage.data_bytes})
    except SizeError as e:
        _log_event("error", {"type": type(e).__name__, "message": str(e)})
        print(f"[bold red]{'Error':>12}[/] {escape(str(e))}", file=sys.stderr)
        raise typer.Exit(code=1)

    layout = load_layout(cargo.layout_file)
    if layout is None:
        _log_event("layout", {"file": str(cargo.layout_file), "available": False})
    else:
        _log_event("layout", {
            "file": str(cargo.layout_file),
            "available": True,
            "flash": layout.flash.capacity,
            "ram": layout.ram.capacity,
        })

    report = build_report(usage, layout)
    _log_event("report", report.to_dict())

    if as_json:
        print_json(data=report.to_dict())
        return

    if verbose:
        for s in sections:
            if s.kind is SectionKind.IGNORED:
                continue
            print(f"{INDENT}[dim]{escape(s.name or '?'):<20} {s.kind.value:<8} {s.size:>8} @ 0x{s.address:08X}[/]")

    print(f"[bold green]{'Printing':>12}[/] Memory Usage")
    print(f"{INDENT}------------")
    for line in format_report(report):
        print(f"{INDENT}{line}")


def main():
    # cargo вызывает подкоманду как `cargo-size size ...`
    if len(sys.argv) > 1 and sys.argv[1] == "size":
        del sys.argv[1]
    app()


if __name__ == "__main__":
    main()
