import os
from pathlib import Path

APP_NAME = "cargo-size"
VERSION = "0.3.0"

MANIFEST_NAME = "Cargo.toml"
LAYOUT_FILE = "memory.x"

LOG_FILE = Path(os.environ.get("CARGO_SIZE_LOG", Path.home() / ".cargo-size" / "session.jsonl"))

# Cross targets whose output directories are searched when the binary is not
# in <target>/<profile>. New triples are appended at the end.
KNOWN_TARGETS = [
    "thumbv6m-none-eabi",
    "thumbv7m-none-eabi",
    "thumbv7em-none-eabi",
    "thumbv7em-none-eabihf",
    "thumbv8m.base-none-eabi",
    "thumbv8m.main-none-eabi",
    "thumbv8m.main-none-eabihf",
    "riscv32imc-unknown-none-elf",
    "riscv32imac-unknown-none-elf",
]
