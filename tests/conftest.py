from pathlib import Path

import pytest

from elfgen import FIRMWARE_SECTIONS, build_elf


@pytest.fixture
def make_elf(tmp_path):
    def _make(sections=FIRMWARE_SECTIONS, path: Path | None = None) -> Path:
        path = Path(path or tmp_path / "firmware.elf")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_elf(sections))
        return path
    return _make


@pytest.fixture(autouse=True)
def event_log(tmp_path, monkeypatch):
    """Журнал событий пишем во временный каталог, а не в ~/.cargo-size."""
    import cargo_size.main as cli
    log = tmp_path / "logs" / "session.jsonl"
    monkeypatch.setattr(cli, "LOG_FILE", log)
    return log
