# cargo.py
from __future__ import annotations
import os
import subprocess
import tomllib
from pathlib import Path

from .config import MANIFEST_NAME, LAYOUT_FILE
from .errors import NotAProject, ManifestInvalid, BuildFailed
from .firmware.locate import BuildTarget, Profile


def find_root(start: Path | None = None) -> Path:
    """Ближайший каталог (start или выше), где лежит Cargo.toml."""
    start = Path(start or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        if (directory / MANIFEST_NAME).is_file():
            return directory
    raise NotAProject(start)


class Cargo:
    """
    Тонкая обёртка над cargo: манифест, каталог сборки, сама сборка.
    Всё, что касается размеров, живёт в firmware/*.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.manifest = self.root / MANIFEST_NAME

    @classmethod
    def discover(cls, start: Path | None = None) -> "Cargo":
        return cls(find_root(start))

    def _read_manifest(self) -> dict:
        try:
            with open(self.manifest, "rb") as f:
                return tomllib.load(f)
        except (tomllib.TOMLDecodeError, UnicodeDecodeError, OSError) as e:
            raise ManifestInvalid(self.manifest, str(e)) from e

    def binary_name(self, explicit: str | None = None) -> str:
        if explicit:
            return explicit
        data = self._read_manifest()
        bins = data.get("bin") or []
        if isinstance(bins, list) and bins and isinstance(bins[0], dict):
            name = bins[0].get("name")
        else:
            name = (data.get("package") or {}).get("name")
        if not isinstance(name, str) or not name.strip():
            raise ManifestInvalid(self.manifest, "package name is missing")
        return name.strip()

    @property
    def layout_file(self) -> Path:
        return self.root / LAYOUT_FILE

    def target_dir(self) -> Path:
        env = os.environ.get("CARGO_TARGET_DIR")
        if env:
            return Path(env) if Path(env).is_absolute() else self.root / env
        return self.root / "target"

    def detect_target(self) -> str | None:
        """--target не задан: CARGO_BUILD_TARGET, затем [build].target в .cargo/config(.toml)."""
        env = os.environ.get("CARGO_BUILD_TARGET")
        if env:
            return env
        for name in ("config.toml", "config"):
            path = self.root / ".cargo" / name
            if not path.is_file():
                continue
            try:
                with open(path, "rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError:
                # битый конфиг сломает и саму сборку, там cargo всё и объяснит
                return None
            target = (data.get("build") or {}).get("target")
            return target if isinstance(target, str) else None
        return None

    def build_target(self, release: bool = False, triple: str | None = None) -> BuildTarget:
        return BuildTarget(
            output_directory=self.target_dir(),
            cross_target_triple=triple or self.detect_target(),
            build_profile=Profile.from_flag(release),
        )

    def build_command(self, target: BuildTarget, bin_name: str | None = None) -> list[str]:
        cmd = ["cargo", "build"]
        if target.build_profile is Profile.RELEASE:
            cmd.append("--release")
        if target.cross_target_triple:
            cmd += ["--target", target.cross_target_triple]
        if bin_name:
            cmd += ["--bin", bin_name]
        return cmd

    def build(self, target: BuildTarget, bin_name: str | None = None) -> list[str]:
        cmd = self.build_command(target, bin_name)
        try:
            result = subprocess.run(cmd, cwd=self.root)
        except FileNotFoundError:
            raise BuildFailed(cmd)
        if result.returncode != 0:
            raise BuildFailed(cmd, result.returncode)
        return cmd
