# firmware/locate.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from ..config import KNOWN_TARGETS
from ..errors import BinaryNotFound, UnknownTarget


class Profile(Enum):
    DEVELOPMENT = "debug"
    RELEASE = "release"

    @property
    def directory(self) -> str:
        return self.value

    @classmethod
    def from_flag(cls, release: bool) -> "Profile":
        return cls.RELEASE if release else cls.DEVELOPMENT


@dataclass(frozen=True)
class BuildTarget:
    output_directory: Path
    cross_target_triple: str | None = None
    build_profile: Profile = Profile.DEVELOPMENT


# Шаблоны путей в порядке поиска. {triple} подставляется для каждой цели
# из candidate_triples().
HOST_TEMPLATE = "{root}/{profile}/{name}"
CROSS_TEMPLATE = "{root}/{triple}/{profile}/{name}"


def candidate_triples(target: BuildTarget, known: Iterable[str] = KNOWN_TARGETS) -> list[str]:
    triples = []
    if target.cross_target_triple:
        triples.append(target.cross_target_triple)
    for t in known:
        if t not in triples:
            triples.append(t)
    return triples


def candidate_paths(target: BuildTarget, name: str, known: Iterable[str] = KNOWN_TARGETS) -> list[Path]:
    root = Path(target.output_directory)
    profile = target.build_profile.directory
    paths = [Path(HOST_TEMPLATE.format(root=root, profile=profile, name=name))]
    for triple in candidate_triples(target, known):
        paths.append(Path(CROSS_TEMPLATE.format(root=root, triple=triple, profile=profile, name=name)))
    return paths


def unknown_triple_dirs(target: BuildTarget, known: Iterable[str] = KNOWN_TARGETS) -> list[str]:
    """Каталоги вида <root>/<нечто>/<profile>, которых нет в списке известных целей."""
    root = Path(target.output_directory)
    profile = target.build_profile.directory
    known = set(known)
    if not root.is_dir():
        return []
    found = []
    for entry in sorted(root.iterdir()):
        if entry.name in known or entry.name in ("debug", "release"):
            continue
        if entry.is_dir() and (entry / profile).is_dir():
            found.append(entry.name)
    return found


def find_binary(target: BuildTarget, name: str, known: Iterable[str] = KNOWN_TARGETS) -> Path:
    known = list(known)
    searched = candidate_paths(target, name, known)
    for path in searched:
        if path.is_file():
            return path

    triple = target.cross_target_triple
    if triple and not (Path(target.output_directory) / triple).is_dir():
        raise UnknownTarget(name, [triple], searched)
    strangers = unknown_triple_dirs(target, candidate_triples(target, known))
    if strangers:
        raise UnknownTarget(name, strangers, searched)
    raise BinaryNotFound(name, searched)
