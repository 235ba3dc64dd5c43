# firmware/elf.py
"""
Подсчёт занятой памяти по таблице секций ELF.

Program — всё, что ложится во flash-образ: код и константы (ALLOC, без WRITE,
не NOBITS). Data — всё, что живёт в RAM (ALLOC + WRITE), причём .bss
(NOBITS) считается по размеру в памяти, хотя в файле её нет.
Отладочная информация, таблицы символов и строк (без ALLOC) не считаются.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

from elftools.common.exceptions import ELFError
from elftools.elf.constants import SH_FLAGS
from elftools.elf.elffile import ELFFile

from ..errors import BinaryNotFound, InvalidBinaryFormat


class SectionKind(Enum):
    PROGRAM = "program"
    DATA = "data"
    IGNORED = "ignored"


@dataclass(frozen=True)
class SectionInfo:
    name: str
    sh_type: str
    flags: int
    address: int
    size: int
    kind: SectionKind


@dataclass(frozen=True)
class UsageInfo:
    program_bytes: int
    data_bytes: int


def classify_section(sh_type, sh_flags: int) -> SectionKind:
    """Чистое отображение (тип, флаги) -> вид секции."""
    if not sh_flags & SH_FLAGS.SHF_ALLOC:
        return SectionKind.IGNORED
    if sh_flags & SH_FLAGS.SHF_WRITE:
        return SectionKind.DATA
    if sh_type == "SHT_NOBITS":
        # место в RAM только для чтения — во flash-образ не попадает
        return SectionKind.IGNORED
    return SectionKind.PROGRAM


def read_sections(path: Path) -> list[SectionInfo]:
    """Прочитать и классифицировать все секции (кроме пустой нулевой)."""
    path = Path(path)
    if not path.is_file():
        raise BinaryNotFound(path.name, [path])

    try:
        with open(path, "rb") as f:
            elf = ELFFile(f)
            return list(_iter_sections(elf))
    except FileNotFoundError:
        raise BinaryNotFound(path.name, [path])
    except ELFError as e:
        raise InvalidBinaryFormat(path, str(e)) from e


def _iter_sections(elf: ELFFile) -> Iterator[SectionInfo]:
    for section in elf.iter_sections():
        sh_type = section["sh_type"]
        if sh_type == "SHT_NULL":
            continue
        flags = section["sh_flags"]
        yield SectionInfo(
            name=section.name,
            sh_type=str(sh_type),
            flags=flags,
            address=section["sh_addr"],
            size=section["sh_size"],
            kind=classify_section(sh_type, flags),
        )


def sum_usage(sections: list[SectionInfo]) -> UsageInfo:
    program = data = 0
    for s in sections:
        if s.kind is SectionKind.PROGRAM:
            program += s.size
        elif s.kind is SectionKind.DATA:
            data += s.size
    return UsageInfo(program_bytes=program, data_bytes=data)


def read_usage(path: Path) -> UsageInfo:
    return sum_usage(read_sections(path))
