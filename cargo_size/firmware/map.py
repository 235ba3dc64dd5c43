# firmware/map.py
"""
Карта памяти МК из linker-скрипта (memory.x).

Разбираем только блок MEMORY { ... } и из каждой строки вида

    FLASH (rx) : ORIGIN = 0x08000000, LENGTH = 128K

берём имя и LENGTH. Полноценную грамматику ld не строим: при любом
отклонении структуры результат — None («раскладка недоступна»).
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from pathlib import Path

U64_MAX = 2**64 - 1

_COMMENT_RE = re.compile(r"/\*.*?\*/|//[^\n]*", re.DOTALL)
_MEMORY_RE = re.compile(r"\bMEMORY\s*\{")
# объявление может быть разбито на строки (ORIGIN = ...,\n LENGTH = ...);
# LENGTH заканчивается запятой, точкой с запятой или концом строки
_REGION_RE = re.compile(
    r"""
    (?<![\w.])(?P<name>[A-Za-z_.][\w.]*)\s*
    (?:\((?P<attrs>[^)]*)\))?\s*
    :\s*
    (?:ORIGIN|org|o)\s*=\s*(?P<origin>[^,:]+?)\s*,\s*
    (?:LENGTH|len|l)\s*=[ \t]*(?P<length>[^,;\n]+?)[ \t]*(?:[,;]|$)
    """,
    re.VERBOSE | re.MULTILINE,
)
_LENGTH_RE = re.compile(r"^(0[xX][0-9a-fA-F]+|\d+)([kKmM]?)$")
_SUFFIX = {"": 1, "k": 1024, "m": 1024 * 1024}


@dataclass(frozen=True)
class MemoryRegion:
    name: str
    capacity: int  # байт

    @property
    def key(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class LayoutInfo:
    """Обе области найдены; частичной раскладки не бывает."""

    flash: MemoryRegion
    ram: MemoryRegion


def parse_length(text: str) -> int | None:
    """'128K' -> 131072, '0x5000' -> 20480; None, если не литерал или > u64."""
    m = _LENGTH_RE.match(text.strip())
    if not m:
        return None
    digits, suffix = m.groups()
    value = int(digits, 16) if digits[:2].lower() == "0x" else int(digits, 10)
    value *= _SUFFIX[suffix.lower()]
    if value > U64_MAX:
        return None
    return value


def braces_balanced(content: str) -> bool:
    depth = 0
    for ch in content:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def memory_block(content: str) -> str | None:
    """Текст между фигурными скобками блока MEMORY (комментарии уже убраны)."""
    m = _MEMORY_RE.search(content)
    if not m:
        return None
    close = content.find("}", m.end())
    if close < 0:
        return None
    body = content[m.end():close]
    # вложенная скобка = незакрытый MEMORY, дальше идёт чужой блок
    if "{" in body:
        return None
    return body


def parse_regions(body: str) -> list[MemoryRegion]:
    """Все распознанные области блока по порядку; непарсящиеся строки пропускаются."""
    regions = []
    for m in _REGION_RE.finditer(body):
        capacity = parse_length(m.group("length"))
        if not capacity:
            continue
        regions.append(MemoryRegion(m.group("name"), capacity))
    return regions


def parse_memory_layout(content: str) -> LayoutInfo | None:
    content = _COMMENT_RE.sub(" ", content)
    if not braces_balanced(content):
        return None
    body = memory_block(content)
    if body is None:
        return None

    found: dict[str, MemoryRegion] = {}
    for region in parse_regions(body):
        # при повторе имени побеждает первая запись
        found.setdefault(region.key, region)

    flash, ram = found.get("flash"), found.get("ram")
    if flash is None or ram is None:
        return None
    return LayoutInfo(flash=flash, ram=ram)


def load_layout(path: Path) -> LayoutInfo | None:
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return parse_memory_layout(content)
