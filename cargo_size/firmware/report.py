# firmware/report.py
from __future__ import annotations
from dataclasses import dataclass

from .elf import UsageInfo
from .map import LayoutInfo


@dataclass(frozen=True)
class SizeReport:
    usage: UsageInfo
    layout: LayoutInfo | None = None

    def rows(self) -> list[tuple[str, int, str | None]]:
        """(метка, байты, процент или None) для строк Program и Data."""
        u = self.usage
        if self.layout is None:
            return [("Program", u.program_bytes, None), ("Data", u.data_bytes, None)]
        return [
            ("Program", u.program_bytes, percent(u.program_bytes, self.layout.flash.capacity)),
            ("Data", u.data_bytes, percent(u.data_bytes, self.layout.ram.capacity)),
        ]

    def to_dict(self) -> dict:
        out = {}
        for label, used, pct in self.rows():
            entry = {"bytes": used}
            if pct is not None:
                region = self.layout.flash if label == "Program" else self.layout.ram
                entry["capacity"] = region.capacity
                entry["region"] = region.name
                entry["percent"] = float(pct)
            out[label.lower()] = entry
        return out


def build_report(usage: UsageInfo, layout: LayoutInfo | None) -> SizeReport:
    return SizeReport(usage=usage, layout=layout)


def percent(used: int, capacity: int) -> str:
    """
    100*used/capacity с одним знаком после запятой, округление половины вверх.
    Считаем в целых числах, чтобы 42.45 не превращалось в 42.4 из-за float.
    """
    if capacity <= 0:
        return "100.0"
    tenths = (2000 * used + capacity) // (2 * capacity)
    return f"{tenths // 10}.{tenths % 10}"


def format_report(report: SizeReport) -> list[str]:
    lines = []
    for label, used, pct in report.rows():
        line = f"{label}: {used} bytes"
        if pct is not None:
            line += f" ({pct}% full)"
        lines.append(line)
    return lines
