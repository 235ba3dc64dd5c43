# errors.py
"""
Причины аварийного завершения cargo-size.

Каждое исключение несёт готовое к выводу сообщение (str(exc)); CLI печатает
его одной строкой и выходит с кодом 1. Отсутствие memory.x ошибкой не
считается: load_layout() просто возвращает None.
"""


class SizeError(Exception):
    """Базовый класс для всех фатальных ошибок."""


class NotAProject(SizeError):
    def __init__(self, start):
        super().__init__(f"Not a cargo project (no Cargo.toml in {start} or any parent), aborting.")
        self.start = start


class ManifestInvalid(SizeError):
    def __init__(self, manifest, reason: str):
        super().__init__(f"Invalid manifest {manifest}: {reason}")
        self.manifest = manifest
        self.reason = reason


class BuildFailed(SizeError):
    def __init__(self, command: list[str], code: int | None = None):
        detail = f"exit code {code}" if code is not None else "cargo not found"
        super().__init__(f"Build failed ({detail}): {' '.join(command)}")
        self.command = command
        self.code = code


class BinaryNotFound(SizeError):
    def __init__(self, name: str, searched=(), message: str | None = None):
        if message is None:
            message = f"Binary '{name}' not found in the target directory."
            if searched:
                message += " Searched: " + ", ".join(str(p) for p in searched)
        super().__init__(message)
        self.name = name
        self.searched = list(searched)


class UnknownTarget(BinaryNotFound):
    """Бинарь, скорее всего, собран под неизвестную кросс-цель."""

    def __init__(self, name: str, triples, searched=()):
        triples = list(triples)
        super().__init__(
            name,
            searched,
            message=(
                f"Binary '{name}' not found; unknown cross target directory "
                f"{', '.join(triples)}. Pass it explicitly with --target."
            ),
        )
        self.triples = triples


class InvalidBinaryFormat(SizeError):
    def __init__(self, path, reason: str):
        super().__init__(f"Invalid binary format {path}: {reason}")
        self.path = path
        self.reason = reason
