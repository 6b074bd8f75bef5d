"""Source file records and glob expansion"""

import glob
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

from tagdoc.core.errors import PluginError


class File(Protocol):
    """A source file handed to plugins: an absolute path plus lazy content access."""
    path: str

    def read(self) -> str: ...


@dataclass(frozen=True)
class DiskFile:
    path: str

    def read(self) -> str:
        return Path(self.path).read_text(encoding='utf-8')


@dataclass(frozen=True)
class MemoryFile:
    """In-memory file, for embedding callers and tests."""
    path: str
    text: str

    def read(self) -> str:
        return self.text


def read_source(file: File) -> str:
    """Read file, raising PluginError with its path when it cannot be read or decoded."""
    try:
        return file.read()
    except (OSError, UnicodeDecodeError) as e:
        raise PluginError(file.path, e) from e


def expand_globs(patterns: Iterable[str]) -> list[DiskFile]:
    """Expand glob patterns (recursive `**` allowed) to files with absolute paths.

    Order follows the patterns; each pattern's matches are sorted. A file
    matched by several patterns is listed once.
    """
    seen: set[str] = set()
    files: list[DiskFile] = []
    for pattern in patterns:
        for name in sorted(glob.glob(pattern, recursive=True)):
            path = Path(name).resolve()
            if not path.is_file() or str(path) in seen:
                continue
            seen.add(str(path))
            files.append(DiskFile(str(path)))
    return files
