from __future__ import annotations

import os
import stat as statmod
from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True, frozen=True)
class StatResult:
    size: int
    is_dir: bool
    atime: float
    mtime: float


class FileSystem(Protocol):
    def expanduser(self, path: str) -> str: ...

    def exists(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def stat(self, path: str) -> StatResult: ...


class OsFileSystem:
    """FileSystem backed by the real OS."""

    def expanduser(self, path: str) -> str:
        return os.path.expanduser(path)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def read_text(self, path: str) -> str:
        # History files routinely contain stray non-UTF-8 bytes.
        with open(path, encoding="utf-8", errors="replace") as fh:
            return fh.read()

    def stat(self, path: str) -> StatResult:
        st = os.stat(path)
        return StatResult(
            size=st.st_size,
            is_dir=statmod.S_ISDIR(st.st_mode),
            atime=st.st_atime,
            mtime=st.st_mtime,
        )


DEFAULT_FS: FileSystem = OsFileSystem()
