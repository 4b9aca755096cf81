from __future__ import annotations

from enum import Enum
from typing import Any


class Severity(str, Enum):
    SAFE = "safe"
    REVIEW = "review"
    WARNING = "warning"

    # Explicit sort key: SAFE sorts first, WARNING last.
    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def label(self) -> str:
        return self.value.title()


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.SAFE: 0,
    Severity.REVIEW: 1,
    Severity.WARNING: 2,
}


class HistoryFormat(str, Enum):
    ZSH = "zsh"  # ": <epoch>:<flag>;<command>" with continuation lines
    BASH = "bash"  # plain lines, optional "#<epoch>" comment stamps
    FISH = "fish"  # "- cmd: ..." / "when: <epoch>" pairs

    @classmethod
    def from_str(cls, value: Any) -> HistoryFormat:
        return cls(str(value).lower())


class ItemSource(str, Enum):
    HOMEBREW = "homebrew"
    CASK = "cask"
    APP_STORE = "app_store"
    APPLICATION = "application"
    NPM = "npm"
    PIP = "pip"
    PIPX = "pipx"
    CARGO = "cargo"
    GEM = "gem"
    GO = "go"
    LOCAL_BIN = "local_bin"

    @property
    def is_bundle(self) -> bool:
        """True for bundle-style installs that carry OS usage bookkeeping."""
        return self in _BUNDLE_SOURCES


_BUNDLE_SOURCES = frozenset({ItemSource.APPLICATION, ItemSource.CASK, ItemSource.APP_STORE})


class SignalKind(str, Enum):
    SHELL_HISTORY = "shell_history"
    OS_METADATA = "os_metadata"
    FILE_ACCESS_TIME = "file_access_time"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class SignalErrorCode(str, Enum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    PARSE_SKIP = "parse_skip"
    METADATA_UNAVAILABLE = "metadata_unavailable"
    IO_FAILURE = "io_failure"
    TIMEOUT = "timeout"
