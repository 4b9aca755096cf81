# Shell history parsing and binary attribution.
#
# Three on-disk formats are supported, each parsed line by line with a small
# state machine.  A malformed line never aborts the parse; it is skipped.
#
#   ZSH   ": 1700000000:0;git status"       header line starts an entry;
#                                           any other line is a continuation
#                                           joined to the current command.
#
#   BASH  "#1700000000"                     optional stamp, applies to the
#         "git status"                      next plain line only.
#
#   FISH  "- cmd: git status"               entry emitted once "when" is
#         "  when: 1700000000"              seen; a dangling cmd is dropped.
#
# Attribution (invokes_binary) is a token heuristic: aliases and wrapper
# scripts produce false negatives and that is accepted.

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator
from datetime import UTC, datetime
from typing import TypeAlias

from staleware.config.schema import HistoryLog
from staleware.models.enums import HistoryFormat, SignalErrorCode
from staleware.models.usage import HistoryEntry
from staleware.services.fs import DEFAULT_FS, FileSystem

logger = logging.getLogger(__name__)

_ZSH_HEADER_RE = re.compile(r"^: (\d+):\d+;(.*)$")
_BASH_STAMP_RE = re.compile(r"^#\s*([+-]?\d+)\s*$")
_FISH_CMD_PREFIX = "- cmd:"
_FISH_WHEN_PREFIX = "when:"

_ELEVATION_PREFIX = "sudo"

_LineParser: TypeAlias = Callable[[Iterable[str]], Iterator[HistoryEntry]]


def epoch_to_utc(raw: str) -> datetime | None:
    """Convert epoch seconds to an aware UTC datetime, or None if unusable."""
    try:
        return datetime.fromtimestamp(int(raw.strip()), tz=UTC)
    except (ValueError, OverflowError, OSError):
        return None


def _parse_zsh(lines: Iterable[str]) -> Iterator[HistoryEntry]:
    command: list[str] | None = None
    timestamp: datetime | None = None
    for line in lines:
        match = _ZSH_HEADER_RE.match(line)
        if match is not None:
            if command is not None:
                yield HistoryEntry("\n".join(command).strip(), timestamp)
            timestamp = epoch_to_utc(match.group(1))
            command = [match.group(2)]
        elif command is not None:
            command.append(line)
        else:
            logger.debug("%s: continuation before first zsh header", SignalErrorCode.PARSE_SKIP.value)
    if command is not None:
        yield HistoryEntry("\n".join(command).strip(), timestamp)


def _parse_bash(lines: Iterable[str]) -> Iterator[HistoryEntry]:
    pending: datetime | None = None
    for line in lines:
        stamp = _BASH_STAMP_RE.match(line)
        if stamp is not None:
            pending = epoch_to_utc(stamp.group(1))
            continue
        if not line.strip():
            continue
        yield HistoryEntry(line, pending)
        pending = None


def _parse_fish(lines: Iterable[str]) -> Iterator[HistoryEntry]:
    command: str | None = None
    for line in lines:
        stripped = line.strip()
        if stripped.startswith(_FISH_CMD_PREFIX):
            command = stripped[len(_FISH_CMD_PREFIX) :].strip()
        elif stripped.startswith(_FISH_WHEN_PREFIX):
            if command is None:
                logger.debug("%s: fish \"when\" without a cmd", SignalErrorCode.PARSE_SKIP.value)
                continue
            yield HistoryEntry(command, epoch_to_utc(stripped[len(_FISH_WHEN_PREFIX) :]))
            command = None


_PARSERS: dict[HistoryFormat, _LineParser] = {
    HistoryFormat.ZSH: _parse_zsh,
    HistoryFormat.BASH: _parse_bash,
    HistoryFormat.FISH: _parse_fish,
}


def _physical_lines(text: str) -> list[str]:
    # Only LF and CRLF end a line; str.splitlines() would also break on form
    # feeds and Unicode separators embedded in a command.
    return text.replace("\r\n", "\n").split("\n")


def parse_history_text(text: str, fmt: HistoryFormat) -> list[HistoryEntry]:
    return [entry for entry in _PARSERS[fmt](_physical_lines(text)) if entry.command]


def parse_history(path: str, fmt: HistoryFormat, fs: FileSystem = DEFAULT_FS) -> list[HistoryEntry]:
    """Parse one history log.  A missing or unreadable file yields no entries."""
    resolved = fs.expanduser(path)
    if not fs.exists(resolved):
        logger.debug("%s: no %s history at %s", SignalErrorCode.SOURCE_UNAVAILABLE.value, fmt.value, resolved)
        return []
    try:
        text = fs.read_text(resolved)
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("%s: cannot read %s: %s", SignalErrorCode.IO_FAILURE.value, resolved, exc)
        return []
    return parse_history_text(text, fmt)


def _sort_key(entry: HistoryEntry) -> tuple[bool, float, str]:
    # Newest first, timestamp-less last, command text as a stable tiebreak.
    if entry.timestamp is None:
        return (True, 0.0, entry.command)
    return (False, -entry.timestamp.timestamp(), entry.command)


def merge_history(batches: Iterable[Iterable[HistoryEntry]]) -> list[HistoryEntry]:
    merged = [entry for batch in batches for entry in batch]
    merged.sort(key=_sort_key)
    return merged


def load_history(logs: Iterable[HistoryLog], fs: FileSystem = DEFAULT_FS) -> list[HistoryEntry]:
    """Parse every configured log and return one deterministically ordered list."""
    return merge_history(parse_history(log.path, log.fmt, fs) for log in logs)


def invokes_binary(entry: HistoryEntry, name: str) -> bool:
    binary = name.lower()
    base = entry.base_command
    if not binary or base is None:
        return False
    if base.lower() == binary:
        return True
    tokens = entry.command.lower().split()
    prefix = f"{binary}/"
    for token in tokens:
        word = token.removeprefix(_ELEVATION_PREFIX)
        if word == binary or word.startswith(prefix):
            return True
    return False
