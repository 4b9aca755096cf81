from __future__ import annotations

import logging
import re
import subprocess
import threading
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, TypeAlias, TypeVar

from staleware.models.enums import SignalErrorCode
from staleware.services.fs import DEFAULT_FS, FileSystem

logger = logging.getLogger(__name__)

LAST_USED_KEY = "kMDItemLastUsedDate"
USE_COUNT_KEY = "kMDItemUseCount"

# "kMDItemLastUsedDate = 2026-01-18 21:35:48 +0000"
_MDLS_LINE_RE = re.compile(r"^\s*(\w+)\s*=\s*(.*?)\s*$")
_MDLS_DATETIME_RE = re.compile(r"(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})")
_MDLS_NULL = "(null)"

# Same call shape as subprocess.run, so tests can pass a fake.
CommandRunner: TypeAlias = Callable[..., subprocess.CompletedProcess[str]]

T = TypeVar("T")


class SignalTimeout(Exception):
    pass


def call_with_timeout(fn: Callable[[], T], timeout: float) -> T:
    """Run *fn* on a daemon thread and wait at most *timeout* seconds.

    A call that overruns is abandoned (the thread keeps running detached) and
    ``SignalTimeout`` is raised.  Exceptions raised by *fn* propagate.
    """
    outcome: dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["value"] = fn()
        except BaseException as exc:  # noqa: BLE001
            outcome["error"] = exc

    thread = threading.Thread(target=_target, daemon=True)
    thread.start()
    thread.join(timeout=timeout)
    if thread.is_alive():
        raise SignalTimeout(f"no answer within {timeout:.1f}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


def parse_mdls_output(output: str) -> tuple[datetime | None, int | None]:
    last_used: datetime | None = None
    use_count: int | None = None
    for line in output.splitlines():
        match = _MDLS_LINE_RE.match(line)
        if match is None:
            continue
        key, value = match.groups()
        if value == _MDLS_NULL:
            continue
        if key == LAST_USED_KEY:
            stamp = _MDLS_DATETIME_RE.search(value)
            if stamp is None:
                continue
            try:
                last_used = datetime.strptime(stamp.group(1), "%Y-%m-%d %H:%M:%S").replace(tzinfo=UTC)
            except ValueError:
                continue
        elif key == USE_COUNT_KEY and value.isascii() and value.isdigit():
            use_count = int(value)
    return last_used, use_count


class SignalCollector:
    """Read-only queries against per-item usage evidence.

    Every failure (missing tool, bad path, timeout) is downgraded to an absent
    signal and logged at debug level; nothing here raises to the caller.
    """

    def __init__(
        self,
        fs: FileSystem = DEFAULT_FS,
        runner: CommandRunner = subprocess.run,
        timeout: float = 5.0,
    ) -> None:
        self._fs = fs
        self._runner = runner
        self.timeout = timeout

    def _mdls_command(self, path: str) -> Sequence[str]:
        return ["mdls", "-name", LAST_USED_KEY, "-name", USE_COUNT_KEY, path]

    def os_usage_metadata(self, path: str) -> tuple[datetime | None, int | None]:
        try:
            proc = self._runner(
                self._mdls_command(path),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug("%s: mdls for %s", SignalErrorCode.TIMEOUT.value, path)
            return None, None
        except OSError as exc:
            logger.debug("%s: mdls: %s", SignalErrorCode.SOURCE_UNAVAILABLE.value, exc)
            return None, None

        if proc.returncode != 0:
            logger.debug("%s: mdls exited %d for %s", SignalErrorCode.METADATA_UNAVAILABLE.value, proc.returncode, path)
            return None, None
        return parse_mdls_output(proc.stdout or "")

    def access_time(self, path: str) -> datetime | None:
        resolved = self._fs.expanduser(path)
        try:
            st = call_with_timeout(lambda: self._fs.stat(resolved), self.timeout)
        except SignalTimeout:
            logger.debug("%s: stat %s", SignalErrorCode.TIMEOUT.value, resolved)
            return None
        except OSError as exc:
            logger.debug("%s: stat %s: %s", SignalErrorCode.SOURCE_UNAVAILABLE.value, resolved, exc)
            return None
        try:
            return datetime.fromtimestamp(st.atime, tz=UTC)
        except (ValueError, OverflowError, OSError):
            return None
