# Usage aggregation: one canonical UsageEstimate per item.
#
# The merge is an ordered pipeline of steps, each reading one evidence source
# and folding it into a mutable UsageDraft:
#
#   1. apply_os_metadata    bundle installs only; use_count REPLACES the count
#   2. apply_shell_history  items with a binary path; matches ADD to the count
#   3. apply_access_time    only while last_used is still unset
#
# last_used is only ever raised (UsageDraft.raise_last_used), never lowered,
# so a new step can be inserted anywhere without weakening earlier ones.
#
# History comes from a HistorySource.  aggregate() re-reads the logs on every
# call; aggregate_all() shares one HistoryCache across its workers so each log
# is parsed once per run.  Both return the same estimates.

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol, TypeAlias

from staleware.config.schema import AppConfig, HistoryLog
from staleware.models.enums import SignalErrorCode
from staleware.models.usage import (
    FileAccessSignal,
    HistoryEntry,
    OSMetadataSignal,
    ShellHistorySignal,
    TrackedItem,
    UsageDraft,
    UsageEstimate,
)
from staleware.services.fs import DEFAULT_FS, FileSystem
from staleware.services.history import invokes_binary, load_history
from staleware.services.signals import SignalCollector, SignalTimeout, call_with_timeout

logger = logging.getLogger(__name__)


class HistorySource(Protocol):
    def entries(self) -> list[HistoryEntry]: ...


class FreshHistory:
    """Parses the configured logs on every request."""

    def __init__(self, logs: Sequence[HistoryLog], fs: FileSystem, timeout: float) -> None:
        self._logs = tuple(logs)
        self._fs = fs
        self._timeout = timeout

    def entries(self) -> list[HistoryEntry]:
        try:
            return call_with_timeout(lambda: load_history(self._logs, self._fs), self._timeout)
        except SignalTimeout:
            logger.debug("%s: reading shell history", SignalErrorCode.TIMEOUT.value)
            return []


class HistoryCache:
    """Run-scoped memo around another HistorySource; safe to share across workers."""

    def __init__(self, inner: HistorySource) -> None:
        self._inner = inner
        self._lock = threading.Lock()
        self._entries: list[HistoryEntry] | None = None

    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            if self._entries is None:
                self._entries = self._inner.entries()
            return self._entries


@dataclass(slots=True, frozen=True)
class StepContext:
    collector: SignalCollector
    history: HistorySource


SignalStep: TypeAlias = Callable[[StepContext, TrackedItem, UsageDraft], None]


def apply_os_metadata(ctx: StepContext, item: TrackedItem, draft: UsageDraft) -> None:
    if not item.source.is_bundle or item.binary_path is None:
        return
    last_used, use_count = ctx.collector.os_usage_metadata(item.binary_path)
    if last_used is None and use_count is None:
        return
    draft.signals.append(OSMetadataSignal(last_used=last_used, use_count=use_count))
    draft.raise_last_used(last_used)
    if use_count is not None:
        # Authoritative: the OS counter replaces whatever was counted so far.
        draft.usage_count = use_count


def apply_shell_history(ctx: StepContext, item: TrackedItem, draft: UsageDraft) -> None:
    if item.binary_path is None:
        return
    count = 0
    newest = None
    # Entries arrive sorted newest-first, so the first stamped match is the newest.
    for entry in ctx.history.entries():
        if not invokes_binary(entry, item.name):
            continue
        count += 1
        if newest is None and entry.timestamp is not None:
            newest = entry.timestamp
    if count == 0:
        return
    draft.signals.append(ShellHistorySignal(count=count, last_used=newest))
    draft.usage_count += count
    draft.raise_last_used(newest)


def apply_access_time(ctx: StepContext, item: TrackedItem, draft: UsageDraft) -> None:
    if draft.last_used is not None or item.binary_path is None:
        return
    atime = ctx.collector.access_time(item.binary_path)
    if atime is None:
        return
    draft.signals.append(FileAccessSignal(atime=atime))
    draft.last_used = atime


DEFAULT_PIPELINE: tuple[SignalStep, ...] = (
    apply_os_metadata,
    apply_shell_history,
    apply_access_time,
)


class UsageAggregator:
    def __init__(
        self,
        collector: SignalCollector,
        history_logs: Sequence[HistoryLog],
        fs: FileSystem = DEFAULT_FS,
        pipeline: Sequence[SignalStep] = DEFAULT_PIPELINE,
    ) -> None:
        self._collector = collector
        self._history_logs = tuple(history_logs)
        self._fs = fs
        self._pipeline = tuple(pipeline)

    def _fresh_history(self) -> FreshHistory:
        return FreshHistory(self._history_logs, self._fs, self._collector.timeout)

    def _run(self, item: TrackedItem, history: HistorySource) -> UsageEstimate:
        ctx = StepContext(collector=self._collector, history=history)
        draft = UsageDraft()
        for step in self._pipeline:
            step(ctx, item, draft)
        return draft.freeze()

    def aggregate(self, item: TrackedItem) -> UsageEstimate:
        return self._run(item, self._fresh_history())

    def aggregate_all(self, items: Iterable[TrackedItem], workers: int = 4) -> list[UsageEstimate]:
        """Aggregate many items concurrently; results follow input order."""
        pending = list(items)
        if not pending:
            return []
        history = HistoryCache(self._fresh_history())
        with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            return list(pool.map(lambda item: self._run(item, history), pending))


def build_aggregator(config: AppConfig, fs: FileSystem = DEFAULT_FS) -> UsageAggregator:
    collector = SignalCollector(fs=fs, timeout=config.signal_timeout)
    return UsageAggregator(collector, config.history_logs, fs=fs)
