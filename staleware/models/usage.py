from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, TypeAlias

from staleware.models.enums import ItemSource, SignalKind


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    command: str
    timestamp: datetime | None = None

    @property
    def base_command(self) -> str | None:
        parts = self.command.split(maxsplit=1)
        return parts[0] if parts else None


@dataclass(slots=True, frozen=True)
class ShellHistorySignal:
    count: int
    last_used: datetime | None

    kind: ClassVar[SignalKind] = SignalKind.SHELL_HISTORY


@dataclass(slots=True, frozen=True)
class OSMetadataSignal:
    last_used: datetime | None
    use_count: int | None

    kind: ClassVar[SignalKind] = SignalKind.OS_METADATA


@dataclass(slots=True, frozen=True)
class FileAccessSignal:
    atime: datetime

    kind: ClassVar[SignalKind] = SignalKind.FILE_ACCESS_TIME


UsageSignal: TypeAlias = ShellHistorySignal | OSMetadataSignal | FileAccessSignal


@dataclass(slots=True, frozen=True)
class UsageEstimate:
    last_used: datetime | None = None
    usage_count: int = 0
    signals: tuple[UsageSignal, ...] = ()

    @property
    def sources(self) -> list[SignalKind]:
        return [signal.kind for signal in self.signals]


@dataclass(slots=True, frozen=True)
class TrackedItem:
    """An installed item as handed over by the package scanners."""

    name: str
    source: ItemSource
    binary_path: str | None = None
    size_bytes: int | None = None


@dataclass(slots=True, frozen=True)
class RankedItem:
    """A persisted item with its usage fields, as read back for ranking."""

    name: str
    size_bytes: int | None = None
    last_used: datetime | None = None
    usage_count: int = 0

    @classmethod
    def from_estimate(cls, item: TrackedItem, estimate: UsageEstimate) -> RankedItem:
        return cls(
            name=item.name,
            size_bytes=item.size_bytes,
            last_used=estimate.last_used,
            usage_count=estimate.usage_count,
        )


@dataclass(slots=True)
class UsageDraft:
    """Mutable working state threaded through the aggregation pipeline."""

    last_used: datetime | None = None
    usage_count: int = 0
    signals: list[UsageSignal] = field(default_factory=list)

    def raise_last_used(self, candidate: datetime | None) -> None:
        if candidate is None:
            return
        if self.last_used is None or candidate > self.last_used:
            self.last_used = candidate

    def freeze(self) -> UsageEstimate:
        return UsageEstimate(
            last_used=self.last_used,
            usage_count=max(0, self.usage_count),
            signals=tuple(self.signals),
        )
