from __future__ import annotations

from dataclasses import dataclass

from staleware.models.enums import Severity


@dataclass(slots=True, frozen=True)
class Recommendation:
    item_name: str
    reason: str
    severity: Severity
    recoverable_size: int

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.severity.rank, -self.recoverable_size)
