from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from staleware.models.enums import HistoryFormat

MIB = 1024 * 1024

# (json_key, attr_name, minimum); values below the minimum are clamped up.
_INT_FIELDS: tuple[tuple[str, str, int], ...] = (
    ("workers", "workers", 1),
)

# Same layout for the nested "policy" object.
_POLICY_INT_FIELDS: tuple[tuple[str, str, int], ...] = (
    ("warningDays", "warning_days", 0),
    ("reviewDays", "review_days", 0),
    ("monthsDivisor", "months_divisor", 1),
    ("largeUnusedBytes", "large_unused_bytes", 0),
)


def _get_int(data: dict[str, Any], json_key: str, default: int, minimum: int) -> int:
    return max(minimum, int(data.get(json_key, default)))


@dataclass(slots=True)
class RecommendationPolicy:
    warning_days: int = 30
    review_days: int = 90
    months_divisor: int = 30
    # Never-used items are only flagged when strictly larger than this.
    large_unused_bytes: int = 100 * MIB

    def to_dict(self) -> dict[str, Any]:
        return {json_key: getattr(self, attr) for json_key, attr, _ in _POLICY_INT_FIELDS}

    @classmethod
    def from_dict(cls, data: dict[str, Any], defaults: RecommendationPolicy) -> RecommendationPolicy:
        return cls(
            **{
                attr: _get_int(data, json_key, getattr(defaults, attr), minimum)
                for json_key, attr, minimum in _POLICY_INT_FIELDS
            }
        )


@dataclass(slots=True)
class HistoryLog:
    path: str
    fmt: HistoryFormat

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "format": self.fmt.value}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> HistoryLog:
        return cls(
            path=str(payload["path"]),
            fmt=HistoryFormat.from_str(payload["format"]),
        )


@dataclass(slots=True)
class AppConfig:
    policy: RecommendationPolicy = field(default_factory=RecommendationPolicy)
    history_logs: list[HistoryLog] = field(default_factory=list)
    workers: int = 4
    signal_timeout: float = 5.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "policy": self.policy.to_dict(),
            "historyLogs": [log.to_dict() for log in self.history_logs],
            "workers": self.workers,
            "signalTimeout": self.signal_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], defaults: AppConfig) -> AppConfig:
        policy = RecommendationPolicy.from_dict(data.get("policy") or {}, defaults.policy)

        logs_raw = data.get("historyLogs")
        if logs_raw is not None:
            history_logs = [HistoryLog.from_dict(x) for x in logs_raw]
        else:
            history_logs = list(defaults.history_logs)

        int_kwargs: dict[str, int] = {}
        for json_key, attr, minimum in _INT_FIELDS:
            int_kwargs[attr] = _get_int(data, json_key, getattr(defaults, attr), minimum)

        timeout_raw = data.get("signalTimeout", defaults.signal_timeout)

        return cls(
            policy=policy,
            history_logs=history_logs,
            signal_timeout=max(0.1, float(timeout_raw)),
            **int_kwargs,
        )
