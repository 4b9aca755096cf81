from __future__ import annotations

from staleware.config.schema import AppConfig, HistoryLog, RecommendationPolicy
from staleware.models.enums import HistoryFormat

DEFAULT_HISTORY_LOGS: tuple[tuple[str, HistoryFormat], ...] = (
    ("~/.zsh_history", HistoryFormat.ZSH),
    ("~/.bash_history", HistoryFormat.BASH),
    ("~/.local/share/fish/fish_history", HistoryFormat.FISH),
)


def default_history_logs() -> list[HistoryLog]:
    return [HistoryLog(path=path, fmt=fmt) for path, fmt in DEFAULT_HISTORY_LOGS]


def default_config() -> AppConfig:
    return AppConfig(
        policy=RecommendationPolicy(),
        history_logs=default_history_logs(),
        workers=4,
        signal_timeout=5.0,
    )
