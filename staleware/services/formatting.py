from __future__ import annotations

_UNITS = ("KB", "MB", "GB", "TB")


def format_bytes(value: int) -> str:
    if value < 1024:
        return f"{value} B"
    size = float(value)
    unit = _UNITS[0]
    for unit in _UNITS:
        size /= 1024.0
        if size < 1024.0:
            break
    return f"{size:.1f} {unit}"


def format_days_ago(days: int) -> str:
    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    if days < 365:
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"
