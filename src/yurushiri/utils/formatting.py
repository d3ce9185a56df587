"""Japanese display formatting used by the templates"""

from datetime import datetime
from typing import Optional

WEEKDAYS_JA = ("月", "火", "水", "木", "金", "土", "日")


def _parse(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_date_ja(value, with_weekday: bool = False, empty: str = "未設定") -> str:
    """Format an ISO date as "2025年3月15日", optionally with "（土）" appended"""
    if not value:
        return empty
    parsed = _parse(value)
    if parsed is None:
        return str(value)
    text = f"{parsed.year}年{parsed.month}月{parsed.day}日"
    if with_weekday:
        text += f"（{WEEKDAYS_JA[parsed.weekday()]}）"
    return text


def format_timestamp(value) -> str:
    """Format a timestamp as "2025/03/15 14:30", or "-" when missing"""
    if not value:
        return "-"
    parsed = _parse(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%Y/%m/%d %H:%M")
