"""Date manipulation utilities"""

from typing import Optional, Tuple


def _parse_month(key: str) -> Optional[Tuple[int, int]]:
    try:
        year, month = key.split("-")[:2]
        return int(year), int(month)
    except ValueError:
        return None


def month_key(date_str: str) -> str:
    """Calendar month of an ISO date string ("2024-03-15" -> "2024-03")"""
    return date_str.strip()[:7]


def quarter_key(month: str) -> str:
    """Quarter containing a month key ("2024-05" -> "2024-Q2")"""
    parsed = _parse_month(month)
    if parsed is None or not 1 <= parsed[1] <= 12:
        return month
    year, month_number = parsed
    return f"{year}-Q{(month_number - 1) // 3 + 1}"


def months_between(first: str, last: str) -> Optional[int]:
    """Number of calendar months from first to last month key (inclusive)"""
    start = _parse_month(first)
    end = _parse_month(last)
    if start is None or end is None:
        return None
    return (end[0] - start[0]) * 12 + (end[1] - start[1]) + 1
