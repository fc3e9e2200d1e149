"""Currency conversion table construction"""

import re
from typing import Iterable, Optional, Tuple

from investment_tracker.domain.models import ConversionTable

BASE_CURRENCY = "RON"

# Rate sources quote weak currencies per 100 units, e.g. "100HUF"
_DENOMINATED_CODE = re.compile(r"^(\d+)([A-Z]{3})$")


def normalize_rate(code: str, value: float) -> Tuple[str, float]:
    """
    Strip a denomination prefix from a currency code and scale the rate.

    Example:
        ("100HUF", 1.25) -> ("HUF", 0.0125)
    """
    code = code.strip().upper()
    match = _DENOMINATED_CODE.match(code)
    if match:
        multiplier = int(match.group(1))
        return match.group(2), value / multiplier
    return code, value


def build_conversion_table(
    entries: Iterable[Tuple[str, float]],
    as_of: Optional[str] = None,
) -> ConversionTable:
    """Build a table from raw (code, RON value) pairs; RON is always 1"""
    rates = {BASE_CURRENCY: 1.0}
    for code, value in entries:
        code, rate = normalize_rate(code, value)
        if code == BASE_CURRENCY:
            continue
        rates[code] = rate
    return ConversionTable(as_of=as_of, rates=rates)
