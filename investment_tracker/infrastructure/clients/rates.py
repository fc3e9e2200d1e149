"""Exchange rate client - scrapes the BNR reference table published on cursbnr.ro"""

import re
import httpx
from datetime import date
from typing import List, Tuple
from investment_tracker.domain.currency import build_conversion_table
from investment_tracker.domain.exceptions import UpstreamServiceError
from investment_tracker.domain.models import ConversionTable
from investment_tracker.config import settings

_DATE_HEADER = re.compile(r'<th colspan="2" class="text-center">([^<]+)</th>')
_RATE_ROW = re.compile(
    r'<td class="text-center hidden-xs">([^<]+)</td>[\s\S]*?<td class="text-center">([0-9.]+)</td>'
)


def parse_rates(html: str, today: date | None = None) -> ConversionTable:
    """
    Extract (currency code, RON value) rows and the reporting date.

    Codes quoted per 100 units ("100HUF") are normalized to one unit.
    The as-of label falls back to today's date when no header is found.
    """
    as_of = (today or date.today()).isoformat()
    header = _DATE_HEADER.search(html)
    if header:
        as_of = header.group(1).strip()

    entries: List[Tuple[str, float]] = []
    for match in _RATE_ROW.finditer(html):
        try:
            value = float(match.group(2))
        except ValueError:
            continue
        entries.append((match.group(1), value))

    return build_conversion_table(entries, as_of=as_of)


class RateClient:
    """Client for the external exchange-rate page"""

    def __init__(
        self,
        source_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.source_url = source_url or settings.rates_source_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def fetch_table(self) -> ConversionTable:
        """
        Download and parse the current rate table.

        Raises:
            UpstreamServiceError: On timeout, HTTP errors, or a page with no rates
        """
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport, follow_redirects=True
        ) as client:
            try:
                response = await client.get(self.source_url)
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise UpstreamServiceError(f"Rate source timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise UpstreamServiceError(f"Rate source error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise UpstreamServiceError(f"Rate source unreachable: {e}") from e

        table = parse_rates(response.text)
        if len(table.rates) <= 1:
            raise UpstreamServiceError("No rates parsed from rate source")
        return table
