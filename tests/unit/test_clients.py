"""Unit tests for the forecasting and exchange-rate HTTP clients"""

import json
import httpx
import pytest
from datetime import date
from investment_tracker.domain.exceptions import UpstreamServiceError
from investment_tracker.infrastructure.clients.ollama import OllamaClient, extract_forecast_text
from investment_tracker.infrastructure.clients.rates import RateClient, parse_rates

RATES_PAGE = """
<table>
  <tr><th colspan="2" class="text-center">Curs BNR 03.06.2024</th></tr>
  <tr>
    <td class="text-center hidden-xs">EUR</td>
    <td class="text-left">Euro</td>
    <td class="text-center">4.9765</td>
  </tr>
  <tr>
    <td class="text-center hidden-xs">USD</td>
    <td class="text-left">Dolar american</td>
    <td class="text-center">4.5810</td>
  </tr>
  <tr>
    <td class="text-center hidden-xs">100HUF</td>
    <td class="text-left">100 Forinti maghiari</td>
    <td class="text-center">1.2830</td>
  </tr>
</table>
"""


def test_extract_generate_response_shape():
    assert extract_forecast_text('{"response": "It will take you 5 years"}') == "It will take you 5 years"


def test_extract_chat_message_shape():
    body = json.dumps({"message": {"role": "assistant", "content": "It will take you 7 months"}})
    assert extract_forecast_text(body) == "It will take you 7 months"


def test_extract_unknown_shape_returns_raw_body():
    body = '{"done": true}'
    assert extract_forecast_text(body) == body


def test_extract_invalid_json_raises():
    with pytest.raises(ValueError):
        extract_forecast_text("<html>gateway error</html>")


async def test_ollama_client_sends_non_streaming_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": "It will take you 2 years"})

    client = OllamaClient(base_url="http://ollama:11434", model="llama2", transport=httpx.MockTransport(handler))

    text = await client.generate("Target: 1000.00 RON")

    assert text == "It will take you 2 years"
    assert seen["url"] == "http://ollama:11434/api/generate"
    assert seen["body"] == {"model": "llama2", "prompt": "Target: 1000.00 RON", "stream": False}


async def test_ollama_client_wraps_http_errors():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="model not loaded"))
    client = OllamaClient(base_url="http://ollama:11434", transport=transport)

    with pytest.raises(UpstreamServiceError, match="500"):
        await client.generate("prompt")


async def test_ollama_client_wraps_connection_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = OllamaClient(base_url="http://ollama:11434", transport=httpx.MockTransport(handler))

    with pytest.raises(UpstreamServiceError):
        await client.generate("prompt")


async def test_ollama_client_rejects_non_json_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="not json"))
    client = OllamaClient(base_url="http://ollama:11434", transport=transport)

    with pytest.raises(UpstreamServiceError):
        await client.generate("prompt")


def test_parse_rates_reads_header_and_rows():
    table = parse_rates(RATES_PAGE)

    assert table.as_of == "Curs BNR 03.06.2024"
    assert table.rates["RON"] == 1.0
    assert table.rates["EUR"] == pytest.approx(4.9765)
    assert table.rates["USD"] == pytest.approx(4.5810)
    assert table.rates["HUF"] == pytest.approx(0.012830)
    assert "100HUF" not in table.rates


def test_parse_rates_without_header_uses_today():
    table = parse_rates("<html></html>", today=date(2024, 6, 3))

    assert table.as_of == "2024-06-03"
    assert table.rates == {"RON": 1.0}


async def test_rate_client_fetches_table():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=RATES_PAGE))
    client = RateClient(source_url="https://rates.example/", transport=transport)

    table = await client.fetch_table()

    assert set(table.rates) == {"RON", "EUR", "USD", "HUF"}


async def test_rate_client_rejects_page_without_rates():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    client = RateClient(source_url="https://rates.example/", transport=transport)

    with pytest.raises(UpstreamServiceError):
        await client.fetch_table()


async def test_rate_client_wraps_http_errors():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    client = RateClient(source_url="https://rates.example/", transport=transport)

    with pytest.raises(UpstreamServiceError, match="503"):
        await client.fetch_table()
