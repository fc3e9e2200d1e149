"""Forecasting service HTTP client (Ollama generate API)"""

import json
import httpx
from typing import Any
from investment_tracker.domain.exceptions import UpstreamServiceError
from investment_tracker.config import settings
from investment_tracker.infrastructure.observability.metrics import forecast_latency_histogram


def extract_forecast_text(body: str) -> str:
    """
    Pull the answer out of a generate response.

    Ollama returns {"response": "..."} or {"message": {"content": "..."}};
    any other JSON shape is passed through as the raw body text.

    Raises:
        ValueError: Body is not valid JSON
    """
    parsed: Any = json.loads(body)
    if isinstance(parsed, dict):
        message = parsed.get("message")
        if isinstance(message, dict) and message.get("content"):
            return str(message["content"])
        if parsed.get("response"):
            return str(parsed["response"])
    return body


class OllamaClient:
    """Client for the language model that estimates time-to-goal"""

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.ollama_base_url
        self.model = model or settings.ollama_model
        self.timeout = timeout or settings.forecast_timeout_seconds
        self.transport = transport

    async def generate(self, prompt: str) -> str:
        """
        Send a non-streaming generate request and return the answer text.

        Raises:
            UpstreamServiceError: On timeout, transport or HTTP errors, or a non-JSON body
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with forecast_latency_histogram.time():
                    response = await client.post(
                        f"{self.base_url}/api/generate",
                        json={"model": self.model, "prompt": prompt, "stream": False},
                    )
                response.raise_for_status()
                return extract_forecast_text(response.text)

            except httpx.TimeoutException as e:
                raise UpstreamServiceError(f"Forecasting service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise UpstreamServiceError(f"Forecasting service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise UpstreamServiceError(f"Forecasting service unreachable: {e}") from e
            except ValueError as e:
                raise UpstreamServiceError(f"Invalid forecasting service response: {e}") from e
