"""Pytest fixtures for testing"""

import os

# Keep the module-level app off the real database and rate source
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATES_REFRESH_ENABLED", "false")

import pytest
from typing import Callable, List, Optional
from fastapi.testclient import TestClient
from investment_tracker.api.main import create_app
from investment_tracker.domain.models import ConversionTable, InvestmentRecord
from investment_tracker.infrastructure.database.repositories import StateRepository
from investment_tracker.infrastructure.database.session import make_session_factory
from investment_tracker.services.tracker import PortfolioTracker


class FakeForecastClient:
    """Records prompts and answers with a canned text or error"""

    def __init__(self, text: str = "It will take you 3 years", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def forecast_client() -> FakeForecastClient:
    return FakeForecastClient()


@pytest.fixture
def rates() -> ConversionTable:
    """RON value of one unit of each currency"""
    return ConversionTable(
        as_of="2024-06-03",
        rates={"RON": 1.0, "EUR": 5.0, "USD": 4.0, "GBP": 5.8},
    )


@pytest.fixture
def repository() -> StateRepository:
    """Repository over a fresh in-memory SQLite database"""
    return StateRepository(make_session_factory("sqlite://"))


@pytest.fixture
def tracker(
    forecast_client: FakeForecastClient,
    repository: StateRepository,
    rates: ConversionTable,
) -> PortfolioTracker:
    tracker = PortfolioTracker(forecast_client=forecast_client, repository=repository)
    tracker.update_rates(rates)
    return tracker


@pytest.fixture
def client(tracker: PortfolioTracker) -> TestClient:
    """Create FastAPI test client around the test tracker"""
    return TestClient(create_app(tracker))


@pytest.fixture
def make_record() -> Callable[..., InvestmentRecord]:
    """Factory for records with sensible defaults and increasing timestamps"""
    counter = {"timestamp": 1_700_000_000_000}

    def _make(**overrides) -> InvestmentRecord:
        counter["timestamp"] += 1
        timestamp = overrides.pop("timestamp", counter["timestamp"])
        fields = {
            "id": str(timestamp),
            "timestamp": timestamp,
            "amount": 100.0,
            "currency": "RON",
            "fund": "World Index",
            "platform": "Broker",
            "date": "2024-01-15",
        }
        fields.update(overrides)
        if fields.get("unit_price") is not None and fields.get("units") is not None and "amount" not in overrides:
            fields["amount"] = fields["unit_price"] * fields["units"]
        return InvestmentRecord(**fields)

    return _make
