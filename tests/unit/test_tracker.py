"""Unit tests for the portfolio tracker service and its persistence"""

import asyncio
import pytest
from sqlalchemy.exc import OperationalError
from investment_tracker.api.main import refresh_rates_periodically
from investment_tracker.domain.exceptions import NotFoundError, UpstreamServiceError, ValidationError
from investment_tracker.domain.models import ConversionTable, Objective
from investment_tracker.infrastructure.database.models import InvestmentRow
from investment_tracker.infrastructure.database.repositories import StateRepository
from investment_tracker.services.tracker import PortfolioTracker, build_objective


class StubRateClient:
    def __init__(self, table=None, error=None):
        self.table = table
        self.error = error

    async def fetch_table(self) -> ConversionTable:
        if self.error is not None:
            raise self.error
        return self.table


class FailingRepository(StateRepository):
    """Repository whose writes always fail"""

    def save_investments(self, records):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    def save_objective(self, objective):
        raise OperationalError("UPDATE", {}, Exception("disk I/O error"))


def _payload(**overrides):
    payload = {"currency": "EUR", "fund": "Bonds", "platform": "Bank", "date": "2024-02-01", "amount": 100.0}
    payload.update(overrides)
    return payload


def test_build_objective_normalizes_currency():
    assert build_objective(25000, " eur ") == Objective(target_amount=25000.0, currency="EUR")


@pytest.mark.parametrize(
    "target, currency",
    [("25000", "EUR"), (True, "EUR"), (None, "EUR"), (float("nan"), "EUR"), (1000, ""), (1000, None)],
)
def test_build_objective_rejects_invalid_payload(target, currency):
    with pytest.raises(ValidationError):
        build_objective(target, currency)


def test_mutations_are_persisted_and_reloaded(tracker: PortfolioTracker, repository: StateRepository, forecast_client):
    kept = tracker.add_investment(_payload(unit_price=10.0, units=3.0))
    dropped = tracker.add_investment(_payload(amount=50.0))
    tracker.delete_investment(dropped.id)
    tracker.set_objective(5000, "ron")

    reloaded = PortfolioTracker(forecast_client=forecast_client, repository=repository)
    reloaded.load()

    assert reloaded.list_investments() == [kept]
    assert reloaded.objective == Objective(target_amount=5000.0, currency="RON")


def test_load_from_empty_store_uses_defaults(repository: StateRepository, forecast_client):
    tracker = PortfolioTracker(forecast_client=forecast_client, repository=repository)
    tracker.load()

    assert tracker.list_investments() == []
    assert tracker.objective is None
    assert tracker.rates.rates == {"RON": 1.0}


def test_rows_without_timestamp_derive_it_from_id(repository: StateRepository):
    with repository.session_factory() as db:
        db.add(InvestmentRow(id="1700000000123", amount=10.0, currency="RON", fund="F", platform="P", date="2024-01-01"))
        db.commit()

    [record] = repository.load_investments()

    assert record.timestamp == 1700000000123


def test_delete_unknown_investment(tracker: PortfolioTracker):
    tracker.add_investment(_payload())

    with pytest.raises(NotFoundError):
        tracker.delete_investment("missing")

    assert len(tracker.list_investments()) == 1


def test_import_reports_counts(tracker: PortfolioTracker):
    tracker.add_investment(_payload())

    imported, provided = tracker.import_investments([_payload(amount="20"), {"fund": "broken"}, None])

    assert (imported, provided) == (1, 3)
    assert [r.amount for r in tracker.list_investments()] == [20.0]


def test_objective_progress_values_portfolio(tracker: PortfolioTracker):
    assert tracker.objective_progress() is None

    tracker.add_investment(_payload(currency="EUR", amount=100.0, fund="Cash"))
    tracker.add_investment(_payload(currency="USD", unit_price=10.0, units=5.0, fund="ETF", date="2024-01-01"))
    tracker.add_investment(_payload(currency="USD", unit_price=12.0, units=3.0, fund="ETF", date="2024-02-01"))
    tracker.set_objective(10000, "RON")

    progress = tracker.objective_progress()

    # 100 EUR * 5 + 96 USD * 4
    assert progress.current_total == pytest.approx(884.0)
    assert progress.target_amount == 10000.0
    assert [f.fund for f in progress.funds] == ["Cash", "ETF"]


def test_update_rates_ignores_ron_only_table(tracker: PortfolioTracker, rates: ConversionTable):
    assert tracker.update_rates(ConversionTable()) is False
    assert tracker.rates is rates


async def test_refresh_rates_replaces_table(tracker: PortfolioTracker):
    fresh = ConversionTable(as_of="04.06.2024", rates={"RON": 1.0, "EUR": 4.97})
    tracker.rate_client = StubRateClient(table=fresh)

    assert await tracker.refresh_rates() is True
    assert tracker.rates is fresh


async def test_refresh_failure_keeps_previous_table(tracker: PortfolioTracker, rates: ConversionTable):
    tracker.rate_client = StubRateClient(error=UpstreamServiceError("timeout"))

    assert await tracker.refresh_rates() is False
    assert tracker.rates is rates


async def test_prediction_uses_current_state(tracker: PortfolioTracker, forecast_client):
    assert tracker.start_prediction() is None

    tracker.add_investment(_payload())
    tracker.set_objective(1000, "EUR")
    generation = tracker.start_prediction()
    await tracker.run_prediction(generation)

    assert tracker.prediction.text == "It will take you 3 years"
    assert "Target: 1000.00 EUR" in forecast_client.prompts[0]


def test_failed_save_rolls_back_ledger_and_objective(repository: StateRepository, forecast_client):
    tracker = PortfolioTracker(forecast_client=forecast_client, repository=repository)
    kept = tracker.add_investment(_payload())
    tracker.set_objective(1000, "EUR")
    tracker.repository = FailingRepository(repository.session_factory)

    with pytest.raises(OperationalError):
        tracker.add_investment(_payload(amount=10.0))
    with pytest.raises(OperationalError):
        tracker.delete_investment(kept.id)
    with pytest.raises(OperationalError):
        tracker.import_investments([_payload(amount=1.0), _payload(amount=2.0)])
    with pytest.raises(OperationalError):
        tracker.set_objective(5000, "RON")

    assert tracker.list_investments() == [kept]
    assert tracker.objective == Objective(target_amount=1000.0, currency="EUR")


async def test_rate_refresh_loop_survives_unexpected_errors(caplog):
    class FlakyTracker:
        calls = 0

        async def refresh_rates(self) -> bool:
            self.calls += 1
            if self.calls == 1:
                raise RuntimeError("unexpected page layout")
            return True

    flaky = FlakyTracker()
    task = asyncio.create_task(refresh_rates_periodically(flaky, 0))
    while flaky.calls < 3:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert "Exchange rate refresh crashed" in caplog.text
