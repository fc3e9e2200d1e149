"""Portfolio tracker - the service instance that owns all application state"""

import logging
import math
import threading
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from investment_tracker.domain.exceptions import UpstreamServiceError, ValidationError
from investment_tracker.domain.ledger import Ledger
from investment_tracker.domain.models import ConversionTable, InvestmentRecord, Objective, ObjectiveProgress, Prediction
from investment_tracker.domain.valuation import value_portfolio
from investment_tracker.infrastructure.clients.rates import RateClient
from investment_tracker.infrastructure.database.repositories import StateRepository
from investment_tracker.infrastructure.observability.logging import log_rates_refresh
from investment_tracker.infrastructure.observability.metrics import (
    ledger_mutation_counter,
    portfolio_value_gauge,
    rates_refresh_counter,
    record_import,
)
from investment_tracker.services.prediction import ForecastClient, Generation, PredictionOrchestrator

logger = logging.getLogger(__name__)


def build_objective(target_amount: Any, currency: Any) -> Objective:
    """
    Validate an objective payload.

    Raises:
        ValidationError: Target is not a number or currency is missing
    """
    if isinstance(target_amount, bool) or not isinstance(target_amount, (int, float)):
        raise ValidationError("Objective target amount must be a number")
    if math.isnan(target_amount) or math.isinf(target_amount):
        raise ValidationError("Objective target amount must be finite")
    if not isinstance(currency, str) or not currency.strip():
        raise ValidationError("Objective currency is required")
    return Objective(target_amount=float(target_amount), currency=currency.strip().upper())


class PortfolioTracker:
    """
    Holds the ledger, objective, exchange rates and prediction state.

    Mutations are serialized by a write lock and persisted through the
    repository before the lock is released. Reads return snapshots.
    """

    def __init__(
        self,
        forecast_client: ForecastClient,
        repository: Optional[StateRepository] = None,
        rate_client: Optional[RateClient] = None,
    ):
        self.repository = repository
        self.rate_client = rate_client
        self.ledger = Ledger()
        self.predictions = PredictionOrchestrator(forecast_client)
        self._write_lock = threading.Lock()
        self._objective: Optional[Objective] = None
        self._rates = ConversionTable()

    def load(self) -> None:
        """Populate state from storage; an empty store leaves the defaults"""
        if self.repository is None:
            return
        records = self.repository.load_investments()
        objective = self.repository.load_objective()
        with self._write_lock:
            self.ledger = Ledger(records)
            self._objective = objective
        logger.info("State loaded", extra={"investments": len(records), "has_objective": objective is not None})

    # Ledger

    def list_investments(self) -> List[InvestmentRecord]:
        return self.ledger.list()

    def add_investment(self, payload: Mapping[str, Any]) -> InvestmentRecord:
        with self._write_lock:
            previous = self.ledger.list()
            record = self.ledger.append(payload)
            self._persist_investments(previous)
        ledger_mutation_counter.labels(operation="append").inc()
        return record

    def delete_investment(self, record_id: str) -> None:
        with self._write_lock:
            previous = self.ledger.list()
            self.ledger.remove(record_id)
            self._persist_investments(previous)
        ledger_mutation_counter.labels(operation="remove").inc()

    def import_investments(self, payloads: Sequence[Optional[Mapping[str, Any]]]) -> Tuple[int, int]:
        """Replace the ledger; returns (imported, provided)"""
        with self._write_lock:
            previous = self.ledger.list()
            imported = self.ledger.replace_all(payloads)
            self._persist_investments(previous)
        record_import(len(payloads), imported)
        logger.info("Investments imported", extra={"imported": imported, "provided": len(payloads)})
        return imported, len(payloads)

    def _persist_investments(self, previous: List[InvestmentRecord]) -> None:
        """Save the ledger, or roll it back to previous if the save fails"""
        if self.repository is None:
            return
        try:
            self.repository.save_investments(self.ledger.list())
        except Exception:
            self.ledger.restore(previous)
            raise

    # Objective

    @property
    def objective(self) -> Optional[Objective]:
        return self._objective

    def set_objective(self, target_amount: Any, currency: Any) -> Objective:
        objective = build_objective(target_amount, currency)
        with self._write_lock:
            if self.repository is not None:
                self.repository.save_objective(objective)
            self._objective = objective
        return objective

    def objective_progress(self) -> Optional[ObjectiveProgress]:
        """Objective with the current portfolio value in its currency"""
        objective = self._objective
        if objective is None:
            return None
        funds = value_portfolio(self.ledger.list(), self._rates, objective.currency)
        current_total = sum((f.value for f in funds if f.value is not None), 0.0)
        portfolio_value_gauge.labels(currency=objective.currency).set(current_total)
        return ObjectiveProgress(
            target_amount=objective.target_amount,
            currency=objective.currency,
            current_total=current_total,
            funds=funds,
        )

    # Exchange rates

    @property
    def rates(self) -> ConversionTable:
        return self._rates

    def update_rates(self, table: ConversionTable) -> bool:
        """Swap in a new table; tables with nothing beyond RON are ignored"""
        if len(table.rates) <= 1:
            return False
        self._rates = table
        return True

    async def refresh_rates(self) -> bool:
        """Fetch a new rate table; on failure the current table stays in force"""
        if self.rate_client is None:
            return False
        try:
            table = await self.rate_client.fetch_table()
        except UpstreamServiceError as e:
            rates_refresh_counter.labels(outcome="failed").inc()
            logger.warning(f"Exchange rate refresh failed: {e}")
            return False
        updated = self.update_rates(table)
        rates_refresh_counter.labels(outcome="updated" if updated else "failed").inc()
        log_rates_refresh(table.as_of, len(table.rates), updated)
        return updated

    # Prediction

    @property
    def prediction(self) -> Prediction:
        return self.predictions.state

    def start_prediction(self) -> Optional[Generation]:
        return self.predictions.start(self.ledger.list(), self._objective, self._rates)

    async def run_prediction(self, generation: Generation) -> None:
        await self.predictions.run(generation)
