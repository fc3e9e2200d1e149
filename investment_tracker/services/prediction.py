"""Prediction orchestrator - single-flight forecast generation with a cached result"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from investment_tracker.domain.exceptions import UpstreamServiceError
from investment_tracker.domain.models import ConversionTable, InvestmentRecord, Objective, Prediction
from investment_tracker.domain.summarizer import build_prompt
from investment_tracker.infrastructure.observability.logging import log_prediction
from investment_tracker.infrastructure.observability.metrics import prediction_counter

logger = logging.getLogger(__name__)


class ForecastClient(Protocol):
    async def generate(self, prompt: str) -> str: ...


@dataclass(frozen=True)
class Generation:
    """An accepted forecast request waiting to be dispatched"""

    generation_id: str
    prompt: str


class PredictionOrchestrator:
    """
    Owns the prediction state machine (idle | generating).

    start() performs the single-flight check and builds the prompt; run()
    calls the forecasting service and stores the outcome. Callers acknowledge
    the request between the two, so run() is free to execute in the
    background.
    """

    def __init__(self, client: ForecastClient):
        self._client = client
        self._lock = threading.Lock()
        self._state = Prediction()

    @property
    def state(self) -> Prediction:
        with self._lock:
            return self._state

    def start(
        self,
        records: Iterable[InvestmentRecord],
        objective: Optional[Objective],
        rates: Optional[ConversionTable] = None,
    ) -> Optional[Generation]:
        """
        Begin a generation, or return None without touching state when there
        is no objective, no records, or a generation already in flight.
        """
        records = list(records)
        if objective is None or not records:
            prediction_counter.labels(outcome="skipped").inc()
            return None

        with self._lock:
            if self._state.is_generating:
                prediction_counter.labels(outcome="skipped").inc()
                return None
            prompt = build_prompt(records, objective, rates)
            generation_id = str(uuid.uuid4())
            self._state = Prediction(text=self._state.text, is_generating=True, generation_id=generation_id)

        logger.info("Prediction started", extra={"generation_id": generation_id, "prompt_chars": len(prompt)})
        return Generation(generation_id=generation_id, prompt=prompt)

    async def run(self, generation: Generation) -> None:
        """Dispatch the prompt; any failure clears the cached prediction and is logged"""
        start_time = time.time()
        try:
            text = await self._client.generate(generation.prompt)
        except UpstreamServiceError as e:
            with self._lock:
                self._state = Prediction()
            prediction_counter.labels(outcome="failed").inc()
            log_prediction(generation.generation_id, "failed", (time.time() - start_time) * 1000, error=str(e))
            return
        except Exception as e:
            with self._lock:
                self._state = Prediction()
            prediction_counter.labels(outcome="failed").inc()
            logger.exception("Unexpected forecast failure", extra={"generation_id": generation.generation_id})
            log_prediction(generation.generation_id, "failed", (time.time() - start_time) * 1000, error=str(e))
            return

        with self._lock:
            self._state = Prediction(text=text, is_generating=False, generation_id=generation.generation_id)
        prediction_counter.labels(outcome="completed").inc()
        log_prediction(generation.generation_id, "completed", (time.time() - start_time) * 1000)

    async def trigger(
        self,
        records: Iterable[InvestmentRecord],
        objective: Optional[Objective],
        rates: Optional[ConversionTable] = None,
    ) -> bool:
        """Start and run a generation inline; False when it was a no-op"""
        generation = self.start(records, objective, rates)
        if generation is None:
            return False
        await self.run(generation)
        return True
