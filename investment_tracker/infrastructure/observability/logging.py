"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from investment_tracker.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_prediction(
    generation_id: str,
    outcome: str,
    duration_ms: float,
    error: Optional[str] = None,
) -> None:
    """Log structured forecast outcome (completed | failed)"""
    extra = {
        "generation_id": generation_id,
        "step": "prediction_complete",
        "outcome": outcome,
        "duration_ms": duration_ms,
    }
    if error is None:
        logging.info("Prediction completed", extra=extra)
    else:
        extra["error"] = error
        logging.warning("Prediction failed", extra=extra)


def log_rates_refresh(as_of: Optional[str], currency_count: int, updated: bool) -> None:
    """Log outcome of an exchange-rate refresh"""
    logging.info(
        "Exchange rates refreshed" if updated else "Exchange rates unchanged",
        extra={
            "step": "rates_refresh",
            "as_of": as_of,
            "currency_count": currency_count,
            "updated": updated,
        },
    )
