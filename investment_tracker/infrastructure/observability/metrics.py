"""Prometheus metrics for monitoring ledger activity, forecasts, and rate refreshes"""

from prometheus_client import Counter, Histogram, Gauge

# Ledger metrics
ledger_mutation_counter = Counter(
    "investment_ledger_mutations_total",
    "Ledger mutations applied",
    ["operation"],  # append | remove | import
)

imported_records_counter = Counter(
    "investment_import_records_total",
    "Records seen by bulk import",
    ["result"],  # imported | skipped
)

# Valuation metrics
portfolio_value_gauge = Gauge(
    "investment_portfolio_value",
    "Last computed portfolio value",
    ["currency"],
)

# Forecast metrics
prediction_counter = Counter(
    "investment_prediction_total",
    "Forecast generation attempts",
    ["outcome"],  # completed | failed | skipped
)

forecast_latency_histogram = Histogram(
    "forecast_latency_seconds",
    "Forecasting service response time",
    buckets=[0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0],
)

# Exchange rate metrics
rates_refresh_counter = Counter(
    "rates_refresh_total",
    "Exchange rate refresh attempts",
    ["outcome"],  # updated | failed
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_import(provided: int, imported: int) -> None:
    """Record how many import candidates were accepted vs skipped"""
    ledger_mutation_counter.labels(operation="import").inc()
    imported_records_counter.labels(result="imported").inc(imported)
    imported_records_counter.labels(result="skipped").inc(max(provided - imported, 0))
