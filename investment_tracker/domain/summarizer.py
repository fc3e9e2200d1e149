"""
History summarizer - compresses the investment ledger into a bounded
forecasting prompt.

The prompt carries totals, span and diversification, a monthly (or quarterly)
breakdown, and an estimate of the steady monthly contribution that ignores
one-time lump sums. If the detailed prompt grows past MAX_PROMPT_CHARS, a
compact variant listing only the most recent periods is produced instead.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from investment_tracker.domain.models import ConversionTable, InvestmentRecord, Objective
from investment_tracker.utils.date_utils import month_key, months_between, quarter_key

MAX_PROMPT_CHARS = 4000
QUARTERLY_AFTER_MONTHS = 12
COMPACT_PERIODS = 6
MAX_LISTED_FUNDS = 10

NO_OBJECTIVE_PROMPT = "There is currently no investment objective set."

ANSWER_FORMAT = (
    'Please provide a short answer in this exact format: "It will take you X years" '
    'or "It will take you X months" where X is a number.'
)

INSTRUCTIONS = [
    "Based on the investment history above and the target, estimate how much time it will take to reach the goal.",
    ANSWER_FORMAT,
    "If one-time months are listed, they are lump sums: weight the recurring monthly contribution "
    "over the overall average.",
    "Be realistic and concise.",
]


@dataclass
class PeriodTotal:
    """Sum and count of contributions within one month or quarter"""

    period: str
    total: float
    count: int


@dataclass
class ContributionPattern:
    """Split of monthly totals into recurring months and one-time outliers"""

    median: float
    q1: float
    q3: float
    threshold: Optional[float]  # None when outlier detection does not apply
    recurring: List[PeriodTotal] = field(default_factory=list)
    outliers: List[PeriodTotal] = field(default_factory=list)

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    @property
    def recurring_average(self) -> float:
        if not self.recurring:
            return 0.0
        return sum(p.total for p in self.recurring) / len(self.recurring)


@dataclass
class HistorySummary:
    """Aggregated view of the ledger used to render the prompt"""

    currency: Optional[str]
    months: List[PeriodTotal]  # chronological
    total: float
    count: int
    funds: List[str]
    platforms: List[str]
    currencies: List[str]
    pattern: ContributionPattern

    @property
    def first_month(self) -> str:
        return self.months[0].period

    @property
    def last_month(self) -> str:
        return self.months[-1].period

    @property
    def is_quarterly(self) -> bool:
        return len(self.months) > QUARTERLY_AFTER_MONTHS

    @property
    def periods(self) -> List[PeriodTotal]:
        """Breakdown rows: monthly, or quarterly for long histories"""
        if not self.is_quarterly:
            return self.months
        quarters: "OrderedDict[str, PeriodTotal]" = OrderedDict()
        for month in self.months:
            key = quarter_key(month.period)
            bucket = quarters.setdefault(key, PeriodTotal(period=key, total=0.0, count=0))
            bucket.total += month.total
            bucket.count += month.count
        return list(quarters.values())


def _median(values: List[float]) -> float:
    n = len(values)
    mid = n // 2
    if n % 2:
        return values[mid]
    return (values[mid - 1] + values[mid]) / 2


def detect_outliers(months: List[PeriodTotal]) -> ContributionPattern:
    """
    Separate steady monthly contributions from one-time lump sums.

    threshold = min(Q3 + 0.5 * IQR, median * 1.8), then capped at
    median * 1.2 when that is lower. Months at or below the threshold are
    recurring. Quartiles use the lower index sorted[floor(n * p)].
    A non-positive median (mostly sales) disables outlier flagging.
    """
    totals = sorted(m.total for m in months)
    n = len(totals)
    median = _median(totals)
    q1 = totals[int(n * 0.25)]
    q3 = totals[int(n * 0.75)]

    if median <= 0:
        return ContributionPattern(median=median, q1=q1, q3=q3, threshold=None, recurring=list(months))

    iqr = q3 - q1
    threshold = min(q3 + 0.5 * iqr, median * 1.8)
    if median * 1.2 < threshold:
        threshold = median * 1.2

    recurring = [m for m in months if m.total <= threshold]
    outliers = [m for m in months if m.total > threshold]
    return ContributionPattern(
        median=median,
        q1=q1,
        q3=q3,
        threshold=threshold,
        recurring=recurring,
        outliers=outliers,
    )


def _amount_in(record: InvestmentRecord, currency: Optional[str], rates: Optional[ConversionTable]) -> float:
    """Record amount in the objective currency when convertible, else at face value"""
    if rates is None or currency is None:
        return record.amount
    converted = rates.convert(record.amount, record.currency, currency)
    return record.amount if converted is None else converted


def summarize_history(
    records: Iterable[InvestmentRecord],
    currency: Optional[str] = None,
    rates: Optional[ConversionTable] = None,
) -> Optional[HistorySummary]:
    """Group records by calendar month; None when there are no records"""
    records = list(records)
    if not records:
        return None

    by_month = {}
    for record in records:
        key = month_key(record.date)
        bucket = by_month.setdefault(key, PeriodTotal(period=key, total=0.0, count=0))
        bucket.total += _amount_in(record, currency, rates)
        bucket.count += 1
    months = [by_month[key] for key in sorted(by_month)]

    return HistorySummary(
        currency=currency,
        months=months,
        total=sum(m.total for m in months),
        count=len(records),
        funds=sorted({r.fund for r in records}),
        platforms=sorted({r.platform for r in records}),
        currencies=sorted({r.currency for r in records}),
        pattern=detect_outliers(months),
    )


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def _no_investments_prompt(objective: Objective) -> str:
    return "\n".join(
        [
            f"Target: {_fmt(objective.target_amount)} {objective.currency}",
            "No investments have been recorded yet.",
            "Assuming the person starts investing from scratch with a typical, realistic monthly "
            "contribution, estimate how much time it will take to reach the goal.",
            ANSWER_FORMAT,
            "Be realistic and concise.",
        ]
    )


def _render(objective: Objective, summary: HistorySummary, compact: bool) -> str:
    currency = objective.currency
    pattern = summary.pattern
    active_months = len(summary.months)
    lines = [
        f"Target: {_fmt(objective.target_amount)} {currency}",
        f"Total invested so far: {_fmt(summary.total)} {currency} across {summary.count} investments",
    ]

    span = months_between(summary.first_month, summary.last_month)
    span_text = f"{span} months, " if span is not None else ""
    lines.append(
        f"Investment period: {summary.first_month} to {summary.last_month} "
        f"({span_text}{active_months} months with investments)"
    )

    if compact or len(summary.funds) > MAX_LISTED_FUNDS:
        funds_text = f"{len(summary.funds)} funds"
    else:
        funds_text = f"{len(summary.funds)} funds ({', '.join(summary.funds)})"
    currencies = summary.currencies
    currencies_text = ", ".join(currencies[:MAX_LISTED_FUNDS])
    if len(currencies) > MAX_LISTED_FUNDS:
        currencies_text += f" and {len(currencies) - MAX_LISTED_FUNDS} more"
    lines.append(
        f"Diversification: {funds_text}, {len(summary.platforms)} platforms, currencies: {currencies_text}"
    )

    periods = summary.periods
    unit = "quarters" if summary.is_quarterly else "months"
    if compact:
        shown = periods[-COMPACT_PERIODS:]
        lines.append(f"Most recent {len(shown)} of {len(periods)} {unit}:")
    else:
        shown = periods
        lines.append("Quarterly breakdown:" if summary.is_quarterly else "Monthly breakdown:")
    for period in shown:
        lines.append(f" - {period.period}: {_fmt(period.total)} {currency} ({period.count} investments)")

    lines.append(f"Average per active month: {_fmt(summary.total / active_months)} {currency}")
    lines.append(
        f"Estimated recurring monthly contribution: {_fmt(pattern.recurring_average)} {currency} "
        f"(based on {len(pattern.recurring)} regular months)"
    )

    if pattern.outliers:
        outliers = pattern.outliers
        lines.append("One-time or unusually large months (excluded from the recurring rate):")
        if compact and len(outliers) > COMPACT_PERIODS:
            hidden = len(outliers) - COMPACT_PERIODS
            outliers = outliers[-COMPACT_PERIODS:]
            lines.append(f" - ({hidden} earlier one-time months not shown)")
        for month in outliers:
            lines.append(f" - {month.period}: {_fmt(month.total)} {currency}")

    lines.extend(INSTRUCTIONS)
    return "\n".join(lines)


def build_prompt(
    records: Iterable[InvestmentRecord],
    objective: Optional[Objective],
    rates: Optional[ConversionTable] = None,
) -> str:
    """
    Build the forecasting prompt for the current ledger and objective.

    Deterministic for identical inputs. When rates are given, amounts are
    expressed in the objective currency where a conversion exists.
    """
    if objective is None:
        return NO_OBJECTIVE_PROMPT

    summary = summarize_history(records, objective.currency, rates)
    if summary is None:
        return _no_investments_prompt(objective)

    prompt = _render(objective, summary, compact=False)
    if len(prompt) > MAX_PROMPT_CHARS:
        prompt = _render(objective, summary, compact=True)
    # Last resort for pathological field values
    return prompt[:MAX_PROMPT_CHARS]
