"""Portfolio valuation engine - current value per fund and in aggregate"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from investment_tracker.domain.models import ConversionTable, FundValuation, InvestmentRecord


def group_by_fund(records: Iterable[InvestmentRecord]) -> Dict[str, List[InvestmentRecord]]:
    """Group records by fund name, preserving first-seen fund order"""
    by_fund: Dict[str, List[InvestmentRecord]] = defaultdict(list)
    for record in records:
        by_fund[record.fund].append(record)
    return dict(by_fund)


def find_latest_record(records: Iterable[InvestmentRecord]) -> Optional[InvestmentRecord]:
    """Most recent record by calendar date; same-day ties go to the later timestamp"""
    return max(records, key=lambda r: (r.date, r.timestamp), default=None)


def derive_latest_price(latest: InvestmentRecord) -> Optional[Tuple[float, str]]:
    """
    Price per unit implied by the latest record, with its currency.

    Explicit unit price wins; otherwise amount / units for a purchase.
    Returns None when the record carries no price information.
    """
    if latest.unit_price is not None:
        return latest.unit_price, latest.currency
    if latest.units is not None and latest.units > 0:
        return latest.amount / latest.units, latest.currency
    return None


def value_fund(
    fund: str,
    records: List[InvestmentRecord],
    rates: ConversionTable,
    target_currency: str,
) -> FundValuation:
    """
    Value a single fund in the target currency.

    Without a derivable latest price the fund is worth the sum of its
    contributions, each converted from its own currency. With one, every
    record is turned into units (explicit units, amount / unit_price, or the
    amount converted into the latest price's currency and divided by it) and
    the fund is worth latest_price * total_units.
    """
    latest = find_latest_record(records)
    price = derive_latest_price(latest) if latest is not None else None

    if price is None:
        total = 0.0
        for record in records:
            converted = rates.convert(record.amount, record.currency, target_currency)
            if converted is not None:
                total += converted
        return FundValuation(fund=fund, value=total, method="amounts")

    latest_price, latest_currency = price
    total_units = 0.0
    for record in records:
        if record.units is not None:
            total_units += record.units
        elif record.unit_price is not None:
            # A zero price carries no unit information
            if record.unit_price:
                total_units += record.amount / record.unit_price
        else:
            converted = rates.convert(record.amount, record.currency, latest_currency)
            if converted is not None and latest_price:
                total_units += converted / latest_price

    value = rates.convert(latest_price * total_units, latest_currency, target_currency)
    return FundValuation(
        fund=fund,
        value=value,
        method="units",
        latest_price=latest_price,
        latest_currency=latest_currency,
        total_units=total_units,
    )


def value_portfolio(
    records: Iterable[InvestmentRecord],
    rates: ConversionTable,
    target_currency: str,
) -> List[FundValuation]:
    """Valuation of every fund, sorted by fund name"""
    by_fund = group_by_fund(sorted(records, key=lambda r: r.timestamp))
    return [value_fund(fund, by_fund[fund], rates, target_currency) for fund in sorted(by_fund)]


def current_value(
    records: Iterable[InvestmentRecord],
    rates: ConversionTable,
    target_currency: str,
) -> float:
    """Total portfolio value; funds that cannot be converted contribute zero"""
    return sum(
        (
            valuation.value
            for valuation in value_portfolio(records, rates, target_currency)
            if valuation.value is not None
        ),
        0.0,
    )
