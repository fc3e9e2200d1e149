"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class InvestmentRecord:
    """Single purchase or sale of a fund"""

    id: str
    timestamp: int  # creation order, strictly increasing
    amount: float  # signed contribution, negative for sales
    currency: str
    fund: str
    platform: str
    date: str  # calendar date, YYYY-MM-DD
    unit_price: Optional[float] = None
    units: Optional[float] = None  # negative for sales

    @property
    def is_sale(self) -> bool:
        return self.units is not None and self.units < 0


@dataclass(frozen=True)
class Objective:
    """Savings goal the portfolio is measured against"""

    target_amount: float
    currency: str


@dataclass(frozen=True)
class ConversionTable:
    """Snapshot of exchange rates, expressed as RON per one unit of each currency"""

    as_of: Optional[str] = None
    rates: Dict[str, float] = field(default_factory=lambda: {"RON": 1.0})

    def convert(self, amount: float, from_currency: str, to_currency: str) -> Optional[float]:
        """Convert through RON; None when either currency is unknown"""
        from_rate = self.rates.get(from_currency)
        to_rate = self.rates.get(to_currency)
        if not from_rate or not to_rate:
            return None
        return amount * from_rate / to_rate


@dataclass(frozen=True)
class Prediction:
    """Latest forecast text and generation status"""

    text: Optional[str] = None
    is_generating: bool = False
    generation_id: Optional[str] = None


@dataclass
class FundValuation:
    """Current value of one fund in the objective currency"""

    fund: str
    value: Optional[float]  # None when the final conversion failed
    method: str  # "units" or "amounts"
    latest_price: Optional[float] = None
    latest_currency: Optional[str] = None
    total_units: Optional[float] = None


@dataclass
class ObjectiveProgress:
    """Objective plus the computed current portfolio value"""

    target_amount: float
    currency: str
    current_total: float
    funds: List[FundValuation] = field(default_factory=list)
