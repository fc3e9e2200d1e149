"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional

from investment_tracker.domain.models import FundValuation, InvestmentRecord, ObjectiveProgress


class CamelModel(BaseModel):
    """Serializes snake_case fields as camelCase JSON"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvestmentCreate(CamelModel):
    """Request body for POST /api/investments; numeric fields are checked by the ledger"""

    currency: Optional[str] = None
    fund: Optional[str] = None
    platform: Optional[str] = None
    date: Optional[str] = None
    amount: Any = None
    unit_price: Any = None
    units: Any = None


class InvestmentResponse(CamelModel):
    """Single investment record"""

    id: str
    timestamp: int
    amount: float
    currency: str
    fund: str
    platform: str
    date: str
    unit_price: Optional[float] = None
    units: Optional[float] = None
    is_sale: bool = False

    @classmethod
    def from_record(cls, record: InvestmentRecord) -> "InvestmentResponse":
        return cls(
            id=record.id,
            timestamp=record.timestamp,
            amount=record.amount,
            currency=record.currency,
            fund=record.fund,
            platform=record.platform,
            date=record.date,
            unit_price=record.unit_price,
            units=record.units,
            is_sale=record.is_sale,
        )


class ImportItem(CamelModel):
    """Loosely typed import row; numeric fields may arrive as strings"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    currency: Any = None
    fund: Any = None
    platform: Any = None
    date: Any = None
    amount: Any = None
    unit_price: Any = None
    units: Any = None


class ImportRequest(BaseModel):
    """Request body for POST /api/import"""

    investments: List[Any]

    def payloads(self) -> List[Optional[Dict[str, Any]]]:
        """Snake_case payload per entry; None for entries that are not objects"""
        return [
            ImportItem.model_validate(item).model_dump() if isinstance(item, dict) else None
            for item in self.investments
        ]


class ImportResponse(BaseModel):
    """Response for POST /api/import"""

    imported: int
    provided: int


class ObjectiveRequest(CamelModel):
    """Request body for POST /api/objective"""

    target_amount: Any = None
    currency: Any = None


class ObjectiveResponse(CamelModel):
    """Stored objective"""

    target_amount: float
    currency: str


class FundValueSchema(CamelModel):
    """Valuation of one fund"""

    fund: str
    value: Optional[float] = None
    method: str
    latest_price: Optional[float] = None
    latest_currency: Optional[str] = None
    total_units: Optional[float] = None

    @classmethod
    def from_valuation(cls, valuation: FundValuation) -> "FundValueSchema":
        return cls(
            fund=valuation.fund,
            value=valuation.value,
            method=valuation.method,
            latest_price=valuation.latest_price,
            latest_currency=valuation.latest_currency,
            total_units=valuation.total_units,
        )


class ObjectiveProgressResponse(CamelModel):
    """Response for GET /api/objective"""

    target_amount: float
    currency: str
    current_total: float
    funds: List[FundValueSchema] = Field(default_factory=list)

    @classmethod
    def from_progress(cls, progress: ObjectiveProgress) -> "ObjectiveProgressResponse":
        return cls(
            target_amount=progress.target_amount,
            currency=progress.currency,
            current_total=progress.current_total,
            funds=[FundValueSchema.from_valuation(f) for f in progress.funds],
        )


class RatesResponse(BaseModel):
    """Response for GET /api/rates"""

    date: Optional[str] = None
    rates: Dict[str, float]


class PredictionResponse(CamelModel):
    """Response for GET /api/prediction"""

    prediction: Optional[str] = None
    is_generating: bool
    prediction_id: Optional[str] = None


class PredictionTriggerResponse(BaseModel):
    """Response for POST /api/prediction"""

    message: str
    accepted: bool
