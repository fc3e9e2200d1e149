"""GET /api/rates - current exchange rate table"""

from fastapi import APIRouter, Depends

from investment_tracker.api.v1.schemas import RatesResponse
from investment_tracker.api.dependencies import get_tracker
from investment_tracker.services.tracker import PortfolioTracker

router = APIRouter()


@router.get("/rates", response_model=RatesResponse)
def get_rates(tracker: PortfolioTracker = Depends(get_tracker)):
    """RON value of one unit of each known currency, with the as-of label"""
    table = tracker.rates
    return RatesResponse(date=table.as_of, rates=dict(table.rates))
