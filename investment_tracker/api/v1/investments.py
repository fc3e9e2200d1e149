"""Ledger endpoints - list, add, delete and bulk import investments"""

import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from investment_tracker.api.v1.schemas import ImportRequest, ImportResponse, InvestmentCreate, InvestmentResponse
from investment_tracker.api.dependencies import get_request_id, get_tracker
from investment_tracker.domain.exceptions import NotFoundError, ValidationError
from investment_tracker.services.tracker import PortfolioTracker

router = APIRouter()


@router.get("/investments", response_model=List[InvestmentResponse])
def list_investments(tracker: PortfolioTracker = Depends(get_tracker)):
    """All investments, newest first"""
    return [InvestmentResponse.from_record(r) for r in tracker.list_investments()]


@router.post("/investments", response_model=InvestmentResponse, status_code=status.HTTP_201_CREATED)
def create_investment(
    request_body: InvestmentCreate,
    request: Request,
    tracker: PortfolioTracker = Depends(get_tracker),
):
    """
    Record a purchase or sale.

    Either amount, or unitPrice and units, must be given. Negative units
    record a sale and produce a negative amount.
    """
    request_id = get_request_id(request)
    try:
        record = tracker.add_investment(request_body.model_dump())
    except ValidationError as e:
        logging.warning(f"Invalid investment: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return InvestmentResponse.from_record(record)


@router.delete("/investments/{investment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_investment(
    investment_id: str,
    request: Request,
    tracker: PortfolioTracker = Depends(get_tracker),
):
    """Remove an investment by id"""
    request_id = get_request_id(request)
    try:
        tracker.delete_investment(investment_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Investment not found")
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/import", response_model=ImportResponse)
def import_investments(
    request_body: ImportRequest,
    request: Request,
    tracker: PortfolioTracker = Depends(get_tracker),
):
    """
    Replace every investment with the uploaded set.

    Entries missing required fields are skipped; the response reports how
    many were imported out of how many were provided.
    """
    request_id = get_request_id(request)
    try:
        imported, provided = tracker.import_investments(request_body.payloads())
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ImportResponse(imported=imported, provided=provided)
