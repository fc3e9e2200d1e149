"""Objective endpoints - set the goal and read progress towards it"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request

from investment_tracker.api.v1.schemas import ObjectiveProgressResponse, ObjectiveRequest, ObjectiveResponse
from investment_tracker.api.dependencies import get_request_id, get_tracker
from investment_tracker.domain.exceptions import ValidationError
from investment_tracker.services.tracker import PortfolioTracker

router = APIRouter()


@router.get("/objective", response_model=Optional[ObjectiveProgressResponse])
def get_objective(tracker: PortfolioTracker = Depends(get_tracker)):
    """
    Objective with the current portfolio value in the objective currency.

    Returns:
        null when no objective has been set
    """
    progress = tracker.objective_progress()
    if progress is None:
        return None
    return ObjectiveProgressResponse.from_progress(progress)


@router.post("/objective", response_model=ObjectiveResponse)
def set_objective(
    request_body: ObjectiveRequest,
    request: Request,
    tracker: PortfolioTracker = Depends(get_tracker),
):
    """Replace the objective"""
    request_id = get_request_id(request)
    try:
        objective = tracker.set_objective(request_body.target_amount, request_body.currency)
    except ValidationError as e:
        logging.warning(f"Invalid objective: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return ObjectiveResponse(target_amount=objective.target_amount, currency=objective.currency)
