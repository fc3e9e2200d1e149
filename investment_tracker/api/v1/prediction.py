"""Prediction endpoints - trigger a time-to-goal forecast and poll for it"""

from fastapi import APIRouter, BackgroundTasks, Depends, status

from investment_tracker.api.v1.schemas import PredictionResponse, PredictionTriggerResponse
from investment_tracker.api.dependencies import get_tracker
from investment_tracker.services.tracker import PortfolioTracker

router = APIRouter()


@router.get("/prediction", response_model=PredictionResponse)
def get_prediction(tracker: PortfolioTracker = Depends(get_tracker)):
    """Latest forecast text and whether a generation is in flight"""
    state = tracker.prediction
    return PredictionResponse(
        prediction=state.text,
        is_generating=state.is_generating,
        prediction_id=state.generation_id,
    )


@router.post("/prediction", response_model=PredictionTriggerResponse, status_code=status.HTTP_202_ACCEPTED)
def trigger_prediction(
    background_tasks: BackgroundTasks,
    tracker: PortfolioTracker = Depends(get_tracker),
):
    """
    Start forecast generation in the background.

    Always acknowledged. Nothing starts when there is no objective, no
    investments, or a generation is already running; poll GET /prediction
    for the result.
    """
    generation = tracker.start_prediction()
    if generation is None:
        return PredictionTriggerResponse(message="Prediction not started", accepted=False)

    background_tasks.add_task(tracker.run_prediction, generation)
    return PredictionTriggerResponse(message="Prediction generation started", accepted=True)
