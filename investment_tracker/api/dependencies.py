"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from investment_tracker.services.tracker import PortfolioTracker


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_tracker(request: Request) -> PortfolioTracker:
    """Provide the application's single tracker instance"""
    return request.app.state.tracker
