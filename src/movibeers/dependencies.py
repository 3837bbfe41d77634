"""Shared FastAPI dependencies."""

from fastapi import Request

from movibeers.auth.dependencies import get_current_user_id
from movibeers.services import Services

__all__ = ["get_current_user_id", "get_services"]


def get_services(request: Request) -> Services:
    """The service graph built at startup."""
    return request.app.state.services
