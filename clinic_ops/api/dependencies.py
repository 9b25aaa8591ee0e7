"""FastAPI dependencies for dependency injection."""
from fastapi import Request

from clinic_ops.services.actions import ClinicActions
from clinic_ops.services.engine import ClinicEngine


def get_engine(request: Request) -> ClinicEngine:
    """Engine built for this application instance."""
    return request.app.state.engine


def get_actions(request: Request) -> ClinicActions:
    """Authorized action facade dependency."""
    return request.app.state.engine.actions
