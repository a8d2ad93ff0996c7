"""FastAPI dependency injection — provides the schema store and controllers."""

from fastapi import Request

from trial_survey.controller import SurveyController
from trial_survey.schema import SchemaStore

from trial_server.registry import ControllerRegistry


# ------------------------------------------------------------------
# Schema & registry, stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_schema(request: Request) -> SchemaStore:
    """Return the SchemaStore singleton from ``app.state``."""
    return request.app.state.schema


def get_registry(request: Request) -> ControllerRegistry:
    """Return the ControllerRegistry singleton from ``app.state``."""
    return request.app.state.registry


def get_controller(participant_id: str, request: Request) -> SurveyController:
    """Resolve the ``{participant_id}`` path parameter to its controller.

    Raises ``ValueError`` (→ 404) if no session is open for it.
    """
    return get_registry(request).get(participant_id)
