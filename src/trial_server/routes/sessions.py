"""Participant session endpoints — the rendering layer's whole workflow.

Every endpoint returns the current step (a ``FormStep`` or a
``DashboardStep``), so a client only ever renders whatever comes back.
Validation and save failures are not HTTP errors: they arrive as an error
``notice`` on the returned step, with the draft intact.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from trial_survey.controller import SurveyController
from trial_survey.models.session import QuestionPayload, StepResult

from trial_server.dependencies import get_controller, get_registry
from trial_server.registry import ControllerRegistry

router = APIRouter(tags=["sessions"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class OpenSessionRequest(BaseModel):
    """Body for POST /sessions.  Omit ``participant_id`` to enrol someone new."""
    participant_id: str | None = None


class AnswerRequest(BaseModel):
    """Body for PUT /sessions/{participant_id}/answers/{qid}."""
    value: Any = None


class AmendBaselineRequest(BaseModel):
    """Body for PUT /sessions/{participant_id}/baseline."""
    answers: dict[str, Any]


# ------------------------------------------------------------------
# Session lifecycle
# ------------------------------------------------------------------

@router.post("/sessions", status_code=201)
async def open_session(
    body: OpenSessionRequest,
    registry: ControllerRegistry = Depends(get_registry),
) -> StepResult:
    """Open a session, loading stored data for a returning participant.

    Returns 201 with the first step.  Raises 409 if a session for the
    participant is already open and 503 if stored data cannot be loaded.
    """
    return await registry.open(body.participant_id)


@router.get("/sessions/{participant_id}")
async def get_step(controller: SurveyController = Depends(get_controller)) -> StepResult:
    """Return the current step without changing anything."""
    return controller.current_step()


@router.delete("/sessions/{participant_id}", status_code=204)
async def close_session(
    participant_id: str,
    registry: ControllerRegistry = Depends(get_registry),
) -> None:
    """Forget the open session; stored data is kept."""
    registry.close(participant_id)


@router.get("/sessions/{participant_id}/questions")
async def get_questions(
    controller: SurveyController = Depends(get_controller),
) -> list[QuestionPayload]:
    """Return the active questions of the open form (empty on the dashboard)."""
    return controller.current_questions()


# ------------------------------------------------------------------
# Draft editing
# ------------------------------------------------------------------

@router.put("/sessions/{participant_id}/answers/{qid}")
async def set_answer(
    qid: str,
    body: AnswerRequest,
    controller: SurveyController = Depends(get_controller),
) -> StepResult:
    """Record a raw input on the open form.

    The returned step reflects visibility changes the answer causes.
    """
    return controller.set_answer(qid, body.value)


@router.delete("/sessions/{participant_id}/notice")
async def dismiss_notice(controller: SurveyController = Depends(get_controller)) -> StepResult:
    return controller.dismiss_notice()


# ------------------------------------------------------------------
# Baseline
# ------------------------------------------------------------------

@router.post("/sessions/{participant_id}/baseline")
async def submit_baseline(
    controller: SurveyController = Depends(get_controller),
) -> StepResult:
    """Validate and save the baseline draft."""
    return await controller.submit_baseline()


@router.put("/sessions/{participant_id}/baseline")
async def amend_baseline(
    body: AmendBaselineRequest,
    controller: SurveyController = Depends(get_controller),
) -> StepResult:
    """Replace the stored baseline answers from the dashboard."""
    return await controller.amend_baseline(body.answers)


# ------------------------------------------------------------------
# Daily entries
# ------------------------------------------------------------------

@router.post("/sessions/{participant_id}/entries/new")
async def begin_entry(controller: SurveyController = Depends(get_controller)) -> StepResult:
    """Open a daily form.  Once the trial is complete the dashboard comes back unchanged."""
    return controller.begin_entry()


@router.post("/sessions/{participant_id}/entries/cancel")
async def cancel_entry(controller: SurveyController = Depends(get_controller)) -> StepResult:
    """Discard the open daily form without saving."""
    return controller.cancel_entry()


@router.post("/sessions/{participant_id}/entries")
async def submit_entry(
    controller: SurveyController = Depends(get_controller),
) -> StepResult:
    """Validate the daily draft and append it to the entry log."""
    return await controller.submit_entry()
