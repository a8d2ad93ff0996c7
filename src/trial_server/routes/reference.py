"""Schema reference endpoints — read-only views of the question schemas.

These expose the questions loaded from ``v1/questions/`` as render
payloads, ignoring visibility, so a client can prefetch labels and options.
"""

from fastapi import APIRouter, Depends

from trial_survey.constants import MAX_ENTRIES, SCHEMA_PHASES, TRIAL_LENGTH_DAYS
from trial_survey.models.session import QuestionPayload
from trial_survey.payload import to_payload
from trial_survey.schema import SchemaStore

from trial_server.dependencies import get_schema

router = APIRouter(prefix="/schema", tags=["schema"])


@router.get("")
def schema_summary(schema: SchemaStore = Depends(get_schema)) -> dict:
    """Return the schema phases with their question order and the trial limits."""
    return {
        "phases": {phase: schema.order(phase) for phase in SCHEMA_PHASES},
        "max_entries": MAX_ENTRIES,
        "trial_length_days": TRIAL_LENGTH_DAYS,
    }


@router.get("/{phase}")
def list_questions(
    phase: str,
    schema: SchemaStore = Depends(get_schema),
) -> list[QuestionPayload]:
    """Return every question of ``phase`` in schema order.

    Raises 404 for an unknown phase.
    """
    return [to_payload(q) for q in schema.questions(phase)]
