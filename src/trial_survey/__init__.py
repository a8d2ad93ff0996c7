"""trial_survey — schema-driven survey engine for a 14-day field trial.

Public API:
    SurveyController      — drives one participant from baseline to trial completion
    SchemaStore           — loads the YAML question schemas into typed models
    VisibilityResolver    — decides which questions are active for a draft
    AnswerValidator       — per-type answer checks, first-failure form validation
    ParticipantRepository — profile / entry-log persistence over a key-value store
    KeyValueStore         — ABC for the persistence backend
    InMemoryKeyValueStore — dict-backed store for tests and simulations

Errors:
    ValidationError, PersistenceError, InitializationError
"""

from trial_survey.controller import SurveyController
from trial_survey.errors import (
    InitializationError,
    PersistenceError,
    SurveyError,
    ValidationError,
)
from trial_survey.ids import generate_participant_id
from trial_survey.models.records import BaselineProfile, DailyEntry
from trial_survey.models.session import (
    DashboardStep,
    FormStep,
    ParticipantSession,
    Phase,
    QuestionPayload,
    StepResult,
)
from trial_survey.repository import (
    InMemoryKeyValueStore,
    KeyValueStore,
    ParticipantRepository,
)
from trial_survey.schema import SchemaStore
from trial_survey.validator import AnswerValidator
from trial_survey.visibility import VisibilityResolver

__all__ = [
    # Controller & schema
    "SurveyController",
    "SchemaStore",
    "VisibilityResolver",
    "AnswerValidator",
    # Persistence
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "ParticipantRepository",
    # Records / session
    "BaselineProfile",
    "DailyEntry",
    "ParticipantSession",
    "Phase",
    "QuestionPayload",
    "FormStep",
    "DashboardStep",
    "StepResult",
    # Ids
    "generate_participant_id",
    # Errors
    "SurveyError",
    "ValidationError",
    "PersistenceError",
    "InitializationError",
]
