"""Public model re-exports for trial_survey.

Consumers should import from ``trial_survey.models`` rather than
reaching into sub-modules directly.
"""

# --- Questions ---
from trial_survey.models.question import (
    BaseQuestion,
    BinarySelectQuestion,
    DateQuestion,
    FreeTextQuestion,
    LikertQuestion,
    MultiNumericQuestion,
    NumericQuestion,
    Question,
    ScaleQuestion,
    SingleSelectQuestion,
    SingleSelectWithTextQuestion,
    TimeQuestion,
    VisibilityRule,
    question_mapper,
)

# --- Records ---
from trial_survey.models.records import (
    BaselineProfile,
    DailyEntry,
    dump_entries,
    dump_profile,
    load_entries,
    load_profile,
)

# --- Validation results ---
from trial_survey.models.result import Invalid, Valid, ValidationResult

# --- Session / step ---
from trial_survey.models.session import (
    DashboardStep,
    FormStep,
    HistoryItem,
    Notice,
    ParticipantSession,
    Phase,
    QuestionPayload,
    StepResult,
)

__all__ = [
    # Questions
    "BaseQuestion",
    "BinarySelectQuestion",
    "DateQuestion",
    "FreeTextQuestion",
    "LikertQuestion",
    "MultiNumericQuestion",
    "NumericQuestion",
    "Question",
    "ScaleQuestion",
    "SingleSelectQuestion",
    "SingleSelectWithTextQuestion",
    "TimeQuestion",
    "VisibilityRule",
    "question_mapper",
    # Records
    "BaselineProfile",
    "DailyEntry",
    "dump_entries",
    "dump_profile",
    "load_entries",
    "load_profile",
    # Validation
    "Invalid",
    "Valid",
    "ValidationResult",
    # Session
    "DashboardStep",
    "FormStep",
    "HistoryItem",
    "Notice",
    "ParticipantSession",
    "Phase",
    "QuestionPayload",
    "StepResult",
]
