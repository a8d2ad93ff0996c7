"""Session and step models — the contract between the controller and callers.

``ParticipantSession`` is the single explicit value that carries all
mutable survey state.  It is frozen: the functions in
:mod:`trial_survey.transitions` return updated copies instead of mutating
it, so the state machine can be tested without any rendering layer.

Step types returned to callers:
  - FormStep: an open form (baseline or daily) with its active questions
  - DashboardStep: progress, history and whether a new entry may be started
"""

from __future__ import annotations

import enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from trial_survey.constants import MAX_ENTRIES
from trial_survey.models.records import BaselineProfile, DailyEntry


class Phase(str, enum.Enum):
    """Lifecycle phases of a participant session.

    Transitions:
        new_participant -> baseline_capture   (no stored profile)
        new_participant -> daily_dashboard    (stored profile found)
        baseline_capture -> daily_dashboard   (baseline saved)
        daily_dashboard <-> entry_in_progress (new entry / cancel or save)
        entry_in_progress -> trial_complete   (14th entry saved)
    """

    NEW_PARTICIPANT = "new_participant"
    BASELINE_CAPTURE = "baseline_capture"
    DAILY_DASHBOARD = "daily_dashboard"
    ENTRY_IN_PROGRESS = "entry_in_progress"
    TRIAL_COMPLETE = "trial_complete"


class Notice(BaseModel):
    """The last user-facing message.  ``qid`` points at the offending question."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["error", "success"]
    message: str
    qid: str | None = None


class ParticipantSession(BaseModel):
    """All state for one participant's run through the trial."""

    model_config = ConfigDict(frozen=True)

    participant_id: str
    phase: Phase = Phase.NEW_PARTICIPANT
    # Raw inputs of the open form, keyed by qid; not yet validated
    draft: dict[str, Any] = Field(default_factory=dict)
    baseline: BaselineProfile | None = None
    entries: list[DailyEntry] = Field(default_factory=list)
    notice: Notice | None = None
    # Set while a store write is in flight
    submitting: bool = False

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def is_trial_complete(self) -> bool:
        return self.entry_count >= MAX_ENTRIES

    @property
    def can_start_entry(self) -> bool:
        """True when the "new entry" affordance should be enabled."""
        return (
            self.phase in (Phase.DAILY_DASHBOARD, Phase.TRIAL_COMPLETE)
            and not self.is_trial_complete
            and not self.submitting
        )

    @property
    def day_number(self) -> int:
        """Day shown on the open daily form ("Day N of 14")."""
        return min(self.entry_count + 1, MAX_ENTRIES)

    @property
    def progress_percent(self) -> int:
        return round(self.entry_count / MAX_ENTRIES * 100)

    @property
    def open_form(self) -> str | None:
        """Schema phase of the form being filled in, if any."""
        if self.phase == Phase.BASELINE_CAPTURE:
            return "baseline"
        if self.phase == Phase.ENTRY_IN_PROGRESS:
            return "daily"
        return None


# ---------------------------------------------------------------------------
# Rendering contract
# ---------------------------------------------------------------------------

class QuestionPayload(BaseModel):
    """Flattened question for the rendering layer.

    Carries only what the UI needs to draw a widget and pre-fill it; the
    typed question model stays inside the SDK.
    """

    qid: str
    label: str
    question_type: str
    required: bool
    help: str | None = None
    # Option strings for the select types
    options: list[str] | None = None
    # True when an "Other" button should reveal a free-text input
    allows_free_text: bool = False
    # [{label, unit}] for multi_numeric
    fields: list[dict] | None = None
    # {min, max, step, unit} for numeric; {min, max, min_label, max_label}
    # for scales; {max} for dates
    constraints: dict | None = None
    placeholder: str | None = None
    # Current draft value, if any
    value: Any = None


class FormStep(BaseModel):
    """An open form: render ``questions`` in order and wait for input."""

    type: Literal["form"] = "form"
    form: Literal["baseline", "daily"]
    phase: Phase
    phase_name: str
    participant_id: str
    day_number: int | None = None
    questions: list[QuestionPayload]
    notice: Notice | None = None
    submitting: bool = False


class HistoryItem(BaseModel):
    """One row of the dashboard's entry history."""

    day: int
    entry_id: int
    submitted_at: str
    date: str | None = None
    time_applied: str | None = None
    # True when the treated area was not bitten
    protected: bool
    answers: dict[str, Any]


class DashboardStep(BaseModel):
    """Dashboard view: progress and history, newest entry first."""

    type: Literal["dashboard"] = "dashboard"
    phase: Phase
    phase_name: str
    participant_id: str
    entry_count: int
    max_entries: int
    progress_percent: int
    can_start_entry: bool
    # Day the next entry would record
    day_number: int
    trial_complete: bool
    history: list[HistoryItem]
    notice: Notice | None = None


# Callers can match on step.type to dispatch rendering logic.
StepResult = FormStep | DashboardStep
