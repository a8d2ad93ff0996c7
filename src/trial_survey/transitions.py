"""Pure state transitions for a participant session.

Every mutation of survey state is expressed as ``apply(session, event)``,
which returns a new :class:`ParticipantSession` and never touches its
input.  No I/O happens here: the controller performs reads and writes and
reports their outcome as events.

Phase transitions (``*`` marks the re-entrancy guard)::

    new_participant --SessionLoaded--> baseline_capture | daily_dashboard | trial_complete
    baseline_capture --BaselineSaved--> daily_dashboard
    daily_dashboard --EntryStarted--> entry_in_progress       (only below the cap)
    entry_in_progress --EntryCancelled--> daily_dashboard     (no write)
    entry_in_progress --EntrySaved--> daily_dashboard | trial_complete
    * --SubmitStarted--> same phase, submitting=True
    * --PersistenceFailed--> same phase, draft kept, error notice

``trial_complete`` is the dashboard with the "new entry" affordance
disabled: ``EntryStarted`` there returns the session unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

from trial_survey.constants import (
    BASELINE_AMENDED_MESSAGE,
    BASELINE_SAVED_MESSAGE,
    ENTRY_SAVED_MESSAGE,
    MAX_ENTRIES,
    TRIAL_COMPLETE_MESSAGE,
)
from trial_survey.models.records import BaselineProfile, DailyEntry
from trial_survey.models.session import Notice, ParticipantSession, Phase

logger = logging.getLogger(__name__)

_FORM_PHASES = (Phase.BASELINE_CAPTURE, Phase.ENTRY_IN_PROGRESS)
_DASHBOARD_PHASES = (Phase.DAILY_DASHBOARD, Phase.TRIAL_COMPLETE)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SessionLoaded:
    """Initial load finished; ``baseline`` is None for a new participant."""

    baseline: BaselineProfile | None
    entries: list[DailyEntry]


@dataclass(frozen=True)
class AnswerChanged:
    qid: str
    value: Any


@dataclass(frozen=True)
class EntryStarted:
    pass


@dataclass(frozen=True)
class EntryCancelled:
    pass


@dataclass(frozen=True)
class NoticeDismissed:
    pass


@dataclass(frozen=True)
class SubmitStarted:
    pass


@dataclass(frozen=True)
class ValidationFailed:
    qid: str
    message: str


@dataclass(frozen=True)
class BaselineSaved:
    profile: BaselineProfile
    # True when an existing profile was re-submitted from the dashboard
    amended: bool = False


@dataclass(frozen=True)
class EntrySaved:
    """The full, updated log was written."""

    entries: list[DailyEntry]


@dataclass(frozen=True)
class PersistenceFailed:
    message: str


Event = Union[
    SessionLoaded,
    AnswerChanged,
    EntryStarted,
    EntryCancelled,
    NoticeDismissed,
    SubmitStarted,
    ValidationFailed,
    BaselineSaved,
    EntrySaved,
    PersistenceFailed,
]


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def dashboard_phase(entries: list[DailyEntry]) -> Phase:
    """The dashboard variant for a log of this length."""
    return Phase.TRIAL_COMPLETE if len(entries) >= MAX_ENTRIES else Phase.DAILY_DASHBOARD


def apply(session: ParticipantSession, event: Event) -> ParticipantSession:
    """Return the session that results from ``event``.

    Raises:
        ValueError: if the event is not valid in the session's phase.
    """
    if isinstance(event, SessionLoaded):
        return _on_loaded(session, event)
    if isinstance(event, AnswerChanged):
        return _on_answer(session, event)
    if isinstance(event, EntryStarted):
        return _on_entry_started(session)
    if isinstance(event, EntryCancelled):
        return _on_entry_cancelled(session)
    if isinstance(event, NoticeDismissed):
        return session.model_copy(update={"notice": None})
    if isinstance(event, SubmitStarted):
        return _on_submit_started(session)
    if isinstance(event, ValidationFailed):
        return session.model_copy(
            update={"notice": Notice(kind="error", message=event.message, qid=event.qid)}
        )
    if isinstance(event, BaselineSaved):
        return _on_baseline_saved(session, event)
    if isinstance(event, EntrySaved):
        return _on_entry_saved(session, event)
    if isinstance(event, PersistenceFailed):
        return session.model_copy(
            update={
                "submitting": False,
                "notice": Notice(kind="error", message=event.message),
            }
        )
    raise ValueError(f"Unknown event: {event!r}")


def _on_loaded(session: ParticipantSession, event: SessionLoaded) -> ParticipantSession:
    if session.phase != Phase.NEW_PARTICIPANT:
        raise ValueError(f"Session already loaded (phase '{session.phase.value}')")
    if event.baseline is None:
        phase = Phase.BASELINE_CAPTURE
    else:
        phase = dashboard_phase(event.entries)
    return session.model_copy(
        update={
            "phase": phase,
            "baseline": event.baseline,
            "entries": list(event.entries),
            "draft": {},
        }
    )


def _on_answer(session: ParticipantSession, event: AnswerChanged) -> ParticipantSession:
    if session.phase not in _FORM_PHASES:
        raise ValueError(
            f"Answers are only valid during baseline_capture or entry_in_progress, "
            f"not '{session.phase.value}'"
        )
    notice = session.notice
    if notice is not None and notice.kind == "error":
        notice = None
    return session.model_copy(
        update={"draft": {**session.draft, event.qid: event.value}, "notice": notice}
    )


def _on_entry_started(session: ParticipantSession) -> ParticipantSession:
    if not session.can_start_entry:
        # The affordance is disabled, not an error.
        logger.info(
            "New entry refused for %s (phase=%s, entries=%d)",
            session.participant_id, session.phase.value, session.entry_count,
        )
        return session
    return session.model_copy(
        update={"phase": Phase.ENTRY_IN_PROGRESS, "draft": {}, "notice": None}
    )


def _on_entry_cancelled(session: ParticipantSession) -> ParticipantSession:
    if session.phase != Phase.ENTRY_IN_PROGRESS:
        return session
    if session.submitting:
        logger.info("Cancel refused for %s: write in flight", session.participant_id)
        return session
    return session.model_copy(
        update={"phase": dashboard_phase(session.entries), "draft": {}, "notice": None}
    )


def _on_submit_started(session: ParticipantSession) -> ParticipantSession:
    if session.submitting:
        raise ValueError("A submit is already in progress")
    return session.model_copy(update={"submitting": True})


def _on_baseline_saved(session: ParticipantSession, event: BaselineSaved) -> ParticipantSession:
    if event.amended:
        if session.phase not in _DASHBOARD_PHASES:
            raise ValueError(
                f"Baseline amendment is only valid on the dashboard, not '{session.phase.value}'"
            )
        return session.model_copy(
            update={
                "baseline": event.profile,
                "submitting": False,
                "notice": Notice(kind="success", message=BASELINE_AMENDED_MESSAGE),
            }
        )

    if session.phase != Phase.BASELINE_CAPTURE:
        raise ValueError(
            f"Baseline submit is only valid during baseline_capture, not '{session.phase.value}'"
        )
    return session.model_copy(
        update={
            "phase": dashboard_phase(session.entries),
            "baseline": event.profile,
            "draft": {},
            "submitting": False,
            "notice": Notice(kind="success", message=BASELINE_SAVED_MESSAGE),
        }
    )


def _on_entry_saved(session: ParticipantSession, event: EntrySaved) -> ParticipantSession:
    if session.phase != Phase.ENTRY_IN_PROGRESS:
        raise ValueError(
            f"Entry submit is only valid during entry_in_progress, not '{session.phase.value}'"
        )
    if len(event.entries) > MAX_ENTRIES:
        raise ValueError(f"Entry log exceeds the trial cap of {MAX_ENTRIES}")
    phase = dashboard_phase(event.entries)
    message = TRIAL_COMPLETE_MESSAGE if phase == Phase.TRIAL_COMPLETE else ENTRY_SAVED_MESSAGE
    return session.model_copy(
        update={
            "phase": phase,
            "entries": list(event.entries),
            "draft": {},
            "submitting": False,
            "notice": Notice(kind="success", message=message),
        }
    )
