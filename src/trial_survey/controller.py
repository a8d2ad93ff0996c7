"""SurveyController — orchestrates one participant's trial.

The controller is the only stateful component of the SDK.  It owns a single
:class:`ParticipantSession` and drives it through the pure transitions in
:mod:`trial_survey.transitions`; the schema store, visibility resolver and
validator it consults are pure.

Lifecycle::

    controller = SurveyController(schema, ParticipantRepository(kv))
    step = await controller.start()                 # new participant
    controller.set_answer("age_range", "26-35")
    step = await controller.submit_baseline()       # -> dashboard
    controller.begin_entry()
    controller.set_answer("date", "2024-06-01")
    ...
    step = await controller.submit_entry()          # -> dashboard / trial complete

Rules enforced here:
  - the profile and the entry log are read exactly once, on ``start``
  - every submit validates first; nothing is written for an invalid form
  - every submit performs one full-structure write, never a delta
  - while a write is in flight a second submit is refused (re-entrancy guard)
  - a failed or cancelled write leaves phase, draft and data untouched and
    surfaces a retryable error notice; there is no automatic retry
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Awaitable, Callable

from trial_survey.constants import (
    BASELINE_SAVE_FAILED_MESSAGE,
    ENTRY_SAVE_FAILED_MESSAGE,
    MAX_ENTRIES,
    PHASE_NAMES,
)
from trial_survey.errors import InitializationError, PersistenceError, ValidationError
from trial_survey.ids import generate_participant_id
from trial_survey.models.question import Question
from trial_survey.models.records import BaselineProfile, DailyEntry, next_entry_id, utc_now
from trial_survey.models.session import (
    DashboardStep,
    FormStep,
    HistoryItem,
    ParticipantSession,
    Phase,
    QuestionPayload,
    StepResult,
)
from trial_survey.payload import to_payload
from trial_survey.repository import ParticipantRepository
from trial_survey.schema import SchemaStore
from trial_survey.transitions import (
    AnswerChanged,
    BaselineSaved,
    EntryCancelled,
    EntrySaved,
    EntryStarted,
    Event,
    NoticeDismissed,
    PersistenceFailed,
    SessionLoaded,
    SubmitStarted,
    ValidationFailed,
    apply,
)
from trial_survey.validator import AnswerValidator
from trial_survey.visibility import VisibilityResolver

logger = logging.getLogger(__name__)


class SurveyController:
    """Drives a participant session from first load to trial completion.

    Args:
        schema: a loaded :class:`SchemaStore`
        repo: persistence for the participant's profile and entry log
        validator: answer validator (a default one is built if omitted)
        id_factory: produces a participant id for new participants
        clock: returns the current UTC time (stamps ``startDate``/``submittedAt``)
        today: returns the participant's local date (latest allowed answer date)
    """

    def __init__(
        self,
        schema: SchemaStore,
        repo: ParticipantRepository,
        *,
        validator: AnswerValidator | None = None,
        id_factory: Callable[[], str] = generate_participant_id,
        clock: Callable[[], datetime] = utc_now,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._schema = schema
        self._repo = repo
        self._resolver = VisibilityResolver()
        self._validator = validator or AnswerValidator(self._resolver, today=today)
        self._id_factory = id_factory
        self._clock = clock
        self._today = today
        self._session: ParticipantSession | None = None

    # ==================================================================
    # Session state
    # ==================================================================

    @property
    def session(self) -> ParticipantSession:
        """The current session value.  Raises ``ValueError`` before ``start``."""
        if self._session is None:
            raise ValueError("Session not started")
        return self._session

    @property
    def participant_id(self) -> str:
        return self.session.participant_id

    def _dispatch(self, event: Event) -> ParticipantSession:
        self._session = apply(self.session, event)
        return self._session

    # ==================================================================
    # Lifecycle
    # ==================================================================

    async def start(self, participant_id: str | None = None) -> StepResult:
        """Load the participant's data and enter the first phase.

        A new id is generated when ``participant_id`` is None.

        Raises:
            InitializationError: if id generation or the initial load fails.
        """
        if self._session is not None:
            raise ValueError("Session already started")

        if participant_id is None:
            try:
                participant_id = self._id_factory()
            except InitializationError:
                raise
            except Exception as exc:
                raise InitializationError("Could not generate a participant id") from exc

        try:
            baseline = await self._repo.load_baseline(participant_id)
            entries = await self._repo.load_entries(participant_id)
        except PersistenceError as exc:
            raise InitializationError(
                f"Failed to load data for participant {participant_id}"
            ) from exc

        self._session = apply(
            ParticipantSession(participant_id=participant_id),
            SessionLoaded(baseline=baseline, entries=entries),
        )
        logger.info(
            "Session started: participant=%s phase=%s entries=%d",
            participant_id, self._session.phase.value, len(entries),
        )
        return self.current_step()

    # ==================================================================
    # Draft editing
    # ==================================================================

    def set_answer(self, qid: str, value: Any) -> StepResult:
        """Record a raw input for ``qid`` on the open form.

        Raises:
            ValueError: if no form is open or ``qid`` is not on it.
        """
        form = self._require_open_form()
        self._lookup(form, qid)
        self._dispatch(AnswerChanged(qid=qid, value=value))
        return self.current_step()

    def dismiss_notice(self) -> StepResult:
        self._dispatch(NoticeDismissed())
        return self.current_step()

    # ==================================================================
    # Baseline
    # ==================================================================

    async def submit_baseline(self) -> StepResult:
        """Validate the baseline draft and persist the profile.

        On success the session moves to the dashboard.  Validation and
        persistence failures leave the session in ``baseline_capture`` with
        an error notice.
        """
        session = self.session
        if session.phase != Phase.BASELINE_CAPTURE:
            raise ValueError(
                f"submit_baseline is only valid during baseline_capture, "
                f"not '{session.phase.value}'"
            )
        if session.submitting:
            logger.warning("Baseline submit ignored: write already in flight")
            return self.current_step()

        questions = self._schema.questions("baseline")
        try:
            answers = self._validated_answers(questions, session.draft)
        except ValidationError as err:
            self._dispatch(ValidationFailed(qid=err.qid, message=err.message))
            return self.current_step()

        profile = BaselineProfile(
            user_id=session.participant_id,
            start_date=self._clock(),
            answers=answers,
        )
        saved = await self._persist(
            self._repo.save_baseline(session.participant_id, profile),
            BASELINE_SAVE_FAILED_MESSAGE,
        )
        if not saved:
            return self.current_step()

        self._dispatch(BaselineSaved(profile=profile))
        logger.info("Baseline saved for %s", session.participant_id)
        return self.current_step()

    async def amend_baseline(self, answers: dict[str, Any]) -> StepResult:
        """Re-submit the baseline from the dashboard, replacing the stored answers.

        The original ``start_date`` is kept.
        """
        session = self.session
        if session.phase not in (Phase.DAILY_DASHBOARD, Phase.TRIAL_COMPLETE):
            raise ValueError(
                f"amend_baseline is only valid on the dashboard, not '{session.phase.value}'"
            )
        if session.baseline is None:
            raise ValueError(f"Baseline not found for participant {session.participant_id}")
        if session.submitting:
            logger.warning("Baseline amendment ignored: write already in flight")
            return self.current_step()

        questions = self._schema.questions("baseline")
        try:
            cleaned = self._validated_answers(questions, answers)
        except ValidationError as err:
            self._dispatch(ValidationFailed(qid=err.qid, message=err.message))
            return self.current_step()

        profile = session.baseline.model_copy(update={"answers": cleaned})
        saved = await self._persist(
            self._repo.save_baseline(session.participant_id, profile),
            BASELINE_SAVE_FAILED_MESSAGE,
        )
        if not saved:
            return self.current_step()

        self._dispatch(BaselineSaved(profile=profile, amended=True))
        logger.info("Baseline amended for %s", session.participant_id)
        return self.current_step()

    # ==================================================================
    # Daily entries
    # ==================================================================

    def begin_entry(self) -> StepResult:
        """Open a fresh daily form.  A no-op once the trial cap is reached."""
        session = self.session
        if session.phase not in (Phase.DAILY_DASHBOARD, Phase.TRIAL_COMPLETE):
            raise ValueError(
                f"begin_entry is only valid on the dashboard, not '{session.phase.value}'"
            )
        self._dispatch(EntryStarted())
        return self.current_step()

    def cancel_entry(self) -> StepResult:
        """Discard the open daily form and return to the dashboard.  Never writes."""
        self._dispatch(EntryCancelled())
        return self.current_step()

    async def submit_entry(self) -> StepResult:
        """Validate the daily draft, append it to the log and persist the full log."""
        session = self.session
        if session.phase != Phase.ENTRY_IN_PROGRESS:
            raise ValueError(
                f"submit_entry is only valid during entry_in_progress, "
                f"not '{session.phase.value}'"
            )
        if session.submitting:
            logger.warning("Entry submit ignored: write already in flight")
            return self.current_step()
        if session.entry_count >= MAX_ENTRIES:
            raise ValueError(f"Entry log already holds {MAX_ENTRIES} entries")

        questions = self._schema.questions("daily")
        try:
            answers = self._validated_answers(questions, session.draft)
        except ValidationError as err:
            self._dispatch(ValidationFailed(qid=err.qid, message=err.message))
            return self.current_step()

        now = self._clock()
        entry = DailyEntry(
            entry_id=next_entry_id(session.entries, now),
            submitted_at=now,
            answers=answers,
        )
        updated = [*session.entries, entry]

        saved = await self._persist(
            self._repo.save_entries(session.participant_id, updated),
            ENTRY_SAVE_FAILED_MESSAGE,
        )
        if not saved:
            return self.current_step()

        self._dispatch(EntrySaved(entries=updated))
        logger.info(
            "Entry %d saved for %s (%d/%d)",
            entry.entry_id, session.participant_id, len(updated), MAX_ENTRIES,
        )
        return self.current_step()

    # ==================================================================
    # Views
    # ==================================================================

    def current_step(self) -> StepResult:
        """Return the open form, or the dashboard when no form is open."""
        if self.session.open_form is not None:
            return self._form_step()
        return self.dashboard()

    def current_questions(self) -> list[QuestionPayload]:
        """Render payloads for the active questions of the open form."""
        session = self.session
        form = session.open_form
        if form is None:
            return []
        today = self._today()
        active = self._resolver.active_questions(self._schema.questions(form), session.draft)
        return [to_payload(q, session.draft.get(q.qid), today=today) for q in active]

    def dashboard(self) -> DashboardStep:
        session = self.session
        count = session.entry_count
        history = [
            HistoryItem(
                day=index + 1,
                entry_id=entry.entry_id,
                submitted_at=entry.to_record()["submittedAt"],
                date=_text(entry.answers.get("date")),
                time_applied=_text(entry.answers.get("time_applied")),
                protected=entry.answers.get("got_bitten_treated") == "No",
                answers=dict(entry.answers),
            )
            for index, entry in enumerate(session.entries)
        ]
        history.reverse()
        phase = session.phase
        if phase not in (Phase.DAILY_DASHBOARD, Phase.TRIAL_COMPLETE):
            # A form is open on top of the dashboard
            phase = Phase.TRIAL_COMPLETE if session.is_trial_complete else Phase.DAILY_DASHBOARD
        return DashboardStep(
            phase=phase,
            phase_name=PHASE_NAMES[phase.value],
            participant_id=session.participant_id,
            entry_count=count,
            max_entries=MAX_ENTRIES,
            progress_percent=session.progress_percent,
            can_start_entry=session.can_start_entry,
            day_number=session.day_number,
            trial_complete=session.is_trial_complete,
            history=history,
            notice=session.notice,
        )

    def _form_step(self) -> FormStep:
        session = self.session
        form = session.open_form
        return FormStep(
            form=form,
            phase=session.phase,
            phase_name=PHASE_NAMES[session.phase.value],
            participant_id=session.participant_id,
            day_number=session.day_number if form == "daily" else None,
            questions=self.current_questions(),
            notice=session.notice,
            submitting=session.submitting,
        )

    # ==================================================================
    # Internal helpers
    # ==================================================================

    def _require_open_form(self) -> str:
        form = self.session.open_form
        if form is None:
            raise ValueError(
                f"No form is open (phase '{self.session.phase.value}'); "
                f"answers are only valid during baseline_capture or entry_in_progress"
            )
        return form

    def _lookup(self, form: str, qid: str) -> Question:
        try:
            return self._schema.get_question(form, qid)
        except KeyError:
            raise ValueError(f"Question not found: {form}/{qid}") from None

    async def _persist(self, write: Awaitable[None], failure_message: str) -> bool:
        """Run one write with the re-entrancy guard raised.

        Returns False after surfacing ``failure_message`` if the write fails.
        A cancelled write (e.g. a host timeout) is reported the same way
        before the cancellation propagates, so the form stays retryable.
        """
        self._dispatch(SubmitStarted())
        try:
            await write
        except PersistenceError:
            self._dispatch(PersistenceFailed(message=failure_message))
            return False
        except asyncio.CancelledError:
            logger.warning("Write cancelled for %s", self.session.participant_id)
            self._dispatch(PersistenceFailed(message=failure_message))
            raise
        return True

    def _validated_answers(
        self, questions: list[Question], draft: dict[str, Any]
    ) -> dict[str, Any]:
        """Return the cleaned answers for ``draft``.

        Raises:
            ValidationError: for the first invalid active question.
        """
        result = self._validator.validate_form(questions, draft)
        if not result.ok:
            logger.info("Validation failed at %s (%s)", result.qid, result.reason)
            raise ValidationError(result.qid, result.reason, result.message)
        return self._validator.clean_answers(questions, draft)


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None
