"""AnswerValidator — per-type legality and completeness checks.

The validator never raises for a bad answer.  Each check returns a
:class:`~trial_survey.models.result.ValidationResult`:

  - inactive questions are always ``Valid``; hidden questions are never
    enforced, required or not
  - a required, active question with no value is ``missing``; for
    multi_numeric any empty slot counts as no value
  - an optional question with no value is ``Valid``
  - a present value must still have the right shape for its type, whether
    the question is required or not

Form validation walks the active questions in schema order and stops at
the **first** failure, so the UI can focus one question at a time.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import date
from typing import Any, Callable, Iterable

from trial_survey.models.question import (
    BinarySelectQuestion,
    DateQuestion,
    FreeTextQuestion,
    MultiNumericQuestion,
    NumericQuestion,
    Question,
    ScaleQuestion,
    SingleSelectQuestion,
    SingleSelectWithTextQuestion,
    TimeQuestion,
)
from trial_survey.models.result import VALID, Invalid, Reason, ValidationResult
from trial_survey.visibility import VisibilityResolver

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$", re.ASCII)
_INT_RE = re.compile(r"^[+-]?\d+$", re.ASCII)
# ASCII decimal notation only: no "1_000", "inf" or non-ASCII digits
_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$", re.ASCII)


def is_empty(value: Any) -> bool:
    """True for absent, null, blank-string and empty-list values."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def parse_number(value: Any) -> float | None:
    """Parse a numeric answer (number or numeric string); None if malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _NUMBER_RE.match(text):
            return None
        num = float(text)
    else:
        return None
    return num if math.isfinite(num) else None


def parse_scale(value: Any) -> int | None:
    """Parse a scale answer (int or integer string); None if malformed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_RE.match(value.strip()):
        return int(value.strip())
    return None


def encode_number(value: Any) -> str:
    """Numeric answers are stored as canonical numeric strings ("02.50" -> "2.5").

    Raises:
        ValueError: if ``value`` is not a number.
    """
    num = parse_number(value)
    if num is None:
        raise ValueError(f"Not a number: {value!r}")
    if num.is_integer() and abs(num) < 1e15:
        return str(int(num))
    return repr(num)


def encode_scale(value: Any) -> str:
    """Scale answers are stored as stringified integers ("+4" -> "4")."""
    num = parse_scale(value)
    if num is None:
        raise ValueError(f"Not a scale value: {value!r}")
    return str(num)


class AnswerValidator:
    """Checks answers against their question definitions.

    Args:
        resolver: visibility resolver used by :meth:`validate_form`
        today: callable returning today's date (injectable for tests)
    """

    def __init__(
        self,
        resolver: VisibilityResolver | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._resolver = resolver or VisibilityResolver()
        self._today = today

    # ==================================================================
    # Single answer
    # ==================================================================

    def validate(self, question: Question, value: Any, *, active: bool = True) -> ValidationResult:
        """Validate one answer.

        Args:
            question: the question definition
            value: the raw draft value (None when unanswered)
            active: whether the question is currently visible
        """
        if not active:
            return VALID

        if isinstance(question, MultiNumericQuestion):
            return self._check_multi_numeric(question, value)

        if is_empty(value):
            if question.required:
                return self._invalid(question, "missing")
            return VALID

        qt = question.question_type
        if qt == "date":
            reason = self._check_date(question, value)
        elif qt in ("single_select", "binary_select"):
            reason = self._check_select(question, value)
        elif qt == "single_select_with_text":
            reason = self._check_select_with_text(question, value)
        elif qt == "numeric":
            reason = self._check_numeric(question, value)
        elif qt == "time":
            reason = self._check_time(question, value)
        elif qt in ("scale", "likert_5_point"):
            reason = self._check_scale(question, value)
        elif qt == "free_text":
            reason = self._check_free_text(question, value)
        else:
            raise ValueError(f"Unsupported question_type: {qt}")

        if reason is None:
            return VALID
        return self._invalid(question, reason)

    # ==================================================================
    # Whole form
    # ==================================================================

    def validate_form(
        self, questions: Iterable[Question], draft: dict[str, Any]
    ) -> ValidationResult:
        """Validate a draft against a schema; return the first failure or ``Valid``."""
        questions = list(questions)
        active = self._resolver.active_ids(questions, draft)
        for q in questions:
            result = self.validate(q, draft.get(q.qid), active=q.qid in active)
            if not result.ok:
                logger.debug("Validation failed at %s: %s", q.qid, result.reason)
                return result
        return VALID

    def clean_answers(
        self, questions: Iterable[Question], draft: dict[str, Any]
    ) -> dict[str, Any]:
        """Return the answers to persist: active, non-empty, canonically encoded.

        Values for hidden questions are dropped, so a stale answer left in
        the draft after its controlling answer changed never reaches the log.
        """
        questions = list(questions)
        active = self._resolver.active_ids(questions, draft)
        answers: dict[str, Any] = {}
        for q in questions:
            if q.qid not in active:
                continue
            value = draft.get(q.qid)
            if isinstance(q, MultiNumericQuestion):
                if not isinstance(value, (list, tuple)) or all(is_empty(v) for v in value):
                    continue
                # Keep positions aligned with the declared labels/units
                slots = list(value) + [""] * (len(q.labels) - len(value))
                answers[q.qid] = [
                    "" if is_empty(v) else encode_number(v) for v in slots[: len(q.labels)]
                ]
            elif is_empty(value):
                continue
            elif isinstance(q, NumericQuestion):
                answers[q.qid] = encode_number(value)
            elif isinstance(q, ScaleQuestion):
                answers[q.qid] = encode_scale(value)
            else:
                answers[q.qid] = value
        return answers

    # ==================================================================
    # Type-specific checks: each returns a failure reason or None
    # ==================================================================

    def _check_date(self, q: DateQuestion, value: Any) -> Reason | None:
        if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
            return "malformed"
        try:
            parsed = date.fromisoformat(value.strip())
        except ValueError:
            return "malformed"
        if parsed > self._today():
            return "out_of_range"
        return None

    @staticmethod
    def _check_select(
        q: SingleSelectQuestion | BinarySelectQuestion, value: Any
    ) -> Reason | None:
        if value not in q.options:
            return "not_an_option"
        return None

    @staticmethod
    def _check_select_with_text(q: SingleSelectWithTextQuestion, value: Any) -> Reason | None:
        """Either a listed option or, via the "Other" path, any free text."""
        if not isinstance(value, str):
            return "malformed"
        if value in q.options or q.allows_free_text:
            return None
        return "not_an_option"

    @staticmethod
    def _check_numeric(q: NumericQuestion, value: Any) -> Reason | None:
        # step is advisory only (it shapes the input widget)
        num = parse_number(value)
        if num is None:
            return "malformed"
        if q.min_value is not None and num < q.min_value:
            return "out_of_range"
        if q.max_value is not None and num > q.max_value:
            return "out_of_range"
        return None

    def _check_multi_numeric(self, q: MultiNumericQuestion, value: Any) -> ValidationResult:
        """Every slot is required when the question is; filled slots must be numbers."""
        if value is None or value == "":
            slots: list[Any] = []
        elif isinstance(value, (list, tuple)):
            slots = list(value)
        else:
            return self._invalid(q, "malformed")

        if len(slots) > len(q.labels):
            return self._invalid(q, "malformed")
        slots += [None] * (len(q.labels) - len(slots))

        if q.required and any(is_empty(s) for s in slots):
            return self._invalid(q, "missing")
        for s in slots:
            if not is_empty(s) and parse_number(s) is None:
                return self._invalid(q, "malformed")
        return VALID

    @staticmethod
    def _check_time(q: TimeQuestion, value: Any) -> Reason | None:
        if not isinstance(value, str) or not _TIME_RE.match(value.strip()):
            return "malformed"
        return None

    @staticmethod
    def _check_scale(q: ScaleQuestion, value: Any) -> Reason | None:
        num = parse_scale(value)
        if num is None:
            return "malformed"
        if not q.scale_min <= num <= q.scale_max:
            return "out_of_range"
        return None

    @staticmethod
    def _check_free_text(q: FreeTextQuestion, value: Any) -> Reason | None:
        if not isinstance(value, str):
            return "malformed"
        return None

    # ------------------------------------------------------------------

    @staticmethod
    def _invalid(q: Question, reason: Reason) -> Invalid:
        prefix = "Please complete" if reason == "missing" else "Please check"
        return Invalid(qid=q.qid, reason=reason, message=f"{prefix}: {q.label}")
