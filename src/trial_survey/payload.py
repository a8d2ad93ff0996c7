"""Convert typed questions into flat render payloads.

The rendering layer only ever sees :class:`QuestionPayload`; this module
decides which constraints each widget needs.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from trial_survey.models.question import (
    BinarySelectQuestion,
    MultiNumericQuestion,
    NumericQuestion,
    Question,
    ScaleQuestion,
    SingleSelectQuestion,
    SingleSelectWithTextQuestion,
)
from trial_survey.models.session import QuestionPayload


def to_payload(question: Question, value: Any = None, *, today: date | None = None) -> QuestionPayload:
    """Flatten ``question`` for rendering, pre-filled with ``value``."""
    payload = QuestionPayload(
        qid=question.qid,
        label=question.label,
        question_type=question.question_type,
        required=question.required,
        help=question.help,
        value=value,
    )

    qt = question.question_type
    if isinstance(question, (SingleSelectQuestion, BinarySelectQuestion)):
        payload.options = list(question.options)
    elif isinstance(question, SingleSelectWithTextQuestion):
        payload.options = question.fixed_options
        payload.allows_free_text = question.allows_free_text
    elif isinstance(question, NumericQuestion):
        payload.constraints = {
            # the input widget defaults to a lower bound of 0
            "min": question.min_value if question.min_value is not None else 0,
            "max": question.max_value,
            "step": question.step if question.step is not None else 1,
            "unit": question.unit,
        }
    elif isinstance(question, MultiNumericQuestion):
        payload.fields = [
            {"label": label, "unit": unit}
            for label, unit in zip(question.labels, question.units)
        ]
    elif isinstance(question, ScaleQuestion):
        payload.constraints = {
            "min": question.scale_min,
            "max": question.scale_max,
            "min_label": question.min_label,
            "max_label": question.max_label,
        }
    elif qt == "date":
        payload.constraints = {"max": (today or date.today()).isoformat()}
    elif qt == "free_text":
        payload.placeholder = question.placeholder

    return payload
