"""Question type models for the trial survey schemas.

Each question type maps to a specific UI widget and answer-checking rule:

    - date: calendar date, answered as ``YYYY-MM-DD``
    - single_select: pick one option
    - single_select_with_text: pick one option, or choose "Other" and type
      free text that replaces the option
    - binary_select: pick one of exactly two options (Yes / No)
    - numeric: number input with an optional lower/upper bound and an
      advisory step
    - multi_numeric: several labelled number inputs answered as a
      positional list (e.g. temperature and humidity)
    - time: clock time, answered as ``HH:MM``
    - scale: bounded integer scale with end labels
    - likert_5_point: a 1-5 agree/disagree scale
    - free_text: open-ended text area

Any question may carry a ``visibility_rule``: a predicate over an earlier
answer that decides whether the question is shown at all.  Hidden
questions are never validated.

The discriminated ``Question`` union uses ``question_type`` as its
discriminator.  The ``question_mapper`` dict maps type strings to their
Pydantic classes.
"""

from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from trial_survey.constants import (
    LIKERT_MAX,
    LIKERT_MAX_LABEL,
    LIKERT_MIN,
    LIKERT_MIN_LABEL,
    OTHER_OPTION,
)


# --- Visibility predicate ---

class VisibilityRule(BaseModel):
    """Condition under which a question is shown and its requiredness enforced.

    The rule compares the current draft value of ``depends_on`` against
    ``required_value``.

    Operators:
      - eq, ne: exact equality / inequality
      - in, not_in: membership in a list of values
    """

    depends_on: str
    required_value: Any = None
    op: Literal["eq", "ne", "in", "not_in"] = "eq"

    @model_validator(mode="after")
    def _chk(self):
        if self.op in ("in", "not_in") and not isinstance(self.required_value, list):
            raise ValueError(f"op '{self.op}' requires a list required_value")
        return self


# --- Base question type ---

class BaseQuestion(BaseModel):
    """Fields shared by all question types."""

    qid: str
    label: str
    help: Optional[str] = None
    required: bool = False
    visibility_rule: Optional[VisibilityRule] = None


# --- Date / time ---

class DateQuestion(BaseQuestion):
    """Calendar date; must not lie in the future."""

    question_type: Literal["date"] = "date"


class TimeQuestion(BaseQuestion):
    """24-hour clock time."""

    question_type: Literal["time"] = "time"


# --- Select types ---

class SingleSelectQuestion(BaseQuestion):
    """Pick exactly one option."""

    question_type: Literal["single_select"] = "single_select"
    options: List[str]

    @model_validator(mode="after")
    def _chk(self):
        if not self.options:
            raise ValueError(f"{self.qid}: options must not be empty")
        return self


class SingleSelectWithTextQuestion(BaseQuestion):
    """Pick one option, or choose the "Other" sentinel and type free text.

    The stored answer is the chosen option string or the typed text itself;
    there is no separate "Other" marker in the record.
    """

    question_type: Literal["single_select_with_text"] = "single_select_with_text"
    options: List[str]

    @model_validator(mode="after")
    def _chk(self):
        if not self.options:
            raise ValueError(f"{self.qid}: options must not be empty")
        return self

    @property
    def fixed_options(self) -> List[str]:
        """Options rendered as buttons (everything but the sentinel)."""
        return [o for o in self.options if o != OTHER_OPTION]

    @property
    def allows_free_text(self) -> bool:
        return OTHER_OPTION in self.options


class BinarySelectQuestion(BaseQuestion):
    """Pick one of exactly two options."""

    question_type: Literal["binary_select"] = "binary_select"
    options: List[str] = Field(default_factory=lambda: ["Yes", "No"])

    @model_validator(mode="after")
    def _chk(self):
        if len(self.options) != 2:
            raise ValueError(f"{self.qid}: binary_select needs exactly two options")
        return self


# --- Numeric types ---

class NumericQuestion(BaseQuestion):
    """Number input with optional bounds.

    ``step`` only shapes the input widget; it is not enforced on answers.
    """

    question_type: Literal["numeric"] = "numeric"
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    step: Optional[float] = None
    unit: Optional[str] = None

    @model_validator(mode="after")
    def _chk(self):
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value >= self.max_value
        ):
            raise ValueError("min_value must be < max_value")
        return self


class MultiNumericQuestion(BaseQuestion):
    """Several labelled numbers answered together as a positional list."""

    question_type: Literal["multi_numeric"] = "multi_numeric"
    labels: List[str]
    units: List[str]

    @model_validator(mode="after")
    def _chk(self):
        if not self.labels:
            raise ValueError(f"{self.qid}: labels must not be empty")
        if len(self.labels) != len(self.units):
            raise ValueError(f"{self.qid}: labels and units must have equal length")
        return self


# --- Scales ---

class ScaleQuestion(BaseQuestion):
    """Bounded integer scale, answered as a stringified integer."""

    question_type: Literal["scale"] = "scale"
    scale_min: int
    scale_max: int
    min_label: Optional[str] = None
    max_label: Optional[str] = None

    @model_validator(mode="after")
    def _chk(self):
        if self.scale_min >= self.scale_max:
            raise ValueError("scale_min must be < scale_max")
        return self


class LikertQuestion(ScaleQuestion):
    """Five-point agree/disagree scale."""

    question_type: Literal["likert_5_point"] = "likert_5_point"
    scale_min: int = LIKERT_MIN
    scale_max: int = LIKERT_MAX
    min_label: Optional[str] = LIKERT_MIN_LABEL
    max_label: Optional[str] = LIKERT_MAX_LABEL


# --- Free text ---

class FreeTextQuestion(BaseQuestion):
    """Open-ended text area."""

    question_type: Literal["free_text"] = "free_text"
    placeholder: Optional[str] = None


# --- Discriminated union of all question types ---

Question = Annotated[
    Union[
        DateQuestion,
        SingleSelectQuestion,
        SingleSelectWithTextQuestion,
        BinarySelectQuestion,
        NumericQuestion,
        MultiNumericQuestion,
        TimeQuestion,
        ScaleQuestion,
        LikertQuestion,
        FreeTextQuestion,
    ],
    Field(discriminator="question_type"),
]

# Maps question_type string -> Pydantic class for dynamic deserialization from YAML.
question_mapper = {
    "date": DateQuestion,
    "single_select": SingleSelectQuestion,
    "single_select_with_text": SingleSelectWithTextQuestion,
    "binary_select": BinarySelectQuestion,
    "numeric": NumericQuestion,
    "multi_numeric": MultiNumericQuestion,
    "time": TimeQuestion,
    "scale": ScaleQuestion,
    "likert_5_point": LikertQuestion,
    "free_text": FreeTextQuestion,
}
