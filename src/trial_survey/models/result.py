"""Validation outcome models.

The validator never raises for a bad answer; it returns a ``ValidationResult``
so the controller can decide how to surface it.  ``ok`` is the only thing
most callers need to look at.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict

# Why an answer was rejected.
Reason = Literal["missing", "malformed", "out_of_range", "not_an_option"]


class Valid(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True


class Invalid(BaseModel):
    """A rejected answer, naming the question and a display message."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    qid: str
    reason: Reason
    message: str


ValidationResult = Valid | Invalid

VALID = Valid()
