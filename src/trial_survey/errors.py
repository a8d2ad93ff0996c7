"""Exception taxonomy for the survey SDK.

  - ValidationError:     an answer is missing or malformed; always recoverable
                         and never propagated past the submit action
  - PersistenceError:    a store read/write failed; recoverable, the user
                         retries and in-memory state is left untouched
  - InitializationError: id generation or the initial load failed; fatal for
                         the session, the host asks the user to restart

Calling an operation in the wrong phase (e.g. submitting with no open form)
is a caller bug and raises plain ``ValueError``, like the rest of the SDK.
"""

from __future__ import annotations


class SurveyError(Exception):
    """Base class for survey SDK errors."""


class ValidationError(SurveyError):
    """An answer failed validation.  Carries the offending question id."""

    def __init__(self, qid: str, reason: str, message: str) -> None:
        super().__init__(message)
        self.qid = qid
        self.reason = reason
        self.message = message


class PersistenceError(SurveyError):
    """The key-value store failed to read or write ``key``."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{message} (key={key})")
        self.key = key


class InitializationError(SurveyError):
    """The session could not be started; no safe partial state exists."""
