"""Participant id format tests."""

import re
import secrets

import pytest

from trial_survey.errors import InitializationError
from trial_survey.ids import generate_participant_id

_ID_RE = re.compile(r"^MB2W_\d{13}_[0-9a-z]{9}$")


def test_default_format():
    pid = generate_participant_id("MB2W")
    assert _ID_RE.match(pid), f"Unexpected id format: {pid}"


def test_custom_prefix():
    assert generate_participant_id("PILOT").startswith("PILOT_")


def test_ids_differ():
    assert len({generate_participant_id("MB2W") for _ in range(50)}) == 50


def test_randomness_failure(monkeypatch):
    def broken(seq):
        raise NotImplementedError("no entropy source")

    monkeypatch.setattr(secrets, "choice", broken)
    with pytest.raises(InitializationError):
        generate_participant_id("MB2W")
