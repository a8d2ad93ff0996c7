"""Record serialization tests — flat JSON shape and error handling."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from helpers.drafts import NOW, VALID_BASELINE, VALID_DAILY
from trial_survey.models.records import (
    BaselineProfile,
    DailyEntry,
    dump_entries,
    dump_profile,
    load_entries,
    load_profile,
    next_entry_id,
    to_iso,
)


def _entry(entry_id, answers=None):
    return DailyEntry(entry_id=entry_id, submitted_at=NOW, answers=answers or {})


class TestRecordShape:
    """Records are flat objects: answers plus bookkeeping keys."""

    def test_profile_record(self):
        profile = BaselineProfile(user_id="MB2W_1_abc", start_date=NOW, answers=VALID_BASELINE)
        record = json.loads(dump_profile(profile))
        assert record["userId"] == "MB2W_1_abc"
        assert record["startDate"] == "2024-06-14T09:30:00Z"
        assert record["age_range"] == "26-35"

    def test_entry_log_record(self):
        log = json.loads(dump_entries([_entry(1718357400000, VALID_DAILY)]))
        assert isinstance(log, list) and len(log) == 1
        assert log[0]["entryId"] == 1718357400000
        assert log[0]["submittedAt"] == "2024-06-14T09:30:00Z"
        assert log[0]["got_bitten_treated"] == "No"

    def test_to_iso_converts_to_utc(self):
        local = datetime(2024, 6, 14, 16, 30, tzinfo=timezone(timedelta(hours=7)))
        assert to_iso(local) == "2024-06-14T09:30:00Z"


class TestRoundTrip:

    def test_profile_round_trip(self):
        profile = BaselineProfile(user_id="p", start_date=NOW, answers=VALID_BASELINE)
        assert load_profile(dump_profile(profile)) == profile

    def test_entries_round_trip(self):
        entries = [_entry(1, VALID_DAILY), _entry(2, {"date": "2024-06-02"})]
        assert load_entries(dump_entries(entries)) == entries


class TestMalformedInput:
    """Every malformed payload surfaces as ValueError."""

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"userId": "p"}', '"text"'])
    def test_bad_profile(self, raw):
        with pytest.raises(ValueError):
            load_profile(raw)

    @pytest.mark.parametrize(
        "raw", ["{", '{"entryId": 1}', '[{"entryId": 1}]', '[{"entryId": "x", "submittedAt": "y"}]']
    )
    def test_bad_entries(self, raw):
        with pytest.raises(ValueError):
            load_entries(raw)


class TestEntryIds:

    def test_millisecond_timestamp(self):
        assert next_entry_id([], NOW) == int(NOW.timestamp() * 1000)

    def test_strictly_increasing_on_clock_tie(self):
        first = next_entry_id([], NOW)
        second = next_entry_id([_entry(first)], NOW)
        assert second == first + 1

    def test_clock_moving_backwards(self):
        later = int(NOW.timestamp() * 1000) + 5000
        assert next_entry_id([_entry(later)], NOW) == later + 1
