"""SchemaStore loading and lookup smoke tests.

Validates that SchemaStore loads both YAML schemas from v1/questions/ and
that parse_questions rejects malformed schemas.

Expected counts (from v1/questions/):
    5 baseline questions, 26 daily questions
"""

import pytest

from trial_survey.models.question import (
    BinarySelectQuestion,
    LikertQuestion,
    MultiNumericQuestion,
    SingleSelectWithTextQuestion,
    TimeQuestion,
)
from trial_survey.schema import SchemaStore, parse_questions


# =====================================================================
# Loading tests
# =====================================================================


def test_store_loads_baseline(schema):
    """All 5 baseline questions load in file order."""
    assert schema.order("baseline") == [
        "age_range",
        "sex",
        "typical_mosquito_attraction",
        "skin_type",
        "previous_repellent_use",
    ], f"Unexpected baseline order: {schema.order('baseline')}"


def test_store_loads_daily(schema):
    """All 26 daily questions load, starting with the date."""
    order = schema.order("daily")
    assert len(order) == 26, f"Expected 26 daily questions, got {len(order)}"
    assert order[0] == "date"
    assert order[-1] == "daily_notes"


def test_qids_unique_per_phase(schema):
    for phase in ("baseline", "daily"):
        order = schema.order(phase)
        assert len(order) == len(set(order)), f"Duplicate qids in {phase}"


def test_visibility_rules_reference_earlier_questions(schema):
    """Every rule's dependency precedes the dependent question."""
    for phase in ("baseline", "daily"):
        seen: set[str] = set()
        for q in schema.questions(phase):
            if q.visibility_rule is not None:
                assert q.visibility_rule.depends_on in seen, (
                    f"{phase}/{q.qid} depends on later question "
                    f"'{q.visibility_rule.depends_on}'"
                )
            seen.add(q.qid)


def test_store_default_dir_from_env(monkeypatch, tmp_path):
    """TRIAL_SCHEMA_DIR overrides the repo-root default."""
    monkeypatch.setenv("TRIAL_SCHEMA_DIR", str(tmp_path))
    store = SchemaStore()
    with pytest.raises(FileNotFoundError):
        store.load()


# =====================================================================
# Lookup tests
# =====================================================================


class TestLookup:
    """Typed lookup by phase and qid."""

    def test_conditional_questions_typed(self, schema):
        q = schema.get_question("daily", "first_bite_time")
        assert isinstance(q, TimeQuestion)
        assert q.required is True
        assert q.visibility_rule.depends_on == "got_bitten_treated"
        assert q.visibility_rule.required_value == "Yes"

    def test_scent_type_is_select_with_text(self, schema):
        q = schema.get_question("daily", "scent_type")
        assert isinstance(q, SingleSelectWithTextQuestion)
        assert q.allows_free_text is True
        assert "Other" not in q.fixed_options

    def test_binary_and_multi_numeric(self, schema):
        assert isinstance(schema.get_question("daily", "got_bitten_treated"), BinarySelectQuestion)
        q = schema.get_question("daily", "temperature_humidity")
        assert isinstance(q, MultiNumericQuestion)
        assert q.labels == ["Temperature", "Humidity"]

    def test_likert_defaults(self, schema):
        q = schema.get_question("daily", "purchase_intent")
        assert isinstance(q, LikertQuestion)
        assert (q.scale_min, q.scale_max) == (1, 5)
        assert q.min_label == "1 - Strongly Disagree"

    def test_unknown_qid_raises(self, schema):
        with pytest.raises(KeyError):
            schema.get_question("daily", "does_not_exist")

    def test_unknown_phase_raises(self, schema):
        with pytest.raises(KeyError):
            schema.questions("weekly")


# =====================================================================
# Schema invariants enforced at parse time
# =====================================================================


class TestParseQuestions:

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown question_type"):
            parse_questions([{"qid": "a", "label": "A", "question_type": "slider"}], "t")

    def test_duplicate_qid_rejected(self):
        raw = [
            {"qid": "a", "label": "A", "question_type": "time"},
            {"qid": "a", "label": "A again", "question_type": "time"},
        ]
        with pytest.raises(ValueError, match="Duplicate qid"):
            parse_questions(raw, "t")

    def test_reserved_qid_rejected(self):
        with pytest.raises(ValueError, match="collides"):
            parse_questions([{"qid": "entryId", "label": "X", "question_type": "time"}], "t")

    def test_forward_dependency_rejected(self):
        raw = [
            {
                "qid": "b",
                "label": "B",
                "question_type": "time",
                "visibility_rule": {"depends_on": "a", "required_value": "Yes"},
            },
            {"qid": "a", "label": "A", "question_type": "binary_select"},
        ]
        with pytest.raises(ValueError, match="not an earlier question"):
            parse_questions(raw, "t")

    def test_bad_bounds_rejected(self):
        raw = [{
            "qid": "n", "label": "N", "question_type": "numeric",
            "min_value": 5, "max_value": 1,
        }]
        with pytest.raises(ValueError):
            parse_questions(raw, "t")

    def test_not_a_list_rejected(self):
        with pytest.raises(ValueError, match="expected a list"):
            parse_questions({"qid": "a"}, "t")
