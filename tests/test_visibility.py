"""VisibilityResolver tests — rule evaluation and dependency chains."""

import pytest

from trial_survey.models.question import (
    BinarySelectQuestion,
    FreeTextQuestion,
    TimeQuestion,
    VisibilityRule,
)
from trial_survey.visibility import VisibilityResolver


@pytest.fixture
def resolver():
    return VisibilityResolver()


def _rule(depends_on, value, op="eq"):
    return VisibilityRule(depends_on=depends_on, required_value=value, op=op)


# =====================================================================
# v1 daily schema
# =====================================================================


class TestDailySchema:
    """Conditional questions of the daily form."""

    def test_scent_type_hidden_until_scented_yes(self, resolver, schema):
        questions = schema.questions("daily")
        assert "scent_type" not in resolver.active_ids(questions, {})
        assert "scent_type" not in resolver.active_ids(questions, {"scented_products": "No"})
        assert "scent_type" in resolver.active_ids(questions, {"scented_products": "Yes"})

    def test_bite_branches_are_exclusive(self, resolver, schema):
        questions = schema.questions("daily")
        bitten = resolver.active_ids(questions, {"got_bitten_treated": "Yes"})
        assert "first_bite_time" in bitten
        assert "exposure_duration" not in bitten

        not_bitten = resolver.active_ids(questions, {"got_bitten_treated": "No"})
        assert "first_bite_time" not in not_bitten
        assert "exposure_duration" in not_bitten

    def test_unanswered_trigger_hides_both_branches(self, resolver, schema):
        active = resolver.active_ids(schema.questions("daily"), {})
        assert "first_bite_time" not in active
        assert "exposure_duration" not in active

    def test_active_questions_keep_schema_order(self, resolver, schema):
        questions = schema.questions("daily")
        active = resolver.active_questions(questions, {"got_bitten_treated": "Yes"})
        qids = [q.qid for q in active]
        assert qids.index("got_bitten_treated") + 1 == qids.index("first_bite_time")
        assert qids == [q.qid for q in questions if q.qid in set(qids)]

    def test_rule_free_questions_always_active(self, resolver, schema):
        questions = schema.questions("baseline")
        assert resolver.active_ids(questions, {}) == {q.qid for q in questions}


# =====================================================================
# Rule semantics
# =====================================================================


class TestRules:

    def test_exact_match_only(self, resolver):
        trigger = BinarySelectQuestion(qid="t", label="T")
        dep = TimeQuestion(qid="d", label="D", visibility_rule=_rule("t", "Yes"))
        assert not resolver.is_active(dep, [trigger, dep], {"t": "yes"}), (
            "Matching must be case-sensitive"
        )
        assert resolver.is_active(dep, [trigger, dep], {"t": "Yes"})

    def test_chained_dependency_follows_ancestor(self, resolver):
        """A question whose dependency is hidden is hidden too."""
        a = BinarySelectQuestion(qid="a", label="A")
        b = BinarySelectQuestion(qid="b", label="B", visibility_rule=_rule("a", "Yes"))
        c = FreeTextQuestion(qid="c", label="C", visibility_rule=_rule("b", "Yes"))
        questions = [a, b, c]

        assert resolver.active_ids(questions, {"a": "Yes", "b": "Yes"}) == {"a", "b", "c"}
        # b keeps a stale "Yes" after a flips to "No"
        assert resolver.active_ids(questions, {"a": "No", "b": "Yes"}) == {"a"}

    def test_ne_operator(self, resolver):
        a = BinarySelectQuestion(qid="a", label="A")
        b = FreeTextQuestion(qid="b", label="B", visibility_rule=_rule("a", "No", op="ne"))
        assert resolver.is_active(b, [a, b], {"a": "Yes"})
        assert not resolver.is_active(b, [a, b], {"a": "No"})
        assert not resolver.is_active(b, [a, b], {}), "Empty answers never satisfy a rule"

    def test_in_operators(self, resolver):
        a = BinarySelectQuestion(qid="a", label="A", options=["x", "y"])
        b = FreeTextQuestion(qid="b", label="B", visibility_rule=_rule("a", ["x"], op="in"))
        c = FreeTextQuestion(qid="c", label="C", visibility_rule=_rule("a", ["x"], op="not_in"))
        assert resolver.active_ids([a, b, c], {"a": "x"}) == {"a", "b"}
        assert resolver.active_ids([a, b, c], {"a": "y"}) == {"a", "c"}

    def test_in_operator_requires_list(self):
        with pytest.raises(ValueError):
            VisibilityRule(depends_on="a", required_value="x", op="in")
