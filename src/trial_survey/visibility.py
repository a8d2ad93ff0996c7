"""VisibilityResolver — decides which questions are active for a draft.

A question without a ``visibility_rule`` is always active.  A question with
a rule is active iff the question it depends on is itself active *and* the
rule's predicate holds for that question's current draft value.  A
dependency that is missing from the draft (or hidden) never satisfies a
rule, so the dependent question stays inactive.

The shipped schemas only chain one level deep, but resolution iterates to
a fixed point so deeper chains resolve correctly regardless of how the
questions are ordered.

The resolver is pure: it reads the schema and the draft and returns a new
list.  The controller re-runs it on every draft mutation.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from trial_survey.models.question import Question, VisibilityRule

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


class VisibilityResolver:
    """Evaluates visibility rules against an in-progress draft."""

    def active_ids(self, questions: Iterable[Question], draft: dict[str, Any]) -> set[str]:
        """Return the qids of all active questions.

        Starts from the rule-free questions and repeatedly activates any
        question whose dependency is active and whose predicate holds, until
        nothing changes.
        """
        questions = list(questions)
        active = {q.qid for q in questions if q.visibility_rule is None}
        pending = [q for q in questions if q.visibility_rule is not None]

        changed = True
        while changed:
            changed = False
            still_pending = []
            for q in pending:
                rule = q.visibility_rule
                if rule.depends_on in active and self._eval_rule(rule, draft):
                    active.add(q.qid)
                    changed = True
                else:
                    still_pending.append(q)
            pending = still_pending

        return active

    def active_questions(
        self, questions: Iterable[Question], draft: dict[str, Any]
    ) -> list[Question]:
        """Return the active questions, preserving schema order."""
        questions = list(questions)
        active = self.active_ids(questions, draft)
        return [q for q in questions if q.qid in active]

    def is_active(
        self, question: Question, questions: Iterable[Question], draft: dict[str, Any]
    ) -> bool:
        return question.qid in self.active_ids(questions, draft)

    # ------------------------------------------------------------------
    # Predicate evaluation
    # ------------------------------------------------------------------

    def _eval_rule(self, rule: VisibilityRule, draft: dict[str, Any]) -> bool:
        """Evaluate a single rule against the draft.

        If the referenced qid has no value yet, the rule evaluates to False.
        """
        answer = draft.get(rule.depends_on)
        if _is_empty(answer):
            return False
        return self._compare(rule.op, answer, rule.required_value)

    @staticmethod
    def _compare(op: str, answer: Any, value: Any) -> bool:
        """Apply an operator to an answer and an expected value (exact matching)."""
        if op == "eq":
            return answer == value
        if op == "ne":
            return answer != value
        if op == "in":
            return answer in value
        if op == "not_in":
            return answer not in value

        logger.warning("Unknown visibility operator: %s", op)
        return False
