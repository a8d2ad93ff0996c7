"""SchemaStore — loads the question schemas from ``v1/questions/`` into typed models.

This is the single source of truth for question definitions at runtime.  The
store is loaded once at startup and provides ordered access and lookup by
qid for each schema phase (``baseline`` and ``daily``).

Usage::

    store = SchemaStore()           # defaults to v1/ relative to repo root
    store.load()                    # parse all YAML files

    q = store.get_question("daily", "first_bite_time")
    qids = store.order("daily")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from trial_survey.constants import SCHEMA_PHASES
from trial_survey.models.question import Question, question_mapper
from trial_survey.models.records import RESERVED_RECORD_KEYS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def parse_questions(raw_list: Any, source: str) -> list[Question]:
    """Parse a list of question dicts and check the schema invariants.

    Raises ``ValueError`` for an unknown ``question_type``, a duplicate or
    reserved qid, or a visibility rule that does not point at an earlier
    question.
    """
    if not isinstance(raw_list, list):
        raise ValueError(f"{source}: expected a list of questions")

    parsed: list[Question] = []
    seen: set[str] = set()
    for q_dict in raw_list:
        qtype = q_dict.get("question_type")
        cls = question_mapper.get(qtype)
        if cls is None:
            raise ValueError(f"Unknown question_type '{qtype}' in {source}")
        q = cls(**q_dict)

        if q.qid in seen:
            raise ValueError(f"Duplicate qid '{q.qid}' in {source}")
        if q.qid in RESERVED_RECORD_KEYS:
            raise ValueError(f"qid '{q.qid}' in {source} collides with a record key")
        # Dependencies must precede the dependent question so that schema
        # order is also a valid evaluation order.
        rule = q.visibility_rule
        if rule is not None and rule.depends_on not in seen:
            raise ValueError(
                f"{source}/{q.qid}: visibility_rule depends on '{rule.depends_on}', "
                f"which is not an earlier question"
            )

        seen.add(q.qid)
        parsed.append(q)
    return parsed


# ---------------------------------------------------------------------------
# SchemaStore
# ---------------------------------------------------------------------------

class SchemaStore:
    """Loads ``v1/questions/*.yaml`` and provides ordered, typed lookup.

    Attributes populated after :meth:`load`:

        baseline — list[Question] in schema order
        daily    — list[Question] in schema order
    """

    def __init__(self, schema_dir: str | Path | None = None) -> None:
        if schema_dir is None:
            schema_dir = os.getenv("TRIAL_SCHEMA_DIR") or find_repo_root() / "v1"
        self._base = Path(schema_dir)

        # Populated by load()
        self.baseline: list[Question] = []
        self.daily: list[Question] = []
        self._index: dict[str, dict[str, Question]] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse the baseline and daily schemas into typed models.

        Call this once at startup.  Raises ``FileNotFoundError`` if a schema
        file is missing and ``ValueError`` if a schema is malformed.
        """
        questions_dir = self._base / "questions"
        self.baseline = parse_questions(
            load_yaml(questions_dir / "baseline.yaml"), "baseline"
        )
        self.daily = parse_questions(load_yaml(questions_dir / "daily.yaml"), "daily")
        self._index = {
            "baseline": {q.qid: q for q in self.baseline},
            "daily": {q.qid: q for q in self.daily},
        }
        logger.info(
            "SchemaStore loaded: %d baseline questions, %d daily questions",
            len(self.baseline),
            len(self.daily),
        )

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def questions(self, phase: str) -> list[Question]:
        """Return the questions of ``phase`` ("baseline" or "daily") in schema order.

        Raises:
            KeyError: if ``phase`` is not a schema phase.
        """
        if phase not in SCHEMA_PHASES:
            raise KeyError(phase)
        return self.baseline if phase == "baseline" else self.daily

    def order(self, phase: str) -> list[str]:
        """Return the qids of ``phase`` in canonical render/validation order."""
        return [q.qid for q in self.questions(phase)]

    def get_question(self, phase: str, qid: str) -> Question:
        """Look up a single question by phase and qid.

        Raises:
            KeyError: if the phase or qid is not found.
        """
        return self._index[phase][qid]
