#!/usr/bin/env python3
"""Simulate a complete 14-day field trial against an in-memory store.

Enrols a new participant, fills in the baseline, then submits one daily
entry per day until the trial is complete, printing an audit log of every
question shown and the mock answer chosen.  Questions are answered one at a
time in render order, so conditional questions appear exactly when their
trigger answer is given.

By default answers are **randomised** (``--random``, on by default) so each
run explores different visibility branches.  Use ``--no-random`` for a
deterministic run.

Usage::

    # Default run (random answers)
    python scripts/simulate_trial.py

    # Deterministic run
    python scripts/simulate_trial.py --no-random

    # Refuse the first write of every submit to exercise the retry path
    python scripts/simulate_trial.py --flaky

    # Fixed seed, print the stored JSON at the end
    python scripts/simulate_trial.py --seed 7 --dump
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Ensure src/ is on sys.path so the script runs from a plain checkout.
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _SCRIPT_DIR.parent
sys.path.insert(0, str(_REPO_ROOT / "src"))

from trial_survey.constants import MAX_ENTRIES  # noqa: E402
from trial_survey.controller import SurveyController  # noqa: E402
from trial_survey.models.session import (  # noqa: E402
    DashboardStep,
    FormStep,
    Phase,
    QuestionPayload,
    StepResult,
)
from trial_survey.repository import InMemoryKeyValueStore, ParticipantRepository  # noqa: E402
from trial_survey.schema import SchemaStore  # noqa: E402

_RANDOM_FREE_TEXT_POOL = [
    "",
    "Windy evening, fewer mosquitoes than usual",
    "Sweated a lot during the walk",
    "Reapplied after swimming",
    "Nothing unusual",
]


# ---------------------------------------------------------------------------
# Mock answer generation
# ---------------------------------------------------------------------------

def _answer_for_question_type(q: QuestionPayload, entry_date: date) -> Any:
    """Pick an answer based on the payload's type and constraints.

    When ``_random_mode`` is True, answers are chosen randomly from the
    available options/range.  Otherwise the first option, the lower bound
    or the scale midpoint is used.
    """
    qtype = q.question_type

    if qtype == "date":
        return entry_date.isoformat()

    if qtype == "time":
        if _random_mode:
            return f"{random.randint(6, 21):02d}:{random.choice([0, 15, 30, 45]):02d}"
        return "18:00"

    if qtype in ("single_select", "binary_select", "single_select_with_text"):
        if _random_mode:
            return random.choice(q.options)
        return q.options[0]

    if qtype == "numeric":
        c = q.constraints or {}
        lo = c.get("min", 0)
        step = c.get("step") or 1
        hi = c.get("max")
        if hi is None:
            hi = lo + 10 * step
        if _random_mode:
            steps = int((hi - lo) / step)
            return str(lo + step * random.randint(0, steps))
        return str(lo)

    if qtype == "multi_numeric":
        if _random_mode:
            return [str(random.randint(15, 35)) for _ in q.fields]
        return ["25" for _ in q.fields]

    if qtype in ("scale", "likert_5_point"):
        c = q.constraints or {}
        lo, hi = c.get("min", 1), c.get("max", 5)
        if _random_mode:
            return random.randint(lo, hi)
        return (lo + hi) // 2

    if qtype == "free_text":
        if _random_mode:
            return random.choice(_RANDOM_FREE_TEXT_POOL)
        return ""

    # Fallback for any unexpected type
    return None


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

_DOUBLE_LINE = "═" * 62
_SINGLE_LINE = "─" * 62

# Module-level flags toggled by CLI args
_random_mode = True
_quiet = False


def _print(*args, **kwargs) -> None:
    """Print wrapper that respects the --quiet flag."""
    if not _quiet:
        print(*args, **kwargs)


def log_form_header(step: FormStep) -> None:
    _print(f"\n{_DOUBLE_LINE}")
    if step.day_number is not None:
        _print(f" {step.phase_name.upper()}: Day {step.day_number} of {MAX_ENTRIES}")
    else:
        _print(f" {step.phase_name.upper()}")
    _print(_DOUBLE_LINE)


def log_question_and_answer(q: QuestionPayload, answer: Any, *, verbose: bool = False) -> None:
    """Print a single question and its mock answer."""
    marker = "*" if q.required else " "
    _print(f"\n [Q]{marker}{q.label} ({q.qid}) -- type: {q.question_type}")
    if q.options:
        _print(f"     Options: {', '.join(q.options)}")
    if q.fields:
        _print(f"     Fields: {', '.join(f['label'] for f in q.fields)}")
    if verbose and q.constraints:
        _print(f"     Constraints: {json.dumps(q.constraints)}")
    _print(f" [A] {answer!r}")


def log_step(step: StepResult) -> None:
    """Print the outcome of a submit."""
    _print(f"\n{_SINGLE_LINE}")
    if step.notice is not None:
        _print(f" [{step.notice.kind.upper()}] {step.notice.message}")
    if isinstance(step, DashboardStep):
        _print(
            f" Dashboard: {step.entry_count}/{step.max_entries} entries "
            f"({step.progress_percent}%), can_start_entry={step.can_start_entry}"
        )
    else:
        _print(f" Still on form '{step.form}'")
    _print(_SINGLE_LINE)


def log_history(step: DashboardStep) -> None:
    _print(f"\n{_DOUBLE_LINE}")
    _print(" ENTRY HISTORY (newest first)")
    _print(_DOUBLE_LINE)
    for item in step.history:
        status = "protected" if item.protected else "bitten"
        _print(f"  Day {item.day:2d}  {item.date}  applied {item.time_applied}  {status}")


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

def fill_form(controller: SurveyController, entry_date: date, *, verbose: bool) -> None:
    """Answer every active question of the open form in render order.

    Active questions are re-read after each answer, so a question revealed
    by an earlier answer is answered in turn.
    """
    answered: set[str] = set()
    while True:
        pending = [q for q in controller.current_questions() if q.qid not in answered]
        if not pending:
            return
        q = pending[0]
        answer = _answer_for_question_type(q, entry_date)
        log_question_and_answer(q, answer, verbose=verbose)
        controller.set_answer(q.qid, answer)
        answered.add(q.qid)


async def submit(controller: SurveyController, action, kv: InMemoryKeyValueStore, flaky: bool) -> StepResult:
    """Run ``action``; with ``flaky`` the first write is refused and retried."""
    if flaky:
        kv.fail_writes = True
        step = await action()
        log_step(step)
        kv.fail_writes = False
    step = await action()
    log_step(step)
    return step


async def run_simulation(verbose: bool, flaky: bool, dump: bool) -> int:
    schema = SchemaStore()
    schema.load()

    kv = InMemoryKeyValueStore()
    controller = SurveyController(schema, ParticipantRepository(kv))

    step = await controller.start()
    _print(f"Participant: {controller.participant_id}")

    # --- Baseline ---
    assert isinstance(step, FormStep)
    log_form_header(step)
    first_day = date.today() - timedelta(days=MAX_ENTRIES - 1)
    fill_form(controller, first_day, verbose=verbose)
    step = await submit(controller, controller.submit_baseline, kv, flaky)

    # --- Daily entries ---
    day = 0
    while isinstance(step, DashboardStep) and step.can_start_entry:
        form = controller.begin_entry()
        assert isinstance(form, FormStep)
        log_form_header(form)
        fill_form(controller, first_day + timedelta(days=day), verbose=verbose)
        step = await submit(controller, controller.submit_entry, kv, flaky)
        if isinstance(step, FormStep):
            # Validation failure: mock answers should always be valid
            _print("Simulation stopped: entry was rejected")
            return 1
        day += 1

    # --- A further "new entry" must be refused ---
    refused = controller.begin_entry()
    dashboard = controller.dashboard()
    log_history(dashboard)
    _print(f"\nWrites performed: {len(kv.writes)}")
    _print(f"New entry after completion refused: {refused.type == 'dashboard'}")

    if dump:
        for key, value in sorted(kv.data.items()):
            _print(f"\n{key}:")
            _print(json.dumps(json.loads(value), indent=2))

    return 0 if controller.session.phase == Phase.TRIAL_COMPLETE else 1


def main() -> None:
    global _random_mode, _quiet

    parser = argparse.ArgumentParser(
        description="Simulate a complete 14-day field trial with an in-memory store.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Include numeric and scale constraints in logs",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all print output (exit code still reflects success/failure)",
    )
    parser.add_argument(
        "--random",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Randomise mock answers (default: on). Use --no-random for deterministic mode.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the random answer generator",
    )
    parser.add_argument(
        "--flaky",
        action="store_true",
        help="Refuse the first write of every submit to exercise the retry path",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print the stored JSON documents at the end",
    )
    args = parser.parse_args()

    _random_mode = args.random
    _quiet = args.quiet
    if args.seed is not None:
        random.seed(args.seed)

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    sys.exit(asyncio.run(run_simulation(args.verbose, args.flaky, args.dump)))


if __name__ == "__main__":
    main()
