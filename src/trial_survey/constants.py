"""Trial constants shared across the SDK.

These values are referenced by the schema store, validator, repository and
controller.  They mirror conventions encoded in the YAML schemas under
``v1/questions/``.

A few constants can be overridden via environment variables so that
deployments can adjust identifiers and timeouts without code changes.
"""

import os

# Trial cap: the maximum number of daily entries per participant.
MAX_ENTRIES = 14

# Length of the trial in days, shown to participants ("Day N of 14").
TRIAL_LENGTH_DAYS = 14

# Prefix of generated participant ids (e.g. "MB2W_1718000000000_k3j9x0a1b").
# Overridable via PARTICIPANT_ID_PREFIX env var.
PARTICIPANT_ID_PREFIX = os.getenv("PARTICIPANT_ID_PREFIX", "MB2W")

# Seconds to wait for a store write before treating it as failed.
# Unset (the default) means no timeout is imposed; the host's default applies.
_raw_timeout = os.getenv("TRIAL_WRITE_TIMEOUT")
WRITE_TIMEOUT_SECONDS: float | None = float(_raw_timeout) if _raw_timeout else None

# Key-value store namespaces: "{prefix}_{participant_id}".
BASELINE_KEY_PREFIX = "baseline"
ENTRIES_KEY_PREFIX = "entries"

# Sentinel option of single_select_with_text questions.  Choosing it swaps
# the enum constraint for free text.
OTHER_OPTION = "Other"

# Defaults for likert_5_point questions.
LIKERT_MIN = 1
LIKERT_MAX = 5
LIKERT_MIN_LABEL = "1 - Strongly Disagree"
LIKERT_MAX_LABEL = "5 - Strongly Agree"

# Schema phases, in the order a participant meets them.
SCHEMA_PHASES: tuple[str, ...] = ("baseline", "daily")

# Human-readable session phase names for API responses and logging.
PHASE_NAMES: dict[str, str] = {
    "new_participant": "Welcome",
    "baseline_capture": "Baseline Information",
    "daily_dashboard": "Your 14-Day Trial",
    "entry_in_progress": "Daily Application Log",
    "trial_complete": "Trial Complete",
}

# User-facing notices.
BASELINE_SAVED_MESSAGE = (
    "Welcome to the 2-week trial! Start logging your daily applications."
)
BASELINE_AMENDED_MESSAGE = "Baseline information updated."
ENTRY_SAVED_MESSAGE = "Daily entry saved successfully!"
TRIAL_COMPLETE_MESSAGE = (
    "Daily entry saved successfully! You have completed all 14 days of the trial."
)
BASELINE_SAVE_FAILED_MESSAGE = "Failed to save baseline data. Please try again."
ENTRY_SAVE_FAILED_MESSAGE = "Failed to save entry. Please try again."
