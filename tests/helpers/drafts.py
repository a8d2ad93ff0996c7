"""Known-good drafts for the v1 schemas.

VALID_DAILY takes the "not bitten" branch: first_bite_time stays hidden and
scented_products is "No", so scent_type is hidden as well.
"""

from datetime import date, datetime, timezone
from pathlib import Path

SCHEMA_DIR = Path(__file__).resolve().parent.parent.parent / "v1"

# Fixed "today" for date validation; VALID_DAILY's date is before it.
TODAY = date(2024, 6, 14)
NOW = datetime(2024, 6, 14, 9, 30, tzinfo=timezone.utc)

VALID_BASELINE = {
    "age_range": "26-35",
    "sex": "Female",
    "typical_mosquito_attraction": "Often",
    "skin_type": "Normal",
}

LIKERT_QIDS = [
    "ease_of_application",
    "texture_feel",
    "scent_satisfaction",
    "greasy_sticky",
    "protection_satisfaction",
    "purchase_intent",
]

VALID_DAILY = {
    "date": "2024-06-01",
    "environment": "Park/Open Field",
    "alcohol_drinks": "0",
    "metabolism_foods": "None",
    "scented_products": "No",
    "time_applied": "18:30",
    "body_area": "Neck/Face",
    "amount_applied": "1",
    "clothing": "Short Sleeves/Shorts",
    "exposure_start": "19:00",
    "got_bitten_treated": "No",
    "total_bites_all": "2",
    "total_bites_untreated": "2",
    "reapplied_products": "No",
    **{qid: "4" for qid in LIKERT_QIDS},
}


def fill(controller, draft: dict) -> None:
    """Set every answer in ``draft`` on the controller's open form."""
    for qid, value in draft.items():
        controller.set_answer(qid, value)
