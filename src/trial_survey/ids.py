"""Participant id generation.

Ids look like ``MB2W_1718000000000_k3j9x0a1b``: a fixed prefix, the
creation time in epoch milliseconds and nine random base-36 characters.
They are shown to participants as a recovery token, so they stick to
lowercase letters, digits and underscores.
"""

import secrets
import string
import time

from trial_survey.constants import PARTICIPANT_ID_PREFIX
from trial_survey.errors import InitializationError

_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9


def generate_participant_id(prefix: str = PARTICIPANT_ID_PREFIX) -> str:
    """Return a new participant id.

    Raises:
        InitializationError: if no randomness source is available.
    """
    try:
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    except (OSError, NotImplementedError) as exc:
        raise InitializationError("Could not generate a participant id") from exc
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"
