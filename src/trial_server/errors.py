"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises ``ValueError`` for actions that are invalid in the current
phase, unknown participants and duplicate sessions.  Rather than catching
these in every route, global handlers inspect the message and pick the
status code.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from trial_survey.errors import InitializationError

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # Session already open for this participant
    ("already", 409),
    # Unknown participant or question
    ("not found", 404),
    # Wrong phase (e.g. submit_entry while on the dashboard)
    ("only valid", 400),
]


# --- Client-safe messages keyed by HTTP status code ---
# Participant ids and phase names stay in the server log.
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Resource already exists",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to a contextual HTTP error response.

    Falls back to 400 for unrecognised messages.  The raw message is logged
    server-side but never sent to the client.
    """
    msg = str(exc)
    status = 400  # default
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map ``KeyError`` (e.g. unknown schema phase) to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def initialization_error_handler(
    request: Request, exc: InitializationError
) -> JSONResponse:
    """The participant's data could not be loaded; the client should restart."""
    logger.error("Initialization failed at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Could not start the survey. Please restart the app."},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
