"""ControllerRegistry — one live SurveyController per participant.

The SDK controller is stateful and single-threaded, so the server keeps
exactly one per participant id.  Controllers are created on ``open`` and
looked up by every other route.

A controller is dropped on ``close`` or, when ``idle_timeout`` is set, once
it has gone unused for that many seconds.  Idle controllers are swept on
``open``; a controller with a write in flight is never evicted.  Eviction
loses only the unsaved draft: the participant re-opens with the same id
and resumes from the stored profile and entry log.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from trial_survey.controller import SurveyController
from trial_survey.models.session import StepResult
from trial_survey.repository import ParticipantRepository
from trial_survey.schema import SchemaStore

logger = logging.getLogger(__name__)


class ControllerRegistry:
    """Creates and tracks controllers for a shared schema and repository.

    Args:
        schema: the loaded question schemas
        repo: persistence shared by every controller
        idle_timeout: seconds of disuse before a controller is evicted;
            None keeps controllers until they are closed
        clock: monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        schema: SchemaStore,
        repo: ParticipantRepository,
        *,
        idle_timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._schema = schema
        self._repo = repo
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._controllers: dict[str, SurveyController] = {}
        self._last_used: dict[str, float] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._controllers)

    async def open(self, participant_id: str | None = None) -> StepResult:
        """Start a controller, loading any stored data for ``participant_id``.

        A new participant id is generated when none is given.

        Raises:
            ValueError: if a session for ``participant_id`` is already open.
            InitializationError: if the id or the stored data cannot be loaded.
        """
        async with self._lock:
            self.evict_idle()
            if participant_id is not None and participant_id in self._controllers:
                raise ValueError(f"Session already open for participant {participant_id}")
            controller = SurveyController(self._schema, self._repo)
            step = await controller.start(participant_id)
            self._controllers[controller.participant_id] = controller
            self._last_used[controller.participant_id] = self._clock()
        logger.info("Registered controller for %s", controller.participant_id)
        return step

    def get(self, participant_id: str) -> SurveyController:
        """Return the open controller for ``participant_id``.

        Raises:
            ValueError: if no session is open for it.
        """
        controller = self._controllers.get(participant_id)
        if controller is None:
            raise ValueError(f"Session not found for participant {participant_id}")
        self._last_used[participant_id] = self._clock()
        return controller

    def close(self, participant_id: str) -> None:
        """Forget the controller; stored data is untouched."""
        self.get(participant_id)
        self._forget(participant_id)
        logger.info("Closed controller for %s", participant_id)

    def evict_idle(self) -> list[str]:
        """Drop controllers unused for longer than ``idle_timeout``.

        Returns the evicted participant ids.
        """
        if self._idle_timeout is None:
            return []
        cutoff = self._clock() - self._idle_timeout
        evicted = [
            pid
            for pid, last_used in self._last_used.items()
            if last_used < cutoff and not self._controllers[pid].session.submitting
        ]
        for pid in evicted:
            self._forget(pid)
        if evicted:
            logger.info("Evicted %d idle controller(s)", len(evicted))
        return evicted

    def _forget(self, participant_id: str) -> None:
        del self._controllers[participant_id]
        del self._last_used[participant_id]
