"""Named user actions and their dispatch onto a quiz session."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from src.services.debounce import DebouncedInvoker, Scheduler
from src.session import QuizSession

log = logging.getLogger(__name__)


class Action(str, Enum):
    SUBMIT = "submit"
    CLEAR_INPUT = "clear_input"
    RESET = "reset"


class ActionDispatcher:
    """Maps the three front-end actions to session transitions.

    Front ends decide which key or button produces which action.
    """

    def __init__(
        self,
        session: QuizSession,
        delay: float = 0.5,
        scheduler: Optional[Scheduler] = None,
    ):
        self.session = session
        self._send = DebouncedInvoker(session.submit, delay=delay, scheduler=scheduler)

    def dispatch(self, action: Action) -> None:
        if action is Action.SUBMIT:
            # Capture the buffer now; the debounced send uses the last capture.
            self._send(self.session.input_buffer)
        elif action is Action.CLEAR_INPUT:
            self.session.clear_input()
        elif action is Action.RESET:
            self._send.cancel()
            self.session.reset()
        else:
            raise ValueError(f"Unknown action: {action!r}")
        log.debug(f"Dispatched {action.value}")

    async def drain(self) -> None:
        """Wait until any scheduled send has fired and completed."""
        await self._send.drain()
