"""Quiz conversation state machine.

Owns the message log, the quiz cursor and the single in-flight request.
Every user turn goes through `submit`, which talks to a completer (the
in-process `ProxyGateway` or a `ProxyClient` pointed at the proxy).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, Protocol, Sequence
from uuid import uuid4

from src.models import (
    CompletionFailure,
    CompletionResult,
    CompletionSuccess,
    ErrorKind,
    Message,
    PendingRequest,
    Question,
    QuizCursor,
)
from src.services.archive import ResponseArchive

log = logging.getLogger(__name__)


class Completer(Protocol):
    async def complete(self, payload: Any) -> CompletionResult: ...


class QuizState(str, Enum):
    IDLE = "idle"
    PRESENTING_QUESTION = "presenting_question"
    AWAITING_RESPONSE = "awaiting_response"
    FREE_CONVERSATION = "free_conversation"


def extract_reply(body: dict[str, Any]) -> Optional[str]:
    """Assistant text from a chat completion body, or None if malformed."""
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) and content else None


class QuizSession:
    def __init__(
        self,
        catalog: Sequence[Question],
        completer: Completer,
        model: str = "gpt-4",
        quiz_name: str = "Personal Growth Quiz",
    ):
        self.catalog: tuple[Question, ...] = tuple(catalog)
        self.completer = completer
        self.model = model
        self.quiz_name = quiz_name
        self.messages: list[Message] = []
        self.cursor = QuizCursor()
        self.archive = ResponseArchive()
        self.input_buffer = ""
        self.error: Optional[CompletionFailure] = None
        self.pending: Optional[PendingRequest] = None
        self._sequence = 0
        # Bumped by reset() so results of requests from an older session are dropped.
        self._generation = 0

    @property
    def state(self) -> QuizState:
        if self.pending is not None:
            return QuizState.AWAITING_RESPONSE
        if not self.cursor.started:
            return QuizState.IDLE
        if self.cursor.in_free_conversation:
            return QuizState.FREE_CONVERSATION
        return QuizState.PRESENTING_QUESTION

    def start(self) -> None:
        if self.cursor.started:
            return
        self.cursor.started = True
        if not self.catalog:
            log.info("Question catalog is empty, starting in free conversation")
            self.cursor.in_free_conversation = True
            return
        self._present_question(0)

    def _present_question(self, index: int) -> None:
        self.cursor.current_question_index = index
        self.messages.append(
            Message(
                role="assistant",
                type="question",
                content=self.catalog[index].question,
                question_id=index,
            )
        )
        log.info(f"[Question {index + 1}/{len(self.catalog)}] presented")

    def set_input(self, text: str) -> None:
        self.input_buffer = text

    def clear_input(self) -> None:
        """Clears the text buffer only; an in-flight request is unaffected."""
        self.input_buffer = ""

    def dismiss_error(self) -> None:
        self.error = None

    def diverge(self) -> bool:
        """Leave the scripted questions for free conversation."""
        if self.state is not QuizState.PRESENTING_QUESTION:
            return False
        self.cursor.in_free_conversation = True
        log.info(f"Diverged at question {self.cursor.current_question_index}")
        return True

    async def submit(self, text: Optional[str] = None) -> bool:
        """Send one user turn. Returns True if an assistant reply was appended.

        Blank text or an outstanding request makes this a silent no-op.
        """
        text = self.input_buffer if text is None else text
        if not text.strip():
            return False
        if self.pending is not None:
            log.debug("Submit dropped: a request is already in flight")
            return False

        quiz_turn = self.state is QuizState.PRESENTING_QUESTION
        question_id = self.cursor.current_question_index if quiz_turn else None
        message = Message(role="user", content=text, question_id=question_id)
        self.messages.append(message)
        self._sequence += 1
        pending = PendingRequest(
            sequence=self._sequence,
            message=message,
            message_index=len(self.messages) - 1,
            question_id=question_id,
            quiz_turn=quiz_turn,
        )
        self.pending = pending
        self.input_buffer = ""
        self.error = None
        generation = self._generation

        payload = {"model": self.model, "messages": [{"role": "user", "content": text}]}
        try:
            result = await self.completer.complete(payload)
        except Exception as e:
            log.error(f"[Turn {pending.sequence}] Completer raised: {e!r}")
            result = CompletionFailure(
                kind=ErrorKind.UPSTREAM_UNAVAILABLE,
                message=str(e) or type(e).__name__,
                request_id=str(uuid4()),
                status_code=502,
            )

        if generation != self._generation or self.pending is not pending:
            log.info(f"[Turn {pending.sequence}] Discarding result for a reset session")
            return False

        if isinstance(result, CompletionSuccess):
            reply = extract_reply(result.body)
            if reply is None:
                result = CompletionFailure(
                    kind=ErrorKind.MALFORMED_RESPONSE,
                    message="Response did not contain an assistant message",
                    request_id=result.request_id,
                    status_code=502,
                )
            else:
                self._accept(pending, reply)
                return True

        self._rollback(pending, result)
        return False

    def _accept(self, pending: PendingRequest, reply: str) -> None:
        self.pending = None
        self.messages.append(Message(role="assistant", content=reply, question_id=pending.question_id))
        if not pending.quiz_turn:
            return

        index = pending.question_id
        self.archive.record(index, self.catalog[index].question, pending.message.content)
        log.info(f"[Turn {pending.sequence}] Answer saved for question {index + 1}")
        if index + 1 < len(self.catalog):
            self._present_question(index + 1)
        else:
            self.cursor.in_free_conversation = True
            log.info("All questions answered, continuing in free conversation")

    def _rollback(self, pending: PendingRequest, failure: CompletionFailure) -> None:
        self.pending = None
        index = pending.message_index
        if index < len(self.messages) and self.messages[index] == pending.message:
            del self.messages[index]
        else:
            for i in range(len(self.messages) - 1, -1, -1):
                if self.messages[i] is pending.message:
                    del self.messages[i]
                    break
        self.error = failure
        log.warning(
            f"[Turn {pending.sequence}] {failure.kind.value}: {failure.message} "
            f"(request {failure.request_id})"
        )

    def reset(self) -> None:
        """Back to Idle with an empty log, cursor and archive."""
        self._generation += 1
        self.messages = []
        self.cursor = QuizCursor()
        self.archive.clear()
        self.pending = None
        self.input_buffer = ""
        self.error = None
        log.info("Conversation cleared")

    def export(self, completion_date: Optional[str] = None) -> dict[str, Any]:
        return self.archive.export(self.quiz_name, completion_date)
