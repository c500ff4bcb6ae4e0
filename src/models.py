"""Pydantic models for type safety."""

from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """One entry of the conversation log. Never mutated after it is appended."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    question_id: Optional[int] = None
    type: Optional[Literal["question"]] = None


class Question(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question: str
    max_score: float = Field(default=0, alias="maxScore")


class QuizCursor(BaseModel):
    """Position in the question catalog."""
    current_question_index: int = Field(default=0, ge=0)
    started: bool = False
    in_free_conversation: bool = False


class ArchiveEntry(BaseModel):
    question: str
    response: str
    timestamp: str  # ISO-8601
    insights: List[str] = []


class PendingRequest(BaseModel):
    """The single user turn currently waiting on the proxy."""
    model_config = ConfigDict(frozen=True)

    sequence: int
    message: Message
    message_index: int
    question_id: Optional[int] = None
    quiz_turn: bool = False


class ErrorKind(str, Enum):
    INVALID_REQUEST = "InvalidRequest"
    MISSING_CREDENTIAL = "MissingCredential"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    UPSTREAM_REJECTED = "UpstreamRejected"
    MALFORMED_RESPONSE = "MalformedResponse"


_KIND_LABELS = {
    ErrorKind.INVALID_REQUEST: "Invalid request",
    ErrorKind.MISSING_CREDENTIAL: "Server misconfigured",
    ErrorKind.UPSTREAM_UNAVAILABLE: "Upstream unavailable",
    ErrorKind.UPSTREAM_REJECTED: "Upstream rejected the request",
    ErrorKind.MALFORMED_RESPONSE: "Malformed response from server",
}


class CompletionSuccess(BaseModel):
    ok: Literal[True] = True
    body: dict[str, Any]
    request_id: str


class CompletionFailure(BaseModel):
    """Structured error returned (never raised) by a completer."""
    ok: Literal[False] = False
    kind: ErrorKind
    message: str
    request_id: str
    status_code: int = 500

    def to_payload(self) -> dict[str, str]:
        """Body of the HTTP error response."""
        return {
            "error": self.message,
            "requestId": self.request_id,
            "kind": self.kind.value,
        }

    def display_message(self) -> str:
        """Text for the inline error region; keeps the error kind visible."""
        return f"{_KIND_LABELS[self.kind]}: {self.message} (request {self.request_id})"


CompletionResult = Union[CompletionSuccess, CompletionFailure]
