from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import Any, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field

from llm_chat_stream._errors import SessionBusyError

Role = Literal["system", "user", "assistant"]

DEFAULT_GREETING = "Hello! I'm an LLM chat app powered by Cloudflare Workers AI. How can I help you today?"


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Role
    content: str


class ChatRequest(BaseModel):
    """Request body para POST /api/chat."""

    model_config = ConfigDict(extra="forbid")

    messages: list[ChatMessage] = Field(default_factory=list)


def _default_history() -> list[ChatMessage]:
    return [ChatMessage(role="assistant", content=DEFAULT_GREETING)]


@dataclass(slots=True)
class ChatSession:
    """
    Estado de una conversación: historial ordenado y flag de procesamiento.

    Se pasa explícitamente a cada envío; un intercambio por vez.
    """

    history: list[ChatMessage] = field(default_factory=_default_history)
    busy: bool = False

    @classmethod
    def empty(cls) -> ChatSession:
        return cls(history=[])

    def add(self, role: Role, content: str) -> ChatMessage:
        msg = ChatMessage(role=role, content=content)
        self.history.append(msg)
        return msg

    def to_request(self) -> dict[str, Any]:
        return ChatRequest(messages=list(self.history)).model_dump()

    def acquire(self) -> None:
        """
        Marca la sesión como ocupada.

        Raises:
            SessionBusyError: Si ya hay un intercambio en curso.
        """
        if self.busy:
            raise SessionBusyError("an exchange is already in flight for this session")
        self.busy = True

    def release(self) -> None:
        self.busy = False

    @contextlib.contextmanager
    def processing(self) -> Iterator[ChatSession]:
        """Mantiene `busy` durante el bloque y lo libera en cualquier salida."""
        self.acquire()
        try:
            yield self
        finally:
            self.release()
