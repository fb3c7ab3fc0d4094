from __future__ import annotations

from llm_chat_stream.chat import ChatStream, ExchangeResult
from llm_chat_stream.session import ChatMessage, ChatSession
from llm_chat_stream._delta import DeltaAccumulator, extract_delta
from llm_chat_stream._errors import ChatStreamError, MalformedPayloadError, SessionBusyError, TransportError
from llm_chat_stream._sse import StreamDemuxer

__all__ = [
    "ChatMessage",
    "ChatSession",
    "ChatStream",
    "ChatStreamError",
    "DeltaAccumulator",
    "ExchangeResult",
    "MalformedPayloadError",
    "SessionBusyError",
    "StreamDemuxer",
    "TransportError",
    "extract_delta",
]

__version__ = "0.1.0"
