from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

import httpx

from llm_chat_stream._client import ChatHttpClient, HttpConfig
from llm_chat_stream._config import ClientSettings
from llm_chat_stream._delta import DeltaAccumulator, is_done_sentinel
from llm_chat_stream._errors import TransportError
from llm_chat_stream._sse import StreamDemuxer
from llm_chat_stream.session import ChatSession

TextSink = Callable[[str], None]


@dataclass(slots=True)
class ExchangeResult:
    """
    Resultado de un envío.

    - skipped: el envío se rechazó (mensaje vacío o sesión ocupada)
    - completed: el stream terminó normalmente ([DONE] o fin del body)
    - done_received: se recibió el centinela [DONE]
    - error: TransportError si el intercambio se abortó; `text` conserva lo parcial
    """

    text: str = ""
    completed: bool = False
    done_received: bool = False
    skipped: bool = False
    error: Optional[TransportError] = None
    malformed_events: int = 0

    @property
    def ok(self) -> bool:
        return self.completed and self.error is None


def _consume_batch(payloads: Iterable[str], acc: DeltaAccumulator, on_text: TextSink | None) -> bool:
    """
    Procesa los payloads de un lote en orden.

    Retorna True al encontrar [DONE]; los payloads posteriores del lote se descartan.
    """
    for data in payloads:
        if is_done_sentinel(data):
            return True
        delta = acc.ingest(data)
        if delta and on_text is not None:
            on_text(acc.text)
    return False


def _transport_error_from_httpx(exc: httpx.HTTPError) -> TransportError:
    return TransportError(message=str(exc) or type(exc).__name__)


# ------------------------------------------------------------------------------------
# Cliente de chat con streaming SSE: POST /api/chat
# ------------------------------------------------------------------------------------


@dataclass(slots=True)
class ChatStream:
    """
    Envía la conversación al endpoint de chat y transmite la respuesta.

    Contrato:
    - send_message/asend_message procesan un intercambio por sesión
    - on_text recibe el texto acumulado completo cada vez que crece
    - on_error recibe el mensaje de error visible para el usuario
    - al terminar (éxito o error) la sesión vuelve a estar libre

    Example:
        >>> chat = ChatStream(base_url="http://localhost:8787")
        >>> session = ChatSession()
        >>> result = chat.send_message(session, "Hola", on_text=print)
    """

    base_url: str | None = None
    chat_path: str | None = None
    timeout_s: float | None = None
    api_key: str | None = field(default=None, repr=False)

    settings: ClientSettings = field(init=False)
    _http: ChatHttpClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.settings = ClientSettings.from_env_or_value(
            base_url=self.base_url,
            chat_path=self.chat_path,
            timeout_s=self.timeout_s,
            api_key=self.api_key,
        )
        self._http = ChatHttpClient(
            config=HttpConfig(base_url=self.settings.base_url, timeout_s=self.settings.timeout_s),
            api_key=self.settings.api_key,
        )

    def close(self) -> None:
        self._http.close()

    async def aclose(self) -> None:
        await self._http.aclose()

    def _stream(self, payload: dict[str, Any], acc: DeltaAccumulator, on_text: TextSink | None) -> bool:
        demuxer = StreamDemuxer()
        try:
            with self._http.stream_post_json(self.settings.chat_path, payload) as r:
                self._http.check_stream_response(r)
                for chunk in r.iter_text():
                    if _consume_batch(demuxer.push(chunk), acc, on_text):
                        return True
                return _consume_batch(demuxer.flush(), acc, on_text)
        except httpx.HTTPError as e:
            demuxer.reset()
            raise _transport_error_from_httpx(e) from e

    async def _astream(self, payload: dict[str, Any], acc: DeltaAccumulator, on_text: TextSink | None) -> bool:
        demuxer = StreamDemuxer()
        try:
            async with self._http.astream_post_json(self.settings.chat_path, payload) as r:
                await self._http.acheck_stream_response(r)
                async for chunk in r.aiter_text():
                    if _consume_batch(demuxer.push(chunk), acc, on_text):
                        return True
                return _consume_batch(demuxer.flush(), acc, on_text)
        except httpx.HTTPError as e:
            demuxer.reset()
            raise _transport_error_from_httpx(e) from e

    @staticmethod
    def _failed(acc: DeltaAccumulator, error: TransportError, on_error: TextSink | None) -> ExchangeResult:
        logging.error("Chat exchange failed: %s", error.to_dict())
        if on_error is not None:
            on_error(error.user_message)
        return ExchangeResult(text=acc.text, error=error, malformed_events=acc.malformed_count)

    def send_message(
        self,
        session: ChatSession,
        message: str,
        *,
        on_text: TextSink | None = None,
        on_error: TextSink | None = None,
    ) -> ExchangeResult:
        """
        Envía `message` y transmite la respuesta del asistente.

        Args:
            session: Conversación destino; recibe el mensaje del usuario y la respuesta.
            message: Texto del usuario; se ignora si queda vacío tras strip().
            on_text: Sink de display, recibe el texto acumulado en cada delta no vacío.
            on_error: Sink para el mensaje de error visible.

        Returns:
            ExchangeResult con el texto final o el error de transporte.
        """
        text = message.strip()
        if not text or session.busy:
            return ExchangeResult(skipped=True)

        with session.processing():
            session.add("user", text)
            acc = DeltaAccumulator()
            try:
                done = self._stream(session.to_request(), acc, on_text)
            except TransportError as e:
                return self._failed(acc, e, on_error)

            session.add("assistant", acc.text)
            return ExchangeResult(
                text=acc.text,
                completed=True,
                done_received=done,
                malformed_events=acc.malformed_count,
            )

    async def asend_message(
        self,
        session: ChatSession,
        message: str,
        *,
        on_text: TextSink | None = None,
        on_error: TextSink | None = None,
    ) -> ExchangeResult:
        text = message.strip()
        if not text or session.busy:
            return ExchangeResult(skipped=True)

        with session.processing():
            session.add("user", text)
            acc = DeltaAccumulator()
            try:
                done = await self._astream(session.to_request(), acc, on_text)
            except TransportError as e:
                return self._failed(acc, e, on_error)

            session.add("assistant", acc.text)
            return ExchangeResult(
                text=acc.text,
                completed=True,
                done_received=done,
                malformed_events=acc.malformed_count,
            )
