from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from llm_chat_stream._config import http_debug_enabled
from llm_chat_stream._errors import TransportError


@dataclass(frozen=True, slots=True)
class HttpConfig:
    base_url: str
    timeout_s: float = 120.0


def _message_from_error_body(body_text: str, content_type: str) -> str | None:
    """
    Extrae un mensaje legible de un body de error JSON.

    Formatos aceptados: {"error": "..."}, {"error": {"message": "..."}} y {"message": "..."}.
    Retorna None si el body no es JSON o no matchea ninguno.
    """
    if "application/json" not in content_type.lower() or not body_text:
        return None

    try:
        data = json.loads(body_text)
    except (ValueError, RecursionError):
        return None

    if not isinstance(data, dict):
        return None

    error_obj = data.get("error")
    if isinstance(error_obj, str) and error_obj.strip():
        return error_obj.strip()
    if isinstance(error_obj, dict):
        msg = error_obj.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()

    msg = data.get("message")
    if isinstance(msg, str) and msg.strip():
        return msg.strip()
    return None


def _parse_error_response(
    *,
    path: str,
    status_code: int,
    reason_phrase: str,
    body_text: str,
    content_type: str,
) -> TransportError:
    message = _message_from_error_body(body_text, content_type)
    if message is None:
        message = (
            f"API request to {path} failed with status {status_code}: {reason_phrase}. "
            "Please try again or check your connection."
        )
    return TransportError(message=message, status_code=status_code, body=body_text or None)


class ChatHttpClient:
    """
    Wrapper HTTPX ligero con:
    - JSON requests
    - Streaming SSE via httpx.Client.stream / AsyncClient.stream
    - Debug logging opcional (LLM_CHAT_HTTP_DEBUG)
    """

    def __init__(self, *, config: HttpConfig, api_key: str | None = None) -> None:
        self._config = config
        self._api_key = api_key
        self._debug_http = http_debug_enabled()

        def _redact_headers(headers: dict[str, Any]) -> dict[str, Any]:
            out = dict(headers)
            for k in ("authorization", "Authorization"):
                if k in out:
                    out[k] = "Bearer ***REDACTED***"
            return out

        def _log_request(request: httpx.Request) -> None:
            if not self._debug_http:
                return
            logging.warning("HTTPX REQUEST %s %s", request.method, request.url)
            logging.warning("HTTPX REQUEST headers=%s", _redact_headers(dict(request.headers)))
            if request.content:
                logging.warning("HTTPX REQUEST body=%s", request.content.decode("utf-8", "ignore"))

        def _log_response(response: httpx.Response) -> None:
            if not self._debug_http:
                return
            req = response.request
            logging.warning("HTTPX RESPONSE %s %s -> %s", req.method, req.url, response.status_code)
            logging.warning("HTTPX RESPONSE headers=%s", dict(response.headers))

        async def _log_request_async(request: httpx.Request) -> None:
            _log_request(request)

        async def _log_response_async(response: httpx.Response) -> None:
            _log_response(response)

        EventHooksDict = dict[str, list[Callable[..., Any]]]

        # Los bodies de respuesta nunca se loguean: casi siempre son text/event-stream.
        hooks_sync: EventHooksDict = {"request": [_log_request], "response": [_log_response]}
        hooks_async: EventHooksDict = {"request": [_log_request_async], "response": [_log_response_async]}

        self._client = httpx.Client(timeout=httpx.Timeout(config.timeout_s), event_hooks=hooks_sync)
        self._aclient = httpx.AsyncClient(timeout=httpx.Timeout(config.timeout_s), event_hooks=hooks_async)

    def close(self) -> None:
        self._client.close()

    async def aclose(self) -> None:
        await self._aclient.aclose()

    def _headers(self, *, accept: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if accept:
            headers["Accept"] = accept
        return headers

    @staticmethod
    def raise_for_status(resp: httpx.Response) -> None:
        """Verifica status y body; levanta TransportError si el intercambio no puede seguir."""
        if 200 <= resp.status_code < 300:
            if resp.status_code == 204 or resp.headers.get("content-length") == "0":
                raise TransportError(message="Response body is null", status_code=resp.status_code)
            return

        body_text: str | None = None
        try:
            body_text = resp.text
        except httpx.ResponseNotRead:
            body_text = None

        raise _parse_error_response(
            path=resp.request.url.path,
            status_code=resp.status_code,
            reason_phrase=resp.reason_phrase,
            body_text=body_text or "",
            content_type=resp.headers.get("content-type", ""),
        )

    def check_stream_response(self, resp: httpx.Response) -> None:
        """Igual que raise_for_status, leyendo primero el body de error de un stream."""
        if not 200 <= resp.status_code < 300:
            resp.read()
        self.raise_for_status(resp)

    async def acheck_stream_response(self, resp: httpx.Response) -> None:
        if not 200 <= resp.status_code < 300:
            await resp.aread()
        self.raise_for_status(resp)

    def stream_post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """
        Retorna un httpx stream context manager.

        Uso:
            with client.stream_post_json(...) as r:
                client.check_stream_response(r)
                for chunk in r.iter_text():
                    ...
        """
        url = f"{self._config.base_url}{path}"
        return self._client.stream("POST", url, headers=self._headers(accept="text/event-stream"), json=payload)

    def astream_post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """
        Retorna un httpx stream context manager asíncrono.

        Uso:
            async with client.astream_post_json(...) as r:
                await client.acheck_stream_response(r)
                async for chunk in r.aiter_text():
                    ...
        """
        url = f"{self._config.base_url}{path}"
        return self._aclient.stream("POST", url, headers=self._headers(accept="text/event-stream"), json=payload)
