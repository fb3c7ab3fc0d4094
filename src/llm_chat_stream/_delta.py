"""
Extraction of text deltas from streamed chat payloads.

Two payload conventions are accepted without configuration:
- Workers AI style: {"response": "..."}
- OpenAI style: {"choices": [{"delta": {"content": "..."}}]}
"""

from __future__ import annotations

import json
import logging
from typing import Any

from llm_chat_stream._errors import MalformedPayloadError

DONE_SENTINEL = "[DONE]"


def is_done_sentinel(payload: str) -> bool:
    return payload == DONE_SENTINEL


def extract_delta(obj: Any) -> str | None:
    """
    Devuelve el fragmento de texto de un evento ya parseado, o None.

    Nunca lanza excepciones: cada nivel se valida antes de descender.
    """
    if not isinstance(obj, dict):
        return None

    response = obj.get("response")
    if isinstance(response, str) and response:
        return response

    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices:
        return None

    choice0 = choices[0]
    if not isinstance(choice0, dict):
        return None

    delta = choice0.get("delta")
    if not isinstance(delta, dict):
        return None

    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def parse_payload(payload: str) -> Any:
    """
    Parse an event payload as JSON.

    Raises:
        MalformedPayloadError: If the payload is not valid JSON or nests too deeply to decode.
    """
    try:
        return json.loads(payload)
    except (ValueError, RecursionError) as e:
        raise MalformedPayloadError(payload=payload, reason=str(e)) from e


class DeltaAccumulator:
    """
    Acumula el texto de respuesta de un intercambio.

    `text` solo crece; para un intercambio nuevo se crea otro acumulador.
    """

    def __init__(self) -> None:
        self._text = ""
        self.malformed_count = 0

    @property
    def text(self) -> str:
        return self._text

    def ingest(self, payload: str) -> str:
        """
        Procesa un payload y retorna el delta extraído ("" si no hay).

        Los payloads malformados se registran y cuentan como delta vacío.
        """
        if is_done_sentinel(payload):
            return ""

        try:
            obj = parse_payload(payload)
        except MalformedPayloadError as e:
            self.malformed_count += 1
            logging.warning("Failed to parse SSE data: %s", e)
            return ""

        delta = extract_delta(obj)
        if not delta:
            return ""
        self._text += delta
        return delta
