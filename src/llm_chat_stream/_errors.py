from __future__ import annotations
from dataclasses import dataclass
from typing import Any

USER_ERROR_PREFIX = "Sorry, there was an error processing your request: "


class ChatStreamError(RuntimeError):
    """Error base de la librería."""


@dataclass(slots=True)
class TransportError(ChatStreamError):
    """
    Fallo de transporte de un intercambio completo.

    Cubre tres casos:
    - status HTTP fuera del rango 2xx
    - respuesta sin body (204 o Content-Length: 0)
    - conexión interrumpida a mitad del stream (status_code queda en None)

    Es el único error que se muestra al usuario; el intercambio se aborta.
    """
    message: str
    status_code: int | None = None
    body: str | None = None

    def __str__(self) -> str:
        parts = [f"TransportError(status_code={self.status_code}"]
        parts.append(f", message={self.message!r}")
        if self.body:
            parts.append(f", body={len(self.body)} chars")
        parts.append(")")
        return "".join(parts)

    @property
    def user_message(self) -> str:
        """Texto que se agrega a la conversación visible."""
        return f"{USER_ERROR_PREFIX}{self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convierte el error a dict para logging estructurado."""
        return {
            "status_code": self.status_code,
            "message": self.message,
            "body": self.body,
        }

    @property
    def is_client_error(self) -> bool:
        """True si es un error 4xx (problema del cliente)."""
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        """True si es un error 5xx (problema del servidor)."""
        return self.status_code is not None and 500 <= self.status_code < 600


@dataclass(slots=True)
class MalformedPayloadError(ChatStreamError):
    """
    Payload de un evento SSE que no es JSON válido.

    Se recupera localmente: se registra en el log y cuenta como delta vacío.
    """
    payload: str
    reason: str

    def __str__(self) -> str:
        return f"MalformedPayloadError(reason={self.reason!r}, payload={self.payload!r})"


class SessionBusyError(ChatStreamError):
    """La sesión ya tiene un intercambio en curso."""
