from unittest.mock import AsyncMock, MagicMock
import logging

import httpx
import pytest

from llm_chat_stream._client import ChatHttpClient, HttpConfig, _message_from_error_body
from llm_chat_stream._config import ENV_HTTP_DEBUG
from llm_chat_stream._errors import TransportError

CHAT_URL = "https://example.com/api/chat"


def test_httpconfig_initialization():
    cfg = HttpConfig(base_url="https://example.com", timeout_s=10.0)

    assert cfg.base_url == "https://example.com"
    assert cfg.timeout_s == 10.0


def make_client(api_key: str | None = "secret-key"):
    cfg = HttpConfig(base_url="https://example.com", timeout_s=5.0)
    return ChatHttpClient(config=cfg, api_key=api_key)


def make_response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", CHAT_URL), **kwargs)


def test_headers_without_accept():
    client = make_client()

    headers = client._headers()

    assert headers["Authorization"] == "Bearer secret-key"
    assert headers["Content-Type"] == "application/json"
    assert "Accept" not in headers


def test_headers_with_accept():
    client = make_client()

    headers = client._headers(accept="text/event-stream")

    assert headers["Accept"] == "text/event-stream"


def test_headers_without_api_key_omit_authorization():
    client = make_client(api_key=None)

    assert "Authorization" not in client._headers()


def test_raise_for_status_success():
    # No debe lanzar excepción en rango 2xx con body.
    ChatHttpClient.raise_for_status(make_response(200, text="data: x\n\n"))


def test_raise_for_status_no_content_raises():
    with pytest.raises(TransportError) as exc:
        ChatHttpClient.raise_for_status(make_response(204))

    assert exc.value.message == "Response body is null"
    assert exc.value.status_code == 204


def test_raise_for_status_empty_body_raises():
    with pytest.raises(TransportError) as exc:
        ChatHttpClient.raise_for_status(make_response(200, headers={"content-length": "0"}, content=b""))

    assert exc.value.message == "Response body is null"


def test_raise_for_status_plain_text_error_keeps_body_out_of_message():
    with pytest.raises(TransportError) as exc:
        ChatHttpClient.raise_for_status(make_response(502, text="upstream down"))

    err = exc.value
    assert err.status_code == 502
    assert err.message.startswith("API request to /api/chat failed with status 502: Bad Gateway.")
    assert "upstream down" not in err.message
    assert err.body == "upstream down"


def test_raise_for_status_json_error_message_is_used():
    with pytest.raises(TransportError) as exc:
        ChatHttpClient.raise_for_status(make_response(500, json={"error": "Failed to process request"}))

    assert exc.value.message == "Failed to process request"
    assert exc.value.is_server_error


def test_raise_for_status_unread_stream_body():
    resp = make_response(429, stream=httpx.ByteStream(b"slow down"))

    with pytest.raises(TransportError) as exc:
        ChatHttpClient.raise_for_status(resp)

    assert exc.value.status_code == 429
    assert exc.value.body is None


@pytest.mark.parametrize(
    "body,expected",
    [
        ('{"error": "boom"}', "boom"),
        ('{"error": {"message": "nested"}}', "nested"),
        ('{"message": "top"}', "top"),
        ('{"error": {"code": 1}}', None),
        ('["x"]', None),
        ("{broken", None),
        ("", None),
    ],
)
def test_message_from_error_body(body, expected):
    assert _message_from_error_body(body, "application/json; charset=utf-8") == expected


def test_message_from_error_body_ignores_non_json_content_type():
    assert _message_from_error_body('{"error": "boom"}', "text/plain") is None


def test_check_stream_response_reads_error_body():
    client = make_client()
    resp = MagicMock()
    resp.status_code = 500
    calls = {}

    def fake_rfs(r):
        calls["resp"] = r

    client.raise_for_status = fake_rfs
    client.check_stream_response(resp)

    resp.read.assert_called_once()
    assert calls["resp"] is resp


def test_check_stream_response_success_does_not_read():
    client = make_client()
    resp = make_response(200, text="data: x\n\n")
    resp.read = MagicMock()

    client.check_stream_response(resp)

    resp.read.assert_not_called()


@pytest.mark.asyncio
async def test_acheck_stream_response_reads_error_body():
    client = make_client()
    resp = make_response(503, text="busy")

    with pytest.raises(TransportError) as exc:
        await client.acheck_stream_response(resp)

    assert exc.value.status_code == 503
    assert exc.value.body == "busy"


def test_stream_post_json_uses_event_stream_accept():
    client = make_client()
    mock_client = MagicMock()
    client._client = mock_client

    payload = {"messages": [{"role": "user", "content": "hi"}]}
    client.stream_post_json("/api/chat", payload)

    mock_client.stream.assert_called_once()
    args, kwargs = mock_client.stream.call_args
    assert args == ("POST", CHAT_URL)
    assert kwargs["headers"]["Accept"] == "text/event-stream"
    assert kwargs["headers"]["Content-Type"] == "application/json"
    assert kwargs["json"] == payload


def test_astream_post_json_uses_async_client():
    client = make_client()
    mock_ac = MagicMock()
    client._aclient = mock_ac

    client.astream_post_json("/api/chat", {"messages": []})

    mock_ac.stream.assert_called_once()
    args, kwargs = mock_ac.stream.call_args
    assert args == ("POST", CHAT_URL)
    assert kwargs["headers"]["Authorization"] == "Bearer secret-key"


def test_debug_hooks_redact_authorization(monkeypatch, caplog):
    monkeypatch.setenv(ENV_HTTP_DEBUG, "1")
    client = make_client()
    request = httpx.Request("POST", CHAT_URL, headers=client._headers(), json={"messages": []})

    with caplog.at_level(logging.WARNING):
        for hook in client._client.event_hooks["request"]:
            hook(request)

    assert "HTTPX REQUEST POST" in caplog.text
    assert "REDACTED" in caplog.text
    assert "secret-key" not in caplog.text


def test_debug_hooks_silent_by_default(monkeypatch, caplog):
    monkeypatch.delenv(ENV_HTTP_DEBUG, raising=False)
    client = make_client()
    response = make_response(200, text="data: x\n\n")

    with caplog.at_level(logging.WARNING):
        for hook in client._client.event_hooks["response"]:
            hook(response)

    assert caplog.text == ""


def test_close_closes_underlying_client():
    client = make_client()
    mock_client = MagicMock()
    client._client = mock_client

    client.close()

    mock_client.close.assert_called_once()


@pytest.mark.asyncio
async def test_aclose_closes_underlying_async_client():
    client = make_client()
    mock_ac = AsyncMock()
    client._aclient = mock_ac

    await client.aclose()

    mock_ac.aclose.assert_awaited_once()


def test_raise_for_status_unrecognized_json_error_uses_generic_message():
    with pytest.raises(TransportError) as exc:
        ChatHttpClient.raise_for_status(make_response(400, json={"detail": "bad messages"}))

    assert exc.value.message.startswith("API request to /api/chat failed with status 400: Bad Request.")
    assert "bad messages" in (exc.value.body or "")
    assert "bad messages" not in exc.value.message
