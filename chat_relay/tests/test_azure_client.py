import httpx
import pytest

from chat_relay.domain.exceptions import (
    MalformedResponse,
    TransportError,
    UpstreamStatusError,
    ValidationError,
)
from chat_relay.domain.models import DONE, ConversationTurnRequest, InternalChatMessage, MessageDetail
from chat_relay.providers.azure_client import AzureChatClient


class SettingsStub:
    azure_api_key = "azure-key-0000000"
    azure_endpoint = None
    az_url = "https://example.openai.azure.com/openai/deployments/gpt-4o/chat/completions"
    azure_deployment = "gpt-4o"
    azure_api_version = "2024-05-01-preview"
    openai_api_model = None
    openai_api_disable_debug = True
    http_timeout = 1.0


OK_BODY = {
    "id": "r1",
    "created": 1,
    "model": "gpt-4o",
    "choices": [{"index": 0, "finish_reason": "stop", "message": {"role": "assistant", "content": "hello"}}],
}


class Resp:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


def fake_client(response=None, error=None, captured=None):
    class Client:
        def __init__(self, *a, **kw):
            if captured is not None:
                captured["client_kwargs"] = kw

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, url, json=None, headers=None, **_):
            if captured is not None:
                captured.setdefault("calls", []).append({"url": url, "json": json, "headers": headers})
            if error is not None:
                raise error
            return response

    return Client


@pytest.mark.asyncio
async def test_submit_delivers_done_then_message(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY), captured=captured))
    events = []
    client = AzureChatClient(SettingsStub())

    await client.submit(ConversationTurnRequest(message="hi", system_message="be terse", delivery=events.append))

    assert events[0] == DONE
    assert events[1] == InternalChatMessage(
        id="r1",
        text="hello",
        role="assistant",
        parent_message_id="r1",
        conversation_id="r1-conv",
        detail=MessageDetail(finish_reason="stop", created=1, model="gpt-4o", index=0),
    )
    assert events[1].to_dict() == {
        "id": "r1",
        "text": "hello",
        "role": "assistant",
        "parentMessageId": "r1",
        "conversationId": "r1-conv",
        "detail": {"finish_reason": "stop", "created": 1, "model": "gpt-4o", "index": 0},
    }
    assert len(events) == 2

    assert len(captured["calls"]) == 1
    call = captured["calls"][0]
    assert call["url"] == SettingsStub.az_url
    assert call["headers"] == {"Api-Key": "azure-key-0000000", "Content-Type": "application/json"}
    assert call["json"] == {
        "messages": [{"role": "system", "content": "be terse"}, {"role": "user", "content": "hi"}],
        "model": "gpt-4o",
        "temperature": None,
        "top_p": None,
    }
    assert captured["client_kwargs"]["timeout"] == 1.0


@pytest.mark.asyncio
async def test_submit_401_logs_mapped_message(monkeypatch, caplog):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(status_code=401, text="unauthorized")))
    events = []

    await AzureChatClient(SettingsStub()).submit(ConversationTurnRequest(message="hi", delivery=events.append))

    assert events == []
    assert "[OpenAI] 提供错误的API密钥 | Incorrect API key provided" in caplog.text


@pytest.mark.asyncio
async def test_submit_result_classifies_status_error(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(status_code=418, text="teapot")))

    outcome = await AzureChatClient(SettingsStub()).submit_result(ConversationTurnRequest(message="hi"))

    assert not outcome.ok
    assert isinstance(outcome.error, UpstreamStatusError)
    assert outcome.error.http_status == 418
    assert outcome.error.extra["body"] == "teapot"


@pytest.mark.asyncio
async def test_empty_choices_does_not_deliver(monkeypatch, caplog):
    body = {"id": "r1", "created": 1, "model": "gpt-4o", "choices": []}
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=body)))
    events = []
    client = AzureChatClient(SettingsStub())

    await client.submit(ConversationTurnRequest(message="hi", delivery=events.append))
    outcome = await client.submit_result(ConversationTurnRequest(message="hi"))

    assert events == []
    assert isinstance(outcome.error, MalformedResponse)
    assert "response has no choices" in caplog.text


@pytest.mark.asyncio
async def test_invalid_json_is_malformed(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=ValueError("Expecting value"))))

    outcome = await AzureChatClient(SettingsStub()).submit_result(ConversationTurnRequest(message="hi"))

    assert isinstance(outcome.error, MalformedResponse)


@pytest.mark.asyncio
async def test_network_error_is_swallowed(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(error=httpx.ConnectError("connection refused")))
    events = []
    client = AzureChatClient(SettingsStub())

    await client.submit(ConversationTurnRequest(message="hi", delivery=events.append))
    outcome = await client.submit_result(ConversationTurnRequest(message="hi"))

    assert events == []
    assert isinstance(outcome.error, TransportError)
    assert outcome.error.code == "NETWORK_ERROR"
    assert outcome.message is None


@pytest.mark.asyncio
async def test_submit_without_delivery_is_noop(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY), captured=captured))

    await AzureChatClient(SettingsStub()).submit(ConversationTurnRequest(message="hi"))

    assert len(captured["calls"]) == 1


@pytest.mark.asyncio
async def test_done_marker_can_be_disabled(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY)))
    events = []

    client = AzureChatClient(SettingsStub(), emit_done_marker=False)
    await client.submit(ConversationTurnRequest(message="hi", delivery=events.append))

    assert len(events) == 1
    assert events[0].text == "hello"


@pytest.mark.asyncio
async def test_delivery_exception_does_not_escape(monkeypatch, caplog):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY)))

    def broken(_event):
        raise RuntimeError("ui gone")

    await AzureChatClient(SettingsStub()).submit(ConversationTurnRequest(message="hi", delivery=broken))

    assert "Delivery callback failed" in caplog.text


@pytest.mark.asyncio
async def test_model_comes_from_configuration(monkeypatch):
    class ModelOverride(SettingsStub):
        openai_api_model = "gpt-4o-mini"

    captured = {}
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY), captured=captured))
    client = AzureChatClient(ModelOverride())

    await client.submit(ConversationTurnRequest(message="hi"))

    assert client.current_model() == "gpt-4o-mini"
    assert captured["calls"][0]["json"]["model"] == "gpt-4o-mini"


def test_missing_api_key_rejected():
    class NoKey(SettingsStub):
        azure_api_key = None

    with pytest.raises(ValidationError) as exc:
        AzureChatClient(NoKey())
    assert exc.value.code == "MISSING_API_KEY"


def test_missing_endpoint_rejected():
    class NoEndpoint(SettingsStub):
        az_url = None
        azure_endpoint = None

    with pytest.raises(ValidationError) as exc:
        AzureChatClient(NoEndpoint())
    assert exc.value.code == "MISSING_ENDPOINT"


@pytest.mark.asyncio
async def test_non_finite_temperature_sent_as_null(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY), captured=captured))
    events = []

    await AzureChatClient(SettingsStub()).submit(
        ConversationTurnRequest(message="hi", temperature=float("nan"), delivery=events.append)
    )

    assert captured["calls"][0]["json"]["temperature"] is None
    assert len(events) == 2


@pytest.mark.asyncio
async def test_unserializable_last_context_is_classified(monkeypatch):
    captured = {}
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY), captured=captured))
    events = []
    client = AzureChatClient(SettingsStub())
    req = ConversationTurnRequest(message="hi", last_context={"conversationId": object()}, delivery=events.append)

    await client.submit(req)
    outcome = await client.submit_result(req)

    assert events == []
    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.code == "INVALID_REQUEST"
    assert "calls" not in captured


@pytest.mark.asyncio
async def test_failure_log_carries_provider_name(monkeypatch, caplog):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(status_code=503)))

    await AzureChatClient(SettingsStub()).submit(ConversationTurnRequest(message="hi"))

    failures = [r for r in caplog.records if r.getMessage().startswith("Error calling Azure OpenAI")]
    assert failures[0].extra["provider"] == "azure-openai"
    assert failures[0].extra["http_status"] == 503


@pytest.mark.asyncio
async def test_redacted_logging_omits_response_body(monkeypatch, caplog):
    class Redacted(SettingsStub):
        openai_api_disable_debug = False
        log_redact_content = True

    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY)))

    await AzureChatClient(Redacted()).submit(ConversationTurnRequest(message="hi"))

    results = [r for r in caplog.records if r.getMessage() == "result"]
    assert results[0].extra == {"response_id": "r1"}


@pytest.mark.asyncio
async def test_debug_logging_includes_response_body(monkeypatch, caplog):
    class Debug(SettingsStub):
        openai_api_disable_debug = False

    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY)))

    await AzureChatClient(Debug()).submit(ConversationTurnRequest(message="hi"))

    results = [r for r in caplog.records if r.getMessage() == "result"]
    assert results[0].extra["response"] == OK_BODY


@pytest.mark.asyncio
async def test_submit_result_keeps_raw_payload(monkeypatch):
    monkeypatch.setattr("httpx.AsyncClient", fake_client(Resp(body=OK_BODY)))

    outcome = await AzureChatClient(SettingsStub()).submit_result(ConversationTurnRequest(message="hi"))

    assert outcome.ok
    assert outcome.raw == OK_BODY
    assert outcome.message.conversation_id == "r1-conv"
