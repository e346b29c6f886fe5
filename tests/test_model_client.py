import asyncio
import json

import httpx
import pytest

from aidoc.config import Settings
from aidoc.llm.client import AuthMissingError, ModelClient, TransportError, UpstreamError

SETTINGS = Settings(openai_api_key="sk-test", openai_base_url="https://llm.test/v1", openai_model="m-1")
MESSAGES = [{"role": "user", "content": "hi"}]

def completion(content):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "m-1",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }

def client_with(handler, settings=SETTINGS):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ModelClient(settings, http_client=http)

def test_missing_key_fails_before_any_request():
    def handler(request):
        raise AssertionError("no request expected")
    client = client_with(handler, Settings(openai_api_key=None))
    with pytest.raises(AuthMissingError):
        asyncio.run(client.complete(MESSAGES))

def test_request_shape_and_content():
    seen = {}
    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion('{"items": []}'))

    out = asyncio.run(client_with(handler).complete(MESSAGES))
    assert out == '{"items": []}'
    assert seen["url"] == "https://llm.test/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "m-1"
    assert seen["body"]["temperature"] == 0
    assert seen["body"]["response_format"] == {"type": "json_object"}
    assert seen["body"]["messages"] == MESSAGES

def test_null_content_is_empty_string():
    def handler(request):
        return httpx.Response(200, json=completion(None))
    assert asyncio.run(client_with(handler).complete(MESSAGES)) == ""

def test_non_2xx_is_upstream_error_without_retry():
    calls = []
    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"error": {"message": "overloaded"}})
    with pytest.raises(UpstreamError) as exc:
        asyncio.run(client_with(handler).complete(MESSAGES))
    assert exc.value.status_code == 503
    assert "overloaded" in exc.value.body
    assert len(calls) == 1

def test_network_failure_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)
    with pytest.raises(TransportError):
        asyncio.run(client_with(handler).complete(MESSAGES))
