"""Completion and delivery adapters against stubbed transports."""

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from relay.completion import CompletionClient
from relay.delivery import DeliveryClient
from relay.errors import DeliveryError, ProviderError

GRAPH = "https://graph.facebook.com/v19.0"


class FakeOpenAI:
    """Just enough of AsyncOpenAI for chat.completions.create."""

    def __init__(self, content="  Hello there!  ", error=None, choices=None):
        self.content = content
        self.error = error
        self.choices = choices
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.choices is not None:
            return SimpleNamespace(choices=self.choices)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def close(self):
        pass


@pytest.mark.asyncio
async def test_completion_sends_system_and_user_turns():
    ai = FakeOpenAI()
    client = CompletionClient("sk-test", model="gpt-4o", client=ai)

    reply = await client.complete("Be nice.", "Hi")

    assert reply == "Hello there!"
    assert ai.requests == [{
        "model": "gpt-4o",
        "messages": [
            {"role": "system", "content": "Be nice."},
            {"role": "user", "content": "Hi"},
        ],
    }]


@pytest.mark.asyncio
async def test_completion_transport_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client = CompletionClient("sk-test", client=FakeOpenAI(error=openai.APIConnectionError(request=request)))

    with pytest.raises(ProviderError):
        await client.complete("p", "Hi")


@pytest.mark.asyncio
async def test_completion_error_status():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request, json={"error": {"message": "slow down"}})
    error = openai.RateLimitError("slow down", response=response, body=None)
    client = CompletionClient("sk-test", client=FakeOpenAI(error=error))

    with pytest.raises(ProviderError):
        await client.complete("p", "Hi")


@pytest.mark.asyncio
@pytest.mark.parametrize("ai", [
    FakeOpenAI(content=None),
    FakeOpenAI(content="   "),
    FakeOpenAI(choices=[]),
])
async def test_completion_unusable_response(ai):
    with pytest.raises(ProviderError):
        await CompletionClient("sk-test", client=ai).complete("p", "Hi")


def graph_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=GRAPH, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_delivery_request_shape():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"messages": [{"id": "wamid.out"}]})

    client = DeliveryClient(GRAPH, client=graph_client(handler))
    result = await client.send("555000111", "15551234567", "Hello there!", "tok")
    await client.aclose()

    assert result == {"messages": [{"id": "wamid.out"}]}
    [request] = seen
    assert request.method == "POST"
    assert str(request.url) == f"{GRAPH}/555000111/messages"
    assert request.headers["Authorization"] == "Bearer tok"
    body = json.loads(request.content)
    assert body["messaging_product"] == "whatsapp"
    assert body["to"] == "15551234567"
    assert body["text"] == {"body": "Hello there!"}


@pytest.mark.asyncio
async def test_delivery_error_status():
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Invalid OAuth access token"}})

    client = DeliveryClient(GRAPH, client=graph_client(handler))

    with pytest.raises(DeliveryError) as exc:
        await client.send("555000111", "15551234567", "Hello", "expired")
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_delivery_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = DeliveryClient(GRAPH, client=graph_client(handler))

    with pytest.raises(DeliveryError) as exc:
        await client.send("555000111", "15551234567", "Hello", "tok")
    assert exc.value.status_code is None
