import json

import httpx
import pytest

from shared.clients.ClientInterface import extract_model_name
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.cohere.EmbedClientCohere import EmbedClientCohere
from shared.clients.embed.local.EmbedClientLocal import EmbedClientLocal
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.llm.local.LLMClientLocal import LLMClientLocal
from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai
from shared.exceptions import EmbeddingRequestFailed, GenerationRequestFailed


class Recorder:
    """MockTransport handler that records requests and answers with a fixed response."""

    def __init__(self, status_code: int = 200, payload: dict | None = None):
        self.status_code = status_code
        self.payload = payload or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last_body(self) -> dict:
        return json.loads(self.requests[-1].content)


async def _booted(client, recorder: Recorder):
    client.use_transport(httpx.MockTransport(recorder))
    await client.boot()
    return client


@pytest.mark.parametrize(
    "selection, expected",
    [
        ("gpt-4o-mini (OpenAI)", "gpt-4o-mini"),
        ("  nomic-embed-text (Local) ", "nomic-embed-text"),
        ("plain-model", "plain-model"),
    ],
)
def test_extract_model_name(selection, expected):
    assert extract_model_name(selection) == expected


##########################################
################# EMBED ##################
##########################################

@pytest.mark.parametrize(
    "selection, client_class",
    [
        ("text-embedding-3-small (OpenAI)", EmbedClientOpenai),
        ("embed-english-v3.0 (Cohere)", EmbedClientCohere),
        ("nomic-embed-text (Local)", EmbedClientLocal),
        ("mystery-model", EmbedClientOpenai),
    ],
)
def test_embed_provider_selection(helper_config, monkeypatch, selection, client_class):
    monkeypatch.setenv("EMBED_MODEL", selection)
    assert isinstance(EmbedClientManager(helper_config).get_client(), client_class)


@pytest.mark.asyncio
async def test_openai_embed_payload_and_ordering(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_DIMENSION", "3")
    monkeypatch.setenv("EMBED_API_KEY", "sk-test")
    recorder = Recorder(payload={"data": [
        {"index": 1, "embedding": [0.4, 0.5, 0.6, 0.7]},
        {"index": 0, "embedding": [0.1, 0.2, 0.3, 0.9]},
    ]})
    client = await _booted(EmbedClientOpenai(helper_config), recorder)
    try:
        vectors = await client.do_embed_batch(["first", "second"])
    finally:
        await client.close()

    assert vectors == [[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]
    request = recorder.requests[-1]
    assert request.url == httpx.URL("https://api.openai.com/v1/embeddings")
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert recorder.last_body == {"model": "text-embedding-3-small", "input": ["first", "second"], "dimensions": 3}


@pytest.mark.asyncio
async def test_cohere_embed_payload(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_MODEL", "embed-english-v3.0 (Cohere)")
    recorder = Recorder(payload={"embeddings": [[1.0, 0.0]]})
    client = await _booted(EmbedClientCohere(helper_config), recorder)
    try:
        assert await client.do_embed("hello") == [1.0, 0.0]
    finally:
        await client.close()
    assert recorder.requests[-1].url.path == "/v1/embed"
    assert recorder.last_body == {"model": "embed-english-v3.0", "texts": ["hello"], "input_type": "search_document"}
    assert "Authorization" not in recorder.requests[-1].headers


@pytest.mark.asyncio
async def test_local_embed_payload(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_MODEL", "nomic-embed-text (Local)")
    monkeypatch.setenv("EMBED_LOCAL_BASE_URL", "http://embedder:11434")
    recorder = Recorder(payload={"embeddings": [[0.5, 0.5]]})
    client = await _booted(EmbedClientLocal(helper_config), recorder)
    try:
        assert await client.do_embed("hello") == [0.5, 0.5]
    finally:
        await client.close()
    assert str(recorder.requests[-1].url) == "http://embedder:11434/api/embed"
    assert recorder.last_body == {"model": "nomic-embed-text", "input": ["hello"]}


@pytest.mark.asyncio
async def test_embed_error_status_raises_typed_error(helper_config):
    client = await _booted(EmbedClientOpenai(helper_config), Recorder(status_code=429, payload={"error": "rate limited"}))
    try:
        with pytest.raises(EmbeddingRequestFailed) as info:
            await client.do_embed("hello")
    finally:
        await client.close()
    assert info.value.status_code == 429
    assert info.value.provider == "openai"


@pytest.mark.asyncio
async def test_embed_batch_of_nothing_sends_no_request(helper_config):
    recorder = Recorder()
    client = await _booted(EmbedClientOpenai(helper_config), recorder)
    try:
        assert await client.do_embed_batch([]) == []
    finally:
        await client.close()
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_embed_count_mismatch_is_rejected(helper_config):
    recorder = Recorder(payload={"data": [{"index": 0, "embedding": [0.1]}]})
    client = await _booted(EmbedClientOpenai(helper_config), recorder)
    try:
        with pytest.raises(ValueError):
            await client.do_embed_batch(["a", "b"])
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_request_before_boot_fails(helper_config):
    with pytest.raises(RuntimeError):
        await EmbedClientOpenai(helper_config).do_embed("hello")


def test_config_value_types(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_LOCAL_BASE_URL", "http://embedder:8080")
    client = EmbedClientLocal(helper_config)
    assert client.get_config_val("BASE_URL") == "http://embedder:8080"
    assert client.get_config_val("RETRIES", default=3, val_type="number") == 3
    with pytest.raises(ValueError):
        client.get_config_val("MODELS", default=[], val_type="list")


##########################################
################## LLM ###################
##########################################

def test_llm_provider_selection(helper_config, monkeypatch):
    monkeypatch.setenv("LLM_MODEL", "llama3 (Local)")
    assert isinstance(LLMClientManager(helper_config).get_client(), LLMClientLocal)
    monkeypatch.setenv("LLM_MODEL", "gpt-4o (OpenAI)")
    assert isinstance(LLMClientManager(helper_config).get_client(), LLMClientOpenai)


@pytest.mark.asyncio
async def test_openai_chat_completion(helper_config, monkeypatch):
    monkeypatch.setenv("LLM_API_KEY", "sk-llm")
    recorder = Recorder(payload={"choices": [{"message": {"role": "assistant", "content": "42"}}]})
    client = await _booted(LLMClientOpenai(helper_config), recorder)
    try:
        assert await client.do_complete("What is the answer?") == "42"
    finally:
        await client.close()
    assert recorder.requests[-1].url.path == "/v1/chat/completions"
    assert recorder.requests[-1].headers["Authorization"] == "Bearer sk-llm"
    assert recorder.last_body == {
        "model": "gpt-4o-mini",
        "messages": [{"role": "user", "content": "What is the answer?"}],
    }


@pytest.mark.asyncio
async def test_local_chat_disables_streaming(helper_config, monkeypatch):
    monkeypatch.setenv("LLM_MODEL", "llama3 (Local)")
    recorder = Recorder(payload={"message": {"role": "assistant", "content": "hi"}})
    client = await _booted(LLMClientLocal(helper_config), recorder)
    try:
        assert await client.do_chat([{"role": "user", "content": "hello"}]) == "hi"
    finally:
        await client.close()
    assert recorder.last_body["stream"] is False
    assert recorder.requests[-1].url.path == "/api/chat"


@pytest.mark.asyncio
async def test_chat_error_status_raises_typed_error(helper_config):
    client = await _booted(LLMClientOpenai(helper_config), Recorder(status_code=500))
    try:
        with pytest.raises(GenerationRequestFailed) as info:
            await client.do_complete("hello")
    finally:
        await client.close()
    assert info.value.status_code == 500


@pytest.mark.asyncio
async def test_transport_failure_maps_to_status_zero(helper_config):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = LLMClientOpenai(helper_config)
    client.use_transport(httpx.MockTransport(refuse))
    await client.boot()
    try:
        with pytest.raises(GenerationRequestFailed) as info:
            await client.do_complete("hello")
    finally:
        await client.close()
    assert info.value.status_code == 0
