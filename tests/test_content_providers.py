from __future__ import annotations

import json

import httpx
import pytest

from guess_ai.config import Settings
from guess_ai.content.ag2_backend import Ag2ChatGenerator, _extract_last_content, llm_config_for
from guess_ai.content.factory import create_content_generator, create_embedding_client
from guess_ai.content.openai_http import OpenAIEmbeddingClient, OpenAIImageGenerator
from guess_ai.content.settings import OpenAICompatibleSettings, resolve_api_key, settings_from_env
from guess_ai.errors import ContentUnavailable

PROVIDER = OpenAICompatibleSettings(model="gpt-4o-mini", base_url="http://llm.test/v1", api_key="sk-test")


def _transport(handler, seen: list[httpx.Request]) -> httpx.MockTransport:  # type: ignore[no-untyped-def]
    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(_record)


async def test_image_generator_posts_prompt_and_returns_url() -> None:
    seen: list[httpx.Request] = []
    transport = _transport(
        lambda req: httpx.Response(200, json={"data": [{"url": "https://img.test/cat.png"}]}), seen
    )
    gen = OpenAIImageGenerator(settings=PROVIDER, transport=transport)

    url = await gen.generate_artifact("a cat on a skateboard")

    assert url == "https://img.test/cat.png"
    assert gen.kind == "image"
    (req,) = seen
    assert str(req.url) == "http://llm.test/v1/images/generations"
    assert req.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(req.content)
    assert body["prompt"] == "a cat on a skateboard"
    assert body["model"] == "dall-e-3"
    assert body["n"] == 1


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, json={"data": []}),
        httpx.Response(200, json={"data": [{"b64_json": "..."}]}),
        httpx.Response(200, content=b"not json"),
    ],
)
async def test_image_generator_failures_are_content_unavailable(response: httpx.Response) -> None:
    gen = OpenAIImageGenerator(settings=PROVIDER, transport=_transport(lambda req: response, []))
    with pytest.raises(ContentUnavailable):
        await gen.generate_artifact("anything")


async def test_image_generator_network_error_is_content_unavailable() -> None:
    def _fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    gen = OpenAIImageGenerator(settings=PROVIDER, transport=httpx.MockTransport(_fail))
    with pytest.raises(ContentUnavailable):
        await gen.generate_artifact("anything")


async def test_embedding_client_orders_by_index() -> None:
    seen: list[httpx.Request] = []
    payload = {
        "data": [
            {"index": 1, "embedding": [0.0, 1.0]},
            {"index": 0, "embedding": [1, 0]},
        ]
    }
    client = OpenAIEmbeddingClient(
        settings=PROVIDER, transport=_transport(lambda req: httpx.Response(200, json=payload), seen)
    )

    vectors = await client.embed(["first", "second"])

    assert vectors == [[1.0, 0.0], [0.0, 1.0]]
    body = json.loads(seen[0].content)
    assert body == {"model": "text-embedding-ada-002", "input": ["first", "second"]}
    assert str(seen[0].url) == "http://llm.test/v1/embeddings"


async def test_embedding_client_rejects_short_response() -> None:
    payload = {"data": [{"index": 0, "embedding": [1.0]}]}
    client = OpenAIEmbeddingClient(
        settings=PROVIDER, transport=_transport(lambda req: httpx.Response(200, json=payload), [])
    )
    with pytest.raises(ContentUnavailable):
        await client.embed(["a", "b"])


def test_resolve_api_key() -> None:
    assert resolve_api_key(PROVIDER) == "sk-test"
    assert resolve_api_key(OpenAICompatibleSettings(model="m", base_url="http://x/v1", api_key=None)) == "ollama"
    with pytest.raises(RuntimeError):
        resolve_api_key(OpenAICompatibleSettings(model="m", base_url=None, api_key=None))


def test_provider_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_MODEL", "llama3.2")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://127.0.0.1:11434/v1")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_IMAGE_MODEL", raising=False)
    monkeypatch.setenv("OPENAI_EMBEDDING_MODEL", "nomic-embed-text")

    s = settings_from_env()

    assert s.model == "llama3.2"
    assert s.base_url == "http://127.0.0.1:11434/v1"
    assert s.api_key is None
    assert s.image_model == "dall-e-3"
    assert s.embedding_model == "nomic-embed-text"


def test_factory_picks_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_BASE_URL", "http://127.0.0.1:11434/v1")

    image = create_content_generator(Settings(content_backend="image"))
    chat = create_content_generator(Settings(content_backend="chat"))

    assert isinstance(image, OpenAIImageGenerator)
    assert isinstance(chat, Ag2ChatGenerator)
    assert (image.kind, chat.kind) == ("image", "text")
    assert isinstance(create_embedding_client(), OpenAIEmbeddingClient)


def test_llm_config_requires_a_key_or_local_server() -> None:
    with pytest.raises(RuntimeError):
        llm_config_for(OpenAICompatibleSettings(model="gpt-4o-mini", base_url=None, api_key=None))


def test_extract_last_content() -> None:
    assert _extract_last_content(None) == ""
    assert _extract_last_content([{"content": "first"}, {"content": "  "}, {"role": "user"}]) == "first"
    assert _extract_last_content([{"content": "a"}, {"content": " b "}]) == "b"


async def test_chat_generator_wraps_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    gen = Ag2ChatGenerator(settings=PROVIDER)

    monkeypatch.setattr(Ag2ChatGenerator, "_run", lambda self, prompt: f"A scene about {prompt}.")
    assert await gen.generate_artifact("teapots") == "A scene about teapots."

    monkeypatch.setattr(Ag2ChatGenerator, "_run", lambda self, prompt: "")
    with pytest.raises(ContentUnavailable):
        await gen.generate_artifact("teapots")

    def _boom(self, prompt):  # type: ignore[no-untyped-def]
        raise ConnectionError("model server down")

    monkeypatch.setattr(Ag2ChatGenerator, "_run", _boom)
    with pytest.raises(ContentUnavailable):
        await gen.generate_artifact("teapots")


async def test_unconfigured_provider_is_content_unavailable() -> None:
    unconfigured = OpenAICompatibleSettings(model="gpt-4o-mini", base_url=None, api_key=None)

    with pytest.raises(ContentUnavailable):
        await OpenAIImageGenerator(settings=unconfigured).generate_artifact("a cat")
    with pytest.raises(ContentUnavailable):
        await OpenAIEmbeddingClient(settings=unconfigured).embed(["a", "b"])
    with pytest.raises(ContentUnavailable):
        await Ag2ChatGenerator(settings=unconfigured).generate_artifact("a cat")
