from __future__ import annotations

import base64
from types import SimpleNamespace

import pytest

from brand_studio import messages
from brand_studio.errors import NoImageReturnedError
from brand_studio.providers.base import AssetSet, GenerationParameters
from brand_studio.providers.gemini_provider import GeminiProvider, parse_strategy, parse_styles


def _provider(generate_content) -> GeminiProvider:
    provider = GeminiProvider(api_key="test-key")
    provider.client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return provider


def _image_response(data: bytes | None, mime: str = "image/png"):
    parts = [SimpleNamespace(inline_data=None, text="here you go")]
    if data is not None:
        parts.append(SimpleNamespace(inline_data=SimpleNamespace(mime_type=mime, data=data)))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


@pytest.mark.asyncio
async def test_suggest_styles_truncates_and_dedupes(make_image) -> None:
    seen: dict = {}

    async def generate_content(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(text='{"styles": ["A", "B", "A", " ", "C", "D", "E"]}')

    provider = _provider(generate_content)
    result = await provider.suggest_styles(make_image())

    assert result.styles == ["A", "B", "C", "D"]
    assert result.fallback is False
    assert seen["contents"][1] == "Product Image:"
    assert len(seen["contents"]) == 3


@pytest.mark.asyncio
async def test_suggest_styles_sends_model_image_after_product(make_image) -> None:
    seen: dict = {}

    async def generate_content(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(text='{"styles": ["A"]}')

    provider = _provider(generate_content)
    await provider.suggest_styles(make_image(), reference_text="Tết", model=make_image("model.png"))

    contents = seen["contents"]
    assert "Tết" in contents[0]
    assert contents[1] == "Product Image:"
    assert contents[3] == "Model Image:"


@pytest.mark.asyncio
async def test_suggest_styles_falls_back_on_failure(make_image) -> None:
    async def generate_content(**kwargs):
        raise RuntimeError("network down")

    result = await _provider(generate_content).suggest_styles(make_image())
    assert result.styles == list(messages.FALLBACK_STYLES)
    assert result.fallback is True


@pytest.mark.asyncio
async def test_suggest_styles_falls_back_on_empty_answer(make_image) -> None:
    async def generate_content(**kwargs):
        return SimpleNamespace(text='{"styles": []}')

    result = await _provider(generate_content).suggest_styles(make_image())
    assert result.fallback is True
    assert len(result.styles) == 4


@pytest.mark.asyncio
async def test_analyze_strategy_parses_response() -> None:
    async def generate_content(**kwargs):
        return SimpleNamespace(
            text='```json\n{"needsHuman": false, "reason": "Sản phẩm tự nói lên", "suggestedElements": ["nắng", "biển"]}\n```'
        )

    strategy = await _provider(generate_content).analyze_strategy("Ưu đãi mùa hè")
    assert strategy.needs_human is False
    assert strategy.reason == "Sản phẩm tự nói lên"
    assert strategy.suggested_elements == ("nắng", "biển")
    assert strategy.fallback is False


@pytest.mark.asyncio
async def test_analyze_strategy_falls_back_on_unparseable_text() -> None:
    async def generate_content(**kwargs):
        return SimpleNamespace(text="I think you need a model.")

    strategy = await _provider(generate_content).analyze_strategy("Ưu đãi mùa hè")
    assert strategy.needs_human is True
    assert strategy.fallback is True
    assert strategy.reason == messages.FALLBACK_STRATEGY_REASON


@pytest.mark.asyncio
async def test_generate_image_orders_attachments_and_returns_base64(make_image) -> None:
    seen: dict = {}

    async def generate_content(**kwargs):
        seen.update(kwargs)
        return _image_response(b"png-bytes")

    assets = AssetSet(product=make_image(), model=make_image("model.png"), logo=make_image("logo.png"))
    result = await _provider(generate_content).generate_image(GenerationParameters(), "Luxe", assets)

    assert result.style == "Luxe"
    assert base64.b64decode(result.image_base64) == b"png-bytes"
    assert result.mime_type == "image/png"

    contents = seen["contents"]
    assert "**ASPECT RATIO: 1:1**" in contents[0]
    labels = [c for c in contents[1:] if isinstance(c, str)]
    assert labels == ["Model Image:", "Product Image:", "Logo Image:"]
    assert list(seen["config"].response_modalities) == ["IMAGE"]


@pytest.mark.asyncio
async def test_generate_image_raises_when_no_image_part(make_image) -> None:
    async def generate_content(**kwargs):
        return _image_response(None)

    with pytest.raises(NoImageReturnedError):
        await _provider(generate_content).generate_image(GenerationParameters(), "Luxe", AssetSet(product=make_image()))


@pytest.mark.asyncio
async def test_generate_image_propagates_transport_errors(make_image) -> None:
    async def generate_content(**kwargs):
        raise RuntimeError("quota")

    with pytest.raises(RuntimeError, match="quota"):
        await _provider(generate_content).generate_image(GenerationParameters(), "Luxe", AssetSet(product=make_image()))


def test_parse_helpers_reject_bad_shapes() -> None:
    with pytest.raises(ValueError):
        parse_strategy('{"needsHuman": "yes", "reason": "x"}')
    with pytest.raises(ValueError):
        parse_styles('["A", "B"]')
    assert parse_styles('{"styles": ["A", "B", "C"]}', limit=2) == ["A", "B"]
