import pytest

from api.shared.exceptions import GenerationFailure
from infra.generation import GeminiTextGenerator


class _Reply:
    def __init__(self, content):
        self.content = content


class _FakeChatModel:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.prompts = []

    async def ainvoke(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return _Reply(self.content)


def _generator_with(model) -> GeminiTextGenerator:
    generator = GeminiTextGenerator(api_key="test-key", model="gemini-test")
    generator._llm = model
    return generator


@pytest.mark.asyncio
async def test_missing_api_key_fails():
    generator = GeminiTextGenerator(api_key="")

    assert not generator.configured
    with pytest.raises(GenerationFailure) as exc_info:
        await generator.generate("hello")

    assert exc_info.value.error_code == "GENERATION_FAILURE"


@pytest.mark.asyncio
async def test_returns_text_content():
    model = _FakeChatModel(content="We ship in 3-5 business days.")
    generator = _generator_with(model)

    assert await generator.generate("prompt") == "We ship in 3-5 business days."
    assert model.prompts == ["prompt"]


@pytest.mark.asyncio
async def test_flattens_content_parts():
    model = _FakeChatModel(
        content=[{"type": "text", "text": "Hello"}, " there", {"type": "image_url"}]
    )

    assert await _generator_with(model).generate("prompt") == "Hello there"


@pytest.mark.asyncio
async def test_provider_error_becomes_generation_failure():
    generator = _generator_with(_FakeChatModel(error=RuntimeError("429 quota")))

    with pytest.raises(GenerationFailure) as exc_info:
        await generator.generate("prompt")

    assert "429 quota" in exc_info.value.message
    assert exc_info.value.details["model"] == "gemini-test"


@pytest.mark.asyncio
async def test_empty_response_is_failure():
    with pytest.raises(GenerationFailure):
        await _generator_with(_FakeChatModel(content="   ")).generate("prompt")


@pytest.mark.asyncio
async def test_malformed_content_is_failure():
    with pytest.raises(GenerationFailure):
        await _generator_with(_FakeChatModel(content=12345)).generate("prompt")
