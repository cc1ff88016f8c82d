"""Tests for the Anthropic-backed generative service and prompt builders."""

from types import SimpleNamespace

import anthropic
import httpx
import pytest

from appforge.errors.exceptions import GenerationServiceError
from appforge.models.document import TableDefinition
from appforge.services.generation.prompts import (
    CREATE_SYSTEM_PROMPT,
    FAST_EDIT_SYSTEM_PROMPT,
    FULL_EDIT_SYSTEM_PROMPT,
    build_edit_message,
    render_schema,
)
from appforge.services.generation.provider import AnthropicGenerativeService


class FakeStream:
    def __init__(self, chunks, stop_reason):
        self._chunks = chunks
        self._stop_reason = stop_reason

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    @property
    async def text_stream(self):
        for chunk in self._chunks:
            yield chunk

    async def get_final_message(self):
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text="".join(self._chunks))],
            stop_reason=self._stop_reason,
            usage=SimpleNamespace(input_tokens=10, output_tokens=20),
        )


class FakeMessages:
    def __init__(self, stream=None, error=None):
        self._stream = stream
        self._error = error
        self.kwargs = None

    def stream(self, **kwargs):
        self.kwargs = kwargs
        if self._error:
            raise self._error
        return self._stream


def _service(messages):
    return AnthropicGenerativeService(client=SimpleNamespace(messages=messages), model="test-model", max_tokens=100)


@pytest.mark.asyncio
async def test_generate_streams_and_reports_completion():
    messages = FakeMessages(FakeStream(['{"tables": ', '[], "html": ""}'], "end_turn"))
    chunks = []

    result = await _service(messages).generate("system", "user", on_chunk=chunks.append)

    assert result.text == '{"tables": [], "html": ""}'
    assert result.truncated is False
    assert result.output_tokens == 20
    assert chunks == ['{"tables": ', '[], "html": ""}']
    assert messages.kwargs["model"] == "test-model"
    assert messages.kwargs["max_tokens"] == 100
    assert messages.kwargs["system"] == "system"
    assert messages.kwargs["messages"] == [{"role": "user", "content": "user"}]


@pytest.mark.asyncio
async def test_generate_flags_truncation():
    messages = FakeMessages(FakeStream(['{"tables": ['], "max_tokens"))
    result = await _service(messages).generate("system", "user", max_tokens=5)
    assert result.truncated is True
    assert messages.kwargs["max_tokens"] == 5


@pytest.mark.asyncio
async def test_api_errors_are_wrapped():
    error = anthropic.APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    with pytest.raises(GenerationServiceError):
        await _service(FakeMessages(error=error)).generate("system", "user")


def test_render_schema():
    tables = [
        TableDefinition.model_validate({"name": "todos", "columns": [{"name": "task", "type": "TEXT"}]}),
        TableDefinition.model_validate({"name": "tags", "columns": []}),
    ]
    assert render_schema(tables) == 'Table "todos": [{"name": "task", "type": "TEXT"}]\nTable "tags": []'
    assert render_schema([]) == "(no tables)"


def test_build_edit_message_sections():
    message = build_edit_message("<html></html>", [], "make it blue")
    assert message == (
        "Current app HTML:\n<html></html>\n\n"
        "Current database schema:\n(no tables)\n\n"
        "Requested changes:\nmake it blue"
    )


def test_prompts_use_placeholder_and_shapes():
    for prompt in (CREATE_SYSTEM_PROMPT, FULL_EDIT_SYSTEM_PROMPT, FAST_EDIT_SYSTEM_PROMPT):
        assert "{{APP_ID}}" in prompt
    assert '"newTables"' in FULL_EDIT_SYSTEM_PROMPT
    assert '"patches"' in FAST_EDIT_SYSTEM_PROMPT
    assert '"newTables"' not in FAST_EDIT_SYSTEM_PROMPT
