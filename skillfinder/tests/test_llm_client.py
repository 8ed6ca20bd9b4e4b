"""Tests for LLMClient provider abstraction and the deterministic stub."""

import logging
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock

from skillfinder.common.llm_client import LLMClient, StubLLMClient


class TestLLMClientInit:
    def test_missing_azure_endpoint_logs_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="skillfinder.common.llm_client"):
            client = LLMClient(provider="azure", azure_api_key="key")
        assert not client.is_available
        assert "not provided" in caplog.text

    def test_missing_openai_key_logs_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="skillfinder.common.llm_client"):
            client = LLMClient(provider="openai")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_missing_anthropic_key_logs_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="skillfinder.common.llm_client"):
            client = LLMClient(provider="anthropic")
        assert not client.is_available
        assert "API key not provided" in caplog.text

    def test_auto_provider_raises(self):
        with pytest.raises(ValueError, match="auto"):
            LLMClient(provider="auto")

    def test_unsupported_provider_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="skillfinder.common.llm_client"):
            client = LLMClient(provider="unsupported_xyz")
        assert not client.is_available
        assert "Unsupported" in caplog.text

    def test_azure_client_created_when_configured(self):
        client = LLMClient(
            provider="azure",
            model="extractor",
            azure_endpoint="https://example.openai.azure.com",
            azure_api_key="key",
        )
        assert client.is_available

    def test_from_config_unconfigured(self):
        from skillfinder.common.config import LLMConfig
        client = LLMClient.from_config(LLMConfig())
        assert not client.is_available


class TestLLMClientGenerate:
    @pytest.mark.asyncio
    async def test_generate_raises_when_unavailable(self):
        client = LLMClient(provider="azure")
        with pytest.raises(RuntimeError, match="not available"):
            await client.generate("test")

    @pytest.mark.asyncio
    async def test_chat_completion_request_shape(self):
        client = LLMClient(provider="openai", model="gpt-4o-mini")
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='  {"skills": []}  '))]
        )
        create = AsyncMock(return_value=response)
        client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

        text = await client.generate("prompt", system="be strict", max_tokens=64, temperature=0.0)

        assert text == '{"skills": []}'
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 64
        assert kwargs["messages"][0] == {"role": "system", "content": "be strict"}
        assert kwargs["messages"][1] == {"role": "user", "content": "prompt"}

    @pytest.mark.asyncio
    async def test_anthropic_request_shape(self):
        client = LLMClient(provider="anthropic", model="claude-haiku")
        response = SimpleNamespace(content=[SimpleNamespace(text='["Python"]')])
        create = AsyncMock(return_value=response)
        client._client = SimpleNamespace(messages=SimpleNamespace(create=create))

        text = await client.generate("prompt", system="be strict")

        assert text == '["Python"]'
        assert create.call_args.kwargs["system"] == "be strict"


class TestStubLLMClient:
    @pytest.mark.asyncio
    async def test_replays_responses_and_repeats_last(self):
        stub = StubLLMClient(["first", "second"])
        assert await stub.generate("a") == "first"
        assert await stub.generate("b") == "second"
        assert await stub.generate("c") == "second"
        assert [c["prompt"] for c in stub.calls] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_raises_exception_responses(self):
        stub = StubLLMClient(TimeoutError("rate limited"))
        with pytest.raises(TimeoutError):
            await stub.generate("x")

    def test_unavailable_stub(self):
        assert not StubLLMClient(available=False).is_available
