"""
Provider-agnostic LLM client for SkillFinder.

Supports Azure OpenAI, OpenAI, and Anthropic with a shared async
text-generation interface. A deterministic stub with the same interface is
provided for tests and offline runs.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Union

from .config import DEFAULT_AZURE_API_VERSION, LLMConfig

logger = logging.getLogger("skillfinder.common.llm_client")


class TextGenerator(Protocol):
    """What the extraction step needs from a language model."""

    @property
    def is_available(self) -> bool:
        ...

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 256,
        temperature: float = 0.0,
    ) -> str:
        ...


class LLMClient:
    """Unified async text generation client across LLM providers."""

    def __init__(
        self,
        provider: str = "azure",
        model: str = "",
        azure_endpoint: Optional[str] = None,
        azure_api_key: Optional[str] = None,
        azure_api_version: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        anthropic_api_key: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self.provider = (provider or "azure").lower()
        self.model = model
        self.timeout = timeout
        self._client = None

        if self.provider == "auto":
            raise ValueError(
                '"auto" provider must be resolved before creating LLMClient. '
                'Set SKILLFINDER_LLM_PROVIDER to azure, openai or anthropic.'
            )

        # Clients are built with max_retries=0: a failed call degrades to the
        # caller's fallback instead of being retried.
        if self.provider == "azure":
            if not azure_endpoint or not azure_api_key:
                logger.info("%s endpoint or API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import AsyncAzureOpenAI

                self._client = AsyncAzureOpenAI(
                    azure_endpoint=azure_endpoint,
                    api_key=azure_api_key,
                    api_version=azure_api_version or DEFAULT_AZURE_API_VERSION,
                    max_retries=0,
                )
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Azure OpenAI client: %s", e)
            return

        if self.provider == "openai":
            if not openai_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                from openai import AsyncOpenAI

                self._client = AsyncOpenAI(api_key=openai_api_key, max_retries=0)
            except ImportError:
                logger.warning("openai package not installed")
            except Exception as e:
                logger.warning("Failed to initialize OpenAI client: %s", e)
            return

        if self.provider == "anthropic":
            if not anthropic_api_key:
                logger.info("%s API key not provided, LLM client unavailable", self.provider)
                return
            try:
                import anthropic

                self._client = anthropic.AsyncAnthropic(api_key=anthropic_api_key, max_retries=0)
            except ImportError:
                logger.warning("anthropic package not installed")
            except Exception as e:
                logger.warning("Failed to initialize Anthropic client: %s", e)
            return

        logger.warning("Unsupported LLM provider: %s", self.provider)

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMClient":
        return cls(
            provider=config.provider,
            model=config.model,
            azure_endpoint=config.azure_endpoint,
            azure_api_key=config.azure_api_key,
            azure_api_version=config.azure_api_version,
            openai_api_key=config.openai_api_key,
            anthropic_api_key=config.anthropic_api_key,
            timeout=config.timeout,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 256,
        temperature: float = 0.0,
    ) -> str:
        if not self.is_available:
            raise RuntimeError("LLM client is not available")

        if self.provider in ("azure", "openai"):
            messages = []
            if system:
                messages.append({"role": "system", "content": system})
            messages.append({"role": "user", "content": prompt})
            response = await self._client.chat.completions.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=messages,
                timeout=self.timeout,
            )
            if not response.choices:
                return ""
            return (response.choices[0].message.content or "").strip()

        if self.provider == "anthropic":
            kwargs = {}
            if system:
                kwargs["system"] = system
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                timeout=self.timeout,
                **kwargs,
            )
            if not response.content:
                return ""
            return response.content[0].text.strip()

        raise RuntimeError(f"Unsupported LLM provider: {self.provider}")


class StubLLMClient:
    """Deterministic stand-in for LLMClient.

    Replays canned responses in order (the last one repeats). A response that
    is an exception instance is raised instead of returned. Every call is
    recorded in ``calls`` so tests can inspect the prompts.
    """

    def __init__(
        self,
        responses: Union[str, BaseException, Iterable[Union[str, BaseException]]] = (),
        available: bool = True,
    ) -> None:
        if isinstance(responses, (str, BaseException)):
            responses = [responses]
        self._responses: List[Union[str, BaseException]] = list(responses)
        self._available = available
        self.calls: List[dict] = []

    @property
    def is_available(self) -> bool:
        return self._available

    async def generate(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 256,
        temperature: float = 0.0,
    ) -> str:
        if not self._available:
            raise RuntimeError("LLM client is not available")

        self.calls.append({
            "prompt": prompt,
            "system": system,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })

        if not self._responses:
            return ""
        index = min(len(self.calls) - 1, len(self._responses) - 1)
        response = self._responses[index]
        if isinstance(response, BaseException):
            raise response
        return response
