"""
LLM client abstraction for multiple LLM providers.

Provides async interface for LLM calls with:
- Structured logging of requests/responses
- Timeout handling with one retry (timeouts and rate limits)
- Usage tracking (tokens)

Supported providers (all speak the OpenAI chat completions format):
- groq: Groq-hosted open models
- perplexity: Perplexity Sonar models
- openai: OpenAI GPT models
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog

from src.core.config import Settings, settings as default_settings
from src.core.exceptions import (
    ConfigurationError,
    LLMRateLimitError,
    LLMTimeoutError,
)

log = structlog.get_logger(__name__)


# =============================================================================
# Provider defaults
# =============================================================================

# Order matters: without an explicit LLM_PROVIDER the first configured key wins.
PROVIDER_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "groq": dict(
        base_url="https://api.groq.com/openai/v1",
        model="llama-3.3-70b-versatile",
        api_key_attr="groq_api_key",
        env_var="GROQ_API_KEY",
    ),
    "perplexity": dict(
        base_url="https://api.perplexity.ai",
        model="sonar-pro",
        api_key_attr="perplexity_api_key",
        env_var="PERPLEXITY_API_KEY",
    ),
    "openai": dict(
        base_url="https://api.openai.com/v1",
        model="gpt-4o-mini",
        api_key_attr="openai_api_key",
        env_var="OPENAI_API_KEY",
    ),
}

ANALYSIS_TEMPERATURE = 0.2  # Low for consistent, structured findings
ANALYSIS_MAX_TOKENS = 4096
ANALYSIS_TIMEOUT = 60.0


# =============================================================================
# Response and Base Classes
# =============================================================================


@dataclass
class LLMResponse:
    """Standardized LLM response."""

    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient(ABC):
    """Abstract base for LLM providers."""

    provider_name: str = ""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            prompt: User message/prompt
            system: Optional system prompt
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens in response
            timeout: Optional timeout override in seconds (uses default if None)

        Returns:
            LLMResponse with content and metadata
        """
        pass


# =============================================================================
# OpenAI-Compatible Client Base
# =============================================================================


class OpenAICompatibleClient(LLMClient):
    """
    Base class for OpenAI-compatible chat completion APIs.

    Uses httpx for async HTTP calls to {base_url}/chat/completions.
    """

    max_retries = 1  # 2 total attempts
    base_delay = 1.0  # seconds

    def __init__(
        self,
        model: str,
        base_url: str,
        provider_name: str,
        api_key: str,
        temperature: float = ANALYSIS_TEMPERATURE,
        max_tokens: int = ANALYSIS_MAX_TOKENS,
        timeout: float = ANALYSIS_TIMEOUT,
    ):
        self.model = model
        self.base_url = base_url
        self.provider_name = provider_name
        self.api_key = api_key
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout

        log.info(
            "llm_client_initialized",
            provider=self.provider_name,
            model=self.model,
            timeout=self.timeout,
        )

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Call the chat completions endpoint with one retry on timeout/rate-limit.

        Raises:
            LLMTimeoutError: After all retries exhausted on timeout
            LLMRateLimitError: After all retries exhausted on rate limit (429)
            httpx.HTTPStatusError: On other API errors (no retry)
        """
        if max_tokens is None:
            max_tokens = self.max_tokens
        if temperature is None:
            temperature = self.temperature
        if timeout is None:
            timeout = self.timeout

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(self.max_retries + 1):
            start = time.perf_counter()

            log.debug(
                "llm_call_start",
                provider=self.provider_name,
                model=self.model,
                prompt_length=len(prompt),
                system_length=len(system) if system else 0,
                attempt=attempt + 1,
            )

            try:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        headers=headers,
                        json=payload,
                    )
                    response.raise_for_status()
                    data = response.json()

                latency_ms = (time.perf_counter() - start) * 1000

                content = ""
                if data.get("choices"):
                    content = data["choices"][0].get("message", {}).get("content", "")

                usage = {
                    "input_tokens": data.get("usage", {}).get("prompt_tokens", 0),
                    "output_tokens": data.get("usage", {}).get("completion_tokens", 0),
                }

                log.info(
                    "llm_call_complete",
                    provider=self.provider_name,
                    model=self.model,
                    latency_ms=round(latency_ms, 2),
                    input_tokens=usage["input_tokens"],
                    output_tokens=usage["output_tokens"],
                    attempt=attempt + 1,
                )

                return LLMResponse(
                    content=content,
                    model=data.get("model", self.model),
                    usage=usage,
                    latency_ms=latency_ms,
                    raw_response=data,
                )

            except httpx.TimeoutException as e:
                log.warning(
                    "llm_timeout",
                    provider=self.provider_name,
                    attempt=attempt + 1,
                    timeout_seconds=timeout,
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.base_delay * (2**attempt))
                else:
                    raise LLMTimeoutError(
                        f"LLM call timed out after {self.max_retries + 1} attempts "
                        f"(timeout={timeout}s)"
                    ) from e

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code != 429:
                    log.error(
                        "llm_http_error",
                        provider=self.provider_name,
                        status_code=status_code,
                    )
                    raise
                log.warning(
                    "llm_rate_limit",
                    provider=self.provider_name,
                    attempt=attempt + 1,
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(self.base_delay * (2**attempt))
                else:
                    raise LLMRateLimitError(
                        f"Rate limit exceeded after {self.max_retries + 1} attempts"
                    ) from e

        # Unreachable: loop either returns LLMResponse or raises an exception
        assert False, "unreachable"


class GroqClient(OpenAICompatibleClient):
    """Groq API client. Docs: https://console.groq.com/docs"""

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs):
        defaults = PROVIDER_DEFAULTS["groq"]
        super().__init__(
            model=model or defaults["model"],
            base_url=defaults["base_url"],
            provider_name="groq",
            api_key=api_key,
            **kwargs,
        )


class PerplexityClient(OpenAICompatibleClient):
    """Perplexity API client. Docs: https://docs.perplexity.ai"""

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs):
        defaults = PROVIDER_DEFAULTS["perplexity"]
        super().__init__(
            model=model or defaults["model"],
            base_url=defaults["base_url"],
            provider_name="perplexity",
            api_key=api_key,
            **kwargs,
        )


class OpenAIClient(OpenAICompatibleClient):
    """OpenAI API client. Docs: https://platform.openai.com/docs"""

    def __init__(self, api_key: str, model: Optional[str] = None, **kwargs):
        defaults = PROVIDER_DEFAULTS["openai"]
        super().__init__(
            model=model or defaults["model"],
            base_url=defaults["base_url"],
            provider_name="openai",
            api_key=api_key,
            **kwargs,
        )


CLIENT_CLASSES = {
    "groq": GroqClient,
    "perplexity": PerplexityClient,
    "openai": OpenAIClient,
}


# =============================================================================
# Client Factory
# =============================================================================


def get_llm_client(settings: Optional[Settings] = None) -> LLMClient:
    """
    Build the LLM client for analysis.

    Uses settings.llm_provider when set, otherwise the first provider
    (groq, perplexity, openai) whose API key is configured.

    Raises:
        ConfigurationError: Unknown provider, or no API key for it
    """
    settings = settings or default_settings
    provider = settings.llm_provider

    if provider is None:
        for name, defaults in PROVIDER_DEFAULTS.items():
            if getattr(settings, defaults["api_key_attr"], None):
                provider = name
                break
        else:
            raise ConfigurationError(
                "No LLM API key configured. Set one of: "
                + ", ".join(d["env_var"] for d in PROVIDER_DEFAULTS.values())
            )

    if provider not in CLIENT_CLASSES:
        raise ConfigurationError(
            f"Unknown LLM provider '{provider}'. "
            f"Supported providers: {', '.join(CLIENT_CLASSES)}"
        )

    defaults = PROVIDER_DEFAULTS[provider]
    api_key = getattr(settings, defaults["api_key_attr"], None)
    if not api_key:
        raise ConfigurationError(
            f"{defaults['env_var']} not configured for provider '{provider}'."
        )

    return CLIENT_CLASSES[provider](api_key=api_key)
