"""
Text generation over HTTP, one strategy-table entry per provider.

Each ProviderSpec supplies the endpoint, the auth scheme, the request payload
shape and the response parser, so adding a provider is a single table edit.
"""

from dataclasses import dataclass
from typing import Any, Callable

import httpx

from config.config import GenerationProvider
from utils.logger import fields, get_logger

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TIMEOUT_S = 60.0


class TextGenerationError(Exception):
    """The provider call failed or returned no text."""


@dataclass(frozen=True)
class ProviderSpec:
    endpoint: str
    default_model: str
    auth_headers: Callable[[str], dict[str, str]]
    build_payload: Callable[[str, str, str, int], dict[str, Any]]
    parse_response: Callable[[dict[str, Any]], str]


def _openai_payload(model: str, system: str, prompt: str, max_tokens: int) -> dict[str, Any]:
    return {
        "model": model,
        "max_tokens": max_tokens,
        "messages": [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ],
    }


def _openai_parse(data: dict[str, Any]) -> str:
    choices = data.get("choices") or []
    if not choices:
        return ""
    return (choices[0].get("message") or {}).get("content") or ""


def _anthropic_payload(model: str, system: str, prompt: str, max_tokens: int) -> dict[str, Any]:
    return {
        "model": model,
        "max_tokens": max_tokens,
        "system": system,
        "messages": [{"role": "user", "content": prompt}],
    }


def _anthropic_parse(data: dict[str, Any]) -> str:
    blocks = [b.get("text", "") for b in data.get("content") or [] if b.get("type") == "text"]
    return "".join(blocks)


def _google_payload(model: str, system: str, prompt: str, max_tokens: int) -> dict[str, Any]:
    return {
        "system_instruction": {"parts": [{"text": system}]},
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"maxOutputTokens": max_tokens},
    }


def _google_parse(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts)


PROVIDER_TABLE: dict[GenerationProvider, ProviderSpec] = {
    GenerationProvider.OPENAI: ProviderSpec(
        endpoint="https://api.openai.com/v1/chat/completions",
        default_model="gpt-4.1-mini",
        auth_headers=lambda key: {"Authorization": f"Bearer {key}"},
        build_payload=_openai_payload,
        parse_response=_openai_parse,
    ),
    GenerationProvider.ANTHROPIC: ProviderSpec(
        endpoint="https://api.anthropic.com/v1/messages",
        default_model="claude-sonnet-4-20250514",
        auth_headers=lambda key: {"x-api-key": key, "anthropic-version": "2023-06-01"},
        build_payload=_anthropic_payload,
        parse_response=_anthropic_parse,
    ),
    GenerationProvider.GOOGLE: ProviderSpec(
        endpoint="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        default_model="gemini-2.5-flash-lite",
        auth_headers=lambda key: {"x-goog-api-key": key},
        build_payload=_google_payload,
        parse_response=_google_parse,
    ),
}


class TextGenerationClient:
    """
    Provider-agnostic text generation client.

    Example:
        client = TextGenerationClient(GenerationProvider.ANTHROPIC, api_key="...")
        text = await client.generate(system="You are...", prompt="Summarize...")
    """

    def __init__(
        self,
        provider: GenerationProvider,
        api_key: str,
        model_name: str | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        if not api_key:
            raise ValueError(f"API key is required for {provider.value}")
        self.provider = provider
        self.spec = PROVIDER_TABLE[provider]
        self.api_key = api_key
        self.model_name = model_name or self.spec.default_model
        self.max_tokens = max_tokens
        self.timeout_s = timeout_s

    async def generate(self, system: str, prompt: str, client: httpx.AsyncClient | None = None) -> str:
        """
        Run one generation call.

        Raises:
            TextGenerationError: On HTTP failure, unparseable payload, or empty text
        """
        url = self.spec.endpoint.format(model=self.model_name)
        payload = self.spec.build_payload(self.model_name, system, prompt, self.max_tokens)
        headers = {"Content-Type": "application/json", **self.spec.auth_headers(self.api_key)}

        try:
            if client is None:
                async with httpx.AsyncClient(timeout=self.timeout_s) as own_client:
                    response = await own_client.post(url, json=payload, headers=headers)
            else:
                response = await client.post(url, json=payload, headers=headers, timeout=self.timeout_s)
            response.raise_for_status()
            text = self.spec.parse_response(response.json())
        except httpx.HTTPError as e:
            logger.warning(
                f"Text generation failed for {self.provider.value}: {e}",
                extra=fields(provider=self.provider.value, model=self.model_name, error_type=type(e).__name__),
            )
            raise TextGenerationError(str(e)) from e
        except (ValueError, AttributeError, TypeError) as e:
            raise TextGenerationError(f"Malformed {self.provider.value} response: {e}") from e

        if not text.strip():
            raise TextGenerationError(f"{self.provider.value} returned no text")
        return text
