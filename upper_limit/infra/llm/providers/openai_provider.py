"""OpenAI Chat Completions provider (LLM_BASE_URL로 호환 API 지정 가능)."""

import logging
from typing import Any

import openai

from upper_limit.domain.config import AppConfig, get_config
from upper_limit.infra.llm.base import BaseLLMProvider, LLMResponse
from upper_limit.infra.llm.factory import register_provider

logger = logging.getLogger(__name__)

# temperature 미지원, max_tokens 대신 max_completion_tokens
_REASONING_PREFIXES = ("o1", "o3", "o4", "gpt-5")


def uses_completion_tokens(model: str) -> bool:
    return model.lower().startswith(_REASONING_PREFIXES)


def _messages(prompt: str, system: str | None) -> list[dict[str, str]]:
    if system:
        return [{"role": "system", "content": system}, {"role": "user", "content": prompt}]
    return [{"role": "user", "content": prompt}]


class OpenAILLMProvider(BaseLLMProvider):
    """AsyncOpenAI 래퍼.

    재시도는 1회로 제한한다. 전체 시간 상한은 Summarizer의 wait_for가 건다.
    """

    def __init__(self, *, config: AppConfig | None = None, base_url: str | None = None) -> None:
        config = config or get_config()
        self._model = config.llm.model
        self._client = openai.AsyncOpenAI(
            api_key=config.secrets.openai_api_key or None,
            base_url=base_url or config.llm.base_url,
            timeout=config.llm.timeout_sec,
            max_retries=1,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 512,
    ) -> LLMResponse:
        params: dict[str, Any] = {"model": self._model, "messages": _messages(prompt, system)}
        if uses_completion_tokens(self._model):
            params["max_completion_tokens"] = max_tokens
        else:
            params["max_tokens"] = max_tokens
            params["temperature"] = temperature

        completion = await self._client.chat.completions.create(**params)

        content, finish_reason = "", None
        if completion.choices:
            choice = completion.choices[0]
            content = choice.message.content or ""
            finish_reason = choice.finish_reason
        usage = completion.usage
        if finish_reason == "length":
            logger.warning("Completion truncated at %d tokens (model=%s)", max_tokens, self._model)

        return LLMResponse(
            content=content,
            model=self._model,
            provider=self.provider_name,
            tokens_in=usage.prompt_tokens if usage else 0,
            tokens_out=usage.completion_tokens if usage else 0,
            finish_reason=finish_reason,
        )

    async def aclose(self) -> None:
        await self._client.close()


register_provider("openai", OpenAILLMProvider)
