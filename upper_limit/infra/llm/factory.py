"""LLM_PROVIDER 이름 → provider 인스턴스.

구현 모듈은 처음 요청될 때 import되고, import 시 register_provider로 스스로 등록한다.
"""

import importlib
import logging

from upper_limit.domain.config import AppConfig, get_config

from .base import BaseLLMProvider

logger = logging.getLogger(__name__)

_PROVIDER_REGISTRY: dict[str, type[BaseLLMProvider]] = {}

_PROVIDER_MODULES = {
    "openai": "upper_limit.infra.llm.providers.openai_provider",
}


def register_provider(name: str, cls: type[BaseLLMProvider]) -> None:
    _PROVIDER_REGISTRY[name.lower()] = cls
    logger.debug("Registered LLM provider %s (%s)", name, cls.__name__)


def _resolve(name: str) -> type[BaseLLMProvider] | None:
    if name not in _PROVIDER_REGISTRY and name in _PROVIDER_MODULES:
        importlib.import_module(_PROVIDER_MODULES[name])
    return _PROVIDER_REGISTRY.get(name)


class LLMFactory:
    @staticmethod
    def create(provider_type: str | None = None, *, config: AppConfig | None = None) -> BaseLLMProvider:
        """provider 생성. 이름을 생략하면 LLM_PROVIDER.

        Raises:
            ValueError: 등록되지 않은 provider 이름
        """
        config = config or get_config()
        name = (provider_type or config.llm.provider).strip().lower()

        provider_cls = _resolve(name)
        if provider_cls is None:
            known = sorted(set(_PROVIDER_REGISTRY) | set(_PROVIDER_MODULES))
            raise ValueError(f"LLM provider '{name}' not registered (known: {', '.join(known)})")

        provider = provider_cls(config=config)
        logger.info("LLM provider ready: %s model=%s", provider.provider_name, config.llm.model)
        return provider
