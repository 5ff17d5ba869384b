"""상승 사유 요약용 LLM 프로바이더."""

from .base import BaseLLMProvider, LLMResponse
from .factory import LLMFactory, register_provider

__all__ = ["BaseLLMProvider", "LLMFactory", "LLMResponse", "register_provider"]
