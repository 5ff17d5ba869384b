"""급등 사유 요약에 쓰는 LLM provider 계약.

provider는 프롬프트 한 건 → LLMResponse 한 건만 책임진다.
전송/서비스 오류는 그대로 올리고, 빈 응답 처리는 Summarizer가 맡는다.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class LLMResponse(BaseModel):
    content: str
    model: str
    provider: str = ""
    tokens_in: int = Field(default=0, ge=0)
    tokens_out: int = Field(default=0, ge=0)
    finish_reason: str | None = None

    @property
    def text(self) -> str:
        """앞뒤 공백을 제거한 본문."""
        return self.content.strip()


class BaseLLMProvider(ABC):
    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 512,
    ) -> LLMResponse: ...

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    async def aclose(self) -> None:
        """HTTP 클라이언트 등 보유 자원 정리. 기본 구현은 no-op."""
