"""상한가 사유 요약 — 뉴스 헤드라인 → LLM 1~2문장 설명.

헤드라인이 빈약하면 일반적인 급등 요인(섹터 순환매, 어닝 서프라이즈 등)으로
그럴듯한 설명을 만들도록 프롬프트에 명시한다. 호출 실패는 AnalysisError로
올린다 (요약 없이 성공 처리하지 않음).
"""

import asyncio
import logging
from collections.abc import Sequence

from upper_limit.infra.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

ANALYSIS_PLACEHOLDER = "이유를 분석할 수 없습니다."

SUMMARY_SYSTEM_PROMPT = "당신은 한국 주식시장 뉴스를 간결하게 해설하는 애널리스트입니다."

SUMMARY_PROMPT_TEMPLATE = """\
한국 주식 "{name}" 종목이 오늘 상한가(+30% 부근)를 기록했습니다.
관련 최신 뉴스 헤드라인은 다음과 같습니다:
{headlines}

위 헤드라인을 근거로 주가가 급등한 이유를 한국어 1~2문장으로 간단히 설명하세요.
헤드라인이 일반적이거나 정보가 부족하면 '섹터 순환매', '어닝 서프라이즈' 같은
일반적인 시장 요인을 바탕으로 그럴듯한 이유를 제시하세요. 답변을 거부하지 마세요.
답변은 한국어로만 작성하세요."""

NO_HEADLINES = "(수집된 헤드라인 없음)"


class AnalysisError(Exception):
    """LLM 요약 실패 (전송 오류, 타임아웃, 서비스 오류, provider 미설정)."""


def build_prompt(company_name: str, headlines: Sequence[str]) -> str:
    joined = "\n".join(headlines) if headlines else NO_HEADLINES
    return SUMMARY_PROMPT_TEMPLATE.format(name=company_name, headlines=joined)


class Summarizer:
    """BaseLLMProvider 기반 급등 사유 요약기.

    Args:
        llm: 텍스트 생성 provider (None이면 호출 시 AnalysisError)
        timeout_sec: 호출 전체 상한 (클라이언트 타임아웃과 별도)
        temperature: 생성 온도
        max_tokens: 최대 출력 토큰
    """

    def __init__(
        self,
        llm: BaseLLMProvider | None,
        *,
        timeout_sec: float = 60.0,
        temperature: float = 0.7,
        max_tokens: int = 512,
    ):
        self._llm = llm
        self._timeout = timeout_sec
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def summarize(self, company_name: str, headlines: Sequence[str]) -> str:
        """헤드라인 기반 1~2문장 급등 사유. 빈 응답이면 ANALYSIS_PLACEHOLDER."""
        if self._llm is None:
            raise AnalysisError("LLM provider is not configured")

        prompt = build_prompt(company_name, headlines)
        try:
            response = await asyncio.wait_for(
                self._llm.generate(
                    prompt,
                    system=SUMMARY_SYSTEM_PROMPT,
                    temperature=self._temperature,
                    max_tokens=self._max_tokens,
                ),
                timeout=self._timeout,
            )
        except TimeoutError as e:
            logger.error("[%s] Summary timed out after %.0fs", company_name, self._timeout)
            raise AnalysisError(f"LLM call timed out after {self._timeout:.0f}s") from e
        except Exception as e:
            logger.error("[%s] Summary LLM call failed: %s", company_name, e)
            raise AnalysisError(str(e)) from e

        summary = response.text
        if not summary:
            logger.warning("[%s] LLM returned empty content, using placeholder", company_name)
            return ANALYSIS_PLACEHOLDER

        logger.info(
            "[%s] Summary generated (%s, %d headlines, %d tokens)",
            company_name,
            response.model,
            len(headlines),
            response.tokens_out,
        )
        return summary
