"""기본 타입 정의 — 서비스 전체에서 공유하는 Annotated 타입."""

from decimal import Decimal
from typing import Annotated

from pydantic import Field

# 종목코드: 6자리 (숫자 또는 신규 영문 혼용 코드), 마크업에서 못 찾으면 빈 문자열
StockCode = Annotated[str, Field(pattern=r"^([0-9A-Z]{6})?$", examples=["006400", "0001A0", ""])]

# 등락률(%): 소수 2자리
ChangeRate = Annotated[Decimal, Field(max_digits=5, decimal_places=2, examples=["29.85"])]

# 양의 가격 (원 단위, 소수 없음)
PositivePrice = Annotated[int, Field(gt=0)]
