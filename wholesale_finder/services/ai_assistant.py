# wholesale_finder/services/ai_assistant.py

"""Translation, summarization and comparison through a chat-completion API.

The DeepSeek endpoint speaks the OpenAI wire protocol, so the official
``openai`` async client is pointed at it through ``base_url``.  Every
failure surfaces as :class:`AIServiceError`; callers decide on the
fallback text.
"""

import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from wholesale_finder.config.settings import Settings
from wholesale_finder.models.product import AnalyzedProduct, Product

logger = logging.getLogger("wholesale_finder.ai")

LANGUAGE_NAMES: dict[str, str] = {"en": "영어", "zh": "중국어 간체"}

_NUMBERING_RE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


class AIServiceError(Exception):
    """The chat-completion service is unconfigured, unreachable or empty."""


class AIAssistant:
    """Thin async wrapper around the chat-completion endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else Settings.DEEPSEEK_API_KEY
        self.base_url = base_url or Settings.DEEPSEEK_BASE_URL
        self.model = model or Settings.DEEPSEEK_MODEL
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise AIServiceError("DEEPSEEK_API_KEY is not configured")
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=Settings.AI_TIMEOUT,
                max_retries=0,
            )
        return self._client

    async def _chat(
        self,
        system: str,
        user: str,
        max_tokens: int = 1000,
    ) -> str:
        client = self._get_client()
        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                temperature=Settings.AI_TEMPERATURE,
                max_tokens=max_tokens,
            )
        except OpenAIError as exc:
            logger.error("Chat completion failed: %s", exc, exc_info=True)
            raise AIServiceError("번역/요약 서비스에 오류가 발생했습니다.") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise AIServiceError("empty completion")
        return content.strip()

    async def translate_text(self, text: str, target_language: str) -> str:
        language = LANGUAGE_NAMES[target_language]
        system = (
            f"당신은 전문 번역가입니다. 주어진 한국어 텍스트를 {language}로 "
            "정확하게 번역해주세요. 상품명이나 키워드의 경우 검색에 최적화된 "
            "형태로 번역해주세요. 번역문만 출력하세요."
        )
        user = f'다음 텍스트를 {language}로 번역해주세요: "{text}"'
        result = await self._chat(system, user, max_tokens=200)
        return result.strip().strip('"')

    async def optimize_search_keyword(
        self, keyword: str, target_language: str
    ) -> str:
        """Turn a Korean keyword into a marketplace search term."""
        language = LANGUAGE_NAMES[target_language]
        system = (
            "당신은 전자상거래 검색 최적화 전문가입니다. 한국어 상품 키워드를 "
            f"{language} 검색에 최적화된 형태로 변환해주세요. 키워드만 출력하세요."
        )
        user = (
            f'"{keyword}"를 {language} 온라인 쇼핑몰에서 검색하기에 가장 적합한 '
            "키워드로 변환해주세요. 검색 결과가 많이 나올 수 있도록 일반적이고 "
            "정확한 용어를 사용해주세요."
        )
        result = await self._chat(system, user, max_tokens=100)
        return result.splitlines()[0].strip().strip('"')

    async def summarize_product(self, product: AnalyzedProduct) -> str:
        """Three to four Korean sentences for a shopper."""
        system = (
            "당신은 상품 정보를 분석하여 한국 소비자가 이해하기 쉽게 요약해주는 "
            "전문가입니다. 상품의 주요 특징, 가격 정보, 판매자 신뢰도 등을 "
            "포함하여 간결하고 유용한 요약을 제공해주세요."
        )
        user = (
            "다음 상품 정보를 한글로 요약해주세요:\n\n"
            f"상품명: {product.title}\n"
            f"설명: {product.description or '정보 없음'}\n"
            f"사양: {json.dumps(product.specifications, ensure_ascii=False, indent=2)}\n"
            f"가격: {product.price} {product.currency}\n"
            f"판매자: {product.seller.name}\n\n"
            "한국 소비자 관점에서 이 상품의 주요 특징과 구매 시 고려사항을 "
            "3-4문장으로 요약해주세요."
        )
        return await self._chat(system, user, max_tokens=500)

    async def compare_products(
        self,
        baseline: AnalyzedProduct,
        alternatives: Sequence[Product],
    ) -> list[str]:
        """One comparison sentence per alternative, in order.

        The list may be shorter than ``alternatives`` when the model
        answers with fewer lines.
        """
        if not alternatives:
            return []
        listing = "\n".join(
            f"{i}. {alt.title}\n   가격: {alt.price} {alt.currency}"
            for i, alt in enumerate(alternatives, 1)
        )
        system = (
            "당신은 상품 비교 전문가입니다. 원본 상품과 대안 상품들을 비교하여 "
            "각 대안의 장단점을 간결하게 설명해주세요."
        )
        user = (
            "원본 상품과 대안 상품들을 비교해주세요:\n\n"
            "원본 상품:\n"
            f"- 이름: {baseline.title}\n"
            f"- 가격: {baseline.price} {baseline.currency}\n\n"
            f"대안 상품들:\n{listing}\n\n"
            "각 대안 상품에 대해 원본 대비 차이점을 한 줄에 한 문장으로 "
            "설명해주세요. 가격 차이, 품질 차이, 배송 조건 등을 고려해주세요."
        )
        response = await self._chat(system, user, max_tokens=800)
        lines = [
            _NUMBERING_RE.sub("", line).strip()
            for line in response.splitlines()
            if line.strip()
        ]
        return [line for line in lines if line][: len(alternatives)]
