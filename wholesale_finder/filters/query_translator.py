# wholesale_finder/filters/query_translator.py

"""Pre-scrape translation of Korean keywords into each site's language."""

import logging
from collections import OrderedDict
from collections.abc import Iterable

from wholesale_finder.config.settings import Settings
from wholesale_finder.services.ai_assistant import AIAssistant, AIServiceError

logger = logging.getLogger("wholesale_finder.filters")

# Frequent shopping terms; checked before the chat-completion service.
KNOWN_TRANSLATIONS: dict[str, dict[str, str]] = {
    "무선 이어폰": {"en": "wireless earphones", "zh": "无线耳机"},
    "노트북": {"en": "laptop", "zh": "笔记本电脑"},
    "스마트폰 케이스": {"en": "phone case", "zh": "手机壳"},
    "LED 조명": {"en": "LED light", "zh": "LED灯"},
}


class QueryTranslator:
    """Translate a keyword for the marketplaces that will receive it.

    Resolution order: the known-term dictionary, the chat-completion
    service, then the untranslated keyword.  Pure-ASCII keywords are
    already searchable on English-language sites and are passed through.
    Service translations are remembered up to ``memo_size`` entries,
    least recently used first out.
    """

    def __init__(
        self,
        assistant: AIAssistant | None = None,
        memo_size: int = Settings.TRANSLATION_MEMO_SIZE,
    ) -> None:
        self.assistant = assistant or AIAssistant()
        self.memo_size = memo_size
        self._memo: OrderedDict[tuple[str, str], str] = OrderedDict()

    def _remember(self, key: tuple[str, str], translated: str) -> None:
        self._memo[key] = translated
        self._memo.move_to_end(key)
        while len(self._memo) > self.memo_size:
            evicted, _ = self._memo.popitem(last=False)
            logger.debug("Translation memo full, dropped '%s' (%s)", *evicted)

    async def translate(self, keyword: str, language: str) -> str:
        keyword = keyword.strip()
        known = KNOWN_TRANSLATIONS.get(keyword)
        if known and language in known:
            return known[language]
        if language == "en" and keyword.isascii():
            return keyword

        key = (keyword, language)
        if key in self._memo:
            self._memo.move_to_end(key)
            return self._memo[key]

        if not self.assistant.enabled:
            logger.debug(
                "No translation service configured, searching '%s' as-is",
                keyword,
            )
            return keyword
        try:
            translated = await self.assistant.optimize_search_keyword(
                keyword, language
            )
        except AIServiceError as exc:
            logger.warning(
                "Keyword translation to %s failed for '%s': %s",
                language,
                keyword,
                exc,
            )
            return keyword

        self._remember(key, translated)
        logger.debug(
            "Translated keyword '%s' -> '%s' (%s)", keyword, translated, language
        )
        return translated

    async def for_languages(
        self, keyword: str, languages: Iterable[str]
    ) -> dict[str, str]:
        """Translate once per distinct language."""
        return {
            language: await self.translate(keyword, language)
            for language in dict.fromkeys(languages)
        }
