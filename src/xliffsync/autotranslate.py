from __future__ import annotations

import asyncio
import html
import logging
import re

from .catalogs.base import STATE_NEW, TranslationMessagesFile, TransUnit
from .engines.base import MAX_SEGMENTS, TranslationEngine, TranslationEngineError
from .messages import ParsedMessage
from .summary import AutoTranslateResult, AutoTranslateSummaryReport


log = logging.getLogger("xliffsync.autotranslate")

_LANGUAGE_RE = re.compile(r"[a-z]*")


def strip_region(lang: str) -> str:
    """``de-CH`` -> ``de``, providers are called with the bare language."""
    return _LANGUAGE_RE.match(lang.lower()).group(0)


def split_to_segment_limit(texts: list[str], limit: int = MAX_SEGMENTS) -> list[list[str]]:
    if len(texts) <= limit:
        return [list(texts)]
    return [texts[i : i + limit] for i in range(0, len(texts), limit)]


async def translate_multiple_strings(
    engine: TranslationEngine, texts: list[str], from_lang: str, to_lang: str
) -> list[str]:
    """Translate any number of texts, one concurrent engine call per chunk.

    The result is aligned to ``texts``.
    """
    if not texts:
        return []
    if not from_lang or not to_lang:
        raise TranslationEngineError("cannot autotranslate: source and target language must be set")
    source, target = strip_region(from_lang), strip_region(to_lang)
    chunks = split_to_segment_limit(texts, engine.max_segments)
    results = await asyncio.gather(
        *(asyncio.to_thread(engine.translate, chunk, source, target) for chunk in chunks)
    )
    translations = [r.text for chunk_results in results for r in chunk_results]
    if len(translations) != len(texts):
        raise TranslationEngineError(
            f"got {len(translations)} translations for {len(texts)} texts"
        )
    return translations


def _apply(unit: TransUnit, translated: ParsedMessage) -> AutoTranslateResult:
    if translated.validate() is not None:
        return AutoTranslateResult(False, "errors detected, not translated")
    if translated.validate_warnings() is not None:
        return AutoTranslateResult(False, "warnings detected, not translated")
    unit.translate(translated)
    return AutoTranslateResult(True, None)


class AutoTranslateService:
    """Fills NEW units of a catalog with machine translations."""

    def __init__(self, engine: TranslationEngine):
        self.engine = engine

    async def auto_translate(
        self, from_lang: str, to_lang: str, catalog: TranslationMessagesFile
    ) -> AutoTranslateSummaryReport:
        untranslated = [u for u in catalog.trans_units if u.target_state == STATE_NEW]
        plain = [u for u in untranslated if not u.source_content_normalized().is_icu_message()]
        icu = [u for u in untranslated if u.source_content_normalized().is_icu_message()]
        log.debug(
            "%s: %d untranslated units, %d plain, %d icu",
            catalog.filename, len(untranslated), len(plain), len(icu),
        )
        summaries = await asyncio.gather(
            self._translate_plain_units(from_lang, to_lang, plain),
            *(self._translate_icu_unit(from_lang, to_lang, unit) for unit in icu),
        )
        summary = summaries[0]
        for other in summaries[1:]:
            summary.merge(other)
        return summary

    async def _translate_plain_units(
        self, from_lang: str, to_lang: str, units: list[TransUnit]
    ) -> AutoTranslateSummaryReport:
        summary = AutoTranslateSummaryReport(from_lang, to_lang)
        messages = [u.source_content_normalized().as_display_string() for u in units]
        if not messages:
            return summary
        try:
            translations = await translate_multiple_strings(self.engine, messages, from_lang, to_lang)
        except Exception as exc:
            log.debug("provider call failed: %s", exc)
            summary.set_error(str(exc), len(messages))
            return summary
        for unit, translation in zip(units, translations):
            translated = unit.source_content_normalized().translate(html.unescape(translation))
            summary.add_single_result(unit, _apply(unit, translated))
        return summary

    async def _translate_icu_unit(
        self, from_lang: str, to_lang: str, unit: TransUnit
    ) -> AutoTranslateSummaryReport:
        summary = AutoTranslateSummaryReport(from_lang, to_lang)
        source = unit.source_content_normalized()
        categories = source.icu_message.categories
        if any(c.message.is_icu_message() for c in categories):
            summary.set_ignored(1)
            return summary
        messages = [c.message.as_display_string() for c in categories]
        try:
            translations = await translate_multiple_strings(self.engine, messages, from_lang, to_lang)
        except Exception as exc:
            log.debug("provider call failed for %s: %s", unit.id, exc)
            summary.set_error(str(exc), len(messages))
            return summary
        icu_translation = {
            c.category: html.unescape(t) for c, t in zip(categories, translations)
        }
        summary.add_single_result(unit, _apply(unit, source.translate_icu_message(icu_translation)))
        return summary
