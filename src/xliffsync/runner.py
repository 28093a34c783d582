from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from . import ngx_translate
from .autotranslate import AutoTranslateService
from .catalogs import reader
from .catalogs.base import FORMAT_XTB, TranslationMessagesFile, XliffMergeError
from .config import Config
from .engines.base import TranslationEngine
from .merge import create_translation_catalog, log_merge_counts, merge_master_into
from .summary import AutoTranslateSummaryReport


log = logging.getLogger("xliffsync.runner")


@dataclass(frozen=True)
class LanguageResult:
    lang: str
    retcode: int
    error: str | None = None


def total_retcode(results: list[LanguageResult]) -> int:
    """0 if every language succeeded, otherwise the first non zero code."""
    for result in results:
        if result.retcode != 0:
            return result.retcode
    return 0


class XliffMerge:
    """Brings every language catalog in step with the master catalog.

    Languages are processed concurrently. Master mutations happen before the
    languages are started; afterwards the master is only read.
    """

    def __init__(self, config: Config, engine: TranslationEngine | None = None, version: str = "unknown"):
        self.config = config
        self.engine = engine
        self.version = version
        self.master: TranslationMessagesFile | None = None
        self.warnings: list[str] = []
        self.summaries: dict[str, AutoTranslateSummaryReport] = {}
        self._translator: AutoTranslateService | None = None

    async def run_async(self) -> int:
        cfg = self.config
        log.info("xliffsync version %s", self.version)
        if cfg.verbose:
            cfg.log_parameters()
        errors, self.warnings = cfg.check()
        if errors:
            for err in errors:
                log.error("%s", err)
            return -1
        for warning in self.warnings:
            log.warning("%s", warning)

        try:
            self.master = await asyncio.to_thread(self._read_master)
        except XliffMergeError as exc:
            log.error("%s", exc)
            return -1
        except Exception as exc:
            log.error('file "%s", oops %s', cfg.i18n_file, exc)
            raise

        if cfg.autotranslate_on:
            if self.engine is None:
                log.error("autotranslate is enabled, but no translation engine is configured")
                return -1
            self._translator = AutoTranslateService(self.engine)

        self.master.new_trans_unit_target_praefix = cfg.target_praefix
        self.master.new_trans_unit_target_suffix = cfg.target_suffix

        results = await asyncio.gather(*(self.process_language(lang) for lang in cfg.languages))
        return total_retcode(list(results))

    def _read_master(self) -> TranslationMessagesFile:
        cfg = self.config
        master = reader.from_file(cfg.i18n_format, cfg.i18n_file, cfg.encoding)
        count = master.number_of_trans_units()
        missing = master.number_of_trans_units_with_missing_id()
        for warning in master.warnings:
            log.warning("%s", warning)
        log.info("master contains %s trans-units", count)
        if missing > 0:
            log.warning("master contains %s trans-units, but there are %s without id", count, missing)
        source_lang = master.source_language
        if source_lang and source_lang != cfg.default_language:
            log.warning(
                'master says to have source-language="%s", should be "%s" (your defaultLanguage)',
                source_lang,
                cfg.default_language,
            )
            master.source_language = cfg.default_language
            reader.save(master, cfg.beautify_output)
            log.warning('changed master source-language="%s" to "%s"', source_lang, cfg.default_language)
        return master

    @property
    def _translation_format(self) -> str:
        return reader.translation_format(self.config.i18n_format)

    def _read_translation(self, path: str) -> TranslationMessagesFile:
        # xtb files need their xmb master for source content and notes
        xmb_master = self.config.i18n_file if self._translation_format == FORMAT_XTB else None
        return reader.from_file(self._translation_format, path, self.config.encoding, xmb_master)

    def _read_legacy_master(self, lang: str) -> TranslationMessagesFile | None:
        path = self.config.optional_master_file_path(lang)
        if not path or not Path(path).is_file():
            return None
        log.debug("using optional master %s for %s", path, lang)
        return self._read_translation(path)

    async def process_language(self, lang: str) -> LanguageResult:
        log.debug("processing language %s", lang)
        path = self.config.generated_i18n_file(lang)
        try:
            if Path(path).exists():
                await self._merge_master_to(lang, path)
            else:
                await self._create_untranslated(lang, path)
            if self.config.support_ngx_translate:
                await asyncio.to_thread(self._export_ngx_translate, lang, path)
        except XliffMergeError as exc:
            log.error("%s", exc)
            return LanguageResult(lang, -1, str(exc))
        except Exception as exc:
            log.error('file "%s", oops %s', path, exc)
            raise
        return LanguageResult(lang, 0)

    async def _create_untranslated(self, lang: str, path: str) -> None:
        cfg = self.config
        is_default_lang = lang == cfg.default_language
        legacy = await asyncio.to_thread(self._read_legacy_master, lang)
        catalog = create_translation_catalog(
            self.master,
            lang,
            path,
            is_default_lang=is_default_lang,
            use_source_as_target=cfg.use_source_as_target,
            legacy_master=legacy,
        )
        await self._auto_translate(lang, catalog)
        await asyncio.to_thread(reader.save, catalog, cfg.beautify_output)
        log.info('created new file "%s" for target-language="%s"', path, lang)
        if not is_default_lang:
            log.warning('please translate file "%s" to target-language="%s"', path, lang)

    async def _merge_master_to(self, lang: str, path: str) -> None:
        cfg = self.config
        target = await asyncio.to_thread(self._read_translation, path)
        legacy = await asyncio.to_thread(self._read_legacy_master, lang)
        target.new_trans_unit_target_praefix = cfg.target_praefix
        target.new_trans_unit_target_suffix = cfg.target_suffix
        is_default_lang = lang == cfg.default_language
        options = cfg.merge_options()

        counts = merge_master_into(
            self.master, target, options, is_default_lang=is_default_lang, legacy_master=legacy
        )
        log_merge_counts(counts, lang, options)
        if not counts.changed:
            log.info('file for "%s" was up to date', lang)
            return

        await self._auto_translate(lang, target)
        await asyncio.to_thread(reader.save, target, cfg.beautify_output)
        log.info('updated file "%s" for target-language="%s"', path, lang)
        if counts.new > 0 and not is_default_lang:
            log.warning('please translate file "%s" to target-language="%s"', path, lang)

    async def _auto_translate(self, lang: str, catalog: TranslationMessagesFile) -> AutoTranslateSummaryReport:
        from_lang = self.master.source_language or self.config.default_language
        if self._translator is None or not self.config.autotranslate_enabled(lang):
            summary = AutoTranslateSummaryReport(from_lang, lang)
        else:
            summary = await self._translator.auto_translate(from_lang, lang, catalog)
            if summary.error or summary.failed > 0:
                log.error("%s", summary.content())
            else:
                log.warning("%s", summary.content())
        self.summaries[lang] = summary
        return summary

    def _export_ngx_translate(self, lang: str, path: str) -> None:
        catalog = self._read_translation(path)
        ngx_translate.extract_to(
            catalog,
            self.config.ngx_translate_extraction_pattern,
            self.config.generated_ngx_translate_file(lang),
        )
