from __future__ import annotations

import logging
from dataclasses import dataclass

from .catalogs.base import (
    AT_END,
    STATE_FINAL,
    STATE_TRANSLATED,
    TranslationMessagesFile,
    TransUnit,
)
from .compare import source_references_equal, sources_nearly_equal


log = logging.getLogger("xliffsync.merge")


@dataclass(frozen=True)
class MergeOptions:
    allow_id_change: bool = False
    use_source_as_target: bool = True
    preserve_order: bool = True
    remove_unused_ids: bool = True


@dataclass
class MergeCounts:
    new: int = 0
    correct_source_content: int = 0
    correct_source_ref: int = 0
    correct_description_or_meaning: int = 0
    id_changed: int = 0
    from_legacy_master: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        return any(
            (
                self.new,
                self.correct_source_content,
                self.correct_source_ref,
                self.correct_description_or_meaning,
                self.id_changed,
                self.from_legacy_master,
                self.removed,
            )
        )


def _find_renamed(master_unit: TransUnit, target: TranslationMessagesFile) -> TransUnit | None:
    for candidate in target.trans_units:
        if sources_nearly_equal(candidate, master_unit):
            return candidate
    return None


def _carry_over(
    master_unit: TransUnit,
    old_unit: TransUnit,
    target: TranslationMessagesFile,
    import_after,
) -> TransUnit:
    """Import a master unit, keeping the translation of the unit it replaces."""
    new_unit = target.import_new_trans_unit(master_unit, False, False, import_after)
    old_target = old_unit.target_content_normalized()
    if not old_target.is_empty():
        new_unit.translate(old_target)
        new_unit.target_state = STATE_TRANSLATED
    return new_unit


def _update_existing(
    master_unit: TransUnit, unit: TransUnit, is_default_lang: bool, counts: MergeCounts
) -> None:
    if unit.capabilities.set_source_content and not sources_nearly_equal(master_unit, unit):
        unit.source_content = master_unit.source_content
        if is_default_lang:
            unit.translate(master_unit.source_content_normalized())
            unit.target_state = STATE_FINAL
        elif unit.target_state == STATE_FINAL:
            # source changed, translation needs another review
            unit.target_state = STATE_TRANSLATED
        counts.correct_source_content += 1

    if unit.capabilities.set_source_references and not source_references_equal(
        master_unit.source_references, unit.source_references
    ):
        unit.source_references = master_unit.source_references
        counts.correct_source_ref += 1

    if unit.capabilities.set_description_and_meaning:
        changed = False
        if unit.description != master_unit.description:
            unit.description = master_unit.description
            changed = True
        if unit.meaning != master_unit.meaning:
            unit.meaning = master_unit.meaning
            changed = True
        if changed:
            counts.correct_description_or_meaning += 1


def merge_master_into(
    master: TranslationMessagesFile,
    target: TranslationMessagesFile,
    options: MergeOptions,
    *,
    is_default_lang: bool,
    legacy_master: TranslationMessagesFile | None = None,
) -> MergeCounts:
    """Bring ``target`` in step with ``master``.

    Units are added, updated, renamed and removed in place. Each master unit
    ends in exactly one counter. ``legacy_master`` is a baseline catalog for
    the same language that can still supply translations of units the target
    lost.
    """
    counts = MergeCounts()
    last_processed: TransUnit | None = None

    for master_unit in master.trans_units:
        insert_after = last_processed if options.preserve_order else AT_END
        existing = target.trans_unit_with_id(master_unit.id)
        if existing is not None:
            _update_existing(master_unit, existing, is_default_lang, counts)
            last_processed = existing
            continue

        legacy = legacy_master.trans_unit_with_id(master_unit.id) if legacy_master is not None else None
        if legacy is not None:
            last_processed = _carry_over(master_unit, legacy, target, insert_after)
            counts.from_legacy_master += 1
            continue

        if options.allow_id_change:
            renamed = _find_renamed(master_unit, target)
            if renamed is not None:
                log.debug("id of %s changed to %s", renamed.id, master_unit.id)
                last_processed = _carry_over(master_unit, renamed, target, insert_after)
                counts.id_changed += 1
                continue

        last_processed = target.import_new_trans_unit(
            master_unit, is_default_lang, options.use_source_as_target, insert_after
        )
        counts.new += 1

    for unit in target.trans_units:
        if master.trans_unit_with_id(unit.id) is None:
            if options.remove_unused_ids:
                target.remove_trans_unit_with_id(unit.id)
            counts.removed += 1

    return counts


def log_merge_counts(counts: MergeCounts, lang: str, options: MergeOptions) -> None:
    if counts.new:
        log.warning('merged %s trans-units from master to "%s"', counts.new, lang)
    if counts.correct_source_content:
        log.warning('transferred %s changed source content from master to "%s"', counts.correct_source_content, lang)
    if counts.correct_source_ref:
        log.warning('transferred %s source references from master to "%s"', counts.correct_source_ref, lang)
    if counts.id_changed:
        log.warning("found %s changed id's in \"%s\"", counts.id_changed, lang)
    if counts.from_legacy_master:
        log.warning('took over %s translations from optional master to "%s"', counts.from_legacy_master, lang)
    if counts.correct_description_or_meaning:
        log.warning(
            'transferred %s changed descriptions/meanings from master to "%s"',
            counts.correct_description_or_meaning,
            lang,
        )
    if counts.removed:
        if options.remove_unused_ids:
            log.warning('removed %s unused trans-units in "%s"', counts.removed, lang)
        else:
            log.warning(
                'keeping %s unused trans-units in "%s", because removeUnused is disabled',
                counts.removed,
                lang,
            )


def create_translation_catalog(
    master: TranslationMessagesFile,
    lang: str,
    filename: str,
    *,
    is_default_lang: bool,
    use_source_as_target: bool,
    legacy_master: TranslationMessagesFile | None = None,
) -> TranslationMessagesFile:
    """New catalog for ``lang`` holding every master unit.

    Targets copied from the source carry the target praefix and suffix set
    on ``master``. Units the legacy master has translated start out with that
    translation.
    """
    catalog = master.create_translation_file_for_lang(
        lang, filename, is_default_lang, use_source_as_target
    )
    if legacy_master is not None and not is_default_lang:
        taken = 0
        for unit in catalog.trans_units:
            legacy = legacy_master.trans_unit_with_id(unit.id)
            if legacy is None:
                continue
            old_target = legacy.target_content_normalized()
            if not old_target.is_empty():
                unit.translate(old_target)
                unit.target_state = STATE_TRANSLATED
                taken += 1
        if taken:
            log.warning('took over %s translations from optional master to "%s"', taken, lang)
    return catalog
