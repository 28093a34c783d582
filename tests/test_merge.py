import logging

from xliffsync.catalogs.base import STATE_FINAL, STATE_NEW, STATE_TRANSLATED, SourceReference
from xliffsync.catalogs.factory import MasterContent, from_file_content
from xliffsync.merge import (
    MergeCounts,
    MergeOptions,
    create_translation_catalog,
    log_merge_counts,
    merge_master_into,
)

from conftest import tu, xlf


LOCATION = (
    '<context-group purpose="location">'
    '<context context-type="sourcefile">app/app.component.html</context>'
    '<context context-type="linenumber">3</context>'
    "</context-group>"
)


def _master(*units):
    return from_file_content("xlf", xlf(*units), "messages.xlf")


def _target(*units):
    return from_file_content("xlf", xlf(*units, target_lang="de"), "messages.de.xlf")


def _ids(catalog):
    return [u.id for u in catalog.trans_units]


def _target_text(catalog, unit_id):
    return catalog.trans_unit_with_id(unit_id).target_content_normalized().as_display_string()


def test_new_unit_is_added_untranslated():
    master = _master(tu("a", "A"), tu("b", "B"))
    target = _target(tu("a", "A", "A-de"))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert counts == MergeCounts(new=1)
    assert counts.changed
    assert _ids(target) == ["a", "b"]
    b = target.trans_unit_with_id("b")
    assert b.target_state == STATE_NEW
    assert _target_text(target, "b") == "B"
    assert target.trans_unit_with_id("a").target_state == STATE_TRANSLATED
    assert _target_text(target, "a") == "A-de"


def test_new_unit_without_source_copy():
    master = _master(tu("a", "A"), tu("b", "B"))
    target = _target(tu("a", "A", "A-de"))

    merge_master_into(master, target, MergeOptions(use_source_as_target=False), is_default_lang=False)

    assert target.trans_unit_with_id("b").target_content_normalized().is_empty()


def test_new_unit_in_default_language_is_final():
    master = _master(tu("a", "A"), tu("b", "B"))
    target = _target(tu("a", "A", "A", state="final"))

    merge_master_into(master, target, MergeOptions(), is_default_lang=True)

    b = target.trans_unit_with_id("b")
    assert b.target_state == STATE_FINAL
    assert _target_text(target, "b") == "B"


def test_unused_units_are_removed():
    master = _master(tu("a", "A"))
    target = _target(tu("a", "A", "A-de"), tu("old", "Old", "Alt"))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert counts.removed == 1
    assert _ids(target) == ["a"]
    reread = from_file_content("xlf", target.edited_content(), "messages.de.xlf")
    assert _ids(reread) == ["a"]


def test_unused_units_are_kept_when_removal_is_disabled():
    master = _master(tu("a", "A"))
    target = _target(tu("a", "A", "A-de"), tu("old", "Old", "Alt"))

    counts = merge_master_into(master, target, MergeOptions(remove_unused_ids=False), is_default_lang=False)

    assert counts.removed == 1
    assert _ids(target) == ["a", "old"]


def test_changed_source_demotes_final_translation():
    master = _master(tu("a", "Hello world"))
    target = _target(tu("a", "Hello", "Hallo", state="final"))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert counts.correct_source_content == 1
    unit = target.trans_unit_with_id("a")
    assert unit.source_content_normalized().as_display_string() == "Hello world"
    assert unit.target_state == STATE_TRANSLATED
    assert _target_text(target, "a") == "Hallo"


def test_changed_source_keeps_translated_state():
    master = _master(tu("a", "Hello world"))
    target = _target(tu("a", "Hello", "Hallo", state="translated"))

    merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert target.trans_unit_with_id("a").target_state == STATE_TRANSLATED


def test_changed_source_in_default_language_updates_target():
    master = _master(tu("a", "Hello world"))
    target = _target(tu("a", "Hello", "Hello", state="final"))

    merge_master_into(master, target, MergeOptions(), is_default_lang=True)

    unit = target.trans_unit_with_id("a")
    assert unit.target_state == STATE_FINAL
    assert _target_text(target, "a") == "Hello world"


def test_whitespace_only_source_change_is_ignored():
    master = _master(tu("a", "Hello  world"))
    target = _target(tu("a", "Hello world", "Hallo Welt", state="final"))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert not counts.changed
    assert target.trans_unit_with_id("a").target_state == STATE_FINAL


def test_changed_references_and_description():
    master = _master(tu("a", "A", extra=LOCATION + '<note priority="1" from="description">new</note>'))
    target = _target(tu("a", "A", "A-de", extra='<note priority="1" from="description">old</note>'))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert counts.correct_source_ref == 1
    assert counts.correct_description_or_meaning == 1
    unit = target.trans_unit_with_id("a")
    assert unit.source_references == [SourceReference("app/app.component.html", 3)]
    assert unit.description == "new"
    assert unit.target_state == STATE_TRANSLATED


def test_changed_id_keeps_translation():
    master = _master(tu("new-id", "Save"))
    target = _target(tu("old-id", "Save", "Speichern", state="final"))

    counts = merge_master_into(master, target, MergeOptions(allow_id_change=True), is_default_lang=False)

    assert counts.id_changed == 1
    assert counts.removed == 1
    assert counts.new == 0
    assert _ids(target) == ["new-id"]
    unit = target.trans_unit_with_id("new-id")
    assert unit.target_state == STATE_TRANSLATED
    assert _target_text(target, "new-id") == "Speichern"


def test_changed_id_with_empty_translation_stays_new():
    master = _master(tu("new-id", "Save"))
    target = _target(tu("old-id", "Save", "", state="new"))

    counts = merge_master_into(master, target, MergeOptions(allow_id_change=True), is_default_lang=False)

    assert counts.id_changed == 1
    assert _ids(target) == ["new-id"]
    assert target.trans_unit_with_id("new-id").target_state == STATE_NEW
    assert _target_text(target, "new-id") == ""


def test_copied_translation_for_duplicate_source_marks_catalog_changed():
    master = _master(tu("a", "Save"), tu("b", "Save"))
    target = _target(tu("a", "Save", "Enregistrer"))

    counts = merge_master_into(master, target, MergeOptions(allow_id_change=True), is_default_lang=False)

    assert counts.id_changed == 1
    assert counts.removed == 0
    assert counts.changed
    assert _ids(target) == ["a", "b"]
    assert target.trans_unit_with_id("b").target_state == STATE_TRANSLATED
    assert _target_text(target, "b") == "Enregistrer"


def test_changed_id_without_permission_is_new_unit():
    master = _master(tu("new-id", "Save"))
    target = _target(tu("old-id", "Save", "Speichern", state="final"))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert counts.id_changed == 0
    assert counts.new == 1
    assert target.trans_unit_with_id("new-id").target_state == STATE_NEW


def test_translation_taken_from_legacy_master():
    master = _master(tu("a", "A"), tu("b", "B"))
    target = _target(tu("a", "A", "A-de"))
    legacy = _target(tu("b", "B", "B-de", state="final"))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False, legacy_master=legacy)

    assert counts.from_legacy_master == 1
    assert counts.new == 0
    assert counts.changed
    assert target.trans_unit_with_id("b").target_state == STATE_TRANSLATED
    assert _target_text(target, "b") == "B-de"


def test_legacy_master_wins_over_changed_id():
    master = _master(tu("b", "Save"))
    target = _target(tu("a", "Save", "Sauver"))
    legacy = _target(tu("b", "Save", "Enregistrer", state="final"))

    counts = merge_master_into(
        master, target, MergeOptions(allow_id_change=True), is_default_lang=False, legacy_master=legacy
    )

    assert counts.from_legacy_master == 1
    assert counts.id_changed == 0
    assert counts.removed == 1
    assert _ids(target) == ["b"]
    assert _target_text(target, "b") == "Enregistrer"


def test_untranslated_legacy_unit_stays_new():
    master = _master(tu("a", "A"), tu("b", "B"))
    target = _target(tu("a", "A", "A-de"))
    legacy = _target(tu("b", "B", "", state="new"))

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False, legacy_master=legacy)

    assert counts.from_legacy_master == 1
    assert target.trans_unit_with_id("b").target_state == STATE_NEW


def test_new_units_follow_master_order():
    master = _master(tu("x", "X"), tu("a", "A"), tu("b", "B"), tu("c", "C"))
    target = _target(tu("a", "A", "A-de"), tu("c", "C", "C-de"))

    merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert _ids(target) == ["x", "a", "b", "c"]
    reread = from_file_content("xlf", target.edited_content(), "messages.de.xlf")
    assert _ids(reread) == ["x", "a", "b", "c"]


def test_new_units_appended_without_preserve_order():
    master = _master(tu("x", "X"), tu("a", "A"), tu("b", "B"), tu("c", "C"))
    target = _target(tu("a", "A", "A-de"), tu("c", "C", "C-de"))

    merge_master_into(master, target, MergeOptions(preserve_order=False), is_default_lang=False)

    assert _ids(target) == ["a", "c", "x", "b"]


def test_second_merge_changes_nothing():
    master = _master(tu("a", "A", extra=LOCATION), tu("b", "B"), tu("c", "{n, plural, =0 {none} other {some}}"))
    target = _target(tu("a", "A", "A-de"), tu("old", "Old", "Alt"))

    first = merge_master_into(master, target, MergeOptions(), is_default_lang=False)
    content = target.edited_content()
    reread = from_file_content("xlf", content, "messages.de.xlf")
    second = merge_master_into(master, reread, MergeOptions(), is_default_lang=False)

    assert first.changed
    assert second == MergeCounts()
    assert not second.changed
    assert reread.edited_content() == content


def test_xtb_merge_adds_and_removes_only(master_xmb, xtb_de):
    master = from_file_content("xmb", master_xmb, "messages.xmb")
    target = from_file_content(
        "xtb", xtb_de, "messages.de.xtb", optional_master=MasterContent(master_xmb.encode(), "messages.xmb")
    )

    counts = merge_master_into(master, target, MergeOptions(), is_default_lang=False)

    assert counts == MergeCounts(new=1, removed=1)
    assert _ids(target) == ["greeting", "bye"]
    assert target.trans_unit_with_id("greeting").target_state == STATE_FINAL
    assert target.trans_unit_with_id("bye").target_state == STATE_NEW
    assert _target_text(target, "bye") == "Goodbye"


def test_create_catalog_takes_legacy_translations(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")
    master.new_trans_unit_target_praefix = "!"
    legacy = _target(tu("bold", "Click here", "Hier klicken", state="final"))

    catalog = create_translation_catalog(
        master,
        "de",
        "messages.de.xlf",
        is_default_lang=False,
        use_source_as_target=True,
        legacy_master=legacy,
    )

    assert catalog.target_language == "de"
    assert catalog.trans_unit_with_id("bold").target_state == STATE_TRANSLATED
    assert _target_text(catalog, "bold") == "Hier klicken"
    assert catalog.trans_unit_with_id("greeting").target_state == STATE_NEW
    assert _target_text(catalog, "greeting") == "!Hello {{0}}!"


def test_create_catalog_for_default_language_ignores_legacy(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")
    legacy = _target(tu("bold", "Click here", "Hier klicken", state="final"))

    catalog = create_translation_catalog(
        master, "en", "messages.en.xlf", is_default_lang=True, use_source_as_target=True, legacy_master=legacy
    )

    for unit in catalog.trans_units:
        assert unit.target_state == STATE_FINAL
    assert _target_text(catalog, "bold") == "Click <b>here</b>"


def test_log_merge_counts(caplog):
    caplog.set_level(logging.DEBUG, logger="xliffsync.merge")

    log_merge_counts(MergeCounts(new=2, removed=1), "de", MergeOptions(remove_unused_ids=False))

    assert 'merged 2 trans-units from master to "de"' in caplog.text
    assert 'keeping 1 unused trans-units in "de", because removeUnused is disabled' in caplog.text
