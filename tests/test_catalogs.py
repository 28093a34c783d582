import pytest

from xliffsync.catalogs import reader
from xliffsync.catalogs.base import (
    STATE_FINAL,
    STATE_NEW,
    STATE_TRANSLATED,
    SourceReference,
    XliffMergeError,
    parse_location,
)
from xliffsync.catalogs.factory import (
    MasterContent,
    detect_format,
    from_file_content,
    from_unknown_format_file_content,
)

from conftest import tu, xlf


def _display(message):
    return message.as_display_string()


# XLIFF 1.2


def test_xliff_reads_units(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")

    assert master.number_of_trans_units() == 3
    assert master.source_language == "en"
    greeting = master.trans_unit_with_id("greeting")
    assert _display(greeting.source_content_normalized()) == "Hello {{0}}!"
    assert greeting.description == "greeting text"
    assert greeting.meaning == "home"
    assert greeting.source_references == [SourceReference("app/app.component.html", 3)]
    assert greeting.target_state == STATE_NEW
    assert _display(master.trans_unit_with_id("bold").source_content_normalized()) == "Click <b>here</b>"
    assert master.trans_unit_with_id("items").source_content_normalized().is_icu_message()
    assert master.trans_unit_with_id("missing") is None


def test_xliff_translation_file_copies_source_with_affixes(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")
    master.new_trans_unit_target_praefix = "»"

    de = master.create_translation_file_for_lang("de", "messages.de.xlf", False, True)

    assert de.target_language == "de"
    assert de.filename == "messages.de.xlf"
    greeting = de.trans_unit_with_id("greeting")
    assert _display(greeting.target_content_normalized()) == "»Hello {{0}}!"
    assert greeting.target_state == STATE_NEW
    items = de.trans_unit_with_id("items")
    assert _display(items.target_content_normalized()) == _display(items.source_content_normalized())
    assert de.number_of_untranslated_trans_units() == 3


def test_xliff_translation_file_for_default_language(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")

    en = master.create_translation_file_for_lang("en", "messages.en.xlf", True, True)

    for unit in en.trans_units:
        assert unit.target_state == STATE_FINAL
        assert _display(unit.target_content_normalized()) == _display(unit.source_content_normalized())


def test_xliff_translation_file_without_source_copy(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")

    de = master.create_translation_file_for_lang("de", "messages.de.xlf", False, False)

    for unit in de.trans_units:
        assert unit.target_content_normalized().is_empty()
        assert unit.target_state == STATE_NEW


def test_xliff_translation_survives_saving(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")
    de = master.create_translation_file_for_lang("de", "messages.de.xlf", False, False)

    de.trans_unit_with_id("greeting").translate("Hallo {{0}}!")
    reread = from_file_content("xlf", de.edited_content(), "messages.de.xlf")

    greeting = reread.trans_unit_with_id("greeting")
    assert greeting.target_state == STATE_TRANSLATED
    assert _display(greeting.target_content_normalized()) == "Hallo {{0}}!"
    assert 'id="INTERPOLATION"' in greeting.target_content
    assert 'equiv-text="{{ name }}"' in greeting.target_content
    assert greeting.description == "greeting text"


def test_xliff_target_without_state():
    catalog = from_file_content(
        "xlf",
        xlf(
            '<trans-unit id="a"><source>A</source><target>Ah</target></trans-unit>',
            '<trans-unit id="b"><source>B</source><target></target></trans-unit>',
        ),
        "messages.de.xlf",
    )

    assert catalog.trans_unit_with_id("a").target_state == STATE_TRANSLATED
    assert catalog.trans_unit_with_id("b").target_state == STATE_NEW


def test_xliff_native_states():
    catalog = from_file_content(
        "xlf",
        xlf(
            tu("a", "A", "Ah", state="final"),
            tu("b", "B", "Bh", state="signed-off"),
            tu("c", "C", "Ch", state="needs-review-translation"),
            tu("d", "D", "D", state="new"),
        ),
        "messages.de.xlf",
    )

    states = {unit.id: unit.target_state for unit in catalog.trans_units}
    assert states == {"a": STATE_FINAL, "b": STATE_FINAL, "c": STATE_TRANSLATED, "d": STATE_NEW}


def test_xliff_setters(master_xlf):
    catalog = from_file_content("xlf", master_xlf, "messages.xlf")
    greeting = catalog.trans_unit_with_id("greeting")

    greeting.description = "new text"
    greeting.meaning = None
    greeting.source_references = [SourceReference("app/other.html", 7)]
    greeting.source_content = "Hi there"
    reread = from_file_content("xlf", catalog.edited_content(), "messages.xlf")

    greeting = reread.trans_unit_with_id("greeting")
    assert greeting.description == "new text"
    assert greeting.meaning is None
    assert greeting.source_references == [SourceReference("app/other.html", 7)]
    assert _display(greeting.source_content_normalized()) == "Hi there"


def test_xliff_import_positions():
    catalog = from_file_content("xlf", xlf(tu("a", "A"), tu("c", "C")), "messages.de.xlf")
    master = from_file_content("xlf", xlf(tu("b", "B"), tu("first", "First"), tu("last", "Last")), "messages.xlf")
    a = catalog.trans_unit_with_id("a")

    catalog.import_new_trans_unit(master.trans_unit_with_id("b"), False, True, a)
    catalog.import_new_trans_unit(master.trans_unit_with_id("first"), False, True, None)
    catalog.import_new_trans_unit(master.trans_unit_with_id("last"), False, True)

    assert [u.id for u in catalog.trans_units] == ["first", "a", "b", "c", "last"]
    reread = from_file_content("xlf", catalog.edited_content(), "messages.de.xlf")
    assert [u.id for u in reread.trans_units] == ["first", "a", "b", "c", "last"]
    assert reread.trans_unit_with_id("b").target_state == STATE_NEW


def test_xliff_import_existing_id_fails():
    catalog = from_file_content("xlf", xlf(tu("a", "A")), "messages.de.xlf")
    master = from_file_content("xlf", xlf(tu("a", "A")), "messages.xlf")

    with pytest.raises(XliffMergeError):
        catalog.import_new_trans_unit(master.trans_unit_with_id("a"), False, True)


def test_xliff_remove_unit():
    catalog = from_file_content("xlf", xlf(tu("a", "A"), tu("b", "B")), "messages.de.xlf")

    catalog.remove_trans_unit_with_id("a")

    assert [u.id for u in catalog.trans_units] == ["b"]
    reread = from_file_content("xlf", catalog.edited_content(), "messages.de.xlf")
    assert reread.number_of_trans_units() == 1


def test_xliff_missing_id_is_reported():
    catalog = from_file_content(
        "xlf", xlf('<trans-unit><source>A</source></trans-unit>', tu("b", "B")), "messages.xlf"
    )

    assert catalog.number_of_trans_units_with_missing_id() == 1
    assert catalog.warnings


def test_not_well_formed_xml():
    with pytest.raises(XliffMergeError, match="not well formed"):
        from_file_content("xlf", "<xliff version='1.2'><file>", "broken.xlf")


def test_wrong_xliff_version(master_xlf2):
    with pytest.raises(XliffMergeError, match="xliff 1.2"):
        from_file_content("xlf", master_xlf2, "messages.xlf")


def test_beautified_output_still_parses(master_xlf):
    master = from_file_content("xlf", master_xlf, "messages.xlf")

    content = master.edited_content(beautify_output=True)

    reread = from_file_content("xlf", content, "messages.xlf")
    assert _display(reread.trans_unit_with_id("bold").source_content_normalized()) == "Click <b>here</b>"


# XLIFF 2.0


def test_xliff2_reads_units(master_xlf2):
    master = from_file_content("xlf2", master_xlf2, "messages.xlf")

    assert master.source_language == "en"
    greeting = master.trans_unit_with_id("greeting")
    assert _display(greeting.source_content_normalized()) == "Hello {{0}}!"
    assert greeting.description == "greeting text"
    assert greeting.meaning == "home"
    assert greeting.source_references == [SourceReference("app/app.component.html", 3)]
    assert _display(master.trans_unit_with_id("bold").source_content_normalized()) == "Click <b>here</b>"


def test_xliff2_translation_roundtrip(master_xlf2):
    master = from_file_content("xlf2", master_xlf2, "messages.xlf")
    de = master.create_translation_file_for_lang("de", "messages.de.xlf", False, True)

    assert de.target_language == "de"
    assert de.trans_unit_with_id("bold").target_state == STATE_NEW

    de.trans_unit_with_id("bold").translate("Klicke <b>hier</b>")
    reread = from_file_content("xlf2", de.edited_content(), "messages.de.xlf")

    bold = reread.trans_unit_with_id("bold")
    assert bold.target_state == STATE_TRANSLATED
    assert _display(bold.target_content_normalized()) == "Klicke <b>hier</b>"
    assert "<pc" in bold.target_content
    assert reread.trans_unit_with_id("greeting").target_state == STATE_NEW


def test_xliff2_reviewed_is_final(master_xlf2):
    content = master_xlf2.replace("<segment>", '<segment state="reviewed">', 1)
    master = from_file_content("xlf2", content, "messages.xlf")

    assert master.trans_unit_with_id("greeting").target_state == STATE_FINAL


def test_xliff2_source_references_are_location_notes(master_xlf2):
    master = from_file_content("xlf2", master_xlf2, "messages.xlf")
    bold = master.trans_unit_with_id("bold")

    bold.source_references = [SourceReference("app/a.html", 1), SourceReference("app/b.html", 2)]
    bold.description = "button"

    reread = from_file_content("xlf2", master.edited_content(), "messages.xlf")
    bold = reread.trans_unit_with_id("bold")
    assert bold.source_references == [SourceReference("app/a.html", 1), SourceReference("app/b.html", 2)]
    assert bold.description == "button"


# XMB / XTB


def test_xmb_reads_units(master_xmb):
    master = from_file_content("xmb", master_xmb, "messages.xmb")

    assert master.source_language is None
    greeting = master.trans_unit_with_id("greeting")
    assert _display(greeting.source_content_normalized()) == "Hello {{0}}!"
    assert greeting.description == "greeting text"
    assert greeting.meaning == "home"
    assert greeting.source_references == [SourceReference("app/app.component.html", 3)]


def test_xmb_cannot_store_translations(master_xmb):
    master = from_file_content("xmb", master_xmb, "messages.xmb")
    other = from_file_content("xmb", master_xmb, "other.xmb")

    with pytest.raises(XliffMergeError):
        master.import_new_trans_unit(other.trans_unit_with_id("bye"), False, True)


def test_xtb_created_from_xmb(master_xmb):
    master = from_file_content("xmb", master_xmb, "messages.xmb")

    de = master.create_translation_file_for_lang("de", "messages.de.xtb", False, True)

    assert de.target_language == "de"
    assert [u.id for u in de.trans_units] == ["greeting", "bye"]
    greeting = de.trans_unit_with_id("greeting")
    assert _display(greeting.target_content_normalized()) == "Hello {{0}}!"
    assert greeting.target_state == STATE_NEW
    assert greeting.description == "greeting text"
    content = de.edited_content()
    assert b"<!DOCTYPE translationbundle" in content
    assert b'<ph name="INTERPOLATION"/>' in content


def test_xtb_state_is_derived_from_content(master_xmb, xtb_de):
    xtb = from_file_content(
        "xtb", xtb_de, "messages.de.xtb", optional_master=MasterContent(master_xmb.encode(), "messages.xmb")
    )

    greeting = xtb.trans_unit_with_id("greeting")
    assert greeting.target_state == STATE_FINAL
    assert _display(greeting.source_content_normalized()) == "Hello {{0}}!"
    assert _display(greeting.target_content_normalized()) == "Hallo {{0}}!"
    # no master unit for this one
    assert xtb.trans_unit_with_id("old").description is None


def test_xtb_units_are_read_only(master_xmb, xtb_de):
    xtb = from_file_content(
        "xtb", xtb_de, "messages.de.xtb", optional_master=MasterContent(master_xmb.encode(), "messages.xmb")
    )
    greeting = xtb.trans_unit_with_id("greeting")

    assert not greeting.capabilities.set_source_content
    with pytest.raises(XliffMergeError):
        greeting.description = "changed"
    with pytest.raises(XliffMergeError):
        greeting.source_content = "changed"
    with pytest.raises(XliffMergeError):
        greeting.source_references = []


# format detection and files


@pytest.mark.parametrize(
    "fixture, expected",
    [("master_xlf", "xlf"), ("master_xlf2", "xlf2"), ("master_xmb", "xmb"), ("xtb_de", "xtb")],
)
def test_detect_format(request, fixture, expected):
    assert detect_format(request.getfixturevalue(fixture)) == expected


def test_detect_format_of_unknown_content():
    assert detect_format("<html/>") is None
    assert detect_format("not xml") is None
    with pytest.raises(XliffMergeError):
        from_unknown_format_file_content("<html/>", "page.html")


def test_unsupported_format(master_xlf):
    with pytest.raises(XliffMergeError, match="unsupported format"):
        from_file_content("po", master_xlf, "messages.po")


def test_reader_save_and_read(tmp_path, master_xlf):
    path = tmp_path / "messages.xlf"
    path.write_text(master_xlf, encoding="utf-8")

    catalog = reader.from_file("xlf", str(path))
    catalog.trans_unit_with_id("bold").description = "button"
    catalog.filename = str(tmp_path / "out" / "messages.xlf")
    reader.save(catalog)

    reread = reader.from_unknown_format_file(catalog.filename)
    assert reread.trans_unit_with_id("bold").description == "button"


def test_reader_missing_file(tmp_path):
    with pytest.raises(XliffMergeError, match="could not read file"):
        reader.from_file("xlf", str(tmp_path / "missing.xlf"))


def test_translation_format():
    assert reader.translation_format("xmb") == "xtb"
    assert reader.translation_format("xlf2") == "xlf2"


def test_parse_location():
    assert parse_location("app/app.component.html:3") == SourceReference("app/app.component.html", 3)
    assert parse_location("app/app.component.html:3,5") == SourceReference("app/app.component.html", 3)
    assert parse_location("no line") is None
