from __future__ import annotations

import copy

from lxml import etree

from ..messages import (
    ParsedMessage,
    Part,
    TextPart,
    flatten_for_native,
    native_id_for,
    part_from_native_id,
)

from .base import (
    AT_END,
    FORMAT_XMB,
    FORMAT_XTB,
    STATE_FINAL,
    STATE_NEW,
    SourceReference,
    TranslationMessagesFile,
    TransUnit,
    UnitCapabilities,
    XliffMergeError,
    append_text,
    clear_element,
    inner_xml,
    local_name,
    parse_location,
    remove_element,
)


XTB_DOCTYPE = """<!DOCTYPE translationbundle [
  <!ELEMENT translationbundle (translation)*>
  <!ATTLIST translationbundle lang CDATA #REQUIRED>
  <!ELEMENT translation (#PCDATA|ph)*>
  <!ATTLIST translation id CDATA #REQUIRED>
  <!ELEMENT ph EMPTY>
  <!ATTLIST ph name CDATA #REQUIRED>
]>"""

_NO_CAPABILITIES = UnitCapabilities(
    set_source_content=False,
    set_source_references=False,
    set_description_and_meaning=False,
)


def _ph_parts(element) -> list[Part]:
    """Text and ``ph`` children of an XMB ``msg`` or XTB ``translation``."""
    parts: list[Part] = []
    if element is None:
        return parts
    if element.text:
        parts.append(TextPart(element.text))
    for child in element:
        name = local_name(child)
        if name == "ph":
            ex = child.find("ex")
            disp = ex.text if ex is not None else None
            parts.append(part_from_native_id(child.get("name", ""), disp))
        elif name and name != "source":
            parts.extend(_ph_parts(child))
        if child.tail:
            parts.append(TextPart(child.tail))
    return parts


class XmbTransUnit(TransUnit):
    """A ``msg`` of an XMB master. Masters hold no translations."""

    capabilities = _NO_CAPABILITIES

    def _content_element(self):
        content = copy.deepcopy(self.element)
        content.tail = None
        for source in content.findall("source"):
            remove_element(source)
        return content

    def _native_source(self) -> str:
        return inner_xml(self._content_element())

    def _source_parts(self) -> list[Part]:
        return _ph_parts(self._content_element())

    def _native_target(self) -> str:
        return ""

    def _target_parts(self) -> list[Part]:
        return []

    def _write_target(self, message: ParsedMessage) -> None:
        raise XliffMergeError("xmb files do not contain translations")

    def _get_target_state(self) -> str:
        return STATE_NEW

    def _set_target_state(self, state: str) -> None:
        raise XliffMergeError("xmb files do not contain translations")

    def _get_note(self, kind: str) -> str | None:
        return self.element.get("desc" if kind == "description" else "meaning")

    def _get_source_references(self) -> list[SourceReference]:
        refs = []
        for source in self.element.findall("source"):
            ref = parse_location(source.text)
            if ref is not None:
                refs.append(ref)
        return refs


class XmbFile(TranslationMessagesFile):
    i18n_format = FORMAT_XMB
    file_type = "XMB"
    mixed_content_tags = frozenset({"msg", "ph", "ex", "source"})

    def _check_root(self) -> None:
        if local_name(self.root) != "messagebundle":
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xmb file (should contain a messagebundle element)'
            )

    def _unit_elements(self):
        return self.root.iter("msg")

    def _create_unit(self, element) -> XmbTransUnit:
        return XmbTransUnit(element, element.get("id"), self)

    def _units_container(self):
        return self.root

    def _new_unit_element(self, unit_id: str):
        raise XliffMergeError("xmb file cannot be used to store translations, use xtb file")

    def import_new_trans_unit(self, foreign, is_default_lang, copy_content, import_after=AT_END):
        raise XliffMergeError("xmb file cannot be used to store translations, use xtb file")

    def _get_language(self, which: str) -> str | None:
        return None

    def _set_language(self, which: str, lang: str) -> None:
        pass

    def create_translation_file_for_lang(
        self, lang: str, filename: str, is_default_lang: bool, copy_content: bool
    ) -> "XtbFile":
        content = (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            + XTB_DOCTYPE
            + "\n<translationbundle>\n</translationbundle>\n"
        )
        translation = XtbFile(content.encode("utf-8"), filename, self.encoding, master=self)
        self._copy_settings_to(translation)
        translation.target_language = lang
        for unit in self.trans_units:
            translation.import_new_trans_unit(unit, is_default_lang, copy_content)
        return translation


class XtbTransUnit(TransUnit):
    """A ``translation`` of an XTB file.

    Source, description, meaning and references come from the matching master
    unit. The state is derived from the content unless it was set in memory.
    """

    capabilities = _NO_CAPABILITIES

    def __init__(self, element, unit_id, catalog, master_unit: TransUnit | None = None):
        super().__init__(element, unit_id, catalog)
        self.master_unit = master_unit
        self._state: str | None = None

    def _native_source(self) -> str:
        return self.master_unit.source_content if self.master_unit is not None else ""

    def _source_parts(self) -> list[Part]:
        return self.master_unit._source_parts() if self.master_unit is not None else []

    def _native_target(self) -> str:
        return inner_xml(self.element)

    def _target_parts(self) -> list[Part]:
        return _ph_parts(self.element)

    def _write_target(self, message: ParsedMessage) -> None:
        clear_element(self.element)
        for part in flatten_for_native(message.parts):
            if isinstance(part, TextPart):
                append_text(self.element, part.text)
            else:
                ph = etree.SubElement(self.element, "ph")
                ph.set("name", native_id_for(part))

    def _get_target_state(self) -> str:
        if self._state is not None:
            return self._state
        target = ParsedMessage(_ph_parts(self.element)).as_display_string().strip()
        if not target:
            return STATE_NEW
        if self.master_unit is not None:
            source = self.source_content_normalized().as_display_string().strip()
            if source == target:
                return STATE_NEW
        return STATE_FINAL

    def _set_target_state(self, state: str) -> None:
        self._state = state

    def _get_note(self, kind: str) -> str | None:
        if self.master_unit is None:
            return None
        return self.master_unit.description if kind == "description" else self.master_unit.meaning

    def _get_source_references(self) -> list[SourceReference]:
        return self.master_unit.source_references if self.master_unit is not None else []

    def _copy_from(self, foreign: TransUnit) -> None:
        self.master_unit = foreign


class XtbFile(TranslationMessagesFile):
    i18n_format = FORMAT_XTB
    file_type = "XTB"
    mixed_content_tags = frozenset({"translation", "ph"})

    def __init__(self, content, filename: str, encoding: str | None = None, master: XmbFile | None = None):
        self.master = master
        super().__init__(content, filename, encoding)

    def _check_root(self) -> None:
        if local_name(self.root) != "translationbundle":
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xtb file (should contain a translationbundle element)'
            )

    def _unit_elements(self):
        return self.root.iter("translation")

    def _create_unit(self, element) -> XtbTransUnit:
        unit_id = element.get("id")
        master_unit = self.master.trans_unit_with_id(unit_id) if self.master is not None else None
        return XtbTransUnit(element, unit_id, self, master_unit)

    def _units_container(self):
        return self.root

    def _new_unit_element(self, unit_id: str):
        element = etree.Element("translation")
        element.set("id", unit_id)
        return element

    def _get_language(self, which: str) -> str | None:
        return self.root.get("lang") if which == "target" else None

    def _set_language(self, which: str, lang: str) -> None:
        if which == "target":
            self.root.set("lang", lang)

    def create_translation_file_for_lang(self, lang, filename, is_default_lang, copy_content):
        raise XliffMergeError(f'File "{self.filename}", xtb files are not translatable')
