from __future__ import annotations

import itertools

from lxml import etree

from ..messages import (
    EmptyTagPart,
    EndTagPart,
    ParsedMessage,
    Part,
    StartTagPart,
    TextPart,
    equiv_text_for,
    flatten_for_native,
    native_id_for,
    part_from_native_id,
)

from .base import (
    FORMAT_XLIFF20,
    STATE_FINAL,
    STATE_NEW,
    STATE_TRANSLATED,
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
    set_inner_xml,
)


_NATIVE_STATES = {
    "initial": STATE_NEW,
    "translated": STATE_TRANSLATED,
    "reviewed": STATE_FINAL,
    "final": STATE_FINAL,
}
_STATES_TO_NATIVE = {
    STATE_NEW: "initial",
    STATE_TRANSLATED: "translated",
    STATE_FINAL: "final",
}
_LANG_ATTRS = {"source": "srcLang", "target": "trgLang"}


class Xliff2TransUnit(TransUnit):
    capabilities = UnitCapabilities(
        set_source_content=True,
        set_source_references=True,
        set_description_and_meaning=True,
    )

    def _q(self, tag: str) -> str:
        return self.catalog.q(tag)

    def _segment(self):
        segment = self.element.find(self._q("segment"))
        if segment is None:
            segment = etree.SubElement(self.element, self._q("segment"))
        return segment

    def _source_element(self):
        segment = self._segment()
        source = segment.find(self._q("source"))
        if source is None:
            source = etree.SubElement(segment, self._q("source"))
        return source

    def _target_element(self, create: bool = False):
        segment = self.element.find(self._q("segment"))
        target = segment.find(self._q("target")) if segment is not None else None
        if target is None and create:
            source = self._source_element()
            target = etree.Element(self._q("target"))
            source.addnext(target)
            target.tail = source.tail
            source.tail = source.getparent().text
        return target

    def _native_source(self) -> str:
        segment = self.element.find(self._q("segment"))
        return inner_xml(segment.find(self._q("source")) if segment is not None else None)

    def _set_native_source(self, native: str) -> None:
        set_inner_xml(self._source_element(), native)

    def _native_target(self) -> str:
        return inner_xml(self._target_element())

    def _source_parts(self) -> list[Part]:
        segment = self.element.find(self._q("segment"))
        return self._parts_from(segment.find(self._q("source")) if segment is not None else None)

    def _target_parts(self) -> list[Part]:
        return self._parts_from(self._target_element())

    def _parts_from(self, element) -> list[Part]:
        parts: list[Part] = []
        if element is None:
            return parts
        if element.text:
            parts.append(TextPart(element.text))
        for child in element:
            name = local_name(child)
            if name == "ph":
                parts.append(part_from_native_id(child.get("equiv", ""), child.get("disp")))
            elif name == "pc":
                parts.append(part_from_native_id(child.get("equivStart", ""), child.get("dispStart")))
                parts.extend(self._parts_from(child))
                parts.append(part_from_native_id(child.get("equivEnd", ""), child.get("dispEnd")))
            elif name:
                parts.extend(self._parts_from(child))
            if child.tail:
                parts.append(TextPart(child.tail))
        return parts

    def _fill(self, element, message: ParsedMessage) -> None:
        """Write parts, pairing start and end tags into nested ``pc`` elements."""
        clear_element(element)
        ids = itertools.count()
        stack: list[tuple[object, str | None]] = [(element, None)]
        for part in flatten_for_native(message.parts):
            current = stack[-1][0]
            if isinstance(part, TextPart):
                append_text(current, part.text)
            elif isinstance(part, StartTagPart):
                pc = etree.SubElement(current, self._q("pc"))
                pc.set("id", str(next(ids)))
                pc.set("equivStart", native_id_for(part))
                pc.set("equivEnd", native_id_for(EndTagPart(part.tag)))
                pc.set("type", "fmt")
                pc.set("dispStart", f"<{part.tag}>")
                pc.set("dispEnd", f"</{part.tag}>")
                stack.append((pc, part.tag))
            elif isinstance(part, EndTagPart) and len(stack) > 1 and stack[-1][1] == part.tag:
                stack[-1][0].set("equivEnd", native_id_for(part))
                stack.pop()
            else:
                ph = etree.SubElement(current, self._q("ph"))
                ph.set("id", str(next(ids)))
                ph.set("equiv", native_id_for(part))
                if isinstance(part, (EmptyTagPart, EndTagPart)):
                    ph.set("type", "fmt")
                disp = equiv_text_for(part)
                if disp:
                    ph.set("disp", disp)

    def _write_source(self, message: ParsedMessage) -> None:
        self._fill(self._source_element(), message)

    def _write_target(self, message: ParsedMessage) -> None:
        self._fill(self._target_element(create=True), message)

    def _get_target_state(self) -> str:
        segment = self.element.find(self._q("segment"))
        if segment is None:
            return STATE_NEW
        native = segment.get("state")
        if native is None:
            target = self._target_element()
            return STATE_TRANSLATED if target is not None and inner_xml(target).strip() else STATE_NEW
        return _NATIVE_STATES.get(native, STATE_NEW)

    def _set_target_state(self, state: str) -> None:
        self._segment().set("state", _STATES_TO_NATIVE[state])

    def _notes_element(self, create: bool = False):
        notes = self.element.find(self._q("notes"))
        if notes is None and create:
            notes = etree.Element(self._q("notes"))
            self.element.insert(0, notes)
            notes.tail = self.element.text
        return notes

    def _notes(self, category: str):
        notes = self._notes_element()
        if notes is None:
            return []
        return [n for n in notes.findall(self._q("note")) if n.get("category") == category]

    def _add_note(self, category: str, text: str):
        notes = self._notes_element(create=True)
        note = etree.SubElement(notes, self._q("note"))
        note.set("category", category)
        note.text = text
        return note

    def _drop_empty_notes(self) -> None:
        notes = self._notes_element()
        if notes is not None and not len(notes):
            remove_element(notes)

    def _get_note(self, kind: str) -> str | None:
        notes = self._notes(kind)
        return notes[0].text if notes else None

    def _set_note(self, kind: str, value: str | None) -> None:
        notes = self._notes(kind)
        if not value:
            for note in notes:
                remove_element(note)
            self._drop_empty_notes()
            return
        if notes:
            notes[0].text = value
        else:
            self._add_note(kind, value)

    def _get_source_references(self) -> list[SourceReference]:
        refs = []
        for note in self._notes("location"):
            ref = parse_location(note.text)
            if ref is not None:
                refs.append(ref)
        return refs

    def _set_source_references(self, refs: list[SourceReference]) -> None:
        for note in self._notes("location"):
            remove_element(note)
        for ref in refs:
            self._add_note("location", ref.key)
        self._drop_empty_notes()


class Xliff2File(TranslationMessagesFile):
    i18n_format = FORMAT_XLIFF20
    file_type = "XLIFF 2.0"
    mixed_content_tags = frozenset(
        {"skeleton", "note", "data", "source", "target", "pc", "mrk"}
    )

    def q(self, tag: str) -> str:
        return f"{{{self.namespace}}}{tag}" if self.namespace else tag

    def _check_root(self) -> None:
        if local_name(self.root) != "xliff":
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xliff file (should contain an xliff element)'
            )
        version = self.root.get("version")
        if version != "2.0":
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xliff 2 file, version should be 2.0, found {version}'
            )
        self.namespace = etree.QName(self.root).namespace

    def _unit_elements(self):
        return self.root.iter(self.q("unit"))

    def _create_unit(self, element) -> Xliff2TransUnit:
        return Xliff2TransUnit(element, element.get("id"), self)

    def _units_container(self):
        file_element = self.root.find(self.q("file"))
        if file_element is None:
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xliff 2.0 file (should contain a file element)'
            )
        return file_element

    def _new_unit_element(self, unit_id: str):
        element = etree.Element(self.q("unit"))
        element.set("id", unit_id)
        segment = etree.SubElement(element, self.q("segment"))
        etree.SubElement(segment, self.q("source"))
        return element

    def _get_language(self, which: str) -> str | None:
        return self.root.get(_LANG_ATTRS[which])

    def _set_language(self, which: str, lang: str) -> None:
        self.root.set(_LANG_ATTRS[which], lang)

    def create_translation_file_for_lang(
        self, lang: str, filename: str, is_default_lang: bool, copy_content: bool
    ) -> "Xliff2File":
        translation = Xliff2File(self.edited_content(), filename, self.encoding)
        self._copy_settings_to(translation)
        translation.target_language = lang
        for unit in translation.trans_units:
            unit.use_source_as_target(is_default_lang, copy_content)
        return translation
