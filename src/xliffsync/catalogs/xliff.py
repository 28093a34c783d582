from __future__ import annotations

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
    FORMAT_XLIFF12,
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
    remove_element,
    set_inner_xml,
)


_NATIVE_STATES = {
    "final": STATE_FINAL,
    "signed-off": STATE_FINAL,
    "translated": STATE_TRANSLATED,
    "needs-review-translation": STATE_TRANSLATED,
    "needs-review-adaptation": STATE_TRANSLATED,
    "needs-review-l10n": STATE_TRANSLATED,
}

_CTYPES = {"br": "lb", "img": "image"}


def _ctype_for(part: Part) -> str | None:
    if isinstance(part, (StartTagPart, EndTagPart, EmptyTagPart)):
        return _CTYPES.get(part.tag, f"x-{part.tag}")
    return None


class XliffTransUnit(TransUnit):
    capabilities = UnitCapabilities(
        set_source_content=True,
        set_source_references=True,
        set_description_and_meaning=True,
    )

    def _find(self, tag: str):
        return self.element.find(self.catalog.q(tag))

    def _source_element(self):
        source = self._find("source")
        if source is None:
            source = etree.SubElement(self.element, self.catalog.q("source"))
        return source

    def _target_element(self, create: bool = False):
        target = self._find("target")
        if target is None and create:
            source = self._source_element()
            target = etree.Element(self.catalog.q("target"))
            source.addnext(target)
            target.tail = source.tail
            source.tail = self.element.text
        return target

    def _native_source(self) -> str:
        return inner_xml(self._find("source"))

    def _set_native_source(self, native: str) -> None:
        set_inner_xml(self._source_element(), native)

    def _native_target(self) -> str:
        return inner_xml(self._target_element())

    def _source_parts(self) -> list[Part]:
        return self._parts_from(self._find("source"))

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
            if name == "x":
                parts.append(part_from_native_id(child.get("id", ""), child.get("equiv-text")))
            elif name:
                parts.extend(self._parts_from(child))
            if child.tail:
                parts.append(TextPart(child.tail))
        return parts

    def _fill(self, element, message: ParsedMessage) -> None:
        clear_element(element)
        for part in flatten_for_native(message.parts):
            if isinstance(part, TextPart):
                append_text(element, part.text)
                continue
            x = etree.SubElement(element, self.catalog.q("x"))
            x.set("id", native_id_for(part))
            ctype = _ctype_for(part)
            if ctype:
                x.set("ctype", ctype)
            equiv = equiv_text_for(part)
            if equiv:
                x.set("equiv-text", equiv)

    def _write_source(self, message: ParsedMessage) -> None:
        self._fill(self._source_element(), message)

    def _write_target(self, message: ParsedMessage) -> None:
        self._fill(self._target_element(create=True), message)

    def _get_target_state(self) -> str:
        target = self._target_element()
        if target is None:
            return STATE_NEW
        native = target.get("state")
        if native is None:
            # hand written translations often come without a state
            return STATE_TRANSLATED if inner_xml(target).strip() else STATE_NEW
        return _NATIVE_STATES.get(native, STATE_NEW)

    def _set_target_state(self, state: str) -> None:
        self._target_element(create=True).set("state", state)

    def _notes(self, kind: str):
        return [
            note
            for note in self.element.findall(self.catalog.q("note"))
            if note.get("from") == kind
        ]

    def _get_note(self, kind: str) -> str | None:
        notes = self._notes(kind)
        return notes[0].text if notes else None

    def _set_note(self, kind: str, value: str | None) -> None:
        notes = self._notes(kind)
        if not value:
            for note in notes:
                remove_element(note)
            return
        if notes:
            notes[0].text = value
            return
        note = etree.SubElement(self.element, self.catalog.q("note"))
        note.set("priority", "1")
        note.set("from", kind)
        note.text = value
        self._tidy_last_child()

    def _location_groups(self):
        return [
            group
            for group in self.element.findall(self.catalog.q("context-group"))
            if group.get("purpose") == "location"
        ]

    def _get_source_references(self) -> list[SourceReference]:
        refs = []
        for group in self._location_groups():
            sourcefile, linenumber = None, 0
            for context in group.findall(self.catalog.q("context")):
                if context.get("context-type") == "sourcefile":
                    sourcefile = context.text
                elif context.get("context-type") == "linenumber":
                    linenumber = int((context.text or "0").strip() or 0)
            if sourcefile:
                refs.append(SourceReference(sourcefile, linenumber))
        return refs

    def _set_source_references(self, refs: list[SourceReference]) -> None:
        for group in self._location_groups():
            remove_element(group)
        anchor = self._target_element()
        if anchor is None:
            anchor = self._source_element()
        for ref in refs:
            group = etree.Element(self.catalog.q("context-group"))
            group.set("purpose", "location")
            for context_type, text in (("sourcefile", ref.sourcefile), ("linenumber", str(ref.linenumber))):
                context = etree.SubElement(group, self.catalog.q("context"))
                context.set("context-type", context_type)
                context.text = text
            anchor.addnext(group)
            group.tail = anchor.tail
            anchor.tail = self.element.text
            anchor = group

    def _tidy_last_child(self) -> None:
        if len(self.element) > 1:
            last, previous = self.element[-1], self.element[-2]
            last.tail = previous.tail
            previous.tail = self.element.text


class XliffFile(TranslationMessagesFile):
    i18n_format = FORMAT_XLIFF12
    file_type = "XLIFF 1.2"
    mixed_content_tags = frozenset(
        {"source", "target", "tool", "seg-source", "g", "ph", "bpt", "ept", "it", "sub", "mrk"}
    )

    def q(self, tag: str) -> str:
        return f"{{{self.namespace}}}{tag}" if self.namespace else tag

    def _check_root(self) -> None:
        if local_name(self.root) != "xliff":
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xliff file (should contain an xliff element)'
            )
        version = self.root.get("version")
        if version != "1.2":
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xliff 1.2 file, version should be 1.2, found {version}'
            )
        self.namespace = etree.QName(self.root).namespace

    def _file_element(self):
        return self.root.find(self.q("file"))

    def _unit_elements(self):
        return self.root.iter(self.q("trans-unit"))

    def _create_unit(self, element) -> XliffTransUnit:
        return XliffTransUnit(element, element.get("id"), self)

    def _units_container(self):
        body = self.root.find(f"{self.q('file')}/{self.q('body')}")
        if body is None:
            raise XliffMergeError(
                f'File "{self.filename}" seems to be no xliff 1.2 file (should contain a body element)'
            )
        return body

    def _new_unit_element(self, unit_id: str):
        element = etree.Element(self.q("trans-unit"))
        element.set("id", unit_id)
        element.set("datatype", "html")
        element.text = "\n" + " " * 8
        source = etree.SubElement(element, self.q("source"))
        source.tail = "\n" + " " * 6
        return element

    def _get_language(self, which: str) -> str | None:
        file_element = self._file_element()
        return file_element.get(f"{which}-language") if file_element is not None else None

    def _set_language(self, which: str, lang: str) -> None:
        file_element = self._file_element()
        if file_element is not None:
            file_element.set(f"{which}-language", lang)

    def create_translation_file_for_lang(
        self, lang: str, filename: str, is_default_lang: bool, copy_content: bool
    ) -> "XliffFile":
        translation = XliffFile(self.edited_content(), filename, self.encoding)
        self._copy_settings_to(translation)
        translation.target_language = lang
        for unit in translation.trans_units:
            unit.use_source_as_target(is_default_lang, copy_content)
        return translation
