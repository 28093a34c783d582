from __future__ import annotations

import html
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Iterator

from lxml import etree

from ..messages import ParsedMessage, Part, build_message


STATE_NEW = "new"
STATE_TRANSLATED = "translated"
STATE_FINAL = "final"

FORMAT_XLIFF12 = "xlf"
FORMAT_XLIFF20 = "xlf2"
FORMAT_XMB = "xmb"
FORMAT_XTB = "xtb"

_XML_DECL_ENCODING_RE = re.compile(rb"^\s*<\?xml[^>]*encoding\s*=\s*[\"']([A-Za-z0-9._-]+)[\"']")
_XMLNS_RE = re.compile(r'\s+xmlns(:\w+)?="[^"]+"')
_LOCATION_RE = re.compile(r"^(?P<file>.+?):(?P<start>\d+)(?:,(?P<end>\d+))?$")


class XliffMergeError(RuntimeError):
    pass


class _Position(Enum):
    END = "end"


AT_END = _Position.END


@dataclass(frozen=True)
class SourceReference:
    sourcefile: str
    linenumber: int

    @property
    def key(self) -> str:
        return f"{self.sourcefile}:{self.linenumber}"


@dataclass(frozen=True)
class UnitCapabilities:
    set_source_content: bool
    set_source_references: bool
    set_description_and_meaning: bool


def parse_location(text: str | None) -> SourceReference | None:
    """Parse a `file:line` or `file:start,end` location."""
    match = _LOCATION_RE.match((text or "").strip())
    if not match:
        return None
    return SourceReference(match.group("file"), int(match.group("start")))


def local_name(element) -> str:
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def sniff_encoding(content: bytes) -> str | None:
    match = _XML_DECL_ENCODING_RE.match(content)
    return match.group(1).decode("ascii") if match else None


def inner_xml(element) -> str:
    """Inner XML of an element, without namespace declarations."""
    if element is None:
        return ""
    parts = []
    if element.text:
        parts.append(html.escape(element.text, quote=False))
    for child in element:
        child_str = etree.tostring(child, encoding="unicode", with_tail=True)
        parts.append(_XMLNS_RE.sub("", child_str))
    return "".join(parts)


def set_inner_xml(element, native: str) -> None:
    namespace = etree.QName(element).namespace
    if namespace:
        wrapper = etree.fromstring(f'<wrapper xmlns="{namespace}">{native}</wrapper>')
    else:
        wrapper = etree.fromstring(f"<wrapper>{native}</wrapper>")
    clear_element(element)
    element.text = wrapper.text
    for child in list(wrapper):
        element.append(child)


def clear_element(element) -> None:
    element.text = None
    for child in list(element):
        element.remove(child)


def append_text(element, text: str) -> None:
    if len(element):
        last = element[-1]
        last.tail = (last.tail or "") + text
    else:
        element.text = (element.text or "") + text


def remove_element(element) -> None:
    """Remove an element, keeping surrounding whitespace tidy."""
    parent = element.getparent()
    if parent is None:
        return
    previous = element.getprevious()
    if previous is not None:
        previous.tail = element.tail
    elif not (parent.text or "").strip():
        parent.text = element.tail
    parent.remove(element)


def _indent(element, mixed: frozenset[str], level: int, space: str) -> None:
    if local_name(element) in mixed or not len(element):
        return
    if element.text and element.text.strip():
        return
    if any(child.tail and child.tail.strip() for child in element):
        return
    child_indent = "\n" + space * (level + 1)
    element.text = child_indent
    for child in element:
        _indent(child, mixed, level + 1, space)
        child.tail = child_indent
    element[-1].tail = "\n" + space * level


def beautify(root, mixed: frozenset[str], space: str = "  ") -> None:
    """Indent the tree in place, leaving mixed content elements untouched."""
    _indent(root, mixed, 0, space)


class TransUnit(ABC):
    """One translatable unit of a catalog, backed by its XML element.

    Setters of source content, source references, description and meaning are
    guarded by the format's ``capabilities``.
    """

    capabilities: ClassVar[UnitCapabilities]

    def __init__(self, element, unit_id: str | None, catalog: "TranslationMessagesFile"):
        self.element = element
        self._id = unit_id
        self.catalog = catalog

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self._id!r}>"

    @property
    def id(self) -> str | None:
        return self._id

    @property
    def source_content(self) -> str:
        return self._native_source()

    @source_content.setter
    def source_content(self, native: str) -> None:
        if not self.capabilities.set_source_content:
            raise XliffMergeError(f"{self.catalog.file_type} does not support setting the source content")
        self._set_native_source(native)

    @property
    def target_content(self) -> str:
        return self._native_target()

    @property
    def target_state(self) -> str:
        return self._get_target_state()

    @target_state.setter
    def target_state(self, state: str) -> None:
        self._set_target_state(state)

    @property
    def description(self) -> str | None:
        return self._get_note("description")

    @description.setter
    def description(self, value: str | None) -> None:
        self._guard_description_and_meaning()
        self._set_note("description", value)

    @property
    def meaning(self) -> str | None:
        return self._get_note("meaning")

    @meaning.setter
    def meaning(self, value: str | None) -> None:
        self._guard_description_and_meaning()
        self._set_note("meaning", value)

    @property
    def source_references(self) -> list[SourceReference]:
        return self._get_source_references()

    @source_references.setter
    def source_references(self, refs: list[SourceReference]) -> None:
        if not self.capabilities.set_source_references:
            raise XliffMergeError(f"{self.catalog.file_type} does not support setting source references")
        self._set_source_references(refs)

    def _guard_description_and_meaning(self) -> None:
        if not self.capabilities.set_description_and_meaning:
            raise XliffMergeError(f"{self.catalog.file_type} does not support setting description and meaning")

    @abstractmethod
    def _native_source(self) -> str:
        ...

    @abstractmethod
    def _native_target(self) -> str:
        ...

    @abstractmethod
    def _source_parts(self) -> list[Part]:
        ...

    @abstractmethod
    def _target_parts(self) -> list[Part]:
        ...

    @abstractmethod
    def _write_target(self, message: ParsedMessage) -> None:
        ...

    @abstractmethod
    def _get_target_state(self) -> str:
        ...

    @abstractmethod
    def _set_target_state(self, state: str) -> None:
        ...

    def _set_native_source(self, native: str) -> None:
        raise NotImplementedError

    def _write_source(self, message: ParsedMessage) -> None:
        raise NotImplementedError

    def _get_note(self, kind: str) -> str | None:
        return None

    def _set_note(self, kind: str, value: str | None) -> None:
        raise NotImplementedError

    def _get_source_references(self) -> list[SourceReference]:
        return []

    def _set_source_references(self, refs: list[SourceReference]) -> None:
        raise NotImplementedError

    def source_content_normalized(self) -> ParsedMessage:
        return build_message(self._source_parts(), native=self.source_content)

    def target_content_normalized(self) -> ParsedMessage:
        message = build_message(self._target_parts(), native=self.target_content)
        message.source = self.source_content_normalized()
        return message

    def translate(self, translation: str | ParsedMessage) -> None:
        """Set the target, a display string is parsed against the source first.

        A NEW unit becomes TRANSLATED.
        """
        if isinstance(translation, str):
            translation = self.source_content_normalized().translate(translation)
        self._write_target(translation)
        if self.target_state == STATE_NEW:
            self.target_state = STATE_TRANSLATED

    def use_source_as_target(self, is_default_lang: bool, copy_content: bool) -> None:
        source = self.source_content_normalized()
        if is_default_lang:
            self._write_target(source)
            self.target_state = STATE_FINAL
            return
        if copy_content:
            praefix = self.catalog.new_trans_unit_target_praefix
            suffix = self.catalog.new_trans_unit_target_suffix
            self._write_target(source.with_affixes(praefix, suffix))
        else:
            self._write_target(ParsedMessage([]))
        self.target_state = STATE_NEW

    def _copy_from(self, foreign: "TransUnit") -> None:
        """Take over source, references, description and meaning of a foreign unit."""
        self._write_source(foreign.source_content_normalized())
        if self.capabilities.set_source_references:
            self._set_source_references(foreign.source_references)
        if self.capabilities.set_description_and_meaning:
            self._set_note("description", foreign.description)
            self._set_note("meaning", foreign.meaning)


class TranslationMessagesFile(ABC):
    """A catalog file, master or translation, parsed with lxml."""

    i18n_format: ClassVar[str]
    file_type: ClassVar[str]
    mixed_content_tags: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, content: bytes | str, filename: str, encoding: str | None = None):
        if isinstance(content, str):
            content = content.encode(encoding or "utf-8")
        self.filename = filename
        self.encoding = encoding or sniff_encoding(content) or "UTF-8"
        parser = etree.XMLParser(remove_blank_text=False)
        try:
            self.root = etree.fromstring(content, parser)
        except etree.XMLSyntaxError as exc:
            raise XliffMergeError(f'File "{filename}" is not well formed xml: {exc}') from exc
        self._check_root()
        self.warnings: list[str] = []
        self.new_trans_unit_target_praefix = ""
        self.new_trans_unit_target_suffix = ""
        self._units: list[TransUnit] | None = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.filename!r}>"

    @abstractmethod
    def _check_root(self) -> None:
        ...

    @abstractmethod
    def _unit_elements(self) -> Iterator:
        ...

    @abstractmethod
    def _create_unit(self, element) -> TransUnit:
        ...

    @abstractmethod
    def _units_container(self):
        ...

    @abstractmethod
    def _new_unit_element(self, unit_id: str):
        ...

    @abstractmethod
    def _get_language(self, which: str) -> str | None:
        ...

    @abstractmethod
    def _set_language(self, which: str, lang: str) -> None:
        ...

    @property
    def source_language(self) -> str | None:
        return self._get_language("source")

    @source_language.setter
    def source_language(self, lang: str) -> None:
        self._set_language("source", lang)

    @property
    def target_language(self) -> str | None:
        return self._get_language("target")

    @target_language.setter
    def target_language(self, lang: str) -> None:
        self._set_language("target", lang)

    def _init_units(self) -> list[TransUnit]:
        if self._units is None:
            self._units = []
            for element in self._unit_elements():
                unit = self._create_unit(element)
                if not unit.id:
                    self.warnings.append(
                        f'oops, trans-unit without "id" found in master, please check file {self.filename}'
                    )
                self._units.append(unit)
        return self._units

    @property
    def trans_units(self) -> list[TransUnit]:
        return list(self._init_units())

    def number_of_trans_units(self) -> int:
        return len(self._init_units())

    def number_of_trans_units_with_missing_id(self) -> int:
        return sum(1 for unit in self._init_units() if not unit.id)

    def number_of_untranslated_trans_units(self) -> int:
        return sum(1 for unit in self._init_units() if unit.target_state == STATE_NEW)

    def trans_unit_with_id(self, unit_id: str) -> TransUnit | None:
        for unit in self._init_units():
            if unit.id == unit_id:
                return unit
        return None

    def remove_trans_unit_with_id(self, unit_id: str) -> None:
        unit = self.trans_unit_with_id(unit_id)
        if unit is not None:
            remove_element(unit.element)
            self._units.remove(unit)

    def import_new_trans_unit(
        self,
        foreign: TransUnit,
        is_default_lang: bool,
        copy_content: bool,
        import_after: TransUnit | None | _Position = AT_END,
    ) -> TransUnit:
        """Add a unit taken from another catalog.

        ``import_after`` is ``AT_END`` (default), ``None`` for the start of the
        file or a unit of this file to insert after. A unit that is not part of
        this file means the end as well.
        """
        units = self._init_units()
        if self.trans_unit_with_id(foreign.id) is not None:
            raise XliffMergeError(f"tu with id {foreign.id} already exists in file, cannot import it")
        unit = self._create_unit(self._new_unit_element(foreign.id))
        unit._copy_from(foreign)
        unit.use_source_as_target(is_default_lang, copy_content)

        if import_after is None and units:
            first = units[0].element
            first.addprevious(unit.element)
            unit.element.tail = first.getparent().text
            units.insert(0, unit)
        elif isinstance(import_after, TransUnit) and any(u is import_after for u in units):
            ref = import_after.element
            ref.addnext(unit.element)
            unit.element.tail = ref.tail
            units.insert(units.index(import_after) + 1, unit)
        else:
            container = self._units_container()
            if len(container):
                last = container[-1]
                unit.element.tail = last.tail
                last.tail = container.text
            else:
                unit.element.tail = container.text
            container.append(unit.element)
            units.append(unit)
        return unit

    @abstractmethod
    def create_translation_file_for_lang(
        self, lang: str, filename: str, is_default_lang: bool, copy_content: bool
    ) -> "TranslationMessagesFile":
        ...

    def _copy_settings_to(self, other: "TranslationMessagesFile") -> None:
        other.new_trans_unit_target_praefix = self.new_trans_unit_target_praefix
        other.new_trans_unit_target_suffix = self.new_trans_unit_target_suffix

    def edited_content(self, beautify_output: bool = False) -> bytes:
        if beautify_output:
            beautify(self.root, self.mixed_content_tags)
        return etree.tostring(
            self.root.getroottree(), encoding=self.encoding, xml_declaration=True
        )
