from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Union


NORMALIZATION_FORMAT_DEFAULT = "default"
NORMALIZATION_FORMAT_NGXTRANSLATE = "ngxtranslate"

ICU_KINDS = ("plural", "select", "selectordinal")

# Angular placeholder names for common html elements.
TAG_NAMES = {
    "a": "LINK",
    "b": "BOLD_TEXT",
    "em": "EMPHASISED_TEXT",
    "i": "ITALIC_TEXT",
    "strong": "STRONG_TEXT",
    "p": "PARAGRAPH",
    "ul": "UNORDERED_LIST",
    "ol": "ORDERED_LIST",
    "li": "LIST_ITEM",
    "table": "TABLE",
    "tr": "TABLE_ROW",
    "td": "TABLE_CELL",
    "th": "TABLE_HEADER_CELL",
    "h1": "HEADING_LEVEL1",
    "h2": "HEADING_LEVEL2",
    "h3": "HEADING_LEVEL3",
    "h4": "HEADING_LEVEL4",
    "h5": "HEADING_LEVEL5",
    "h6": "HEADING_LEVEL6",
}
EMPTY_TAG_NAMES = {
    "br": "LINE_BREAK",
    "hr": "HORIZONTAL_RULE",
}
EMPTY_TAGS = {"br", "hr", "img", "input", "wbr", "area", "col", "embed", "source"}

_NAMES_TO_TAG = {name: tag for tag, name in TAG_NAMES.items()}
_EMPTY_NAMES_TO_TAG = {name: tag for tag, name in EMPTY_TAG_NAMES.items()}

_INDEX_SUFFIX_RE = re.compile(r"^(.*?)(?:_(\d+))?$")
_DISPLAY_TOKEN_RE = re.compile(
    r"\{\{\s*(?P<ph>\d+)\s*\}\}"
    r"|<ICU-Message-Ref_(?P<icuref>\d+)\s*/>"
    r"|</(?P<end>[a-zA-Z][\w-]*)\s*>"
    r"|<(?P<start>[a-zA-Z][\w-]*)\s*/?>"
)
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class TextPart:
    text: str

    def display(self, fmt: str) -> str:
        return self.text


@dataclass(frozen=True)
class PlaceholderPart:
    index: int
    disp: str | None = field(default=None, compare=False)
    native_id: str | None = field(default=None, compare=False)

    def display(self, fmt: str) -> str:
        return "{{%d}}" % self.index


@dataclass(frozen=True)
class IcuRefPart:
    index: int
    disp: str | None = field(default=None, compare=False)
    native_id: str | None = field(default=None, compare=False)

    def display(self, fmt: str) -> str:
        return "<ICU-Message-Ref_%d/>" % self.index


@dataclass(frozen=True)
class StartTagPart:
    tag: str
    native_id: str | None = field(default=None, compare=False)

    def display(self, fmt: str) -> str:
        return f"<{self.tag}>"


@dataclass(frozen=True)
class EndTagPart:
    tag: str
    native_id: str | None = field(default=None, compare=False)

    def display(self, fmt: str) -> str:
        return f"</{self.tag}>"


@dataclass(frozen=True)
class EmptyTagPart:
    tag: str
    native_id: str | None = field(default=None, compare=False)

    def display(self, fmt: str) -> str:
        return f"<{self.tag}>"


@dataclass(frozen=True)
class IcuCategory:
    category: str
    message: "ParsedMessage"


@dataclass(frozen=True)
class IcuMessage:
    variable: str
    kind: str
    categories: tuple[IcuCategory, ...]

    def is_plural(self) -> bool:
        return self.kind != "select"

    def as_display_string(self, fmt: str = NORMALIZATION_FORMAT_DEFAULT) -> str:
        body = "".join(
            f" {c.category} {{{c.message.as_display_string(fmt)}}}" for c in self.categories
        )
        return f"{{{self.variable}, {self.kind},{body}}}"

    def as_native_string(self) -> str:
        return self.as_display_string()


@dataclass(frozen=True)
class IcuPart:
    icu: IcuMessage

    def display(self, fmt: str) -> str:
        return self.icu.as_display_string(fmt)


LeafPart = Union[PlaceholderPart, IcuRefPart, StartTagPart, EndTagPart, EmptyTagPart]
Part = Union[TextPart, LeafPart, IcuPart]


def part_from_native_id(native_id: str, disp: str | None = None) -> LeafPart:
    """Map an Angular placeholder name (INTERPOLATION_1, START_BOLD_TEXT, ...) to a part."""
    base, suffix = _INDEX_SUFFIX_RE.match(native_id).groups()
    index = int(suffix) if suffix else 0
    if base == "INTERPOLATION":
        return PlaceholderPart(index, disp, native_id)
    if base == "ICU":
        return IcuRefPart(index, disp, native_id)
    if base in _EMPTY_NAMES_TO_TAG:
        return EmptyTagPart(_EMPTY_NAMES_TO_TAG[base], native_id)
    if base.startswith("TAG_"):
        return EmptyTagPart(base[len("TAG_"):].lower(), native_id)
    for prefix, cls in (("START_", StartTagPart), ("CLOSE_", EndTagPart)):
        if base.startswith(prefix):
            name = base[len(prefix):]
            if name.startswith("TAG_"):
                return cls(name[len("TAG_"):].lower(), native_id)
            return cls(_NAMES_TO_TAG.get(name, name.lower()), native_id)
    # PH, PH_1 and other custom expression names
    return PlaceholderPart(index, disp, native_id)


def native_id_for(part: LeafPart) -> str:
    if part.native_id:
        return part.native_id
    if isinstance(part, PlaceholderPart):
        return "INTERPOLATION" if part.index == 0 else f"INTERPOLATION_{part.index}"
    if isinstance(part, IcuRefPart):
        return "ICU" if part.index == 0 else f"ICU_{part.index}"
    if isinstance(part, EmptyTagPart):
        return EMPTY_TAG_NAMES.get(part.tag, f"TAG_{part.tag.upper()}")
    name = TAG_NAMES.get(part.tag, f"TAG_{part.tag.upper()}")
    prefix = "START_" if isinstance(part, StartTagPart) else "CLOSE_"
    return prefix + name


def equiv_text_for(part: LeafPart) -> str | None:
    """Human readable text an editor can show for a leaf part."""
    if isinstance(part, (PlaceholderPart, IcuRefPart)):
        return part.disp
    if isinstance(part, EmptyTagPart):
        return f"<{part.tag}/>"
    if isinstance(part, StartTagPart):
        return f"<{part.tag}>"
    return f"</{part.tag}>"


class _IcuSyntaxError(ValueError):
    pass


class _IcuParser:
    """Recursive descent over a token list of single characters and leaf parts."""

    def __init__(self, tokens: list):
        self.tokens = tokens
        self.pos = 0

    def _peek(self):
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _skip_ws(self) -> None:
        while isinstance(self._peek(), str) and self._peek().isspace():
            self.pos += 1

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            raise _IcuSyntaxError(f"expected {char!r} at {self.pos}")
        self.pos += 1

    def _word(self, stop: str) -> str:
        chars = []
        while True:
            tok = self._peek()
            if not isinstance(tok, str) or tok.isspace() or tok in stop:
                break
            chars.append(tok)
            self.pos += 1
        return "".join(chars)

    def parse_icu(self) -> IcuMessage:
        self._expect("{")
        self._skip_ws()
        variable = self._word(",}")
        self._skip_ws()
        self._expect(",")
        self._skip_ws()
        kind = self._word(",}")
        if kind not in ICU_KINDS or not variable:
            raise _IcuSyntaxError(f"not an icu message: {variable!r}, {kind!r}")
        self._skip_ws()
        self._expect(",")
        categories: list[IcuCategory] = []
        while True:
            self._skip_ws()
            if self._peek() == "}":
                self.pos += 1
                break
            category = self._word("{}")
            if not category:
                raise _IcuSyntaxError(f"missing category at {self.pos}")
            self._skip_ws()
            self._expect("{")
            parts = self.parse_message_parts()
            self._expect("}")
            categories.append(IcuCategory(category, ParsedMessage(parts)))
        if not categories:
            raise _IcuSyntaxError("icu message without categories")
        return IcuMessage(variable, kind, tuple(categories))

    def parse_message_parts(self) -> list[Part]:
        parts: list[Part] = []
        text: list[str] = []
        depth = 0
        while self.pos < len(self.tokens):
            tok = self._peek()
            if tok == "}" and depth == 0:
                break
            if tok == "{":
                start = self.pos
                try:
                    icu = self.parse_icu()
                except _IcuSyntaxError:
                    self.pos = start + 1
                    depth += 1
                    text.append("{")
                    continue
                if text:
                    parts.append(TextPart("".join(text)))
                    text = []
                parts.append(IcuPart(icu))
                continue
            self.pos += 1
            if isinstance(tok, str):
                if tok == "}":
                    depth -= 1
                text.append(tok)
            else:
                if text:
                    parts.append(TextPart("".join(text)))
                    text = []
                parts.append(tok)
        if text:
            parts.append(TextPart("".join(text)))
        return parts


def _merge_text(parts: Iterable[Part]) -> list[Part]:
    merged: list[Part] = []
    for part in parts:
        if isinstance(part, TextPart):
            if not part.text:
                continue
            if merged and isinstance(merged[-1], TextPart):
                merged[-1] = TextPart(merged[-1].text + part.text)
                continue
        merged.append(part)
    return merged


def _try_parse_icu(parts: list[Part]) -> IcuMessage | None:
    tokens: list = []
    for part in parts:
        if isinstance(part, TextPart):
            tokens.extend(part.text)
        else:
            tokens.append(part)
    start = 0
    while start < len(tokens) and isinstance(tokens[start], str) and tokens[start].isspace():
        start += 1
    if start >= len(tokens) or tokens[start] != "{":
        return None
    parser = _IcuParser(tokens)
    parser.pos = start
    try:
        icu = parser.parse_icu()
    except _IcuSyntaxError:
        return None
    parser._skip_ws()
    if parser.pos != len(tokens):
        return None
    return icu


def build_message(parts: Iterable[Part], native: str | None = None) -> "ParsedMessage":
    """Create a message from flat native parts, detecting ICU syntax in the text."""
    merged = _merge_text(parts)
    icu = _try_parse_icu(merged)
    if icu is not None:
        return ParsedMessage([IcuPart(icu)], native=native)
    return ParsedMessage(merged, native=native)


def flatten_for_native(parts: Iterable[Part]) -> list[Part]:
    """Expand ICU structure into text, leaving only text and leaf parts."""
    out: list[Part] = []
    for part in parts:
        if isinstance(part, IcuPart):
            icu = part.icu
            out.append(TextPart(f"{{{icu.variable}, {icu.kind},"))
            for category in icu.categories:
                out.append(TextPart(f" {category.category} {{"))
                out.extend(flatten_for_native(category.message.parts))
                out.append(TextPart("}"))
            out.append(TextPart("}"))
        else:
            out.append(part)
    return _merge_text(out)


@dataclass
class ParsedMessage:
    """A message in its parsed, format independent form.

    A translated message keeps a reference to the source it was derived from,
    which is what ``validate`` and ``validate_warnings`` check against.
    """

    parts: list[Part]
    native: str | None = None
    source: "ParsedMessage | None" = None

    def as_display_string(self, fmt: str = NORMALIZATION_FORMAT_DEFAULT) -> str:
        text = "".join(part.display(fmt) for part in self.parts)
        return _WS_RE.sub(" ", text)

    def as_native_string(self) -> str:
        if self.native is not None:
            return self.native
        return self.as_display_string()

    @property
    def icu_message(self) -> IcuMessage | None:
        for part in self.parts:
            if isinstance(part, IcuPart):
                return part.icu
        return None

    def is_icu_message(self) -> bool:
        return self.icu_message is not None

    def contains_icu_message_ref(self) -> bool:
        return any(isinstance(p, IcuRefPart) for p in self.parts)

    def is_empty(self) -> bool:
        return not self.as_display_string().strip()

    def with_affixes(self, praefix: str, suffix: str) -> "ParsedMessage":
        if self.is_icu_message() or (not praefix and not suffix):
            return ParsedMessage(list(self.parts), source=self.source)
        parts = _merge_text([TextPart(praefix), *self.parts, TextPart(suffix)])
        return ParsedMessage(parts, source=self.source)

    def translate(self, display_text: str) -> "ParsedMessage":
        return ParsedMessage(parse_display_string(display_text, self), source=self)

    def translate_icu_message(self, translation: dict[str, str]) -> "ParsedMessage":
        icu = self.icu_message
        if icu is None:
            raise ValueError("message is not an ICU message")
        known = {c.category for c in icu.categories}
        unknown = sorted(set(translation) - known)
        if unknown:
            raise ValueError(f"unknown ICU categories in translation: {', '.join(unknown)}")
        categories = []
        for category in icu.categories:
            if category.category in translation:
                translated = category.message.translate(translation[category.category])
                categories.append(IcuCategory(category.category, translated))
            else:
                categories.append(category)
        translated_icu = IcuMessage(icu.variable, icu.kind, tuple(categories))
        return ParsedMessage([IcuPart(translated_icu)], source=self)

    def _placeholder_indices(self) -> set[int]:
        return {p.index for p in _walk(self.parts) if isinstance(p, PlaceholderPart)}

    def _icu_ref_indices(self) -> set[int]:
        return {p.index for p in _walk(self.parts) if isinstance(p, IcuRefPart)}

    def _tags(self) -> list[str]:
        return sorted(
            p.display(NORMALIZATION_FORMAT_DEFAULT)
            for p in _walk(self.parts)
            if isinstance(p, (StartTagPart, EndTagPart, EmptyTagPart))
        )

    def validate(self) -> dict[str, str] | None:
        """Errors that make the message unusable as translation of its source."""
        if self.source is None:
            return None
        errors: dict[str, str] = {}
        added = self._placeholder_indices() - self.source._placeholder_indices()
        if added:
            names = ", ".join("{{%d}}" % i for i in sorted(added))
            errors["placeholderAdded"] = f"added placeholder(s) {names}, which do not exist in original message"
        refs, source_refs = self._icu_ref_indices(), self.source._icu_ref_indices()
        if source_refs - refs:
            names = ", ".join("<ICU-Message-Ref_%d/>" % i for i in sorted(source_refs - refs))
            errors["icuMessageRefRemoved"] = f"removed ICU message reference(s) {names}"
        if refs - source_refs:
            names = ", ".join("<ICU-Message-Ref_%d/>" % i for i in sorted(refs - source_refs))
            errors["icuMessageRefAdded"] = f"added ICU message reference(s) {names}, which do not exist in original message"
        if self.source.is_icu_message() and not self.is_icu_message():
            errors["icuMessageMissing"] = "original message is an ICU message, translation is not"
        return errors or None

    def validate_warnings(self) -> dict[str, str] | None:
        if self.source is None:
            return None
        warnings: dict[str, str] = {}
        removed = self.source._placeholder_indices() - self._placeholder_indices()
        if removed:
            names = ", ".join("{{%d}}" % i for i in sorted(removed))
            warnings["placeholderRemoved"] = f"removed placeholder(s) {names} from original message"
        source_tags, tags = self.source._tags(), self._tags()
        if source_tags != tags:
            missing = [t for t in source_tags if t not in tags]
            extra = [t for t in tags if t not in source_tags]
            if missing:
                warnings["tagRemoved"] = f"removed tag(s) {', '.join(missing)} from original message"
            if extra:
                warnings["tagAdded"] = f"added tag(s) {', '.join(extra)}, which do not exist in original message"
        return warnings or None


def _walk(parts: Iterable[Part]):
    for part in parts:
        if isinstance(part, IcuPart):
            for category in part.icu.categories:
                yield from _walk(category.message.parts)
        else:
            yield part


def parse_display_string(text: str, source: ParsedMessage | None = None) -> list[Part]:
    """Parse a display string (``{{0}}``, ``<b>``, ...) back into parts.

    Native ids and display texts are taken over from matching parts of the source.
    """
    placeholders: dict[int, PlaceholderPart] = {}
    icu_refs: dict[int, IcuRefPart] = {}
    tags: dict[tuple[type, str], list[LeafPart]] = {}
    if source is not None:
        for part in _walk(source.parts):
            if isinstance(part, PlaceholderPart):
                placeholders.setdefault(part.index, part)
            elif isinstance(part, IcuRefPart):
                icu_refs.setdefault(part.index, part)
            elif isinstance(part, (StartTagPart, EndTagPart, EmptyTagPart)):
                tags.setdefault((type(part), part.tag), []).append(part)
    used: dict[tuple[type, str], int] = {}

    def _tag(cls: type, name: str) -> LeafPart:
        key = (cls, name)
        candidates = tags.get(key, [])
        n = used.get(key, 0)
        used[key] = n + 1
        native_id = candidates[min(n, len(candidates) - 1)].native_id if candidates else None
        return cls(name, native_id)

    parts: list[Part] = []
    last = 0
    for match in _DISPLAY_TOKEN_RE.finditer(text):
        if match.start() > last:
            parts.append(TextPart(text[last:match.start()]))
        last = match.end()
        if match.group("ph") is not None:
            index = int(match.group("ph"))
            known = placeholders.get(index)
            parts.append(PlaceholderPart(index, known.disp if known else None, known.native_id if known else None))
        elif match.group("icuref") is not None:
            index = int(match.group("icuref"))
            known = icu_refs.get(index)
            parts.append(IcuRefPart(index, known.disp if known else None, known.native_id if known else None))
        elif match.group("end") is not None:
            parts.append(_tag(EndTagPart, match.group("end").lower()))
        else:
            name = match.group("start").lower()
            if name in EMPTY_TAGS or (EmptyTagPart, name) in tags:
                parts.append(_tag(EmptyTagPart, name))
            else:
                parts.append(_tag(StartTagPart, name))
    if last < len(text):
        parts.append(TextPart(text[last:]))
    return _merge_text(parts)
