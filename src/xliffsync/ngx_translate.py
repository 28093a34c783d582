from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .catalogs.base import TranslationMessagesFile, TransUnit
from .messages import NORMALIZATION_FORMAT_NGXTRANSLATE


log = logging.getLogger("xliffsync.ngx_translate")

DEFAULT_EXTRACTION_PATTERN = "@@|ngx-translate"

_DESCRIPTION_PATTERN_RE = re.compile(r"^[a-zA-Z_][a-zA-Z_-]*$")
# ids generated by the angular extractor are decimal or sha1 hex
_GENERATED_ID_RE = re.compile(r"^[0-9a-f]{11,}$")


class ExtractionPatternError(ValueError):
    pass


@dataclass(frozen=True)
class ExtractionPattern:
    """Which units to export: ``@@`` for explicit ids, otherwise descriptions."""

    match_explicit_id: bool
    description_patterns: tuple[str, ...]

    @classmethod
    def parse(cls, pattern: str) -> "ExtractionPattern":
        match_explicit_id = False
        descriptions: list[str] = []
        for part in pattern.split("|"):
            if part == "@@":
                if match_explicit_id:
                    raise ExtractionPatternError("extraction pattern must not contain @@ twice")
                match_explicit_id = True
                continue
            if not part:
                raise ExtractionPatternError("empty value not allowed")
            if not _DESCRIPTION_PATTERN_RE.match(part):
                raise ExtractionPatternError(
                    "description pattern must be an identifier containing only letters, digits, _ or -"
                )
            descriptions.append(part)
        return cls(match_explicit_id, tuple(descriptions))

    def is_explicit_id_matched(self, unit_id: str | None) -> bool:
        return bool(unit_id) and self.match_explicit_id

    def is_description_matched(self, description: str | None) -> bool:
        return description in self.description_patterns


def check_pattern(pattern: str) -> str | None:
    """Error text for an invalid pattern, ``None`` if it is fine."""
    try:
        ExtractionPattern.parse(pattern)
    except ExtractionPatternError as exc:
        return str(exc)
    return None


def is_explicitly_set_id(unit_id: str | None) -> bool:
    if unit_id is None:
        return False
    return not _GENERATED_ID_RE.match(unit_id)


def ngx_id_for(unit: TransUnit, pattern: ExtractionPattern) -> str | None:
    if is_explicitly_set_id(unit.id):
        return unit.id if pattern.is_explicit_id_matched(unit.id) else None
    if unit.description and pattern.is_description_matched(unit.description):
        return unit.meaning
    return None


def extract_messages(catalog: TranslationMessagesFile, pattern: ExtractionPattern) -> list[tuple[str, str]]:
    result = []
    for unit in catalog.trans_units:
        ngx_id = ngx_id_for(unit, pattern)
        if ngx_id:
            text = unit.target_content_normalized().as_display_string(NORMALIZATION_FORMAT_NGXTRANSLATE)
            result.append((ngx_id, text))
    return result


def _put(translations: dict, ngx_id: str, message: str) -> None:
    first, dot, rest = ngx_id.partition(".")
    if ngx_id.startswith(".") or ngx_id.endswith("."):
        raise ValueError(f'bad nxg-translate id "{ngx_id}"')
    existing = translations.get(first)
    if existing is None:
        if not dot:
            translations[first] = message
            return
        existing = translations[first] = {}
    elif not dot or not isinstance(existing, dict):
        raise ValueError(f'duplicate id praefix "{ngx_id}"')
    _put(existing, rest, message)


def to_ngx_translations(messages: list[tuple[str, str]]) -> dict:
    """Nest dotted ids: ``a.b`` becomes ``{"a": {"b": ...}}``."""
    translations: dict = {}
    for ngx_id, message in messages:
        _put(translations, ngx_id, message)
    return translations


def extract_to(catalog: TranslationMessagesFile, pattern: str, output_file: str) -> None:
    """Write the ngx-translate JSON file of a catalog.

    An empty extraction removes an existing output file.
    """
    translations = to_ngx_translations(extract_messages(catalog, ExtractionPattern.parse(pattern)))
    path = Path(output_file)
    if translations:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(translations, indent=4, ensure_ascii=False), encoding="utf-8")
        log.debug("wrote %d ngx-translate entries to %s", len(translations), output_file)
    elif path.exists():
        path.unlink()
        log.debug("removed %s, nothing to export", output_file)
