from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


MAX_SEGMENTS = 128


class TranslationEngineError(RuntimeError):
    pass


@dataclass(frozen=True)
class TranslationResult:
    text: str
    engine: str


class TranslationEngine(Protocol):
    """A machine translation provider.

    ``translate`` returns one result per input text, in input order. Callers
    split their input so that no call exceeds ``max_segments`` texts.
    """

    name: str
    max_segments: int

    def translate(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        ...
