from __future__ import annotations

import logging
from dataclasses import dataclass, field

import requests

from .base import MAX_SEGMENTS, TranslationEngineError, TranslationResult


log = logging.getLogger("xliffsync.engines.google_v2")

API_URL = "https://translation.googleapis.com/language/translate/v2"


@dataclass
class GoogleTranslateV2:
    """Google Cloud Translation basic edition, authenticated with an API key."""

    api_key: str
    session: requests.Session = field(default_factory=requests.Session)
    api_url: str = API_URL
    timeout: int = 30

    name: str = "google_v2"
    max_segments: int = MAX_SEGMENTS

    def translate(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslationResult]:
        if not texts:
            return []
        if not self.api_key:
            raise TranslationEngineError("cannot autotranslate: no api key")
        if len(texts) > self.max_segments:
            raise TranslationEngineError(
                f"at most {self.max_segments} texts per request, got {len(texts)}"
            )
        log.debug("translating %d texts from %s to %s", len(texts), source_lang, target_lang)
        resp = self.session.post(
            self.api_url,
            params={"key": self.api_key},
            json={"q": list(texts), "target": target_lang, "source": source_lang},
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise TranslationEngineError(
                self._error_message(resp, source_lang, target_lang)
            )
        data = resp.json()
        return [
            TranslationResult(text=t["translatedText"], engine=self.name)
            for t in data["data"]["translations"]
        ]

    @staticmethod
    def _error_message(resp, source_lang: str, target_lang: str) -> str:
        try:
            message = resp.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            message = resp.text
        if resp.status_code == 400:
            if message == "Invalid Value":
                return f'Translation from "{source_lang}" to "{target_lang}" not supported'
            return f"Invalid request: {message}"
        return f"Error {resp.status_code}: {message}"
