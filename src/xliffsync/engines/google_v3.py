from __future__ import annotations

from dataclasses import dataclass

from google.cloud import translate

from .base import MAX_SEGMENTS, TranslationEngineError, TranslationResult


@dataclass
class GoogleTranslateV3:
    project_id: str
    location: str = "global"
    credentials_path: str | None = None

    name: str = "google_v3"
    max_segments: int = MAX_SEGMENTS

    def _client(self) -> translate.TranslationServiceClient:
        if self.credentials_path:
            return translate.TranslationServiceClient.from_service_account_file(
                self.credentials_path
            )
        return translate.TranslationServiceClient()

    def translate(
        self,
        texts: list[str],
        source_lang: str,
        target_lang: str,
    ) -> list[TranslationResult]:
        if not texts:
            return []
        if not self.project_id:
            raise TranslationEngineError("GCP project_id is required for Google Translate v3")
        if len(texts) > self.max_segments:
            raise TranslationEngineError(
                f"at most {self.max_segments} texts per request, got {len(texts)}"
            )

        client = self._client()
        response = client.translate_text(
            request={
                "parent": f"projects/{self.project_id}/locations/{self.location}",
                "contents": list(texts),
                "mime_type": "text/html",
                "source_language_code": source_lang,
                "target_language_code": target_lang,
            }
        )
        return [
            TranslationResult(text=t.translated_text, engine=self.name)
            for t in response.translations
        ]
