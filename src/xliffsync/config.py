from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from .catalogs.base import FORMAT_XLIFF12, FORMAT_XLIFF20, FORMAT_XMB
from .merge import MergeOptions
from .ngx_translate import DEFAULT_EXTRACTION_PATTERN, check_pattern


log = logging.getLogger("xliffsync.config")

PROFILE_CANDIDATES = ("package.json", ".angular-cli.json")

_LANGUAGE_RE = re.compile(r"^[a-zA-Z]{1,8}([-_][a-zA-Z0-9]{1,8})*$")
_SUFFIXES = {FORMAT_XLIFF12: "xlf", FORMAT_XLIFF20: "xlf", FORMAT_XMB: "xtb"}


class ConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class Config:
    profile_path: str | None = None

    default_language: str = "en"
    languages: tuple[str, ...] = ()

    src_dir: str = "."
    gen_dir: str | None = None
    i18n_base_file: str = "messages"
    i18n_file_name: str | None = None
    i18n_format: str = FORMAT_XLIFF12
    encoding: str = "UTF-8"

    remove_unused_ids: bool = True
    support_ngx_translate: bool = False
    ngx_translate_extraction_pattern: str = DEFAULT_EXTRACTION_PATTERN
    use_source_as_target: bool = True
    target_praefix: str = ""
    target_suffix: str = ""
    beautify_output: bool = False
    preserve_order: bool = True
    allow_id_change: bool = False
    optional_master_file_path_template: str | None = None

    autotranslate: bool | tuple[str, ...] = False
    apikey: str | None = None
    apikeyfile: str | None = None
    gcp_project_id: str | None = None
    gcp_location: str = "global"
    gcp_credentials_path: str | None = None

    quiet: bool = False
    verbose: bool = False

    # problems found while reading the profile
    load_errors: tuple[str, ...] = field(default=(), compare=False)
    load_warnings: tuple[str, ...] = field(default=(), compare=False)

    @property
    def output_dir(self) -> str:
        return self.gen_dir or self.src_dir

    @property
    def suffix_for_generated_i18n_file(self) -> str:
        return _SUFFIXES.get(self.i18n_format, self.i18n_format)

    @property
    def i18n_file(self) -> str:
        """The master catalog."""
        name = self.i18n_file_name or f"{self.i18n_base_file}.{self.suffix_for_generated_i18n_file}"
        return os.path.join(self.src_dir, name)

    def generated_i18n_file(self, lang: str) -> str:
        return os.path.join(
            self.output_dir, f"{self.i18n_base_file}.{lang}.{self.suffix_for_generated_i18n_file}"
        )

    def generated_ngx_translate_file(self, lang: str) -> str:
        return os.path.join(self.output_dir, f"{self.i18n_base_file}.{lang}.json")

    def optional_master_file_path(self, lang: str | None = None) -> str | None:
        template = self.optional_master_file_path_template
        if not template or not lang:
            return template
        return template.replace(f".{self.i18n_format}", f".{lang}.{self.i18n_format}")

    @property
    def autotranslate_languages(self) -> tuple[str, ...]:
        if self.autotranslate is False:
            return ()
        if isinstance(self.autotranslate, tuple):
            return self.autotranslate
        # the first language is the source language
        return self.languages[1:]

    @property
    def autotranslate_on(self) -> bool:
        return bool(self.autotranslate_languages) if isinstance(self.autotranslate, tuple) else bool(self.autotranslate)

    def autotranslate_enabled(self, lang: str) -> bool:
        return lang in self.autotranslate_languages

    @property
    def api_key(self) -> str | None:
        """The Google API key, read from ``apikeyfile`` if not given inline."""
        if self.apikey:
            return self.apikey
        if not self.apikeyfile:
            return None
        path = Path(self.apikeyfile)
        if not path.exists():
            raise ConfigError(f"api key file not found: API_KEY_FILE={self.apikeyfile}")
        return path.read_text(encoding="utf-8").strip()

    def merge_options(self) -> MergeOptions:
        return MergeOptions(
            allow_id_change=self.allow_id_change,
            use_source_as_target=self.use_source_as_target,
            preserve_order=self.preserve_order,
            remove_unused_ids=self.remove_unused_ids,
        )

    def check(self) -> tuple[list[str], list[str]]:
        """Return ``(errors, warnings)``; any error stops the run."""
        errors = list(self.load_errors)
        warnings = list(self.load_warnings)
        if errors:
            return errors, warnings

        for lang in (self.default_language, *self.languages):
            if not _LANGUAGE_RE.match(lang or ""):
                errors.append(f'language "{lang}" is not valid')
        if not self.languages:
            errors.append("no languages specified")
        if not Path(self.src_dir).is_dir():
            errors.append(f'srcDir "{self.src_dir}" is not a directory')
        if not Path(self.output_dir).is_dir():
            errors.append(f'genDir "{self.output_dir}" is not a directory')
        if not os.access(self.i18n_file, os.R_OK) or not Path(self.i18n_file).is_file():
            errors.append(f'i18nFile "{self.i18n_file}" is not readable')
        if self.i18n_format not in _SUFFIXES:
            errors.append(f'i18nFormat "{self.i18n_format}" invalid, must be "xlf" or "xlf2" or "xmb"')

        if self.autotranslate_on:
            try:
                key = self.api_key
            except ConfigError as exc:
                errors.append(str(exc))
            else:
                if not key and not self.gcp_project_id:
                    errors.append("autotranslate requires an API key, please set one")
        for lang in self.autotranslate_languages:
            if lang not in self.languages:
                errors.append(f'autotranslate language "{lang}" is not in list of languages')
            if lang == self.default_language:
                errors.append(
                    f'autotranslate language "{lang}" cannot be translated, because it is the source language'
                )

        if self.support_ngx_translate:
            problem = check_pattern(self.ngx_translate_extraction_pattern)
            if problem is not None:
                errors.append(f'ngxTranslateExtractionPattern "{self.ngx_translate_extraction_pattern}": {problem}')

        if not self.use_source_as_target:
            if self.target_praefix:
                warnings.append(
                    f'configured targetPraefix "{self.target_praefix}" will not be used because "useSourceAsTarget" is disabled"'
                )
            if self.target_suffix:
                warnings.append(
                    f'configured targetSuffix "{self.target_suffix}" will not be used because "useSourceAsTarget" is disabled"'
                )
        return errors, warnings

    def log_parameters(self) -> None:
        log.debug("xliffsync used parameters:")
        log.debug('usedProfilePath:\t"%s"', self.profile_path)
        log.debug('defaultLanguage:\t"%s"', self.default_language)
        log.debug('srcDir:\t"%s"', self.src_dir)
        log.debug('genDir:\t"%s"', self.output_dir)
        log.debug('i18nBaseFile:\t"%s"', self.i18n_base_file)
        log.debug('i18nFile:\t"%s"', self.i18n_file)
        log.debug("languages:\t%s", ", ".join(self.languages))
        for lang in self.languages:
            log.debug("outputFile[%s]:\t%s", lang, self.generated_i18n_file(lang))
        log.debug("removeUnusedIds:\t%s", self.remove_unused_ids)
        log.debug("supportNgxTranslate:\t%s", self.support_ngx_translate)
        if self.support_ngx_translate:
            log.debug("ngxTranslateExtractionPattern:\t%s", self.ngx_translate_extraction_pattern)
        log.debug("useSourceAsTarget:\t%s", self.use_source_as_target)
        if self.use_source_as_target:
            log.debug('targetPraefix:\t"%s"', self.target_praefix)
            log.debug('targetSuffix:\t"%s"', self.target_suffix)
        log.debug("allowIdChange:\t%s", self.allow_id_change)
        log.debug("beautifyOutput:\t%s", self.beautify_output)
        log.debug("preserveOrder:\t%s", self.preserve_order)
        log.debug('optionalMasterFilePath:\t"%s"', self.optional_master_file_path_template)
        log.debug("autotranslate:\t%s", self.autotranslate_on)
        if self.autotranslate_on:
            log.debug("autotranslated languages:\t%s", ", ".join(self.autotranslate_languages))
            log.debug("apikey:\t%s", "****" if self.apikey else "NOT SET")
            log.debug("apikeyfile:\t%s", self.apikeyfile)
            log.debug("gcpProjectId:\t%s", self.gcp_project_id or "NOT SET")


def _read_json(path: str) -> dict:
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError("profile must be a JSON object")
    return data


def _read_profile_candidate(path: str) -> dict | None:
    if not Path(path).is_file():
        return None
    try:
        data = _read_json(path)
    except (OSError, ValueError) as exc:
        log.debug("ignoring profile candidate %s: %s", path, exc)
        return None
    return data if data.get("xliffmergeOptions") else None


def _adjust_path(profile_path: str, value: str | None) -> str | None:
    if not value or os.path.isabs(value):
        return value
    return os.path.join(os.path.dirname(profile_path), value)


def _bool(options: dict, name: str, default: bool) -> bool:
    value = options.get(name)
    return default if value is None else bool(value)


def _autotranslate(value) -> bool | tuple[str, ...]:
    if value is None:
        return False
    if isinstance(value, list):
        return tuple(str(lang) for lang in value)
    return bool(value)


def load_config(
    profile_path: str | None = None,
    languages: tuple[str, ...] | list[str] = (),
    quiet: bool = False,
    verbose: bool = False,
    profile_content: dict | None = None,
) -> Config:
    """Build the configuration from a JSON profile and the command line.

    Without ``profile_path`` the first of ``package.json`` and
    ``.angular-cli.json`` that has ``xliffmergeOptions`` is used.
    Languages given on the command line replace those of the profile.
    """
    errors: list[str] = []
    warnings: list[str] = []
    used_profile_path = profile_path

    if profile_content is None:
        if profile_path:
            try:
                profile_content = _read_json(profile_path)
            except (OSError, ValueError):
                errors.append(f'could not read profile "{profile_path}"')
                return Config(profile_path=profile_path, quiet=quiet, verbose=verbose, load_errors=tuple(errors))
        else:
            profile_content = {}
            for candidate in PROFILE_CANDIDATES:
                found = _read_profile_candidate(candidate)
                if found is not None:
                    used_profile_path = candidate
                    profile_content = found
                    break

    options = profile_content.get("xliffmergeOptions")
    if not isinstance(options, dict):
        warnings.append('did not find "xliffmergeOptions" in profile, using defaults')
        options = {}
    else:
        options = dict(options)
    if used_profile_path:
        for name in ("srcDir", "genDir", "apikeyfile", "gcpCredentialsPath", "optionalMasterFilePath"):
            options[name] = _adjust_path(used_profile_path, options.get(name))

    src_dir = options.get("srcDir") or "."
    gen_dir = options.get("genDir") or (options.get("angularCompilerOptions") or {}).get("genDir")

    profile_languages = tuple(options.get("languages") or ())
    langs = tuple(languages) if languages else profile_languages
    default_language = options.get("defaultLanguage") or (langs[0] if languages else "en")

    cfg = Config(
        profile_path=used_profile_path,
        default_language=default_language,
        languages=langs,
        src_dir=src_dir,
        gen_dir=gen_dir,
        i18n_base_file=options.get("i18nBaseFile") or "messages",
        i18n_file_name=options.get("i18nFile"),
        i18n_format=options.get("i18nFormat") or FORMAT_XLIFF12,
        encoding=options.get("encoding") or "UTF-8",
        remove_unused_ids=_bool(options, "removeUnusedIds", True),
        support_ngx_translate=_bool(options, "supportNgxTranslate", False),
        ngx_translate_extraction_pattern=options.get("ngxTranslateExtractionPattern")
        if options.get("ngxTranslateExtractionPattern") is not None
        else DEFAULT_EXTRACTION_PATTERN,
        use_source_as_target=_bool(options, "useSourceAsTarget", True),
        target_praefix=options.get("targetPraefix") or "",
        target_suffix=options.get("targetSuffix") or "",
        beautify_output=_bool(options, "beautifyOutput", False),
        preserve_order=_bool(options, "preserveOrder", True),
        allow_id_change=_bool(options, "allowIdChange", False),
        optional_master_file_path_template=options.get("optionalMasterFilePath"),
        autotranslate=_autotranslate(options.get("autotranslate")),
        apikey=options.get("apikey"),
        apikeyfile=options.get("apikeyfile") or os.getenv("API_KEY_FILE"),
        gcp_project_id=options.get("gcpProjectId") or os.getenv("GCP_PROJECT_ID"),
        gcp_location=options.get("gcpLocation") or os.getenv("GCP_LOCATION", "global"),
        gcp_credentials_path=options.get("gcpCredentialsPath") or os.getenv("GCP_CREDENTIALS_PATH"),
        quiet=quiet or _bool(options, "quiet", False),
        verbose=verbose or _bool(options, "verbose", False),
        load_errors=tuple(errors),
        load_warnings=tuple(warnings),
    )
    return cfg
