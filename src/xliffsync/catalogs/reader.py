from __future__ import annotations

import logging
from pathlib import Path

from . import factory
from .base import FORMAT_XMB, FORMAT_XTB, TranslationMessagesFile, XliffMergeError, sniff_encoding


log = logging.getLogger("xliffsync.catalogs")


def _read_bytes(path: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise XliffMergeError(f'could not read file "{path}": {exc}') from exc


def _master_content(optional_master_path: str | None, encoding: str | None) -> factory.MasterContent | None:
    if not optional_master_path or not Path(optional_master_path).is_file():
        return None
    content = _read_bytes(optional_master_path)
    return factory.MasterContent(content, optional_master_path, encoding or sniff_encoding(content))


def from_file(
    i18n_format: str,
    path: str,
    encoding: str | None = None,
    optional_master_path: str | None = None,
) -> TranslationMessagesFile:
    """Read a catalog of a known format.

    ``optional_master_path`` names the XMB master an XTB file belongs to.
    """
    content = _read_bytes(path)
    log.debug("read %s (%d bytes)", path, len(content))
    master = _master_content(optional_master_path, encoding)
    return factory.from_file_content(i18n_format, content, path, encoding, master)


def from_unknown_format_file(
    path: str,
    encoding: str | None = None,
    optional_master_path: str | None = None,
) -> TranslationMessagesFile:
    content = _read_bytes(path)
    log.debug("read %s (%d bytes)", path, len(content))
    master = _master_content(optional_master_path, encoding)
    return factory.from_unknown_format_file_content(content, path, encoding, master)


def save(catalog: TranslationMessagesFile, beautify: bool = False) -> None:
    """Overwrite the catalog's file with its edited content."""
    Path(catalog.filename).parent.mkdir(parents=True, exist_ok=True)
    Path(catalog.filename).write_bytes(catalog.edited_content(beautify))
    log.debug("saved %s", catalog.filename)


def translation_format(i18n_format: str) -> str:
    """Format of the language files generated for a master format."""
    return FORMAT_XTB if i18n_format == FORMAT_XMB else i18n_format
