from __future__ import annotations

from dataclasses import dataclass

from lxml import etree

from .base import (
    FORMAT_XLIFF12,
    FORMAT_XLIFF20,
    FORMAT_XMB,
    FORMAT_XTB,
    TranslationMessagesFile,
    XliffMergeError,
    local_name,
)
from .xliff import XliffFile
from .xliff2 import Xliff2File
from .xmb import XmbFile, XtbFile


@dataclass(frozen=True)
class MasterContent:
    """Content of the master an XTB file belongs to."""

    content: bytes
    path: str
    encoding: str | None = None


def from_file_content(
    i18n_format: str,
    content: bytes | str,
    filename: str,
    encoding: str | None = None,
    optional_master: MasterContent | None = None,
) -> TranslationMessagesFile:
    if i18n_format == FORMAT_XLIFF12:
        return XliffFile(content, filename, encoding)
    if i18n_format == FORMAT_XLIFF20:
        return Xliff2File(content, filename, encoding)
    if i18n_format == FORMAT_XMB:
        return XmbFile(content, filename, encoding)
    if i18n_format == FORMAT_XTB:
        master = None
        if optional_master is not None:
            master = XmbFile(optional_master.content, optional_master.path, optional_master.encoding)
        return XtbFile(content, filename, encoding, master=master)
    raise XliffMergeError(f'oops, unsupported format "{i18n_format}"')


def detect_format(content: bytes | str) -> str | None:
    if isinstance(content, str):
        content = content.encode("utf-8")
    try:
        root = etree.fromstring(content, etree.XMLParser(remove_blank_text=False))
    except etree.XMLSyntaxError:
        return None
    name = local_name(root)
    if name == "xliff":
        return {"1.2": FORMAT_XLIFF12, "2.0": FORMAT_XLIFF20}.get(root.get("version"))
    if name == "messagebundle":
        return FORMAT_XMB
    if name == "translationbundle":
        return FORMAT_XTB
    return None


def from_unknown_format_file_content(
    content: bytes | str,
    filename: str,
    encoding: str | None = None,
    optional_master: MasterContent | None = None,
) -> TranslationMessagesFile:
    i18n_format = detect_format(content)
    if i18n_format is None:
        raise XliffMergeError(f'could not identify file format of "{filename}"')
    return from_file_content(i18n_format, content, filename, encoding, optional_master)
