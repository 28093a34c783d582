from __future__ import annotations

from typing import Iterable

from .catalogs.base import SourceReference, TransUnit


def sources_nearly_equal(a: TransUnit | None, b: TransUnit | None) -> bool:
    """Compare the sources of two units, ignoring whitespace and placeholder churn.

    ICU messages only match other ICU messages with the same canonical text.
    """
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    a_message = a.source_content_normalized()
    b_message = b.source_content_normalized()
    a_icu = a_message.icu_message
    if a_icu is not None:
        b_icu = b_message.icu_message
        if b_icu is None:
            return False
        return a_icu.as_native_string().strip() == b_icu.as_native_string().strip()
    if a_message.contains_icu_message_ref():
        return a_message.as_native_string().strip() == b_message.as_native_string().strip()
    return a_message.as_display_string().strip() == b_message.as_display_string().strip()


def source_references_equal(
    refs1: Iterable[SourceReference] | None, refs2: Iterable[SourceReference] | None
) -> bool:
    if refs1 is None and refs2 is None:
        return True
    if refs1 is None or refs2 is None:
        return False
    keys1 = {ref.key for ref in refs1}
    keys2 = {ref.key for ref in refs2}
    return keys1 == keys2
