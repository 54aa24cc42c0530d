"""Pure string stages of slug generation: compose, sanitize, truncate."""

from __future__ import annotations

import re
import unicodedata
from typing import Callable, Iterable, Optional

from .template import FieldRef, Literal, Segment

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


def compose_raw(
    segments: Iterable[Segment], record, read_field: Callable[[object, FieldRef], str]
) -> str:
    """Concatenate literals verbatim and field references by their current value."""
    parts = []
    for segment in segments:
        if isinstance(segment, Literal):
            parts.append(segment.text)
        else:
            parts.append(read_field(record, segment))
    return "".join(parts)


def _trim(value: str, tokens: Iterable[str]) -> str:
    tokens = [t for t in tokens if t]
    changed = True
    while value and changed:
        changed = False
        for token in tokens:
            if value.startswith(token):
                value = value[len(token) :]
                changed = True
            if value.endswith(token):
                value = value[: -len(token)]
                changed = True
    return value


def sanitize(raw: str, pattern: re.Pattern, replacement: str, separator: str) -> str:
    """Turn a raw candidate into a clean base slug.

    Every maximal run of ``pattern`` matches becomes one ``replacement``,
    ASCII letters are lowercased, and leading/trailing separators (and
    replacement strings) are trimmed. May return ``""``.
    """
    out = []
    pos = 0
    run_end = None
    for match in pattern.finditer(raw):
        if match.start() == match.end():
            continue
        if match.start() == run_end:
            # Adjacent to the previous match: extend the same run.
            run_end = match.end()
            pos = run_end
            continue
        out.append(raw[pos : match.start()])
        out.append(replacement)
        pos = run_end = match.end()
    out.append(raw[pos:])
    result = "".join(out).translate(_ASCII_LOWER)
    return _trim(result, (separator, replacement))


def truncate(
    base: str,
    max_length: Optional[int],
    reserved: int,
    trim: Iterable[str] = (),
) -> str:
    """Shorten ``base`` to ``max_length - reserved`` characters if longer.

    Never cuts between a character and the combining marks that follow it.
    Separators exposed at the new end by the cut are trimmed.
    """
    if max_length is None:
        return base
    limit = max(max_length - reserved, 0)
    if len(base) <= limit:
        return base
    while limit > 0 and unicodedata.combining(base[limit]):
        limit -= 1
    return _trim(base[:limit], trim)
