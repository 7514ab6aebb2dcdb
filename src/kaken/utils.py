"""Utility helpers for query strings, loosely-typed values and localized text."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

WHITESPACE_PATTERN = re.compile(r"\s+")


def build_url(base_url: str, params: Mapping[str, Any]) -> str:
    """Append non-null query parameters to ``base_url``."""
    filtered = [(key, str(value)) for key, value in params.items() if value is not None]
    if not filtered:
        return base_url
    return f"{base_url}?{urlencode(filtered)}"


def ensure_list(value: Any) -> list[Any]:
    """Wrap a scalar in a list; ``None`` becomes an empty list."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def join_values(values: Iterable[str]) -> str | None:
    """Join values with commas, or ``None`` when there is nothing to join."""
    items = list(values)
    if not items:
        return None
    return ",".join(items)


def clean_text(text: str | None) -> str | None:
    """Collapse runs of whitespace and trim."""
    if text is None:
        return None
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def number_to_int(value: Any) -> int | None:
    """Truncate a finite number to ``int``; ``None`` for infinities, NaN and non-numbers."""
    if not is_number(value):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def to_int(value: Any) -> int | None:
    """Convert a number or an integral numeric string to ``int``.

    Strings such as ``"1.5"`` or ``"1e999"`` that do not denote a finite
    integer give ``None``.
    """
    if not isinstance(value, str):
        return number_to_int(value)
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def parse_iso_datetime(value: Any) -> datetime | None:
    """Parse an ISO 8601 date or datetime string; ``None`` when unparsable."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def first_string(data: Mapping[str, Any], keys: Sequence[str]) -> str | None:
    """Return the value of the first key in ``keys`` whose value is a string."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            return value
    return None


def pick_localized(
    candidates: Any,
    language: str,
    *,
    lang_key: str = "lang",
    fallback: bool = True,
) -> Mapping[str, Any] | None:
    """Select the candidate tagged with ``language``.

    Candidates are mappings carrying a language tag under ``lang_key``. The
    first one whose tag equals ``language`` wins. Without a match the first
    candidate in source order is returned, unless ``fallback`` is disabled.
    Tags are neither guaranteed to be present nor unique.
    """
    if not isinstance(candidates, list) or not candidates:
        return None
    for candidate in candidates:
        if isinstance(candidate, Mapping) and candidate.get(lang_key) == language:
            return candidate
    if not fallback:
        return None
    first = candidates[0]
    return first if isinstance(first, Mapping) else None


def pick_localized_text(values: Any, language: str, *, fallback: bool = True) -> str | None:
    """Return the ``text`` of the localized value selected by :func:`pick_localized`."""
    entry = pick_localized(values, language, fallback=fallback)
    if entry is None:
        return None
    text = entry.get("text")
    return text if isinstance(text, str) else None
