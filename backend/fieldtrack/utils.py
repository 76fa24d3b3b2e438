from __future__ import annotations

import math
from typing import Any, Iterable, Mapping, Optional


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def resolve(row: Mapping[str, Any], aliases: Iterable[str]) -> Optional[Any]:
    """Return the first present, non-empty value among ``aliases``."""
    for alias in aliases:
        value = row.get(alias)
        if not is_blank(value):
            return value
    return None


def resolve_text(row: Mapping[str, Any], aliases: Iterable[str], default: Optional[str] = None) -> Optional[str]:
    value = resolve(row, aliases)
    if value is None:
        return default
    return str(value).strip()


def contains_any(value: Any, keywords: Iterable[str]) -> bool:
    if value is None:
        return False
    text = str(value).casefold()
    return any(keyword.casefold() in text for keyword in keywords)


def coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None
