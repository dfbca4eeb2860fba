import math
from typing import Iterable, List


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(x + 0.5))


def clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, x))


def preview(text: str, length: int = 100) -> str:
    text = text or ""
    return text if len(text) <= length else text[:length] + "..."


def dedupe_casefold(items: Iterable[str]) -> List[str]:
    """Drop blanks and case-insensitive duplicates, keeping first spelling and order."""
    seen = set()
    out = []
    for item in items:
        if item is None:
            continue
        s = str(item).strip()
        key = s.lower()
        if not s or key in seen:
            continue
        seen.add(key)
        out.append(s)
    return out
