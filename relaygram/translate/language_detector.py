"""Source-script detection.

Decides whether a text needs translation by looking for code points in the
configured Unicode blocks. Hebrew (U+0590..U+05FF) is the default.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple

from ..runtime.errors import ConfigurationError

ScriptRange = Tuple[int, int]

HEBREW_RANGES: Tuple[ScriptRange, ...] = ((0x0590, 0x05FF),)

_RANGE_RE = re.compile(r"^\s*([0-9A-Fa-f]{1,6})\s*-\s*([0-9A-Fa-f]{1,6})\s*$")


def contains_source_script(
    text: Optional[str], ranges: Sequence[ScriptRange] = HEBREW_RANGES
) -> bool:
    if not text or not text.strip():
        return False
    return script_pattern(tuple(ranges)).search(text) is not None


@lru_cache(maxsize=16)
def script_pattern(ranges: Tuple[ScriptRange, ...]) -> "re.Pattern[str]":
    """Compile the ranges into a single character class, cached per range set."""
    body = "".join(f"\\U{low:08x}-\\U{high:08x}" for low, high in ranges)
    return re.compile(f"[{body}]")


def parse_script_ranges(raw: str) -> List[ScriptRange]:
    """Parse `"0590-05FF,FB1D-FB4F"` into inclusive code-point pairs.

    Raises:
        ConfigurationError: on an empty value, a malformed item or low > high.
    """
    ranges: List[ScriptRange] = []
    for item in _split(raw):
        m = _RANGE_RE.match(item)
        if not m:
            raise ConfigurationError(f"invalid script range {item!r}")
        low, high = int(m.group(1), 16), int(m.group(2), 16)
        if low > high or high > 0x10FFFF:
            raise ConfigurationError(f"invalid script range {item!r}")
        ranges.append((low, high))
    if not ranges:
        raise ConfigurationError("SOURCE_SCRIPT_RANGES is empty")
    return ranges


def _split(raw: str) -> Iterable[str]:
    return (part for part in (raw or "").split(",") if part.strip())
