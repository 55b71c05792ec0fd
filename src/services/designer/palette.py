"""
Palette Resolver

Maps loose color references (hex, RGB triple, catalog code, name, or a
composite "code - name" string) to a canonical color string, and maps a
canonical color back to its catalog code.

Each strategy is an independent matcher taking the cleaned reference and the
palette and returning a color string or None. `resolve_rgb` tries them in
order and returns the first hit.
"""

import re
from typing import Any, Callable, Optional, Sequence, Tuple

from src.services.designer.models import PaletteEntry

Matcher = Callable[[str, Sequence[PaletteEntry]], Optional[str]]

RGB_PATTERN = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,[^)]*)?\)$",
    re.IGNORECASE,
)
HEX_PATTERN = re.compile(r"^#?([0-9a-fA-F]{6})$")
CODE_PATTERN = re.compile(r"^(\d{3,4})(?!\d)")


def match_rgb_string(value: str, palette: Sequence[PaletteEntry]) -> Optional[str]:
    if RGB_PATTERN.match(value):
        return value
    return None


def match_hex(value: str, palette: Sequence[PaletteEntry]) -> Optional[str]:
    match = HEX_PATTERN.match(value)
    if match:
        return f"#{match.group(1).upper()}"
    return None


def match_code(value: str, palette: Sequence[PaletteEntry]) -> Optional[str]:
    match = CODE_PATTERN.match(value)
    if not match:
        return None
    code = match.group(1)
    for entry in palette:
        if entry.code.strip() == code:
            return entry.rgb
    return None


def match_exact_name(value: str, palette: Sequence[PaletteEntry]) -> Optional[str]:
    needle = value.lower()
    for entry in palette:
        if entry.name.strip().lower() == needle:
            return entry.rgb
    return None


def match_name_substring(value: str, palette: Sequence[PaletteEntry]) -> Optional[str]:
    needle = value.lower()
    for entry in palette:
        name = entry.name.strip().lower()
        if name and (needle in name or name in needle):
            return entry.rgb
    return None


def match_dash_suffix(value: str, palette: Sequence[PaletteEntry]) -> Optional[str]:
    if "-" not in value:
        return None
    suffix = value.rsplit("-", 1)[1].strip().lower()
    if not suffix:
        return None
    for entry in palette:
        if suffix in entry.name.lower():
            return entry.rgb
    return None


MATCHERS: Tuple[Matcher, ...] = (
    match_rgb_string,
    match_hex,
    match_code,
    match_exact_name,
    match_name_substring,
    match_dash_suffix,
)


def _triple_to_rgb(value: Any) -> Optional[str]:
    """Accept (r, g, b) sequences and Red/Green/Blue mappings."""
    if isinstance(value, dict):
        keys = [("Red", "Green", "Blue"), ("red", "green", "blue"), ("r", "g", "b")]
        for red, green, blue in keys:
            if red in value and green in value and blue in value:
                value = (value[red], value[green], value[blue])
                break
        else:
            return None
    if isinstance(value, (list, tuple)) and len(value) == 3:
        try:
            r, g, b = (int(channel) for channel in value)
        except (TypeError, ValueError):
            return None
        return f"rgb({r}, {g}, {b})"
    return None


def resolve_rgb(raw_value: Any, palette: Sequence[PaletteEntry]) -> Optional[str]:
    """
    Resolve a loose color reference to a canonical color string.

    Catalog hits come back as "rgb(R, G, B)", hex input as "#RRGGBB" and
    rgb(...) input unchanged. Returns None when nothing matches; the caller
    picks the default.
    """
    if raw_value is None:
        return None
    if not isinstance(raw_value, str):
        return _triple_to_rgb(raw_value)

    value = raw_value.strip()
    if not value:
        return None

    for matcher in MATCHERS:
        resolved = matcher(value, palette)
        if resolved is not None:
            return resolved
    return None


def parse_triple(color: Optional[str]) -> Optional[Tuple[int, int, int]]:
    """Parse "rgb(R, G, B)" or "#RRGGBB" into an integer triple."""
    if not color:
        return None
    value = color.strip()
    rgb_match = RGB_PATTERN.match(value)
    if rgb_match:
        r, g, b = (int(channel) for channel in rgb_match.groups())
        return (r, g, b)
    hex_match = HEX_PATTERN.match(value)
    if hex_match:
        digits = hex_match.group(1)
        return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))
    return None


def resolve_code(rgb: Optional[str], palette: Sequence[PaletteEntry]) -> str:
    """Catalog name/code of the entry whose RGB triple matches exactly, or ""."""
    triple = parse_triple(rgb)
    if triple is None:
        return ""
    for entry in palette:
        if entry.triple == triple:
            return entry.name or entry.code
    return ""


def find_entry(code: str, palette: Sequence[PaletteEntry]) -> Optional[PaletteEntry]:
    for entry in palette:
        if entry.code.strip() == code:
            return entry
    return None
