"""
Font Reconciler

Maps a template-declared font identifier to an entry in the font catalog,
tolerating file extensions, punctuation, case and weight suffixes.
"""

import re
from typing import Callable, Optional, Sequence, Tuple

from src.services.designer.models import FontCatalogEntry, Template

FONT_FILE_EXTENSIONS = (".ttf", ".otf", ".woff2", ".woff", ".pfb", ".fnt", ".jff")
_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")

FontMatcher = Callable[[Optional[Template], str, Sequence[FontCatalogEntry]], Optional[str]]


def normalize_font_name(value: str) -> str:
    """'Block-Regular.TTF' -> 'blockregular'."""
    lowered = value.strip().lower()
    for extension in FONT_FILE_EXTENSIONS:
        if lowered.endswith(extension):
            lowered = lowered[: -len(extension)]
            break
    return _NON_ALPHANUMERIC.sub("", lowered)


def usable_fonts(
    fonts: Sequence[FontCatalogEntry], capability_tag: str
) -> list[FontCatalogEntry]:
    """Keep only fonts tagged for the given render pipeline."""
    wanted = capability_tag.strip().lower()
    return [
        font for font in fonts if wanted in (tag.lower() for tag in font.tag_list)
    ]


def _find_in_catalog(name: str, fonts: Sequence[FontCatalogEntry]) -> Optional[str]:
    lowered = name.strip().lower()
    normalized = normalize_font_name(name)
    for font in fonts:
        if font.font_name.strip().lower() == lowered:
            return font.font_name
    for font in fonts:
        if normalized and normalize_font_name(font.font_name) == normalized:
            return font.font_name
    return None


def match_font_map(
    template: Optional[Template], raw: str, fonts: Sequence[FontCatalogEntry]
) -> Optional[str]:
    if template is None or not template.font_map:
        return None
    lowered = raw.strip().lower()
    normalized = normalize_font_name(raw)
    for key, mapped in template.font_map.items():
        key_matches = key.strip().lower() == lowered or (
            normalized and normalize_font_name(key) == normalized
        )
        if key_matches and mapped:
            return _find_in_catalog(mapped, fonts)
    return None


def match_normalized(
    template: Optional[Template], raw: str, fonts: Sequence[FontCatalogEntry]
) -> Optional[str]:
    normalized = normalize_font_name(raw)
    if not normalized:
        return None
    for font in fonts:
        if normalize_font_name(font.font_name) == normalized:
            return font.font_name
    return None


def match_case_insensitive(
    template: Optional[Template], raw: str, fonts: Sequence[FontCatalogEntry]
) -> Optional[str]:
    lowered = raw.strip().lower()
    for font in fonts:
        if font.font_name.strip().lower() == lowered:
            return font.font_name
    return None


def match_prefix(
    template: Optional[Template], raw: str, fonts: Sequence[FontCatalogEntry]
) -> Optional[str]:
    normalized = normalize_font_name(raw)
    if not normalized:
        return None
    for font in fonts:
        candidate = normalize_font_name(font.font_name)
        if candidate and (
            candidate.startswith(normalized) or normalized.startswith(candidate)
        ):
            return font.font_name
    return None


FONT_MATCHERS: Tuple[FontMatcher, ...] = (
    match_font_map,
    match_normalized,
    match_case_insensitive,
    match_prefix,
)


def reconcile_font(
    template: Optional[Template],
    raw_override: Optional[str],
    fonts: Sequence[FontCatalogEntry],
) -> Optional[str]:
    """
    Return the catalog spelling of the font named by `raw_override`.

    Strategies, first hit wins:
    1. the template's font-mapping table (Pulse font id -> catalog name)
    2. exact match after normalization
    3. case-insensitive exact match
    4. one normalized name is a prefix of the other

    Returns None when nothing matches; callers keep the raw value.
    """
    if not raw_override or not raw_override.strip():
        return None
    for matcher in FONT_MATCHERS:
        resolved = matcher(template, raw_override, fonts)
        if resolved is not None:
            return resolved
    return None
