"""
Template Normalizer

Upstream templates describe their editable lines inconsistently: some carry an
explicit count under one of several legacy field names, some only list
elements, and older ones only hint at it in their name. The functions here
turn that into a fixed set of editable controls.

Recognized field names are listed below in lookup order. Anything not
modelled explicitly on `Template` is read from the model's extra fields.
"""

import re
from typing import Any, List, Optional, Sequence, Tuple

from src.services.designer.fonts import reconcile_font
from src.services.designer.models import (
    DESIGN_ELEMENT_NAME,
    MAX_LINES,
    FontCatalogEntry,
    InitialControls,
    PaletteEntry,
    Template,
    TemplateElement,
)
from src.services.designer.palette import resolve_rgb

LINE_COUNT_FIELDS = (
    "TextLineCount",
    "textLineCount",
    "LineCount",
    "lineCount",
    "NumberOfLines",
    "numberOfLines",
    "NumLines",
    "Lines",
)
DEFAULT_FONT_FIELDS = (
    "DefaultFont",
    "defaultFont",
    "FontName",
    "fontName",
    "Font",
    "font",
)
DEFAULT_COLOUR_FIELDS = (
    "DefaultColour",
    "defaultColour",
    "DefaultColor",
    "defaultColor",
    "TextColour",
    "textColour",
    "Colour",
    "Color",
)

UNRANKED = 999
_RANK_PATTERNS: Tuple[Tuple[int, re.Pattern], ...] = (
    (1, re.compile(r"top|upper|^text$|line[\s_-]*0*1(?!\d)", re.IGNORECASE)),
    (2, re.compile(r"bottom|lower|line[\s_-]*0*2(?!\d)", re.IGNORECASE)),
    (3, re.compile(r"line[\s_-]*0*3(?!\d)", re.IGNORECASE)),
)
_NUMERIC_SUFFIX = re.compile(r"(\d+)\D*$")

_DESIGN_ONLY = re.compile(r"design[\s_-]*only", re.IGNORECASE)
_HEURISTICS: Tuple[Tuple[int, re.Pattern], ...] = (
    (3, re.compile(r"(?<![a-z])three(?![a-z])|(?<!\d)3(?!\d)", re.IGNORECASE)),
    (2, re.compile(r"(?<![a-z])two(?![a-z])|(?<!\d)2(?!\d)", re.IGNORECASE)),
    (1, re.compile(r"(?<![a-z])one(?![a-z])|(?<!\d)1(?!\d)", re.IGNORECASE)),
)


def clamp_line_count(value: int) -> int:
    return max(0, min(MAX_LINES, value))


def first_field(template: Template, aliases: Sequence[str]) -> Any:
    """Value of the first alias present (and not None) in the template's extra fields."""
    extra = template.model_extra or {}
    for alias in aliases:
        value = extra.get(alias)
        if value is not None and value != "":
            return value
    return None


def is_text_bearing(element: TemplateElement) -> bool:
    return isinstance(element.text, str) and element.text.strip() != ""


def _explicit_line_count(template: Template) -> Optional[int]:
    extra = template.model_extra or {}
    for alias in LINE_COUNT_FIELDS:
        if alias not in extra:
            continue
        try:
            return int(extra[alias])
        except (TypeError, ValueError):
            continue
    return None


def _heuristic_line_count(template: Template) -> int:
    label = f"{template.name} {template.code}"
    if _DESIGN_ONLY.search(label):
        return 0
    for count, pattern in _HEURISTICS:
        if pattern.search(label):
            return count
    return 1


def resolve_line_count(template: Template) -> int:
    """Number of editable text lines, always within [0, MAX_LINES]."""
    explicit = _explicit_line_count(template)
    if explicit is not None:
        return clamp_line_count(explicit)

    if template.elements:
        # Elements without any text mark a design-only template
        return clamp_line_count(sum(1 for e in template.elements if is_text_bearing(e)))

    return clamp_line_count(_heuristic_line_count(template))


def element_rank(name: str) -> int:
    for rank, pattern in _RANK_PATTERNS:
        if pattern.search(name):
            return rank
    return UNRANKED


def _sort_key(element: TemplateElement) -> Tuple[int, float, str]:
    name = element.element_name or ""
    suffix = _NUMERIC_SUFFIX.search(name)
    number = float(suffix.group(1)) if suffix else float("inf")
    return (element_rank(name), number, name)


def sorted_text_elements(template: Template) -> List[TemplateElement]:
    return sorted(
        (e for e in template.elements if is_text_bearing(e)), key=_sort_key
    )


def ordered_element_names(template: Template, count: int) -> List[str]:
    """Element names backing lines 1..count, top to bottom."""
    count = clamp_line_count(count)
    if not template.elements:
        return [f"Line{n}" for n in range(1, count + 1)]

    names = [e.element_name for e in sorted_text_elements(template) if e.element_name]
    n = 1
    while len(names) < count:
        placeholder = f"Line{n}"
        if placeholder not in names:
            names.append(placeholder)
        n += 1
    return names[:count]


def _font_candidate(template: Template) -> Optional[str]:
    for element in sorted_text_elements(template):
        if element.font_override:
            return element.font_override
    for element in template.elements:
        if element.font_override:
            return element.font_override
    value = first_field(template, DEFAULT_FONT_FIELDS)
    return str(value) if value is not None else None


def _colour_candidate(template: Template) -> Any:
    for element in sorted_text_elements(template):
        if element.text_colour not in (None, ""):
            return element.text_colour
    for element in template.elements:
        if element.text_colour not in (None, ""):
            return element.text_colour
    return first_field(template, DEFAULT_COLOUR_FIELDS)


def derive_initial_controls(
    template: Template,
    palette: Sequence[PaletteEntry],
    fonts: Sequence[FontCatalogEntry] = (),
) -> InitialControls:
    """
    Seed the editable controls for a freshly selected template.

    Unresolved fonts and colors keep their raw upstream value; both stay None
    when the template names no candidate at all.
    """
    count = resolve_line_count(template)
    seeded = [str(e.text) for e in sorted_text_elements(template)]
    lines = (seeded + [""] * count)[:count]

    font = None
    raw_font = _font_candidate(template)
    if raw_font:
        font = reconcile_font(template, raw_font, fonts) or raw_font

    color = None
    raw_colour = _colour_candidate(template)
    if raw_colour is not None:
        color = resolve_rgb(raw_colour, palette)
        if color is None:
            color = str(raw_colour)

    return InitialControls(lines=lines, font=font, color_rgb=color)


def supports_design_slot(template: Template) -> bool:
    return any(
        (e.element_name or "").strip().lower() == DESIGN_ELEMENT_NAME.lower()
        for e in template.elements
    )
