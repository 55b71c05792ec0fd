"""
Render Request Builder

Turns an EditState into the ordered parameter set the upstream render
operation expects. Building is pure: the same state always produces the same
request, which is what lets the preview pipeline skip no-op edits by
comparing serialized URLs.
"""

from typing import Optional, Sequence

from common import global_config
from common.config_models import RenderConfig
from src.services.designer.models import (
    DESIGN_ELEMENT_NAME,
    EditState,
    PaletteEntry,
    PersonalizationEntry,
    RenderRequest,
)
from src.services.designer.palette import resolve_code
from src.services.designer.templates.normalizer import (
    ordered_element_names,
    resolve_line_count,
    supports_design_slot,
)


class IncompleteEditStateError(ValueError):
    """Raised when the edit state has no product or template to render."""


def build_render_request(
    edit_state: EditState,
    palette: Sequence[PaletteEntry],
    render_config: Optional[RenderConfig] = None,
    default_order_type: Optional[str] = None,
) -> RenderRequest:
    if edit_state.template is None or not edit_state.product_code:
        raise IncompleteEditStateError(
            "A product and a template must be selected before rendering"
        )

    render_config = render_config or global_config.render
    if default_order_type is None:
        default_order_type = global_config.designer.default_order_type

    template = edit_state.template
    element_names = ordered_element_names(template, resolve_line_count(template))
    colour_code = resolve_code(edit_state.color, palette)

    personalizations = []
    for element_name, text in zip(element_names, edit_state.text_lines):
        if not text or not text.strip():
            continue
        personalizations.append(
            PersonalizationEntry(
                element_name=element_name,
                text=text,
                is_text=True,
                text_colour_code=colour_code,
                font_override=edit_state.font or "",
            )
        )

    if edit_state.design is not None and supports_design_slot(template):
        personalizations.append(
            PersonalizationEntry(
                element_name=DESIGN_ELEMENT_NAME, design=edit_state.design.name
            )
        )

    return RenderRequest(
        product_code=edit_state.product_code,
        template_code=template.code,
        order_type=template.order_type or default_order_type,
        background_colour=render_config.background_colour,
        render_on_product=render_config.render_on_product,
        dpi=render_config.dpi,
        personalizations=tuple(personalizations),
    )
