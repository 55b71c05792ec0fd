"""
Designer Routes

Read-only views over the customizable template catalog and a stateless
render-request builder, for clients that keep their own edit state.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.services.designer.fonts import reconcile_font
from src.services.designer.models import EditState
from src.services.designer.palette import resolve_rgb
from src.services.designer.render_request import (
    IncompleteEditStateError,
    build_render_request,
)
from src.services.designer.session import DesignerSession
from src.services.designer.templates.normalizer import (
    derive_initial_controls,
    ordered_element_names,
    resolve_line_count,
    supports_design_slot,
)
from src.services.pulse.gateway import PulseGateway

router = APIRouter(prefix="/designer", tags=["designer"])

_session: Optional[DesignerSession] = None


async def get_designer_session() -> DesignerSession:
    """Process-wide session whose reference catalogs are fetched once."""
    global _session
    if _session is None:
        _session = DesignerSession(gateway=PulseGateway())
    await _session.load_reference_data()
    return _session


class TemplateSummary(BaseModel):
    code: str
    name: str
    line_count: int
    element_names: List[str]
    supports_design: bool


class TemplateControls(TemplateSummary):
    lines: List[str]
    font: Optional[str] = None
    color: Optional[str] = None


class RenderRequestBody(BaseModel):
    """Edit state as sent by a client."""

    product_code: str
    template_code: str
    text_lines: List[str] = Field(default_factory=list)
    font: Optional[str] = None
    color: Optional[str] = None
    design_id: Optional[str] = None


class RenderRequestResponse(BaseModel):
    params: List[List[str]]
    url: str


def _summary(template) -> dict:
    count = resolve_line_count(template)
    return {
        "code": template.code,
        "name": template.name,
        "line_count": count,
        "element_names": ordered_element_names(template, count),
        "supports_design": supports_design_slot(template),
    }


@router.get("/templates", response_model=List[TemplateSummary])
async def list_templates(
    session: DesignerSession = Depends(get_designer_session),
) -> List[TemplateSummary]:
    """Customizable templates with their resolved line layout."""
    return [TemplateSummary(**_summary(t)) for t in session.templates]


@router.get("/templates/{code}/controls", response_model=TemplateControls)
async def template_controls(
    code: str, session: DesignerSession = Depends(get_designer_session)
) -> TemplateControls:
    """Initial editable controls for a template."""
    template = session.get_template(code)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown template: {code}"
        )
    controls = derive_initial_controls(template, session.colours, session.fonts)
    return TemplateControls(
        **_summary(template),
        lines=controls.lines,
        font=controls.font,
        color=controls.color_rgb or session.default_color(),
    )


@router.post("/render-request", response_model=RenderRequestResponse)
async def render_request(
    body: RenderRequestBody, session: DesignerSession = Depends(get_designer_session)
) -> RenderRequestResponse:
    """Serialize a client's edit state into upstream render parameters."""
    template = session.get_template(body.template_code)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown template: {body.template_code}",
        )

    design = None
    if body.design_id is not None:
        design = next((d for d in session.designs if d.id == body.design_id), None)
        if design is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown design: {body.design_id}",
            )

    count = resolve_line_count(template)
    edit_state = EditState(
        product_code=body.product_code,
        template=template,
        text_lines=(body.text_lines + [""] * count)[:count],
        font=(
            reconcile_font(template, body.font, session.fonts) or body.font
            if body.font
            else session.designer_config.default_font
        ),
        color=(
            resolve_rgb(body.color, session.colours) or body.color
            if body.color
            else session.default_color()
        ),
        design=design,
    )
    try:
        request = build_render_request(
            edit_state,
            session.colours,
            render_config=session.render_config,
            default_order_type=session.designer_config.default_order_type,
        )
    except IncompleteEditStateError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e

    return RenderRequestResponse(
        params=[[key, value] for key, value in request.to_query_params()],
        url=session.gateway.render_url(request),
    )
