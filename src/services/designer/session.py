"""
Designer Session

Owns everything one customer customization needs: the reference catalogs
(fetched once), the per-code thumbnail cache, the mutable edit state and the
preview pipeline. Every edit goes through a method here so the pipeline is
told about it.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from loguru import logger as log

from common import global_config
from common.config_models import DesignerConfig, PreviewConfig, RenderConfig
from src.services.designer.cache import CatalogCache, SessionCache
from src.services.designer.fonts import reconcile_font, usable_fonts
from src.services.designer.models import (
    Design,
    EditState,
    FontCatalogEntry,
    PaletteEntry,
    Product,
    RenderRequest,
    Template,
)
from src.services.designer.palette import find_entry, resolve_rgb
from src.services.designer.preview import PreviewPipeline
from src.services.designer.render_request import build_render_request
from src.services.designer.templates.loader import TemplateLoader
from src.services.designer.templates.normalizer import (
    derive_initial_controls,
    resolve_line_count,
    supports_design_slot,
)
from src.services.pulse.gateway import PulseGateway
from src.utils.context import variant_id as variant_id_ctx
from src.utils.logging_config import setup_logging

setup_logging()


class DesignerError(Exception):
    """Base class for invalid designer operations."""


class UnknownTemplateError(DesignerError):
    def __init__(self, code: str):
        super().__init__(f"Unknown template: {code}")
        self.code = code


class UnknownDesignError(DesignerError):
    def __init__(self, design_id: str):
        super().__init__(f"Unknown design: {design_id}")
        self.design_id = design_id


class LineIndexError(DesignerError, IndexError):
    pass


class DesignerSession:
    def __init__(
        self,
        gateway: PulseGateway,
        catalog: Optional[CatalogCache] = None,
        thumbnails: Optional[SessionCache[str, str]] = None,
        designer_config: Optional[DesignerConfig] = None,
        render_config: Optional[RenderConfig] = None,
        preview_config: Optional[PreviewConfig] = None,
        on_preview_change: Optional[Callable[[PreviewPipeline], None]] = None,
    ):
        self.gateway = gateway
        self.catalog = catalog or CatalogCache()
        self.thumbnails = thumbnails or SessionCache("thumbnails")
        self.designer_config = designer_config or global_config.designer
        self.render_config = render_config or global_config.render

        self.product: Optional[Product] = None
        self.edit_state = EditState(font=self.designer_config.default_font)
        self.pipeline = PreviewPipeline(
            build_url=self.render_url,
            load_image=self._load_image,
            preview_config=preview_config,
            on_change=on_preview_change,
        )

    # Reference data

    @property
    def fonts(self) -> List[FontCatalogEntry]:
        return self.catalog.fonts

    @property
    def colours(self) -> List[PaletteEntry]:
        return self.catalog.colours

    @property
    def templates(self) -> List[Template]:
        return self.catalog.templates

    @property
    def designs(self) -> List[Design]:
        return self.catalog.designs

    async def load_reference_data(self) -> None:
        """Fetch fonts, colours, templates and designs concurrently, once each."""
        await asyncio.gather(
            self.catalog.get_or_load(CatalogCache.FONTS, self._fetch_fonts),
            self.catalog.get_or_load(CatalogCache.COLOURS, self._fetch_colours),
            self.catalog.get_or_load(CatalogCache.TEMPLATES, self._fetch_templates),
            self.catalog.get_or_load(CatalogCache.DESIGNS, self._fetch_designs),
        )
        if self.edit_state.color is None:
            self.edit_state.color = self.default_color()

    async def _fetch_fonts(self) -> Optional[List[FontCatalogEntry]]:
        fonts = await asyncio.to_thread(self.gateway.get_fonts)
        if fonts is None:
            return None
        usable = usable_fonts(fonts, self.designer_config.font_capability_tag)
        log.info(f"Loaded {len(usable)} of {len(fonts)} fonts")
        return usable

    async def _fetch_colours(self) -> Optional[List[PaletteEntry]]:
        return await asyncio.to_thread(self.gateway.get_colours)

    async def _fetch_templates(self) -> Optional[List[Template]]:
        templates = await asyncio.to_thread(self.gateway.list_templates)
        if templates is None:
            return None
        loader = TemplateLoader(
            templates=templates, prefix=self.designer_config.template_prefix
        )
        log.info(f"Loaded {len(loader.list_templates())} customizable templates")
        return loader.list_templates()

    async def _fetch_designs(self) -> Optional[List[Design]]:
        return await asyncio.to_thread(self.gateway.get_designs)

    async def load_product(self, variant_id: str) -> Optional[Product]:
        variant_id_ctx.set(variant_id)
        product = await asyncio.to_thread(self.gateway.get_product, variant_id)
        if product is None:
            log.warning(f"Product for variant {variant_id} unavailable")
            return None
        self.product = product
        self.edit_state.product_code = product.code
        self.pipeline.show(product.preview_image)
        return product

    async def template_thumbnail(self, code: str) -> Optional[str]:
        return await self.thumbnails.get_or_load(
            code, lambda: asyncio.to_thread(self.gateway.get_template_thumbnail, code)
        )

    def default_color(self) -> Optional[str]:
        entry = find_entry(self.designer_config.default_colour_code, self.colours)
        return entry.rgb if entry else None

    def get_template(self, code: str) -> Optional[Template]:
        return TemplateLoader(templates=self.templates).get_template(code)

    # Edits

    def select_template(self, code: str) -> EditState:
        template = self.get_template(code)
        if template is None:
            raise UnknownTemplateError(code)

        count = resolve_line_count(template)
        controls = derive_initial_controls(template, self.colours, self.fonts)
        lines = list(controls.lines)

        state = self.edit_state
        state.template = template
        state.text_lines = lines
        if controls.font:
            state.font = controls.font
        if controls.color_rgb:
            state.color = controls.color_rgb
        elif state.color is None:
            state.color = self.default_color()
        if not supports_design_slot(template):
            state.design = None

        log.info(f"Selected template {template.code} with {count} lines")
        self._edited()
        return state

    def set_line(self, index: int, text: str) -> None:
        if not 0 <= index < len(self.edit_state.text_lines):
            raise LineIndexError(
                f"Line {index} outside 0..{len(self.edit_state.text_lines) - 1}"
            )
        self.edit_state.text_lines[index] = text
        self._edited()

    def set_font(self, font_name: str) -> None:
        resolved = reconcile_font(self.edit_state.template, font_name, self.fonts)
        self.edit_state.font = resolved or font_name
        self._edited()

    def set_color(self, value: str) -> None:
        self.edit_state.color = resolve_rgb(value, self.colours) or value
        self._edited()

    def set_design(self, design_id: Optional[str]) -> None:
        if design_id is None:
            self.edit_state.design = None
        else:
            design = next((d for d in self.designs if d.id == design_id), None)
            if design is None:
                raise UnknownDesignError(design_id)
            self.edit_state.design = design
        self._edited()

    def _edited(self) -> None:
        self.pipeline.notify_edit()

    # Rendering

    def build_request(self) -> RenderRequest:
        return build_render_request(
            self.edit_state,
            self.colours,
            render_config=self.render_config,
            default_order_type=self.designer_config.default_order_type,
        )

    def render_url(self) -> Optional[str]:
        if self.edit_state.template is None or not self.edit_state.product_code:
            return None
        return self.gateway.render_url(self.build_request())

    def _load_image(self, url: str) -> Awaitable[bytes]:
        return asyncio.to_thread(self.gateway.fetch_image, url)

    def close(self) -> None:
        self.pipeline.close()
