from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

MAX_LINES = 3
DESIGN_ELEMENT_NAME = "Design"


class UpstreamModel(BaseModel):
    """Base for records coming from the upstream catalog.

    Upstream payloads use PascalCase keys, sometimes camelCase, and numeric
    codes are not always quoted.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        # A null field reads as absent, so defaults and other aliases apply
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class TemplateElement(UpstreamModel):
    element_name: str = Field(
        default="",
        validation_alias=AliasChoices("ElementName", "elementName", "Name", "name"),
    )
    text: Optional[Any] = Field(
        default=None, validation_alias=AliasChoices("Text", "text")
    )
    font_override: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("FontOverride", "fontOverride", "Font", "font"),
    )
    text_colour: Optional[Any] = Field(
        default=None,
        validation_alias=AliasChoices(
            "TextColour", "textColour", "TextColor", "textColor", "Colour", "Color"
        ),
    )


class Template(UpstreamModel):
    code: str = Field(
        validation_alias=AliasChoices("Code", "code", "TemplateCode", "templateCode")
    )
    name: str = Field(
        default="",
        validation_alias=AliasChoices("Name", "name", "TemplateName", "templateName"),
    )
    order_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("OrderType", "orderType")
    )
    elements: List[TemplateElement] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "Elements", "elements", "TemplateElements", "templateElements"
        ),
    )
    font_map: Optional[Dict[str, str]] = Field(
        default=None,
        validation_alias=AliasChoices(
            "FontMappings", "fontMappings", "PulseFontMap", "pulseFontMap", "FontMap"
        ),
    )


class PaletteEntry(UpstreamModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("Id", "id"))
    code: str = Field(validation_alias=AliasChoices("Code", "code"))
    name: str = Field(default="", validation_alias=AliasChoices("Name", "name"))
    red: int = Field(validation_alias=AliasChoices("Red", "red"))
    green: int = Field(validation_alias=AliasChoices("Green", "green"))
    blue: int = Field(validation_alias=AliasChoices("Blue", "blue"))

    @property
    def triple(self) -> Tuple[int, int, int]:
        return (self.red, self.green, self.blue)

    @property
    def rgb(self) -> str:
        return f"rgb({self.red}, {self.green}, {self.blue})"

    @property
    def display_name(self) -> str:
        """Name without the leading code, e.g. 'Royal Blue' for '1842 - Royal Blue'."""
        if " - " in self.name:
            return self.name.split(" - ", 1)[1].strip()
        return self.name


class FontCatalogEntry(UpstreamModel):
    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("Id", "id"))
    font_name: str = Field(validation_alias=AliasChoices("FontName", "fontName", "Name"))
    preview_asset: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "PreviewImageURL", "PreviewURL", "previewUrl", "Preview", "FontPreviewURL"
        ),
    )
    tags: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("Tags", "tags", "Capabilities", "FontTypes"),
    )

    @property
    def tag_list(self) -> List[str]:
        if not self.tags:
            return []
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]


class Design(UpstreamModel):
    id: str = Field(validation_alias=AliasChoices("Id", "id", "DesignId", "Code"))
    name: str = Field(default="", validation_alias=AliasChoices("Name", "name"))
    preview_asset: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "PreviewURL", "previewUrl", "ImageURL", "ThumbnailURL", "Thumbnail"
        ),
    )


class Product(UpstreamModel):
    code: str = Field(
        validation_alias=AliasChoices("Code", "code", "ProductCode", "productCode")
    )
    name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("Name", "name", "ProductName")
    )
    preview_image: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "ProductPreviewURL", "productPreviewUrl", "PreviewURL", "PreviewImage"
        ),
    )


class InitialControls(BaseModel):
    """Editable controls derived from a freshly selected template."""

    lines: List[str]
    font: Optional[str] = None
    color_rgb: Optional[str] = None


class EditState(BaseModel):
    """Mutable state of the current customization, owned by the session."""

    product_code: Optional[str] = None
    template: Optional[Template] = None
    text_lines: List[str] = Field(default_factory=list)
    font: Optional[str] = None
    color: Optional[str] = None
    design: Optional[Design] = None


class PersonalizationEntry(BaseModel):
    """One text line or design placement sent to the render operation."""

    model_config = ConfigDict(frozen=True)

    element_name: str
    text: Optional[str] = None
    is_text: Optional[bool] = None
    text_colour_code: Optional[str] = None
    font_override: Optional[str] = None
    design: Optional[str] = None

    def to_query_params(self, index: int) -> List[Tuple[str, str]]:
        prefix = f"Personalizations[{index}]"
        params = [(f"{prefix}.ElementName", self.element_name)]
        if self.is_text:
            params.extend(
                [
                    (f"{prefix}.Text", self.text or ""),
                    (f"{prefix}.IsText", "true"),
                    (f"{prefix}.TextColourCode", self.text_colour_code or ""),
                    (f"{prefix}.FontOverride", self.font_override or ""),
                ]
            )
        if self.design is not None:
            params.append((f"{prefix}.Design", self.design))
        return params


class RenderRequest(BaseModel):
    """Render parameters derived from an EditState. Never mutated once built."""

    model_config = ConfigDict(frozen=True)

    product_code: str
    template_code: str
    order_type: str
    background_colour: str
    render_on_product: bool
    dpi: int
    personalizations: Tuple[PersonalizationEntry, ...] = ()

    def to_query_params(self) -> List[Tuple[str, str]]:
        """Ordered (key, value) pairs; identical requests serialize identically."""
        params = [
            ("ProductCode", self.product_code),
            ("TemplateCode", self.template_code),
            ("OrderType", self.order_type),
            ("BackgroundColour", self.background_colour),
            ("RenderOnProduct", "true" if self.render_on_product else "false"),
            ("Dpi", str(self.dpi)),
        ]
        for index, entry in enumerate(self.personalizations):
            params.extend(entry.to_query_params(index))
        return params
