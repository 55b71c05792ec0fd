from urllib.parse import urlencode

import pytest

from src.services.designer.models import (
    Design,
    FontCatalogEntry,
    PaletteEntry,
    Product,
    Template,
)
from src.services.pulse.gateway import GatewayError


PALETTE_PAYLOAD = [
    {"Id": 1, "Code": "1801", "Name": "1801 - White", "Red": 255, "Green": 255, "Blue": 255},
    {"Id": 2, "Code": "1800", "Name": "1800 - Black", "Red": 0, "Green": 0, "Blue": 0},
    {"Id": 3, "Code": "1842", "Name": "1842 - Royal Blue", "Red": 0, "Green": 56, "Blue": 168},
    {"Id": 4, "Code": 1839, "Name": "1839 - Red", "Red": 200, "Green": 16, "Blue": 46},
]

FONTS_PAYLOAD = [
    {"Id": 10, "FontName": "Block", "Tags": "Embroidery, Print", "PreviewImageURL": "{{AssetHost}}/fonts/block.png"},
    {"Id": 11, "FontName": "Script", "Tags": "Embroidery"},
    {"Id": 12, "FontName": "Times New Roman", "Tags": "Embroidery"},
    {"Id": 13, "FontName": "Arial", "Tags": "Print"},
]

TEMPLATES_PAYLOAD = [
    {
        "Code": "PYG-TWO",
        "Name": "Two Line Classic",
        "OrderType": "Embroidery",
        "Elements": [
            {"ElementName": "Bottom", "Text": "LINE TWO"},
            {
                "ElementName": "Top",
                "Text": "LINE ONE",
                "FontOverride": "block-regular.ttf",
                "TextColour": "1842 - Royal Blue",
            },
            {"ElementName": "Design"},
        ],
    },
    {
        "Code": "PYG-DESIGN",
        "Name": "Logo Only",
        "Elements": [{"ElementName": "Design"}],
    },
    {
        "Code": "PYG-MONO",
        "Name": "Three Line Monogram",
        "TextLineCount": "3",
        "DefaultFont": "SCRIPT",
        "DefaultColour": "Black",
    },
    {"Code": "STOCK-1", "Name": "Stock Layout", "Elements": [{"ElementName": "Line1", "Text": "X"}]},
]

DESIGNS_PAYLOAD = [
    {"Id": "d1", "Name": "Crossed Clubs", "PreviewURL": "{{AssetHost}}/designs/clubs.png"},
    {"Id": "d2", "Name": "Golf Ball"},
]


@pytest.fixture
def palette() -> list[PaletteEntry]:
    return [PaletteEntry.model_validate(raw) for raw in PALETTE_PAYLOAD]


@pytest.fixture
def fonts() -> list[FontCatalogEntry]:
    return [FontCatalogEntry.model_validate(raw) for raw in FONTS_PAYLOAD]


@pytest.fixture
def templates() -> list[Template]:
    return [Template.model_validate(raw) for raw in TEMPLATES_PAYLOAD]


@pytest.fixture
def two_line_template(templates) -> Template:
    return templates[0]


@pytest.fixture
def designs() -> list[Design]:
    return [Design.model_validate(raw) for raw in DESIGNS_PAYLOAD]


class FakeGateway:
    """Stands in for PulseGateway, counting calls per catalog."""

    def __init__(self, fail: set[str] | None = None):
        self.fail = fail or set()
        self.calls: dict[str, int] = {}
        self.fetched: list[str] = []

    def _call(self, name, value):
        self.calls[name] = self.calls.get(name, 0) + 1
        return None if name in self.fail else value

    def get_product(self, variant_id):
        return self._call(
            "product",
            Product(code="BAG-01", preview_image="https://cdn.test/bag.png"),
        )

    def get_fonts(self):
        return self._call(
            "fonts", [FontCatalogEntry.model_validate(f) for f in FONTS_PAYLOAD]
        )

    def get_colours(self):
        return self._call(
            "colours", [PaletteEntry.model_validate(c) for c in PALETTE_PAYLOAD]
        )

    def list_templates(self):
        return self._call(
            "templates", [Template.model_validate(t) for t in TEMPLATES_PAYLOAD]
        )

    def get_designs(self):
        return self._call("designs", [Design.model_validate(d) for d in DESIGNS_PAYLOAD])

    def get_template_thumbnail(self, code):
        return self._call("thumbnail", f"https://cdn.test/thumbs/{code}.png")

    def render_url(self, request):
        return f"https://render.test/render?{urlencode(request.to_query_params())}"

    def fetch_image(self, url):
        self.fetched.append(url)
        if "fetch" in self.fail:
            raise GatewayError("boom", url=url)
        return b"png"

