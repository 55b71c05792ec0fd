import json
from urllib.parse import parse_qsl, urlsplit

import pytest
import requests

from common import global_config
from src.services.designer.models import PersonalizationEntry, RenderRequest
from src.services.pulse.gateway import GatewayError, PulseGateway, resolve_asset_url
from tests.test_template import TestTemplate
from tests.unit.designer.conftest import (
    DESIGNS_PAYLOAD,
    FONTS_PAYLOAD,
    PALETTE_PAYLOAD,
    TEMPLATES_PAYLOAD,
)

ASSET_HOST = "https://assets.test"


def make_response(
    body=None, status_code: int = 200, content_type: str = "application/json", raw=None
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.headers["Content-Type"] = content_type
    response._content = raw if raw is not None else json.dumps(body).encode()
    response.url = "https://upstream.test"
    return response


class FakeHttpSession:
    """Records GETs and answers from a path -> response table."""

    def __init__(self, responses: dict):
        self.responses = responses
        self.requests: list[dict] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append(
            {"url": url, "params": params, "headers": headers, "timeout": timeout}
        )
        for suffix, response in self.responses.items():
            if urlsplit(url).path.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        raise requests.ConnectionError(f"no route for {url}")


@pytest.fixture
def pulse_config():
    return global_config.pulse.model_copy(update={"asset_host": ASSET_HOST})


def make_gateway(pulse_config, responses: dict) -> tuple[PulseGateway, FakeHttpSession]:
    http = FakeHttpSession(responses)
    return PulseGateway(pulse_config=pulse_config, session=http), http


class TestResolveAssetUrl(TestTemplate):
    def test_placeholder_replaced(self, pulse_config):
        resolved = resolve_asset_url("{{AssetHost}}/fonts/block.png", pulse_config)

        assert resolved == "https://assets.test/fonts/block.png"

    def test_other_values_untouched(self, pulse_config):
        assert resolve_asset_url("https://cdn.test/a.png", pulse_config) == "https://cdn.test/a.png"
        assert resolve_asset_url(None, pulse_config) is None
        assert resolve_asset_url("", pulse_config) == ""


class TestPulseGatewayCatalogs(TestTemplate):
    def test_requests_carry_identity_headers(self, pulse_config):
        gateway, http = make_gateway(pulse_config, {"/Colours/GetColours": make_response([])})

        gateway.get_colours()

        headers = http.requests[0]["headers"]
        assert headers["company"] == pulse_config.company
        assert "apiKey" in headers
        assert headers["Content-Type"] == "application/json"
        assert http.requests[0]["url"].endswith(pulse_config.endpoints.colours)

    def test_fonts_resolve_asset_host(self, pulse_config):
        gateway, _ = make_gateway(pulse_config, {"/Fonts/Get": make_response(FONTS_PAYLOAD)})

        fonts = gateway.get_fonts()

        assert [f.font_name for f in fonts] == ["Block", "Script", "Times New Roman", "Arial"]
        assert fonts[0].preview_asset == "https://assets.test/fonts/block.png"

    def test_malformed_entries_are_skipped(self, pulse_config):
        payload = PALETTE_PAYLOAD + [{"Code": "9999", "Name": "No channels"}]
        gateway, _ = make_gateway(
            pulse_config, {"/Colours/GetColours": make_response(payload)}
        )

        colours = gateway.get_colours()

        assert len(colours) == len(PALETTE_PAYLOAD)
        assert colours[3].code == "1839"

    def test_product_by_variant(self, pulse_config):
        body = {"ProductCode": "BAG-01", "ProductPreviewURL": "{{AssetHost}}/bag.png"}
        gateway, http = make_gateway(
            pulse_config, {"/Designer/GetProduct": make_response(body)}
        )

        product = gateway.get_product("4411")

        assert product.code == "BAG-01"
        assert product.preview_image == "https://assets.test/bag.png"
        assert http.requests[0]["params"] == {"variantId": "4411"}

    def test_templates_and_designs(self, pulse_config):
        gateway, _ = make_gateway(
            pulse_config,
            {
                "/Templates/GetTemplates": make_response({"Templates": TEMPLATES_PAYLOAD}),
                "/Designs/GetDesigns": make_response(DESIGNS_PAYLOAD),
            },
        )

        assert [t.code for t in gateway.list_templates()] == [
            "PYG-TWO",
            "PYG-DESIGN",
            "PYG-MONO",
            "STOCK-1",
        ]
        designs = gateway.get_designs()
        assert designs[0].preview_asset == "https://assets.test/designs/clubs.png"

    def test_thumbnail_accepts_string_or_object(self, pulse_config):
        gateway, _ = make_gateway(
            pulse_config,
            {"/Templates/GetThumbnail": make_response({"ThumbnailURL": "{{AssetHost}}/t.png"})},
        )
        assert gateway.get_template_thumbnail("PYG-TWO") == "https://assets.test/t.png"

        gateway, _ = make_gateway(
            pulse_config, {"/Templates/GetThumbnail": make_response("https://cdn.test/t.png")}
        )
        assert gateway.get_template_thumbnail("PYG-TWO") == "https://cdn.test/t.png"

    def test_failures_return_none(self, pulse_config):
        gateway, _ = make_gateway(
            pulse_config,
            {
                "/Fonts/Get": make_response({"error": "down"}, status_code=503),
                "/Colours/GetColours": make_response(raw=b"<html>", content_type="text/html"),
                "/Designs/GetDesigns": make_response({"not": "a list"}),
            },
        )

        assert gateway.get_fonts() is None
        assert gateway.get_colours() is None
        assert gateway.get_designs() is None
        assert gateway.list_templates() is None


class TestPulseGatewayRender(TestTemplate):
    def _request(self) -> RenderRequest:
        return RenderRequest(
            product_code="BAG-01",
            template_code="PYG-TWO",
            order_type="Embroidery",
            background_colour="#00FFFFFF",
            render_on_product=True,
            dpi=96,
            personalizations=(
                PersonalizationEntry(
                    element_name="Top",
                    text="A & B",
                    is_text=True,
                    text_colour_code="1842 - Royal Blue",
                    font_override="Block",
                ),
            ),
        )

    def test_render_url_encodes_parameters(self, pulse_config):
        gateway, _ = make_gateway(pulse_config, {})

        url = gateway.render_url(self._request())

        parts = urlsplit(url)
        assert url.startswith(gateway.url_for("render") + "?")
        params = parse_qsl(parts.query)
        assert params[0] == ("ProductCode", "BAG-01")
        assert ("BackgroundColour", "#00FFFFFF") in params
        assert ("Personalizations[0].Text", "A & B") in params
        assert "%23" in parts.query

    def test_fetch_image_returns_bytes(self, pulse_config):
        gateway, _ = make_gateway(
            pulse_config,
            {"/Designer/Render": make_response(raw=b"\x89PNG", content_type="image/png")},
        )

        assert gateway.render(self._request()) == b"\x89PNG"

    def test_fetch_image_rejects_non_images(self, pulse_config):
        gateway, _ = make_gateway(
            pulse_config,
            {"/Designer/Render": make_response({"error": "bad"}, content_type="application/json")},
        )

        with pytest.raises(GatewayError) as exc_info:
            gateway.render(self._request())
        assert exc_info.value.status_code == 200

    def test_fetch_image_wraps_http_errors(self, pulse_config):
        gateway, _ = make_gateway(
            pulse_config,
            {"/Designer/Render": make_response(raw=b"", status_code=500)},
        )

        with pytest.raises(GatewayError) as exc_info:
            gateway.render(self._request())
        assert exc_info.value.status_code == 500
        assert exc_info.value.url.startswith(gateway.url_for("render"))
