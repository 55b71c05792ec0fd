"""Client for the upstream personalization (Pulse) API."""

from typing import Any, List, Optional
from urllib.parse import urlencode

import requests
from loguru import logger as log
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from requests.exceptions import RequestException
from urllib3.util.retry import Retry

from common import global_config
from common.config_models import PulseConfig
from src.services.designer.models import (
    Design,
    FontCatalogEntry,
    PaletteEntry,
    Product,
    RenderRequest,
    Template,
)
from src.services.designer.templates.loader import parse_templates
from src.utils.logging_config import setup_logging

setup_logging()


class GatewayError(Exception):
    """Transport or payload failure talking to the upstream API."""

    def __init__(self, message: str, url: str = "", status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def resolve_asset_url(
    asset_ref: Optional[str], pulse_config: Optional[PulseConfig] = None
) -> Optional[str]:
    """Replace the upstream placeholder host token with the real asset host."""
    if not asset_ref:
        return asset_ref
    pulse_config = pulse_config or global_config.pulse
    placeholder = pulse_config.asset_host_placeholder
    if placeholder and placeholder in asset_ref:
        return asset_ref.replace(placeholder, pulse_config.asset_host.rstrip("/"))
    return asset_ref


class PulseGateway:
    """Pulse API wrapper for catalog fetches and preview renders.

    Catalog methods never raise: failures are logged and reported as None so
    callers keep whatever they already have. `fetch_image` raises
    GatewayError because the preview pipeline needs to know a load failed.
    """

    def __init__(
        self,
        pulse_config: Optional[PulseConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = pulse_config or global_config.pulse
        self.headers = {
            "apiKey": global_config.PULSE_API_KEY,
            "company": self.config.company,
            "Content-Type": "application/json",
        }
        self.timeout = (
            self.config.timeout.connect_timeout_seconds,
            self.config.timeout.read_timeout_seconds,
        )
        self.session = session or self._build_session()

    def _build_session(self) -> requests.Session:
        retry = Retry(
            total=self.config.retry.max_attempts,
            backoff_factor=self.config.retry.backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET"}),
        )
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def url_for(self, endpoint_name: str) -> str:
        path = getattr(self.config.endpoints, endpoint_name)
        return f"{self.config.api_base_url.rstrip('/')}/{path.lstrip('/')}"

    def _get_json(self, endpoint_name: str, **params: Any) -> Any:
        """
        GET an endpoint and decode its JSON body.

        Returns:
            The decoded body, or None on transport or parse failure.
        """
        url = self.url_for(endpoint_name)
        try:
            response = self.session.get(
                url, params=params or None, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            log.error(f"Error fetching {endpoint_name} from {url}: {str(e)}")
            return None
        except ValueError as e:
            log.error(f"Unparsable {endpoint_name} response from {url}: {str(e)}")
            return None

    def get_product(self, variant_id: str) -> Optional[Product]:
        data = self._get_json("product", variantId=variant_id)
        if data is None:
            return None
        try:
            product = Product.model_validate(data)
        except ValidationError as e:
            log.error(f"Malformed product for variant {variant_id}: {str(e)}")
            return None
        return product.model_copy(
            update={"preview_image": resolve_asset_url(product.preview_image, self.config)}
        )

    def get_fonts(self) -> Optional[List[FontCatalogEntry]]:
        data = self._get_json("fonts")
        fonts = self._validate_list(data, FontCatalogEntry, "fonts")
        if fonts is None:
            return None
        return [
            font.model_copy(
                update={"preview_asset": resolve_asset_url(font.preview_asset, self.config)}
            )
            for font in fonts
        ]

    def get_colours(self) -> Optional[List[PaletteEntry]]:
        return self._validate_list(self._get_json("colours"), PaletteEntry, "colours")

    def list_templates(self) -> Optional[List[Template]]:
        data = self._get_json("templates")
        if data is None:
            return None
        return parse_templates(data)

    def get_template_thumbnail(self, code: str) -> Optional[str]:
        data = self._get_json("template_thumbnail", code=code)
        if data is None:
            return None
        if isinstance(data, dict):
            data = data.get("ThumbnailURL") or data.get("Url") or data.get("url")
        if not isinstance(data, str) or not data:
            log.warning(f"No thumbnail returned for template {code}")
            return None
        return resolve_asset_url(data, self.config)

    def get_designs(self) -> Optional[List[Design]]:
        data = self._get_json("designs")
        designs = self._validate_list(data, Design, "designs")
        if designs is None:
            return None
        return [
            design.model_copy(
                update={"preview_asset": resolve_asset_url(design.preview_asset, self.config)}
            )
            for design in designs
        ]

    def render_url(self, request: RenderRequest) -> str:
        """Serialize a render request into the upstream image URL."""
        return f"{self.url_for('render')}?{urlencode(request.to_query_params())}"

    def render(self, request: RenderRequest) -> bytes:
        return self.fetch_image(self.render_url(request))

    def fetch_image(self, url: str) -> bytes:
        """
        Download an image.

        Raises:
            GatewayError: On transport failure, error status, or a body that
                is not an image.
        """
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
        except RequestException as e:
            status_code = getattr(getattr(e, "response", None), "status_code", None)
            raise GatewayError(
                f"Image request failed: {str(e)}", url=url, status_code=status_code
            ) from e

        content_type = response.headers.get("Content-Type", "")
        if not content_type.startswith("image/") or not response.content:
            raise GatewayError(
                f"Expected an image, got {content_type or 'no content type'}",
                url=url,
                status_code=response.status_code,
            )
        return response.content

    @staticmethod
    def _validate_list(data: Any, model: type, label: str) -> Optional[list]:
        if data is None:
            return None
        if not isinstance(data, list):
            log.error(f"Expected a list of {label}, got {type(data).__name__}")
            return None
        items = []
        for raw in data:
            try:
                items.append(model.model_validate(raw))
            except ValidationError as e:
                log.warning(f"Skipping malformed {label} entry: {e.error_count()} errors")
        return items
