import json
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger as log
from pydantic import ValidationError

from src.services.designer.models import Template
from src.services.designer.templates.normalizer import (
    resolve_line_count,
    supports_design_slot,
)


def parse_templates(payload: Any) -> List[Template]:
    """Build templates from an upstream payload, skipping malformed entries."""
    if isinstance(payload, dict):
        # Some endpoints wrap the list: {"Templates": [...]}
        payload = payload.get("Templates", payload.get("templates", []))
    if not isinstance(payload, list):
        log.warning(f"Unexpected templates payload type: {type(payload).__name__}")
        return []

    templates = []
    for raw in payload:
        try:
            templates.append(Template.model_validate(raw))
        except ValidationError as e:
            log.warning(f"Skipping malformed template: {e.error_count()} errors")
    return templates


class TemplateLoader:
    def __init__(
        self,
        templates: Optional[List[Template]] = None,
        templates_file: Optional[Path] = None,
        prefix: Optional[str] = None,
    ):
        self.templates_file = templates_file
        self.prefix = prefix
        self.templates: List[Template] = []
        if templates is not None:
            self.templates = list(templates)
        elif templates_file is not None:
            self._load_templates()

        if prefix:
            self.templates = self.filter_templates(prefix=prefix)

    def _load_templates(self):
        if self.templates_file is None or not self.templates_file.exists():
            return

        with open(self.templates_file, "r") as f:
            self.templates = parse_templates(json.load(f))

    def get_template(self, code: str) -> Optional[Template]:
        for template in self.templates:
            if template.code == code:
                return template
        return None

    def list_templates(self) -> List[Template]:
        return self.templates

    def filter_templates(
        self,
        prefix: Optional[str] = None,
        line_count: Optional[int] = None,
        with_design_slot: Optional[bool] = None,
    ) -> List[Template]:
        filtered = self.templates

        if prefix:
            # Customizable templates share a naming prefix on code or name
            wanted = prefix.lower()
            filtered = [
                t
                for t in filtered
                if t.code.lower().startswith(wanted) or t.name.lower().startswith(wanted)
            ]

        if line_count is not None:
            filtered = [t for t in filtered if resolve_line_count(t) == line_count]

        if with_design_slot is not None:
            filtered = [
                t for t in filtered if supports_design_slot(t) == with_design_slot
            ]

        return filtered
