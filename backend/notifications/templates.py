"""
Template registry for push notifications.

The catalog is built once at startup and never mutated afterwards, so it can
be shared between scheduler threads without locking.
"""

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from config.notification_catalog import TEMPLATES
from models.notification import Template
from notifications.errors import ConfigurationError

PLACEHOLDER_PATTERN = re.compile(r"\$\{(\w+)\}")


def interpolate(text: str, context: Mapping[str, Any]) -> str:
    """
    Replace every ${key} token with str(context[key]).

    Tokens whose key is missing (or None) are left as-is, e.g.
    interpolate("Hi ${name}", {}) returns "Hi ${name}".
    """

    def _replace(match: re.Match[str]) -> str:
        value = context.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, text)


class TemplateRegistry:
    """Read-only catalog of notification templates keyed by id."""

    def __init__(self, templates: Iterable[Template]):
        catalog: dict[str, Template] = {}
        for template in templates:
            if template.id in catalog:
                raise ConfigurationError(f"Duplicate template id: {template.id}")
            catalog[template.id] = template
        self._templates = MappingProxyType(catalog)

    @classmethod
    def from_catalog(cls) -> "TemplateRegistry":
        """Build the registry from the built-in catalog."""
        return cls(Template(**entry) for entry in TEMPLATES)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def get_template(self, template_id: str) -> Template | None:
        return self._templates.get(template_id)

    def require_template(self, template_id: str) -> Template:
        """Like get_template() but raises ConfigurationError for unknown ids."""
        template = self._templates.get(template_id)
        if template is None:
            raise ConfigurationError(f"Template {template_id} not found")
        return template

    def all_templates(self) -> list[Template]:
        return list(self._templates.values())

    def render(self, template: Template, context: Mapping[str, Any]) -> tuple[str, str]:
        """Return the interpolated (title, body) for a template."""
        return interpolate(template.title, context), interpolate(template.body, context)
