"""Per-model slug configuration and project-wide defaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.conf import settings

DEFAULTS = {
    "MATCH_PATTERN": r"\W+",
    "REPLACEMENT": "-",
    "SEPARATOR": "-",
    "FALLBACK": "item",
    "MAX_ATTEMPTS": 5,
}


def get_default(key: str):
    """Return a project-wide default, honouring ``settings.SLUGS`` overrides."""
    overrides = getattr(settings, "SLUGS", None) or {}
    return overrides.get(key, DEFAULTS[key])


@dataclass(frozen=True)
class SlugOptions:
    """How one model builds its slug.

    Declared as the ``slug_options`` class attribute of a ``SluggedModel``.
    Options left as ``None`` are filled in from ``settings.SLUGS`` when the
    model's template is first compiled.
    """

    template: Optional[str] = None
    primary_field: str = "name"
    slug_field: str = "slug"
    scope: Optional[str] = None
    permanent: bool = False
    match_pattern: Optional[str] = None
    replacement: Optional[str] = None
    separator: Optional[str] = None
    fallback: Optional[str] = None
    max_attempts: Optional[int] = None

    def template_source(self) -> str:
        if self.template is not None:
            return self.template
        return "{%s}" % self.primary_field
