"""Slug template compilation and the per-model compiled configuration cache.

A template such as ``"/guides/{title}"`` compiles to an ordered tuple of
``Literal`` and ``FieldRef`` segments. Each model class is compiled exactly
once, on first use, and the result is kept in ``registry`` for the life of
the process. Compiled configs are frozen, so concurrent readers need no lock.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from django.core.exceptions import FieldDoesNotExist, ImproperlyConfigured
from django.db import models

from .exceptions import MalformedTemplate
from .options import SlugOptions, get_default

logger = logging.getLogger(__name__)

_FIELD_NAME_RE = re.compile(r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*$")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class FieldRef:
    """A ``{name}`` placeholder.

    ``path`` holds the attribute names actually read from the record, bound
    against the model when the template is compiled. ``attname`` is the
    top-level attribute whose value is tracked for change detection.
    """

    name: str
    path: tuple[str, ...] = ()
    attname: str = ""


Segment = Union[Literal, FieldRef]


def parse_template(template: str) -> tuple[Segment, ...]:
    """Split a template into literal text and unbound field references.

    Raises ``MalformedTemplate`` for unbalanced braces, nested ``{`` and
    empty or non-identifier placeholder names.
    """
    segments: list[Segment] = []
    literal: list[str] = []
    i = 0
    while i < len(template):
        char = template[i]
        if char == "}":
            raise MalformedTemplate(template, i, "Unmatched '}'")
        if char != "{":
            literal.append(char)
            i += 1
            continue

        close = template.find("}", i + 1)
        if close == -1:
            raise MalformedTemplate(template, i, "Unclosed '{'")
        nested = template.find("{", i + 1, close)
        if nested != -1:
            raise MalformedTemplate(template, nested, "Nested '{'")
        name = template[i + 1 : close].strip()
        if not name:
            raise MalformedTemplate(template, i, "Empty placeholder")
        if not _FIELD_NAME_RE.match(name):
            raise MalformedTemplate(template, i, f"Invalid field name {name!r}")

        if literal:
            segments.append(Literal("".join(literal)))
            literal = []
        segments.append(FieldRef(name))
        i = close + 1

    if literal:
        segments.append(Literal("".join(literal)))
    return tuple(segments)


def _bind_first(model: type[models.Model], name: str) -> tuple[str, str]:
    """Return (attribute name, tracked attname) for the first path component."""
    try:
        f = model._meta.get_field(name)
    except FieldDoesNotExist:
        f = None
    if f is None and not hasattr(model, name):
        # Case-insensitive fallback so "{Title}" binds to ``title``.
        lowered = name.lower()
        for candidate in model._meta.get_fields():
            if candidate.name.lower() == lowered:
                f = candidate
                name = candidate.name
                break
    if f is not None and getattr(f, "concrete", False):
        return name, f.attname
    return name, name


def bind_template(
    model: type[models.Model], segments: tuple[Segment, ...]
) -> tuple[Segment, ...]:
    """Resolve each ``FieldRef`` against ``model`` into an attribute path.

    Names that match nothing on the model are left as written; reading them
    fails at composition time with ``UnresolvableField``.
    """
    bound: list[Segment] = []
    for segment in segments:
        if isinstance(segment, Literal):
            bound.append(segment)
            continue
        parts = segment.name.split(".")
        first, attname = _bind_first(model, parts[0])
        bound.append(FieldRef(segment.name, (first, *parts[1:]), attname))
    return tuple(bound)


@dataclass(frozen=True)
class SlugConfig:
    """Everything the engine needs to know about one model, resolved once."""

    model: type[models.Model]
    options: SlugOptions
    segments: tuple[Segment, ...]
    slug_field: models.Field
    scope_field: Optional[models.Field]
    pattern: re.Pattern
    replacement: str
    separator: str
    fallback: str
    max_attempts: int
    max_length: Optional[int] = None
    unique_constraint_names: frozenset[str] = field(default_factory=frozenset)

    @property
    def label(self) -> str:
        return self.model._meta.label

    @property
    def permanent(self) -> bool:
        return self.options.permanent

    @property
    def field_refs(self) -> tuple[FieldRef, ...]:
        return tuple(s for s in self.segments if isinstance(s, FieldRef))

    @property
    def watched_attnames(self) -> tuple[str, ...]:
        """Attributes whose change triggers recomposition (template fields and scope)."""
        names = [ref.attname for ref in self.field_refs]
        if self.scope_field is not None:
            names.append(self.scope_field.attname)
        return tuple(dict.fromkeys(names))

    @property
    def query_model(self) -> type[models.Model]:
        """The concrete model whose table holds the slug column."""
        return self.slug_field.model._meta.concrete_model


def _unique_constraint_names(model: type[models.Model], slug_name: str) -> frozenset[str]:
    names = set()
    for constraint in model._meta.constraints:
        if isinstance(constraint, models.UniqueConstraint) and slug_name in (
            constraint.fields or ()
        ):
            names.add(constraint.name)
    return frozenset(names)


def compile_config(model: type[models.Model]) -> SlugConfig:
    """Compile ``model.slug_options`` into a ``SlugConfig``.

    Raises ``MalformedTemplate`` for a broken template and
    ``ImproperlyConfigured`` when the slug or scope column does not exist.
    """
    options: SlugOptions = getattr(model, "slug_options", None) or SlugOptions()
    label = model._meta.label

    try:
        slug_field = model._meta.get_field(options.slug_field)
    except FieldDoesNotExist:
        raise ImproperlyConfigured(
            f"{label} has no slug column {options.slug_field!r}."
        ) from None

    scope_field = None
    if options.scope:
        try:
            scope_field = model._meta.get_field(options.scope)
        except FieldDoesNotExist:
            raise ImproperlyConfigured(
                f"{label} has no scope field {options.scope!r}."
            ) from None

    segments = bind_template(model, parse_template(options.template_source()))

    def opt(value, key):
        return get_default(key) if value is None else value

    config = SlugConfig(
        model=model,
        options=options,
        segments=segments,
        slug_field=slug_field,
        scope_field=scope_field,
        pattern=re.compile(opt(options.match_pattern, "MATCH_PATTERN")),
        replacement=opt(options.replacement, "REPLACEMENT"),
        separator=opt(options.separator, "SEPARATOR"),
        fallback=opt(options.fallback, "FALLBACK"),
        max_attempts=opt(options.max_attempts, "MAX_ATTEMPTS"),
        max_length=slug_field.max_length,
        unique_constraint_names=_unique_constraint_names(model, slug_field.name),
    )
    if not config.separator:
        raise ImproperlyConfigured(f"{label} slug separator must not be empty.")
    logger.debug("Compiled slug template for %s: %r", label, segments)
    return config


class SlugRegistry:
    """Process-wide cache of compiled slug configs, keyed by model class.

    Entries are created lazily and never replaced. Two threads racing to
    compile the same model produce equal configs; ``setdefault`` keeps
    whichever landed first.
    """

    def __init__(self) -> None:
        self._configs: dict[type[models.Model], SlugConfig] = {}

    def get(self, model: type[models.Model]) -> SlugConfig:
        config = self._configs.get(model)
        if config is None:
            config = self._configs.setdefault(model, compile_config(model))
        return config

    def __contains__(self, model: type[models.Model]) -> bool:
        return model in self._configs


registry = SlugRegistry()
