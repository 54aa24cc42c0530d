"""Errors raised by the slug engine.

Configuration mistakes (a broken template, a template naming a field the
record does not have) subclass ``ImproperlyConfigured`` so they surface the
same way any other Django misconfiguration does. Runtime conditions that a
caller may retry (``SlugConflictExhausted``) or that the caller asked for
(``Cancelled``) do not.
"""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured


class SlugError(Exception):
    """Base class for every error the slug engine raises."""


class MalformedTemplate(SlugError, ImproperlyConfigured):
    """A slug template has unbalanced or empty ``{}`` placeholders."""

    def __init__(self, template: str, position: int, reason: str) -> None:
        super().__init__(f"{reason} at position {position} in slug template {template!r}")
        self.template = template
        self.position = position
        self.reason = reason


class UnresolvableField(SlugError, ImproperlyConfigured):
    """A template placeholder names a field that cannot be read from the record."""

    def __init__(self, model_label: str, field_name: str) -> None:
        super().__init__(
            f"Slug template for {model_label} references {field_name!r}, "
            "which cannot be read from the record."
        )
        self.model_label = model_label
        self.field_name = field_name


class SlugConflictExhausted(SlugError):
    """Concurrent writers kept claiming the computed slug; the save gave up.

    The whole save may be retried by the caller.
    """

    def __init__(self, model_label: str, slug: str, attempts: int) -> None:
        super().__init__(
            f"Could not persist a unique slug for {model_label} after "
            f"{attempts} attempts (last candidate {slug!r})."
        )
        self.model_label = model_label
        self.slug = slug
        self.attempts = attempts


class Cancelled(SlugError):
    """The caller's deadline fired while a slug was being resolved."""

    def __init__(self, message: str = "Slug resolution cancelled", slug: str = "") -> None:
        super().__init__(message)
        self.slug = slug


class UniquenessViolation(SlugError):
    """The storage layer rejected a write because the slug is already taken.

    Internal to the engine: the lifecycle controller converts repeated
    violations into ``SlugConflictExhausted``.
    """

    def __init__(self, slug: str, original: Exception) -> None:
        super().__init__(f"Slug {slug!r} is already taken")
        self.slug = slug
        self.original = original
