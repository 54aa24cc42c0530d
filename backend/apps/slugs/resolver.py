"""Pick the first free ``base``, ``base-N`` slug for a record."""

from __future__ import annotations

import logging
from typing import Optional

from django.core.exceptions import ImproperlyConfigured

from .storage import Deadline, SlugStorage
from .template import SlugConfig
from .text import truncate

logger = logging.getLogger(__name__)


def suffix_index(candidate: str, base: str, separator: str) -> Optional[int]:
    """Return 0 for the bare base, N for ``base + separator + N``, else None."""
    if candidate == base:
        return 0
    prefix = base + separator
    if not candidate.startswith(prefix):
        return None
    digits = candidate[len(prefix) :]
    if digits.isascii() and digits.isdigit():
        return int(digits)
    return None


def resolve_unique(
    config: SlugConfig,
    base: str,
    record,
    storage: SlugStorage,
    deadline: Optional[Deadline] = None,
) -> str:
    """Return ``base`` if free, otherwise ``base + separator + (highest index + 1)``.

    Gaps in the numbering are never backfilled. When the suffixed slug would
    not fit the column, the base is cut further and the search repeats
    against the shorter base, keeping the index at least as high as the one
    that did not fit.
    """
    separator = config.separator
    scope_value = None
    if config.scope_field is not None:
        scope_value = getattr(record, config.scope_field.attname)
    exclude_pk = None if record._state.adding else record.pk

    floor = 0
    while True:
        taken = storage.find_slugs_matching(
            config, base, scope_value, exclude_pk, deadline=deadline
        )
        indexes = [
            i
            for i in (suffix_index(slug, base, separator) for slug in taken)
            if i is not None
        ]
        if not indexes and not floor:
            return base

        next_index = max(max(indexes, default=0) + 1, floor)
        candidate = f"{base}{separator}{next_index}"
        if config.max_length is None or len(candidate) <= config.max_length:
            logger.debug(
                "Slug %r taken for %s; using %r", base, config.label, candidate
            )
            return candidate

        reserved = len(separator) + len(str(next_index))
        shorter = truncate(
            base, config.max_length, reserved, trim=(separator, config.replacement)
        )
        if not shorter:
            raise ImproperlyConfigured(
                f"{config.label}.{config.slug_field.name} (max_length="
                f"{config.max_length}) is too short to hold a suffixed slug."
            )
        base = shorter
        floor = next_index
