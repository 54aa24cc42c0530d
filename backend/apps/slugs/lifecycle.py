"""Slug lifecycle: when a record's slug is (re)generated, and how it is saved.

A record moves through three states on save:

- unassigned (empty slug): always compose and store a slug;
- assigned, not permanent: recompose only when a field the template reads
  has changed since the slug was last composed or loaded;
- assigned, permanent: never recompose. Only ``set_slug`` changes it.

Writes are optimistic. If another writer claims the same slug between the
uniqueness query and the insert, the storage layer reports a uniqueness
violation and the slug is resolved again, up to ``max_attempts`` times.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Optional

from django.db import models

from .exceptions import SlugConflictExhausted, UniquenessViolation
from .resolver import resolve_unique
from .storage import Deadline, DjangoSlugStorage, SlugStorage
from .template import SlugConfig, registry
from .text import compose_raw, sanitize, truncate

logger = logging.getLogger(__name__)

default_storage = DjangoSlugStorage()


def get_config(record_or_model) -> SlugConfig:
    model = record_or_model if isinstance(record_or_model, type) else type(record_or_model)
    return registry.get(model)


def base_slug(
    record,
    storage: Optional[SlugStorage] = None,
    config: Optional[SlugConfig] = None,
) -> str:
    """Composed, sanitized and truncated slug, before uniqueness resolution.

    Room is left for a separator and a one-digit index, so the first
    collisions number the same base. Longer indexes make the resolver cut
    the base again.
    """
    config = config or get_config(record)
    storage = storage or default_storage
    raw = compose_raw(config.segments, record, partial(storage.read_field, config))
    base = (
        sanitize(raw, config.pattern, config.replacement, config.separator)
        or config.fallback
    )
    return truncate(
        base,
        config.max_length,
        len(config.separator) + 1,
        trim=(config.separator, config.replacement),
    )


def compose_slug(
    record,
    storage: Optional[SlugStorage] = None,
    deadline: Optional[Deadline] = None,
) -> str:
    """Return the slug ``record`` would receive if saved now. Writes nothing."""
    config = get_config(record)
    storage = storage or default_storage
    base = base_slug(record, storage, config)
    return resolve_unique(config, base, record, storage, deadline=deadline)


# ---------------------------------------------------------------------------
# Change tracking
# ---------------------------------------------------------------------------


def snapshot(record, config: Optional[SlugConfig] = None) -> dict[str, object]:
    """Current values of the top-level attributes the template reads.

    Deferred (not yet loaded) fields are left out rather than fetched.
    """
    config = config or get_config(record)
    concrete = {f.attname for f in config.model._meta.concrete_fields}
    values = {}
    for attname in config.watched_attnames:
        if attname in concrete:
            if attname in record.__dict__:
                values[attname] = record.__dict__[attname]
        else:
            values[attname] = getattr(record, attname, None)
    return values


def mark_clean(record, config: Optional[SlugConfig] = None, fields=None) -> None:
    """Record the current template values as the last-composed state.

    With ``fields``, only those attributes are refreshed (a deferred field
    being loaded must not hide pending edits to the others).
    """
    config = config or get_config(record)
    current = snapshot(record, config)
    previous = getattr(record, "_slug_snapshot", None)
    if fields is None:
        record._slug_snapshot = current
        return
    if previous is None:
        return
    refreshed = _attnames(config, fields)
    record._slug_snapshot = {
        **previous,
        **{k: v for k, v in current.items() if k in refreshed},
    }


def _attnames(config: SlugConfig, fields) -> set[str]:
    opts = config.model._meta
    return {opts.get_field(name).attname for name in fields}


def fields_changed(record, config: Optional[SlugConfig] = None, fields=None) -> bool:
    """Whether any template field differs from the last snapshot.

    With ``fields``, only watched attributes among them are compared.
    """
    config = config or get_config(record)
    previous = getattr(record, "_slug_snapshot", None)
    if previous is None:
        return True
    current = snapshot(record, config)
    if fields is not None:
        written = _attnames(config, fields)
        current = {k: v for k, v in current.items() if k in written}
        previous = {k: v for k, v in previous.items() if k in written}
    return current != previous


def should_compose(record, config: SlugConfig, update_fields=None) -> bool:
    if getattr(record, "_slug_explicit", False):
        return False
    if not getattr(record, config.slug_field.attname):
        return True
    if config.permanent:
        return False
    if getattr(record, "_slug_snapshot", None) is None:
        # Never loaded or composed: the slug was supplied by the caller.
        return False
    return fields_changed(record, config, update_fields)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def assign_slug_on_save(
    record,
    save: Callable[[], None],
    storage: Optional[SlugStorage] = None,
    deadline: Optional[Deadline] = None,
    update_fields=None,
) -> None:
    """Compose a slug if the record needs one, then run ``save``.

    ``update_fields`` is the column list ``save`` will write, if limited;
    edits to template fields outside it neither trigger recomposition nor
    count as clean afterwards.

    On any failure the record's slug attribute is put back to what it was
    before the call, so an unsaved slug never lingers on the instance.
    """
    config = get_config(record)
    storage = storage or default_storage
    attname = config.slug_field.attname
    previous = getattr(record, attname)

    if not should_compose(record, config, update_fields):
        if deadline is not None:
            deadline.check(previous)
        save()
        record._slug_explicit = False
        mark_clean(record, config, fields=update_fields)
        return

    slug = previous
    try:
        for attempt in range(1, config.max_attempts + 1):
            if deadline is not None:
                deadline.check(previous)
            slug = compose_slug(record, storage, deadline=deadline)
            setattr(record, attname, slug)
            try:
                storage.persist(config, record, save)
            except UniquenessViolation:
                logger.warning(
                    "Slug %r for %s was claimed concurrently (attempt %d of %d)",
                    slug,
                    config.label,
                    attempt,
                    config.max_attempts,
                )
                continue
            break
        else:
            raise SlugConflictExhausted(config.label, slug, config.max_attempts)
    except Exception:
        setattr(record, attname, previous)
        raise

    if previous and slug != previous:
        logger.info("Regenerated %s slug %r -> %r", config.label, previous, slug)
    mark_clean(record, config, fields=update_fields)


def set_slug(record: models.Model, value: str, commit: bool = True) -> None:
    """Assign ``value`` verbatim, skipping sanitization and uniqueness checks.

    The only way to change a permanent slug. With ``commit`` and a record
    that already exists, only the slug column is written.
    """
    config = get_config(record)
    attname = config.slug_field.attname
    previous = getattr(record, attname)
    setattr(record, attname, value)
    record._slug_explicit = True
    if commit and not record._state.adding:
        try:
            record.save(update_fields=[config.slug_field.name])
        except Exception:
            setattr(record, attname, previous)
            record._slug_explicit = False
            raise
