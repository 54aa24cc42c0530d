"""The storage boundary: reading fields, finding taken slugs, writing records.

``SlugStorage`` describes what the engine needs from persistence.
``DjangoSlugStorage`` is the ORM-backed implementation every ``SluggedModel``
uses unless a different one is passed in.
"""

from __future__ import annotations

import re
import threading
import time
from typing import Callable, Optional

from django.core.exceptions import ObjectDoesNotExist
from django.db import IntegrityError, transaction
from django.db.models import Q

from .exceptions import Cancelled, UniquenessViolation, UnresolvableField
from .template import FieldRef, SlugConfig

_SQLITE_FAILED_RE = re.compile(r"UNIQUE constraint failed: ([^\n]+)")
_PG_KEY_RE = re.compile(r"Key \(([^)]*)\)=")
_PG_CONSTRAINT_RE = re.compile(r'unique constraint "([^"]+)"', re.IGNORECASE)
_MYSQL_KEY_RE = re.compile(r"for key '([^']+)'")


class Deadline:
    """Caller-supplied cancellation signal.

    Fires when ``timeout`` seconds have elapsed (monotonic clock) or when
    ``event`` is set, whichever comes first. Either may be omitted.
    """

    def __init__(
        self, timeout: Optional[float] = None, event: Optional[threading.Event] = None
    ) -> None:
        self.expires_at = None if timeout is None else time.monotonic() + timeout
        self.event = event

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(self.expires_at - time.monotonic(), 0.0)

    def expired(self) -> bool:
        if self.event is not None and self.event.is_set():
            return True
        return self.expires_at is not None and time.monotonic() >= self.expires_at

    def check(self, slug: str = "") -> None:
        """Raise ``Cancelled`` if the deadline has fired."""
        if self.expired():
            raise Cancelled("Deadline reached while resolving slug", slug=slug)


class SlugStorage:
    """Persistence operations the slug engine depends on."""

    def read_field(self, config: SlugConfig, record, ref: FieldRef) -> str:
        raise NotImplementedError

    def find_slugs_matching(
        self,
        config: SlugConfig,
        base: str,
        scope_value=None,
        exclude_pk=None,
        deadline: Optional[Deadline] = None,
    ) -> list[str]:
        """Return stored slugs equal to ``base`` or starting with ``base + separator``.

        May over-match (e.g. case-insensitive backends); the resolver filters.
        """
        raise NotImplementedError

    def persist(self, config: SlugConfig, record, save: Callable[[], None]) -> None:
        """Run ``save``; raise ``UniquenessViolation`` if the slug was taken."""
        raise NotImplementedError


class DjangoSlugStorage(SlugStorage):
    def read_field(self, config: SlugConfig, record, ref: FieldRef) -> str:
        value = record
        for attr in ref.path:
            if value is None:
                return ""
            try:
                value = getattr(value, attr)
            except ObjectDoesNotExist:
                return ""
            except AttributeError:
                raise UnresolvableField(config.label, ref.name) from None
        if value is None:
            return ""
        return str(value)

    def find_slugs_matching(
        self,
        config: SlugConfig,
        base: str,
        scope_value=None,
        exclude_pk=None,
        deadline: Optional[Deadline] = None,
    ) -> list[str]:
        if deadline is not None:
            deadline.check(base)
        qs = self.family(config, base, scope_value, exclude_pk)
        slugs = list(qs.values_list(config.slug_field.name, flat=True))
        if deadline is not None:
            deadline.check(base)
        return slugs

    def family(self, config: SlugConfig, base: str, scope_value=None, exclude_pk=None):
        """Queryset of rows whose slug is ``base`` or ``base + separator + ...``."""
        name = config.slug_field.name
        qs = config.query_model._base_manager.filter(
            Q(**{name: base}) | Q(**{f"{name}__startswith": base + config.separator})
        )
        if config.scope_field is not None:
            qs = qs.filter(**{config.scope_field.attname: scope_value})
        if exclude_pk is not None:
            qs = qs.exclude(pk=exclude_pk)
        return qs

    def persist(self, config: SlugConfig, record, save: Callable[[], None]) -> None:
        slug = getattr(record, config.slug_field.attname)
        try:
            # Savepoint, so a violation leaves any outer transaction usable.
            with transaction.atomic(using=record._state.db or None):
                save()
        except IntegrityError as exc:
            if self.is_uniqueness_violation(config, exc):
                raise UniquenessViolation(slug, exc) from exc
            raise

    def is_uniqueness_violation(self, config: SlugConfig, exc: IntegrityError) -> bool:
        """Whether ``exc`` reports a duplicate value in the slug column.

        Only the constraint name and the column list are inspected, never
        the duplicated value. psycopg exposes the constraint name directly;
        otherwise it is parsed from the backend's message (SQLite
        ``failed: table.column``, PostgreSQL ``constraint "name"`` and
        ``Key (columns)=``, MySQL ``for key 'name'``).
        """
        diag = getattr(exc.__cause__, "diag", None)
        constraint = getattr(diag, "constraint_name", None)
        if constraint:
            return self._is_slug_constraint(config, constraint)

        message = str(exc)
        match = _SQLITE_FAILED_RE.search(message)
        if match:
            return self._covers_slug(config, match.group(1).split(","))
        match = _PG_KEY_RE.search(message)
        if match:
            return self._covers_slug(config, match.group(1).split(","))
        match = _PG_CONSTRAINT_RE.search(message)
        if match:
            return self._is_slug_constraint(config, match.group(1))
        keys = _MYSQL_KEY_RE.findall(message)
        if keys:
            return self._is_slug_constraint(config, keys[-1]) or self._covers_slug(
                config, [keys[-1]]
            )
        return False

    def _covers_slug(self, config: SlugConfig, columns: list[str]) -> bool:
        names = {c.strip().strip("\"`'").rsplit(".", 1)[-1] for c in columns}
        return config.slug_field.column in names

    def _is_slug_constraint(self, config: SlugConfig, name: str) -> bool:
        if name in config.unique_constraint_names:
            return True
        # Names the database gives a single-column ``unique=True``:
        # PostgreSQL ``<table>_<column>_key``, Django ``<table>_<column>_<hash>_uniq``.
        table = config.slug_field.model._meta.db_table
        return name.startswith(f"{table}_{config.slug_field.column}_")
