"""Assign slugs to catalog rows that do not have one.

Rows written with ``bulk_create()`` or raw SQL skip ``save()`` and so never
get a slug. This command saves each of them through the normal lifecycle.
With ``--regenerate`` every non-permanent row is recomposed as well.
"""

from __future__ import annotations

import logging

from django.apps import apps
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.db.models import Q

from apps.slugs.checks import slugged_models
from apps.slugs.lifecycle import compose_slug, get_config
from apps.slugs.storage import DjangoSlugStorage

logger = logging.getLogger(__name__)


class PreviewStorage(DjangoSlugStorage):
    """Slug storage for ``--dry-run``.

    Slugs previewed earlier in the run count as taken and replace whatever
    those rows currently hold, so the preview numbers rows the way a real
    run would.
    """

    def __init__(self):
        self.previewed = {}

    def remember(self, config, record, slug):
        scope_value = None
        if config.scope_field is not None:
            scope_value = getattr(record, config.scope_field.attname)
        self.previewed[record.pk] = (scope_value, slug)

    def find_slugs_matching(
        self, config, base, scope_value=None, exclude_pk=None, deadline=None
    ):
        if deadline is not None:
            deadline.check(base)
        qs = self.family(config, base, scope_value, exclude_pk)
        slugs = list(
            qs.exclude(pk__in=list(self.previewed)).values_list(
                config.slug_field.name, flat=True
            )
        )
        prefix = base + config.separator
        for pk, (scope, slug) in self.previewed.items():
            if pk == exclude_pk or scope != scope_value:
                continue
            if slug == base or slug.startswith(prefix):
                slugs.append(slug)
        return slugs


class Command(BaseCommand):
    help = "Generate slugs for rows with an empty slug column."

    def add_arguments(self, parser):
        parser.add_argument(
            "models",
            nargs="*",
            help="Model labels to process, e.g. catalog.Person (default: all).",
        )
        parser.add_argument(
            "--regenerate",
            action="store_true",
            help="Also recompose existing slugs on non-permanent models.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would change without writing.",
        )

    def handle(self, *args, **options):
        models = self._select_models(options["models"])
        total = 0
        for model in models:
            count = self._backfill(model, options["regenerate"], options["dry_run"])
            total += count
            self.stdout.write(f"  {model._meta.label}: {count} updated")

        verb = "would be updated" if options["dry_run"] else "updated"
        self.stdout.write(self.style.SUCCESS(f"Slug backfill complete: {total} {verb}."))

    def _select_models(self, labels):
        if not labels:
            return slugged_models()
        available = set(slugged_models())
        selected = []
        for label in labels:
            try:
                model = apps.get_model(label)
            except (LookupError, ValueError):
                raise CommandError(f"Unknown model {label!r}") from None
            if model not in available:
                raise CommandError(f"{label} does not generate slugs")
            selected.append(model)
        return selected

    def _backfill(self, model, regenerate: bool, dry_run: bool) -> int:
        config = get_config(model)
        slug_name = config.slug_field.name
        qs = model._default_manager.order_by("pk")
        if not (regenerate and not config.permanent):
            qs = qs.filter(Q(**{slug_name: ""}) | Q(**{f"{slug_name}__isnull": True}))

        preview = PreviewStorage()
        updated = 0
        for obj in list(qs):
            current = getattr(obj, slug_name)
            if current:
                # Blank it so the lifecycle treats the row as unassigned.
                setattr(obj, slug_name, "")
            if dry_run:
                new_slug = compose_slug(obj, storage=preview)
                preview.remember(config, obj, new_slug)
                setattr(obj, slug_name, current)
                if new_slug != current:
                    self.stdout.write(f"    {obj.pk}: {current!r} -> {new_slug!r}")
                    updated += 1
                continue
            with transaction.atomic():
                obj.save(update_fields=[slug_name])
            new_slug = getattr(obj, slug_name)
            if new_slug != current:
                logger.info(
                    "Backfilled %s %s slug %r", model._meta.label, obj.pk, new_slug
                )
                updated += 1
        return updated
