"""Abstract base that wires slug generation into ``Model.save()``."""

from __future__ import annotations

from django.db import models

from . import lifecycle
from .options import SlugOptions


class SluggedModel(models.Model):
    """Abstract model whose slug column is maintained on every save.

    Concrete models declare the slug column themselves and describe how to
    build it with a ``slug_options`` class attribute::

        class Person(SluggedModel):
            name = models.CharField(max_length=200)
            slug = models.SlugField(max_length=200, unique=True, blank=True)

            slug_options = SlugOptions(permanent=True)

    ``save()`` accepts an optional ``deadline`` keyword (a
    ``apps.slugs.storage.Deadline``) that bounds slug resolution.
    """

    slug_options = SlugOptions()

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        lifecycle.mark_clean(instance)
        return instance

    def refresh_from_db(self, using=None, fields=None, **kwargs):
        super().refresh_from_db(using=using, fields=fields, **kwargs)
        lifecycle.mark_clean(self, fields=fields)

    def save(self, *args, **kwargs):
        deadline = kwargs.pop("deadline", None)
        config = lifecycle.get_config(self)
        before = getattr(self, config.slug_field.attname)

        def _save():
            update_fields = kwargs.get("update_fields")
            slug_name = config.slug_field.name
            if (
                update_fields is not None
                and slug_name not in update_fields
                and getattr(self, config.slug_field.attname) != before
            ):
                kwargs["update_fields"] = [*update_fields, slug_name]
            super(SluggedModel, self).save(*args, **kwargs)

        lifecycle.assign_slug_on_save(
            self, _save, deadline=deadline, update_fields=kwargs.get("update_fields")
        )

    def compose_slug(self, deadline=None) -> str:
        return lifecycle.compose_slug(self, deadline=deadline)

    def set_slug(self, value: str, commit: bool = True) -> None:
        lifecycle.set_slug(self, value, commit=commit)
