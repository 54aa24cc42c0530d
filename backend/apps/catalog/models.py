"""Pinball catalog models.

Every public record here is addressed by slug. Slugs are generated by
``apps.slugs`` on save; each model's ``slug_options`` says how.
"""

from __future__ import annotations

from django.db import models

from apps.slugs.models import SluggedModel
from apps.slugs.options import SlugOptions


class TimeStampedModel(models.Model):
    """Abstract base adding created_at / updated_at timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ---------------------------------------------------------------------------
# Manufacturer
# ---------------------------------------------------------------------------


class Manufacturer(SluggedModel, TimeStampedModel):
    """A pinball machine brand. Slug follows the name while it is edited."""

    name = models.CharField(max_length=200, unique=True)
    slug = models.SlugField(max_length=200, unique=True, null=True, blank=True)
    trade_name = models.CharField(
        max_length=200,
        blank=True,
        help_text='Brand name if different (e.g., "Bally" for Midway Manufacturing)',
    )

    slug_options = SlugOptions(fallback="manufacturer")

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        if self.trade_name and self.trade_name != self.name:
            return f"{self.trade_name} ({self.name})"
        return self.name


# ---------------------------------------------------------------------------
# MachineModel
# ---------------------------------------------------------------------------


class MachineModel(SluggedModel, TimeStampedModel):
    """A specific pinball machine.

    Slugs are unique per manufacturer: Williams and Stern may both have a
    ``black-knight-1980``-style slug, addressed under their own brand.
    """

    name = models.CharField(max_length=300)
    manufacturer = models.ForeignKey(
        Manufacturer,
        on_delete=models.CASCADE,
        related_name="models",
    )
    year = models.PositiveSmallIntegerField(null=True, blank=True)
    slug = models.SlugField(max_length=300, null=True, blank=True)

    slug_options = SlugOptions(
        template="{name} {year}", scope="manufacturer", fallback="model"
    )

    class Meta:
        ordering = ["name", "year"]
        constraints = [
            models.UniqueConstraint(
                fields=["manufacturer", "slug"],
                name="unique_model_slug_per_manufacturer",
            ),
        ]

    def __str__(self) -> str:
        if self.year:
            return f"{self.name} ({self.year})"
        return self.name


# ---------------------------------------------------------------------------
# Person
# ---------------------------------------------------------------------------


class Person(SluggedModel, TimeStampedModel):
    """A designer, artist or programmer.

    Person slugs are permanent: renaming someone keeps their public URL.
    """

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True, null=True, blank=True)
    bio = models.TextField(blank=True)

    slug_options = SlugOptions(permanent=True, fallback="person")

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "people"

    def __str__(self) -> str:
        return self.name


# ---------------------------------------------------------------------------
# Guide
# ---------------------------------------------------------------------------


class Guide(SluggedModel, TimeStampedModel):
    """A long-form article published under ``/guides/``.

    The slug is a path stored in ``path``; ``/`` separates its segments and
    its uniqueness suffix.
    """

    title = models.CharField(max_length=300)
    path = models.CharField(max_length=255, unique=True, null=True, blank=True)
    body = models.TextField(blank=True)

    slug_options = SlugOptions(
        template="/guides/{Title}",
        slug_field="path",
        separator="/",
        match_pattern=r"[^\w/]+",
        fallback="guide",
    )

    class Meta:
        ordering = ["title"]

    def __str__(self) -> str:
        return self.title
