"""People router: list, detail and manual slug correction."""

from __future__ import annotations

from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from ninja import Router, Schema
from ninja.errors import HttpError
from ninja.security import django_auth

from .schemas import SlugUpdateSchema


class PersonSchema(Schema):
    name: str
    slug: str


class PersonDetailSchema(Schema):
    name: str
    slug: str
    bio: str


people_router = Router(tags=["people"])


@people_router.get("/", response=list[PersonSchema])
def list_people(request):
    from ..models import Person

    return list(
        Person.objects.filter(slug__isnull=False)
        .order_by("name")
        .values("name", "slug")
    )


@people_router.get("/{slug}", response=PersonDetailSchema)
def get_person(request, slug: str):
    from ..models import Person

    return get_object_or_404(Person, slug=slug)


@people_router.put("/{slug}/slug", auth=django_auth, response=PersonDetailSchema)
def set_person_slug(request, slug: str, data: SlugUpdateSchema):
    """Replace a person's permanent slug. Staff only.

    The new value is stored as given; it is not sanitized or renumbered.
    """
    from ..models import Person

    if not request.user.is_staff:
        raise HttpError(403, "Only staff may change slugs.")
    new_slug = data.slug.strip()
    if not new_slug:
        raise HttpError(422, "Slug must not be empty.")

    person = get_object_or_404(Person, slug=slug)
    try:
        with transaction.atomic():
            person.set_slug(new_slug)
    except IntegrityError:
        raise HttpError(409, f"Slug {new_slug!r} is already in use.") from None
    return person
