"""Integration tests for the backfill_slugs command."""

from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from apps.catalog.models import Manufacturer, Person


def _bulk_people(*names):
    # bulk_create skips save(), leaving the slug column empty.
    Person.objects.bulk_create([Person(name=n) for n in names])


@pytest.mark.django_db
class TestBackfillSlugs:
    def test_assigns_missing_slugs(self):
        _bulk_people("Pat Lawlor", "Pat Lawlor", "Steve Ritchie")
        call_command("backfill_slugs", "catalog.Person", stdout=StringIO())
        assert list(Person.objects.order_by("pk").values_list("slug", flat=True)) == [
            "pat-lawlor",
            "pat-lawlor-1",
            "steve-ritchie",
        ]

    def test_existing_slugs_untouched(self):
        Person.objects.create(name="Pat Lawlor")
        _bulk_people("Pat Lawlor")
        call_command("backfill_slugs", stdout=StringIO())
        assert sorted(Person.objects.values_list("slug", flat=True)) == [
            "pat-lawlor",
            "pat-lawlor-1",
        ]

    def test_dry_run_writes_nothing(self):
        _bulk_people("Pat Lawlor")
        out = StringIO()
        call_command("backfill_slugs", "catalog.Person", dry_run=True, stdout=out)
        assert Person.objects.get().slug is None
        assert "'pat-lawlor'" in out.getvalue()
        assert "1 would be updated" in out.getvalue()

    def test_dry_run_numbers_like_real_run(self):
        _bulk_people("Pat Lawlor", "Pat Lawlor")
        out = StringIO()
        call_command("backfill_slugs", "catalog.Person", dry_run=True, stdout=out)
        assert "'pat-lawlor'" in out.getvalue()
        assert "'pat-lawlor-1'" in out.getvalue()
        assert not Person.objects.filter(slug__isnull=False).exists()

    def test_dry_run_regenerate_frees_previewed_slugs(self):
        first = Manufacturer.objects.create(name="Williams")
        second = Manufacturer.objects.create(name="Bally")
        Manufacturer.objects.filter(pk=first.pk).update(name="Bally Midway")
        Manufacturer.objects.filter(pk=second.pk).update(name="Williams")
        out = StringIO()
        call_command(
            "backfill_slugs", "catalog.Manufacturer", regenerate=True, dry_run=True, stdout=out
        )
        assert f"{second.pk}: 'bally' -> 'williams'" in out.getvalue()

    def test_regenerate_recomposes_non_permanent(self):
        mfr = Manufacturer.objects.create(name="Williams")
        Manufacturer.objects.filter(pk=mfr.pk).update(name="Bally")
        call_command("backfill_slugs", "catalog.Manufacturer", regenerate=True, stdout=StringIO())
        assert Manufacturer.objects.get(pk=mfr.pk).slug == "bally"

    def test_regenerate_skips_permanent(self):
        person = Person.objects.create(name="Pat Lawlor")
        Person.objects.filter(pk=person.pk).update(name="Patrick Lawlor")
        call_command("backfill_slugs", "catalog.Person", regenerate=True, stdout=StringIO())
        assert Person.objects.get(pk=person.pk).slug == "pat-lawlor"

    def test_unknown_model(self):
        with pytest.raises(CommandError, match="Unknown model"):
            call_command("backfill_slugs", "catalog.Nope", stdout=StringIO())

    def test_model_without_slugs(self):
        with pytest.raises(CommandError, match="does not generate slugs"):
            call_command("backfill_slugs", "auth.User", stdout=StringIO())
