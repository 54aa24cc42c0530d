import pytest
from django.contrib.auth import get_user_model

from apps.catalog.models import Guide, MachineModel, Manufacturer, Person

User = get_user_model()


@pytest.fixture
def manufacturer(db):
    return Manufacturer.objects.create(name="Williams", trade_name="Williams")


@pytest.fixture
def stern(db):
    return Manufacturer.objects.create(name="Stern", trade_name="Stern")


@pytest.fixture
def machine_model(db, manufacturer):
    return MachineModel.objects.create(
        name="Medieval Madness", manufacturer=manufacturer, year=1997
    )


@pytest.fixture
def person(db):
    return Person.objects.create(name="Pat Lawlor")


@pytest.fixture
def staff(db):
    return User.objects.create_user(
        username="editor", password="testpass", is_staff=True  # pragma: allowlist secret
    )


@pytest.fixture
def user(db):
    return User.objects.create_user(username="reader", password="testpass")  # pragma: allowlist secret  # fmt: skip


class TestManufacturersAPI:
    def test_list(self, client, manufacturer, stern, machine_model):
        resp = client.get("/api/manufacturers/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["count"] == 2
        assert data["items"][0]["slug"] == "stern"
        assert data["items"][1]["model_count"] == 1

    def test_list_skips_rows_without_slug(self, client, manufacturer):
        Manufacturer.objects.bulk_create([Manufacturer(name="Bally")])
        resp = client.get("/api/manufacturers/")
        assert resp.status_code == 200
        assert [m["slug"] for m in resp.json()["items"]] == ["williams"]

    def test_detail_skips_models_without_slug(self, client, manufacturer, machine_model):
        MachineModel.objects.bulk_create(
            [MachineModel(name="Black Knight", manufacturer=manufacturer)]
        )
        resp = client.get("/api/manufacturers/williams")
        assert resp.status_code == 200
        assert [m["slug"] for m in resp.json()["models"]] == ["medieval-madness-1997"]

    def test_detail(self, client, manufacturer, machine_model):
        resp = client.get("/api/manufacturers/williams")
        assert resp.status_code == 200
        data = resp.json()
        assert data["name"] == "Williams"
        assert data["models"] == [
            {"name": "Medieval Madness", "slug": "medieval-madness-1997", "year": 1997}
        ]

    def test_detail_404(self, client, db):
        assert client.get("/api/manufacturers/nope").status_code == 404

    def test_slug_preview(self, client, manufacturer):
        resp = client.get("/api/manufacturers/slug-preview", {"name": "Williams!"})
        assert resp.status_code == 200
        assert resp.json() == {"slug": "williams-1"}
        assert Manufacturer.objects.count() == 1

    def test_slug_preview_empty_name(self, client, db):
        resp = client.get("/api/manufacturers/slug-preview", {"name": "???"})
        assert resp.json() == {"slug": "manufacturer"}


class TestMachineModelAPI:
    def test_detail_under_manufacturer(self, client, machine_model):
        resp = client.get("/api/manufacturers/williams/models/medieval-madness-1997")
        assert resp.status_code == 200
        assert resp.json()["manufacturer_slug"] == "williams"

    def test_same_slug_other_manufacturer(self, client, machine_model, stern):
        MachineModel.objects.create(name="Medieval Madness", manufacturer=stern, year=1997)
        resp = client.get("/api/manufacturers/stern/models/medieval-madness-1997")
        assert resp.status_code == 200
        assert resp.json()["manufacturer_name"] == "Stern"

    def test_wrong_manufacturer_404(self, client, machine_model, stern):
        resp = client.get("/api/manufacturers/stern/models/medieval-madness-1997")
        assert resp.status_code == 404


class TestPeopleAPI:
    def test_list(self, client, person):
        resp = client.get("/api/people/")
        assert resp.json() == [{"name": "Pat Lawlor", "slug": "pat-lawlor"}]

    def test_list_skips_rows_without_slug(self, client, person):
        Person.objects.bulk_create([Person(name="Steve Ritchie")])
        resp = client.get("/api/people/")
        assert resp.status_code == 200
        assert resp.json() == [{"name": "Pat Lawlor", "slug": "pat-lawlor"}]

    def test_detail(self, client, person):
        resp = client.get("/api/people/pat-lawlor")
        assert resp.status_code == 200
        assert resp.json()["name"] == "Pat Lawlor"


class TestSetPersonSlug:
    def _put(self, client, slug, new_slug):
        return client.put(
            f"/api/people/{slug}/slug",
            data=f'{{"slug": "{new_slug}"}}',
            content_type="application/json",
        )

    def test_anonymous_gets_401(self, client, person):
        assert self._put(client, "pat-lawlor", "lawlor").status_code in (401, 403)

    def test_non_staff_gets_403(self, client, user, person):
        client.force_login(user)
        assert self._put(client, "pat-lawlor", "lawlor").status_code == 403

    def test_staff_can_set(self, client, staff, person):
        client.force_login(staff)
        resp = self._put(client, "pat-lawlor", "lawlor")
        assert resp.status_code == 200
        assert resp.json()["slug"] == "lawlor"
        person.refresh_from_db()
        assert person.slug == "lawlor"

    def test_value_is_not_sanitized(self, client, staff, person):
        client.force_login(staff)
        resp = self._put(client, "pat-lawlor", "Pat_Lawlor")
        assert resp.json()["slug"] == "Pat_Lawlor"

    def test_conflict_returns_409(self, client, staff, person):
        Person.objects.create(name="Steve Ritchie")
        client.force_login(staff)
        resp = self._put(client, "pat-lawlor", "steve-ritchie")
        assert resp.status_code == 409
        person.refresh_from_db()
        assert person.slug == "pat-lawlor"

    def test_empty_returns_422(self, client, staff, person):
        client.force_login(staff)
        assert self._put(client, "pat-lawlor", "  ").status_code == 422


class TestGuidesAPI:
    def test_detail_by_path(self, client, db):
        Guide.objects.create(title="Rubber Rings", body="Replace them yearly.")
        resp = client.get("/api/guides/guides/rubber-rings")
        assert resp.status_code == 200
        assert resp.json()["body"] == "Replace them yearly."

    def test_numbered_path(self, client, db):
        Guide.objects.create(title="Rubber Rings")
        Guide.objects.create(title="Rubber Rings", body="Second")
        resp = client.get("/api/guides/guides/rubber-rings/1")
        assert resp.json()["body"] == "Second"

    def test_list(self, client, db):
        Guide.objects.create(title="Leveling")
        assert client.get("/api/guides/").json() == [
            {"title": "Leveling", "path": "guides/leveling"}
        ]

    def test_list_skips_rows_without_path(self, client, db):
        Guide.objects.create(title="Leveling")
        Guide.objects.bulk_create([Guide(title="Coils")])
        resp = client.get("/api/guides/")
        assert resp.status_code == 200
        assert [g["path"] for g in resp.json()] == ["guides/leveling"]
