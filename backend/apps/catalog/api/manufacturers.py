"""Manufacturers router: list, detail, slug preview and nested machine models."""

from __future__ import annotations

from django.db.models import Count
from django.shortcuts import get_object_or_404
from ninja import Router, Schema
from ninja.pagination import PageNumberPagination, paginate

from .schemas import MachineModelSchema, SlugPreviewSchema

# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class ManufacturerSchema(Schema):
    name: str
    slug: str
    trade_name: str
    model_count: int = 0


class ManufacturerDetailSchema(Schema):
    name: str
    slug: str
    trade_name: str
    models: list[MachineModelSchema]


class MachineModelDetailSchema(Schema):
    name: str
    slug: str
    year: int | None = None
    manufacturer_name: str
    manufacturer_slug: str


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------

manufacturers_router = Router(tags=["manufacturers"])


@manufacturers_router.get("/", response=list[ManufacturerSchema])
@paginate(PageNumberPagination, page_size=50)
def list_manufacturers(request):
    from ..models import Manufacturer

    return list(
        Manufacturer.objects.filter(slug__isnull=False)
        .annotate(model_count=Count("models"))
        .order_by("name")
        .values("name", "slug", "trade_name", "model_count")
    )


@manufacturers_router.get("/slug-preview", response=SlugPreviewSchema)
def preview_manufacturer_slug(request, name: str):
    """Return the slug a new manufacturer called ``name`` would receive."""
    from ..models import Manufacturer

    return {"slug": Manufacturer(name=name).compose_slug()}


@manufacturers_router.get("/{slug}", response=ManufacturerDetailSchema)
def get_manufacturer(request, slug: str):
    from ..models import Manufacturer

    mfr = get_object_or_404(Manufacturer, slug=slug)
    return {
        "name": mfr.name,
        "slug": mfr.slug,
        "trade_name": mfr.trade_name,
        "models": [
            {"name": m.name, "slug": m.slug, "year": m.year}
            for m in mfr.models.filter(slug__isnull=False).order_by("year", "name")
        ],
    }


@manufacturers_router.get(
    "/{manufacturer_slug}/models/{slug}", response=MachineModelDetailSchema
)
def get_machine_model(request, manufacturer_slug: str, slug: str):
    from ..models import MachineModel

    pm = get_object_or_404(
        MachineModel.objects.select_related("manufacturer"),
        manufacturer__slug=manufacturer_slug,
        slug=slug,
    )
    return {
        "name": pm.name,
        "slug": pm.slug,
        "year": pm.year,
        "manufacturer_name": pm.manufacturer.name,
        "manufacturer_slug": pm.manufacturer.slug,
    }
