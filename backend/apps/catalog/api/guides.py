"""Guides router. Guides are addressed by their full path."""

from __future__ import annotations

from django.shortcuts import get_object_or_404
from ninja import Router, Schema


class GuideSchema(Schema):
    title: str
    path: str


class GuideDetailSchema(Schema):
    title: str
    path: str
    body: str


guides_router = Router(tags=["guides"])


@guides_router.get("/", response=list[GuideSchema])
def list_guides(request):
    from ..models import Guide

    # Rows bulk-inserted without a path have no address yet.
    return list(
        Guide.objects.filter(path__isnull=False)
        .order_by("title")
        .values("title", "path")
    )


@guides_router.get("/{path:path}", response=GuideDetailSchema)
def get_guide(request, path: str):
    from ..models import Guide

    return get_object_or_404(Guide, path=path)
