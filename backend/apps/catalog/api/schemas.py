"""Shared API schemas used by multiple routers."""

from __future__ import annotations

from typing import Optional

from ninja import Schema


class MachineModelSchema(Schema):
    name: str
    slug: str
    year: Optional[int] = None


class SlugPreviewSchema(Schema):
    slug: str


class SlugUpdateSchema(Schema):
    slug: str
