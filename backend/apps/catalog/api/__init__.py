"""API endpoints for the catalog app.

Routers: manufacturers (with nested machine models), people, guides.
Wired into the main NinjaAPI instance in config/api.py.
"""

from .guides import guides_router
from .manufacturers import manufacturers_router
from .people import people_router

__all__ = [
    "guides_router",
    "manufacturers_router",
    "people_router",
]
