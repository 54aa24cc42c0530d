from ninja import NinjaAPI

from apps.catalog.api import guides_router, manufacturers_router, people_router

api = NinjaAPI(
    title="Pinbase Slugs API",
    urls_namespace="api",
)


@api.get("/health")
def health(request):
    from django.db import connection

    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
    return {"status": "ok"}


api.add_router("/manufacturers/", manufacturers_router)
api.add_router("/people/", people_router)
api.add_router("/guides/", guides_router)
