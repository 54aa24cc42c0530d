from django.apps import AppConfig


class SlugsConfig(AppConfig):
    name = "apps.slugs"
    verbose_name = "Slugs"

    def ready(self):
        from . import checks  # noqa: F401  registers system checks
