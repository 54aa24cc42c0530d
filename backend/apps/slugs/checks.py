"""System check that compiles every slugged model's template at startup."""

from __future__ import annotations

from django.apps import apps
from django.core import checks
from django.core.exceptions import ImproperlyConfigured

from .template import compile_config


def slugged_models():
    from .models import SluggedModel

    return [
        model
        for model in apps.get_models()
        if issubclass(model, SluggedModel) and not model._meta.abstract
    ]


@checks.register()
def check_slug_templates(app_configs=None, **kwargs):
    errors = []
    for model in slugged_models():
        if app_configs is not None and model._meta.app_config not in app_configs:
            continue
        try:
            config = compile_config(model)
        except ImproperlyConfigured as exc:
            errors.append(checks.Error(str(exc), obj=model, id="slugs.E001"))
            continue
        for ref in config.field_refs:
            if not hasattr(model, ref.path[0]):
                errors.append(
                    checks.Error(
                        f"Slug template references unknown field {ref.name!r}.",
                        obj=model,
                        id="slugs.E002",
                    )
                )
    return errors
