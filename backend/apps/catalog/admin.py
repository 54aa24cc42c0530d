from django.contrib import admin

from apps.slugs.lifecycle import get_config

from .models import Guide, MachineModel, Manufacturer, Person


class ExplicitSlugSaveMixin:
    """Treats a slug typed into the admin form as a manual override.

    Without this, a slug edited on a non-permanent record would be
    recomposed on save whenever a template field changed in the same form.
    A cleared slug is left empty so the record gets a freshly generated one.
    """

    def save_model(self, request, obj, form, change):
        slug_name = get_config(obj).slug_field.name
        value = form.cleaned_data.get(slug_name)
        if slug_name in form.changed_data and value:
            obj.set_slug(value, commit=False)
        super().save_model(request, obj, form, change)


class MachineModelInline(admin.TabularInline):
    model = MachineModel
    extra = 0
    fields = ("name", "year", "slug")
    readonly_fields = ("slug",)


@admin.register(Manufacturer)
class ManufacturerAdmin(ExplicitSlugSaveMixin, admin.ModelAdmin):
    list_display = ("name", "trade_name", "slug", "model_count")
    search_fields = ("name", "trade_name", "slug")
    inlines = (MachineModelInline,)

    @admin.display(description="Models")
    def model_count(self, obj):
        return obj.models.count()


@admin.register(MachineModel)
class MachineModelAdmin(ExplicitSlugSaveMixin, admin.ModelAdmin):
    list_display = ("name", "manufacturer", "year", "slug")
    list_filter = ("manufacturer",)
    search_fields = ("name", "slug")
    autocomplete_fields = ("manufacturer",)


@admin.register(Person)
class PersonAdmin(ExplicitSlugSaveMixin, admin.ModelAdmin):
    list_display = ("name", "slug")
    search_fields = ("name", "slug")


@admin.register(Guide)
class GuideAdmin(ExplicitSlugSaveMixin, admin.ModelAdmin):
    list_display = ("title", "path", "updated_at")
    search_fields = ("title", "path")
