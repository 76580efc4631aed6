from django.contrib import admin

from .models import Exercise


@admin.register(Exercise)
class ExerciseAdmin(admin.ModelAdmin):
    list_display = ("name", "external_id", "category", "equipment", "level", "modified")
    list_filter = ("category", "level", "equipment")
    search_fields = ("name", "external_id")
    ordering = ("name",)

    def get_readonly_fields(self, request, obj=None):
        # Imported fields are owned by the library import; editing them here
        # would be silently reverted by the next import
        if obj is None:
            return ("created", "modified")
        return ("external_id", *Exercise.IMPORTED_FIELDS, "created", "modified")
