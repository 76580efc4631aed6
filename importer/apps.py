from django.apps import AppConfig


class ImporterConfig(AppConfig):
    name = "importer"
    verbose_name = "Exercise library importer"
    default_auto_field = "django.db.models.BigAutoField"
