from django.db import migrations


def populate_configuration(apps, schema_editor):
    Configuration = apps.get_model("configuration", "Configuration")

    initial_data = [
        {
            "key": "exercise_import_liveness_timeout_minutes",
            "data_type": "number",
            "value": "60",
            "description": "Minutes an exercise library import job may stay queued or running without recording progress before the stale job sweep marks it as failed.",
        },
        {
            "key": "exercise_import_max_failure_ratio",
            "data_type": "number",
            "value": "1",
            "description": "Fraction (0 to 1) of dataset records which may fail before the whole import is marked as failed. An import where no record succeeded always fails. 1 means only that rule applies.",
        },
        {
            "key": "exercise_import_systemic_failure_limit",
            "data_type": "number",
            "value": "10",
            "description": "Number of consecutive records which may fail to save before the import assumes the database is unavailable and stops.",
        },
        {
            "key": "exercise_import_progress_interval",
            "data_type": "number",
            "value": "50",
            "description": "Number of records processed between progress updates on the import job.",
        },
    ]

    for entry in initial_data:
        Configuration.objects.update_or_create(key=entry["key"], defaults=entry)


def revert_populate_configuration(apps, schema_editor):
    # Administrators may have tuned these values, and nothing depends on the
    # rows existing, so there is nothing to undo
    pass


class Migration(migrations.Migration):

    dependencies = [
        ("configuration", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(populate_configuration, revert_populate_configuration),
    ]
