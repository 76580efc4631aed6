from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Exercise",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "external_id",
                    models.CharField(
                        help_text=(
                            "Stable identifier of the exercise in the upstream dataset"
                        ),
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("force", models.CharField(blank=True, default="", max_length=50)),
                ("level", models.CharField(blank=True, default="", max_length=50)),
                ("mechanic", models.CharField(blank=True, default="", max_length=50)),
                (
                    "equipment",
                    models.CharField(blank=True, default="", max_length=100),
                ),
                (
                    "category",
                    models.CharField(blank=True, default="", max_length=100),
                ),
                ("primary_muscles", models.JSONField(blank=True, default=list)),
                ("secondary_muscles", models.JSONField(blank=True, default=list)),
                ("instructions", models.JSONField(blank=True, default=list)),
                (
                    "images",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text=(
                            "Media references, relative to the dataset's image root"
                        ),
                    ),
                ),
                (
                    "notes",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Local annotations. Never changed by library imports.",
                    ),
                ),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("modified", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("name", "external_id"),
            },
        ),
    ]
