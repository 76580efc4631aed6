import uuid

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ImportJob",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("update_exercise_library", "Update exercise library")
                        ],
                        max_length=50,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("queued", "Queued"),
                            ("running", "Running"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="queued",
                        max_length=20,
                    ),
                ),
                ("created", models.DateTimeField(auto_now_add=True)),
                ("modified", models.DateTimeField(auto_now=True)),
                (
                    "started_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Time when a worker started running this job",
                        null=True,
                    ),
                ),
                (
                    "finished_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Time when the job reached a terminal status",
                        null=True,
                    ),
                ),
                (
                    "last_progress_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Last time the running job recorded progress",
                        null=True,
                    ),
                ),
                (
                    "source_reference",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Storage name or URL the dataset was loaded from",
                        max_length=1024,
                    ),
                ),
                (
                    "task_id",
                    models.UUIDField(
                        blank=True,
                        help_text="UUID of the Celery task which ran this job",
                        null=True,
                    ),
                ),
                ("items_fetched", models.PositiveIntegerField(default=0)),
                ("items_upserted", models.PositiveIntegerField(default=0)),
                ("items_skipped", models.PositiveIntegerField(default=0)),
                ("items_failed", models.PositiveIntegerField(default=0)),
                (
                    "failed_items",
                    models.JSONField(
                        blank=True,
                        default=list,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        help_text=(
                            "Records which could not be imported, up to a fixed limit"
                        ),
                    ),
                ),
                (
                    "error_detail",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Diagnostic detail when the job failed",
                    ),
                ),
                (
                    "failure_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("fetch", "Source could not be fetched"),
                            ("parse", "Source could not be parsed"),
                            ("storage", "Exercise library could not be written"),
                            ("threshold", "Too many records failed"),
                            ("stale", "No progress within the liveness timeout"),
                            ("dispatch", "Job could not be queued"),
                            ("unexpected", "Unexpected error"),
                        ],
                        default="",
                        help_text="Reason the job failed, if it did",
                        max_length=50,
                    ),
                ),
            ],
            options={
                "ordering": ("-created",),
            },
        ),
        migrations.AddConstraint(
            model_name="importjob",
            constraint=models.UniqueConstraint(
                condition=models.Q(("status__in", ["queued", "running"])),
                fields=("kind",),
                name="importer_importjob_one_live_job_per_kind",
            ),
        ),
    ]
