"""
Deploy the exercise library import job from the command line.

This performs the same operation as POST /api/jobs/update_exercise_library/deploy:
at most one import runs at a time, and the job itself runs on a Celery worker.

Usage:
    python manage.py update_exercise_library
    python manage.py update_exercise_library --wait --poll-interval 10

With --wait the command polls the job until it finishes and exits with a
non-zero status unless the job succeeded.
"""

import time
from argparse import ArgumentParser

from django.core.management.base import BaseCommand, CommandError

from importer.dispatch import deploy_job
from importer.exceptions import JobAlreadyRunning
from importer.models import ImportJob


class Command(BaseCommand):
    help = "Import the exercise library from its configured source"  # NOQA: A003

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument(
            "--wait",
            action="store_true",
            help="Wait for the job to finish and report its outcome",
        )
        parser.add_argument(
            "--poll-interval",
            type=float,
            default=5.0,
            help="Seconds between status checks with --wait (default=%(default)s)",
        )

    def handle(self, *, wait: bool, poll_interval: float, **options) -> None:
        try:
            job = deploy_job(ImportJob.Kind.UPDATE_EXERCISE_LIBRARY)
        except JobAlreadyRunning as exc:
            raise CommandError(f"{exc} (job {exc.live_job_id})") from exc

        self.stdout.write(f"Deployed job {job.pk} from {job.source_reference}")

        if not wait:
            return

        job.refresh_from_db()
        while job.is_live:
            time.sleep(poll_interval)
            job.refresh_from_db()

        self.stdout.write(
            f"Job {job.pk} {job.status}: {job.items_fetched} fetched, "
            f"{job.items_upserted} upserted, {job.items_skipped} unchanged, "
            f"{job.items_failed} failed"
        )

        if job.status != ImportJob.Status.SUCCEEDED:
            raise CommandError(
                f"Job {job.pk} {job.status} ({job.failure_reason}): {job.error_detail}"
            )
