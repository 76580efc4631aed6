from datetime import timedelta
from logging import getLogger

from celery.signals import worker_ready
from django.utils import timezone

from configuration.utils import configuration_value
from fitlog.celery import app
from fitlog.logging import FitlogLogger
from importer.models import ImportJob

logger = getLogger(__name__)
structured_logger = FitlogLogger.get_logger(__name__)


@app.task(ignore_result=True)
def sweep_stale_import_jobs():
    """
    Fail live import jobs which have made no progress within the liveness
    timeout, freeing the slot for their kind.

    A running job is stale when its last progress (or its start) is older
    than the timeout; a queued job is stale when no worker picked it up within
    the timeout. Each job is failed with a conditional update which re-checks
    staleness, so a job which makes progress in the meantime is left alone.

    Returns the number of jobs failed.
    """
    timeout_minutes = int(
        configuration_value("exercise_import_liveness_timeout_minutes", default=60)
    )
    cutoff = timezone.now() - timedelta(minutes=timeout_minutes)

    swept = 0
    for job in ImportJob.objects.stale(cutoff):
        previous_status = job.status
        if previous_status == ImportJob.Status.RUNNING:
            detail = (
                f"No progress was recorded for {timeout_minutes} minutes; "
                "the worker running this job is presumed dead"
            )
        else:
            detail = f"No worker picked up this job within {timeout_minutes} minutes"

        if job.mark_failed(
            ImportJob.FailureReason.STALE,
            detail,
            conditions=ImportJob.stale_condition(cutoff),
            include_progress=False,
        ):
            swept += 1
            structured_logger.warning(
                "Stale import job failed.",
                event_code="import_job_swept",
                reason=detail,
                reason_code="stale",
                job=job,
                previous_status=previous_status,
            )

    if swept:
        logger.info("Failed %d stale import jobs", swept)
    return swept


@worker_ready.connect
def sweep_stale_import_jobs_on_worker_start(sender=None, **kwargs):
    # Reconcile jobs orphaned by a worker which died before this one started
    sweep_stale_import_jobs.delay()
