from functools import wraps
from logging import getLogger

from fitlog.logging import FitlogLogger
from importer.exceptions import ImporterError, StaleRunTimeout
from importer.models import ImportJob

logger = getLogger(__name__)
structured_logger = FitlogLogger.get_logger(__name__)


def track_job_status(f):
    """
    Decorator which runs the wrapped function as the body of an ImportJob,
    moving the job to running on entry and to a terminal status on exit

    Assumes that all wrapped functions get the Celery task self value as the
    first parameter and the ImportJob as the second.

    A job which is not queued on entry is left alone and the function is not
    called. Importer errors fail the job with their failure reason and are not
    re-raised, since the job record is where their outcome is reported. Any
    other exception fails the job and is re-raised so Celery and Sentry see
    it. If the job was failed by the stale job sweep while running, it is not
    touched again.
    """

    @wraps(f)
    def inner(self, job, *args, **kwargs):
        if not job.mark_running(task_id=self.request.id):
            logger.warning("Job %s was not queued and will not be run", job)
            structured_logger.warning(
                "Import job was not queued and will not be run.",
                event_code="import_job_skipped",
                reason="Job was not in the queued status when its task started.",
                reason_code="not_queued",
                job=job,
            )
            return None

        structured_logger.info(
            "Import job started.", event_code="import_job_started", job=job
        )

        try:
            result = f(self, job, *args, **kwargs)
        except StaleRunTimeout as exc:
            _log_swept(job, exc)
            return None
        except ImporterError as exc:
            if job.mark_failed(
                exc.failure_reason,
                str(exc),
                expected_statuses=(ImportJob.Status.RUNNING,),
            ):
                structured_logger.error(
                    "Import job failed.",
                    event_code="import_job_failed",
                    reason=str(exc),
                    reason_code=exc.failure_reason,
                    job=job,
                )
            else:
                _log_swept(job, exc)
            return None
        except Exception as exc:
            job.mark_failed(
                ImportJob.FailureReason.UNEXPECTED,
                f"Unhandled exception: {exc}",
                expected_statuses=(ImportJob.Status.RUNNING,),
            )
            structured_logger.error(
                "Import job failed with an unexpected error.",
                event_code="import_job_failed",
                reason=str(exc),
                reason_code=ImportJob.FailureReason.UNEXPECTED,
                job=job,
            )
            raise

        if job.mark_succeeded():
            structured_logger.info(
                "Import job succeeded.",
                event_code="import_job_succeeded",
                job=job,
                items_fetched=job.items_fetched,
                items_upserted=job.items_upserted,
                items_skipped=job.items_skipped,
                items_failed=job.items_failed,
            )
        else:
            _log_swept(job, StaleRunTimeout("Job was no longer running at the end"))
        return result

    return inner


def _log_swept(job, exc):
    structured_logger.warning(
        "Import job was failed by the stale job sweep while running.",
        event_code="import_job_swept",
        reason=str(exc),
        reason_code="stale",
        job=job,
    )
