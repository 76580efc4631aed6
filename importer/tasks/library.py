from logging import getLogger

from configuration.utils import configuration_value
from fitlog.celery import app
from fitlog.logging import FitlogLogger
from importer.exceptions import (
    FailureThresholdExceeded,
    RecordError,
    RecordUpsertFailure,
    StaleRunTimeout,
    StorageUnavailable,
    SystemicUpsertFailure,
)
from importer.fetchers import fetch
from importer.library import ExerciseLibraryLoader, UpsertResult
from importer.models import ImportJob
from importer.parser import parse_exercises

from .decorators import track_job_status

logger = getLogger(__name__)
structured_logger = FitlogLogger.get_logger(__name__)

# Tasks


@app.task(bind=True, acks_late=True, ignore_result=True)
def run_exercise_library_import_task(self, job_id):
    try:
        job = ImportJob.objects.get(pk=job_id)
    except ImportJob.DoesNotExist:
        logger.warning("Import job %s does not exist and will not be run", job_id)
        return None
    return run_exercise_library_import(self, job)


# End tasks


@track_job_status
def run_exercise_library_import(self, job):
    """
    Stream the dataset named by ``job.source_reference`` into the exercise
    library, recording progress on ``job``.

    Records are upserted in dataset order. Records which cannot be parsed or
    are rejected by the library are counted and noted on the job. Progress is
    written every ``exercise_import_progress_interval`` records; if the job is
    no longer running at that point (the stale job sweep failed it) the import
    stops.
    """
    progress_interval = max(
        1, int(configuration_value("exercise_import_progress_interval", default=50))
    )
    loader = ExerciseLibraryLoader(
        systemic_failure_limit=int(
            configuration_value("exercise_import_systemic_failure_limit", default=10)
        )
    )
    job_logger = structured_logger.bind(job=job)

    unsaved = 0
    for item in parse_exercises(fetch(job.source_reference)):
        job.items_fetched += 1

        if isinstance(item, RecordError):
            job.record_failure(
                position=item.position,
                external_id=item.external_id,
                step=item.step,
                error=item.message,
            )
            job_logger.warning(
                "Skipping record which could not be parsed.",
                event_code="import_record_invalid",
                reason=item.message,
                reason_code="parse",
                record=item,
            )
        else:
            try:
                result = loader.upsert(item)
            except RecordUpsertFailure as exc:
                job.record_failure(
                    position=exc.position,
                    external_id=exc.external_id,
                    step=exc.step,
                    error=exc.message,
                )
                job_logger.warning(
                    "Skipping record rejected by the exercise library.",
                    event_code="import_record_rejected",
                    reason=exc.message,
                    reason_code="upsert",
                    record=item,
                )
            except (SystemicUpsertFailure, StorageUnavailable) as exc:
                # The record which stopped the import is counted as failed too
                if isinstance(exc, SystemicUpsertFailure) and exc.rejected:
                    error = exc.rejected.message
                else:
                    error = str(exc)
                job.record_failure(
                    position=item.position,
                    external_id=item.external_id,
                    step=RecordUpsertFailure.step,
                    error=error,
                )
                raise
            else:
                if result is UpsertResult.UNCHANGED:
                    job.items_skipped += 1
                else:
                    job.items_upserted += 1

        unsaved += 1
        if unsaved >= progress_interval:
            if not job.save_progress():
                raise StaleRunTimeout(
                    f"Job stopped after {job.items_fetched} records because it "
                    "was no longer running"
                )
            unsaved = 0

    check_failure_threshold(job)

    return {
        "items_fetched": job.items_fetched,
        "items_upserted": job.items_upserted,
        "items_skipped": job.items_skipped,
        "items_failed": job.items_failed,
    }


def check_failure_threshold(job):
    """
    Raise FailureThresholdExceeded if ``job`` imported too few records to be
    considered a success: when no record was imported at all (including an
    empty dataset), or when the share of failed records is above
    ``exercise_import_max_failure_ratio``.
    """
    if not job.items_succeeded:
        raise FailureThresholdExceeded(
            f"No records were imported: {job.items_fetched} fetched, "
            f"{job.items_failed} failed"
        )

    max_failure_ratio = float(
        configuration_value("exercise_import_max_failure_ratio", default=1)
    )
    failure_ratio = job.items_failed / job.items_fetched
    if failure_ratio > max_failure_ratio:
        raise FailureThresholdExceeded(
            f"{job.items_failed} of {job.items_fetched} records failed, "
            f"more than the allowed ratio of {max_failure_ratio}"
        )
