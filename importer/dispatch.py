"""
Starting import jobs

The dispatcher is the only place ImportJob records are created. It enforces
that at most one job of each kind is live by relying on the partial unique
constraint on ImportJob: the insert either wins or fails with an
IntegrityError, no matter how many processes try at once.
"""

from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import Callable

from django.conf import settings
from django.db import IntegrityError, transaction
from kombu.exceptions import KombuError

from fitlog.logging import FitlogLogger
from fitlog.utils.celery import get_registered_task

from .exceptions import JobAlreadyRunning, UnknownJobKind
from .models import ImportJob

logger = getLogger(__name__)
structured_logger = FitlogLogger.get_logger(__name__)


@dataclass(frozen=True)
class JobDefinition:
    kind: str
    task_name: str
    get_source_reference: Callable[[], str]


def _exercise_library_source():
    return settings.EXERCISE_LIBRARY_IMPORT["SOURCE"]


JOB_DEFINITIONS = {
    ImportJob.Kind.UPDATE_EXERCISE_LIBRARY.value: JobDefinition(
        kind=ImportJob.Kind.UPDATE_EXERCISE_LIBRARY.value,
        task_name="importer.tasks.library.run_exercise_library_import_task",
        get_source_reference=_exercise_library_source,
    ),
}


def get_job_definition(kind: str) -> JobDefinition:
    try:
        return JOB_DEFINITIONS[str(kind)]
    except KeyError as exc:
        raise UnknownJobKind(kind) from exc


def deploy_job(kind: str) -> ImportJob:
    """
    Create a queued job of the given kind and arrange for it to run.

    The task is queued once the surrounding transaction commits, so a worker
    never picks up a job it cannot see yet. This returns as soon as the job
    record exists; callers follow the job's progress through the record.

    Raises:
        UnknownJobKind: ``kind`` is not a registered job kind.
        JobAlreadyRunning: A job of this kind is already queued or running.
    """
    definition = get_job_definition(kind)

    try:
        with transaction.atomic():
            job = ImportJob.objects.create(
                kind=definition.kind,
                source_reference=definition.get_source_reference(),
            )
    except IntegrityError as exc:
        live_job = ImportJob.objects.live().filter(kind=definition.kind).first()
        structured_logger.warning(
            "Import job rejected.",
            event_code="import_job_rejected",
            reason="A job of this kind is already queued or running.",
            reason_code="already_running",
            job=live_job,
            kind=definition.kind,
        )
        raise JobAlreadyRunning(
            definition.kind, live_job.pk if live_job else None
        ) from exc

    structured_logger.info(
        "Import job accepted.",
        event_code="import_job_accepted",
        job=job,
        source_reference=job.source_reference,
    )

    transaction.on_commit(partial(launch_job, job, definition))

    return job


def launch_job(job: ImportJob, definition: JobDefinition):
    """
    Queue the task which runs ``job``. If the broker cannot be reached the
    job is failed straight away so it does not hold the slot for its kind
    until the stale job sweep notices.
    """
    task = get_registered_task(definition.task_name)
    try:
        result = task.delay(str(job.pk))
    except (KombuError, OSError) as exc:
        logger.exception("Unable to queue %s", job)
        job.mark_failed(
            ImportJob.FailureReason.DISPATCH,
            f"Unable to queue the import task: {exc}",
            expected_statuses=(ImportJob.Status.QUEUED,),
        )
        structured_logger.error(
            "Import job could not be queued.",
            event_code="import_job_dispatch_failed",
            reason=str(exc),
            reason_code="dispatch",
            job=job,
        )
        return None
    logger.info("Queued task %s for %s", result.id, job)
    return result
