from datetime import datetime
from typing import Optional
from uuid import UUID

from django.shortcuts import get_object_or_404
from ninja import Router
from ninja.errors import HttpError

from fitlog.api.schemas import CamelSchema, ErrorOut
from fitlog.logging import FitlogLogger

from .dispatch import deploy_job
from .exceptions import JobAlreadyRunning, UnknownJobKind
from .models import ImportJob

structured_logger = FitlogLogger.get_logger(__name__)

router = Router(tags=["jobs"])

#: Upper bound on the number of jobs returned by the listing
MAX_JOBS_LISTED = 100


class DeployOut(CamelSchema):
    job_id: UUID
    kind: str
    status: str


class RejectedOut(ErrorOut):
    job_id: Optional[UUID] = None


class FailedItemOut(CamelSchema):
    position: int
    external_id: str
    step: str
    error: str


class JobOut(CamelSchema):
    job_id: UUID
    kind: str
    status: str
    created: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    last_progress_at: Optional[datetime] = None
    source_reference: str
    items_fetched: int
    items_upserted: int
    items_skipped: int
    items_failed: int
    failed_items: list[FailedItemOut]
    error_detail: Optional[str] = None
    failure_reason: Optional[str] = None


def serialize_job(job):
    return JobOut(
        job_id=job.pk,
        kind=job.kind,
        status=job.status,
        created=job.created,
        started_at=job.started_at,
        finished_at=job.finished_at,
        last_progress_at=job.last_progress_at,
        source_reference=job.source_reference,
        items_fetched=job.items_fetched,
        items_upserted=job.items_upserted,
        items_skipped=job.items_skipped,
        items_failed=job.items_failed,
        failed_items=[FailedItemOut(**item) for item in job.failed_items],
        # Only failed jobs carry error details
        error_detail=job.error_detail or None,
        failure_reason=job.failure_reason or None,
    )


@router.post(
    "/{kind}/deploy",
    response={202: DeployOut, 409: RejectedOut},
    by_alias=True,
)
def deploy(request, kind: str):
    """
    POST /jobs/{kind}/deploy: start a job of the given kind.

    Returns 202 with the new job id, or 409 naming the live job if a job of
    this kind is already queued or running. The job runs in the background;
    poll GET /jobs/{job_id} for its status.
    """
    try:
        job = deploy_job(kind)
    except UnknownJobKind as exc:
        structured_logger.warning(
            "Deploy request for an unknown job kind.",
            event_code="import_job_deploy_rejected",
            reason=str(exc),
            reason_code="unknown_kind",
            kind=kind,
        )
        raise HttpError(404, str(exc)) from exc
    except JobAlreadyRunning as exc:
        return 409, RejectedOut(detail=str(exc), job_id=exc.live_job_id)

    return 202, DeployOut(job_id=job.pk, kind=job.kind, status=job.status)


@router.get("/", response=list[JobOut], by_alias=True)
def job_list(
    request,
    kind: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 20,
):
    """GET /jobs/: recent jobs, newest first."""
    qs = ImportJob.objects.all()
    if kind:
        qs = qs.filter(kind=kind)
    if status:
        qs = qs.filter(status=status)
    limit = min(max(limit, 0), MAX_JOBS_LISTED)
    return [serialize_job(job) for job in qs[:limit]]


@router.get("/{job_id}", response=JobOut, by_alias=True)
def job_detail(request, job_id: UUID):
    job = get_object_or_404(ImportJob, pk=job_id)
    return serialize_job(job)
