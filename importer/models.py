"""
See the module-level docstring for implementation details
"""

import uuid
from logging import getLogger

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

logger = getLogger(__name__)


class ImportJobQuerySet(models.QuerySet):
    def live(self):
        return self.filter(status__in=ImportJob.LIVE_STATUSES)

    def terminal(self):
        return self.exclude(status__in=ImportJob.LIVE_STATUSES)

    def stale(self, cutoff):
        """
        Live jobs which have shown no sign of life since ``cutoff``: running
        jobs whose last progress (or start) is older than the cutoff and
        queued jobs which were never picked up by a worker.
        """
        return self.filter(ImportJob.stale_condition(cutoff))


class ImportJob(models.Model):
    """
    One execution attempt of a background import job.

    A job is created queued by the dispatcher and afterwards only changed by
    the task running it, or by the stale job sweep which can only fail it.
    Every change of status is a conditional update on the status the caller
    expects to find, and reports whether it took effect.
    """

    class Kind(models.TextChoices):
        UPDATE_EXERCISE_LIBRARY = "update_exercise_library", "Update exercise library"

    class Status(models.TextChoices):
        QUEUED = "queued", "Queued"
        RUNNING = "running", "Running"
        SUCCEEDED = "succeeded", "Succeeded"
        FAILED = "failed", "Failed"
        CANCELLED = "cancelled", "Cancelled"

    class FailureReason(models.TextChoices):
        FETCH = "fetch", "Source could not be fetched"
        PARSE = "parse", "Source could not be parsed"
        STORAGE = "storage", "Exercise library could not be written"
        THRESHOLD = "threshold", "Too many records failed"
        STALE = "stale", "No progress within the liveness timeout"
        DISPATCH = "dispatch", "Job could not be queued"
        UNEXPECTED = "unexpected", "Unexpected error"

    LIVE_STATUSES = (Status.QUEUED, Status.RUNNING)

    #: Upper bound on the failed items kept for diagnostics
    MAX_FAILED_ITEMS = 100

    PROGRESS_FIELDS = (
        "items_fetched",
        "items_upserted",
        "items_skipped",
        "items_failed",
        "failed_items",
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    kind = models.CharField(max_length=50, choices=Kind.choices)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.QUEUED
    )

    created = models.DateTimeField(auto_now_add=True)
    modified = models.DateTimeField(auto_now=True)

    started_at = models.DateTimeField(
        help_text="Time when a worker started running this job",
        null=True,
        blank=True,
    )
    finished_at = models.DateTimeField(
        help_text="Time when the job reached a terminal status",
        null=True,
        blank=True,
    )
    last_progress_at = models.DateTimeField(
        help_text="Last time the running job recorded progress",
        null=True,
        blank=True,
    )

    source_reference = models.CharField(
        help_text="Storage name or URL the dataset was loaded from",
        max_length=1024,
        blank=True,
        default="",
    )

    task_id = models.UUIDField(
        help_text="UUID of the Celery task which ran this job",
        null=True,
        blank=True,
    )

    items_fetched = models.PositiveIntegerField(default=0)
    items_upserted = models.PositiveIntegerField(default=0)
    items_skipped = models.PositiveIntegerField(default=0)
    items_failed = models.PositiveIntegerField(default=0)

    failed_items = models.JSONField(
        help_text="Records which could not be imported, up to a fixed limit",
        encoder=DjangoJSONEncoder,
        default=list,
        blank=True,
    )

    error_detail = models.TextField(
        help_text="Diagnostic detail when the job failed", blank=True, default=""
    )
    failure_reason = models.CharField(
        help_text="Reason the job failed, if it did",
        max_length=50,
        blank=True,
        default="",
        choices=FailureReason.choices,
    )

    objects = ImportJobQuerySet.as_manager()

    class Meta:
        ordering = ("-created",)
        constraints = [
            models.UniqueConstraint(
                fields=["kind"],
                condition=models.Q(status__in=["queued", "running"]),
                name="importer_importjob_one_live_job_per_kind",
            )
        ]

    def __str__(self):
        return f"ImportJob(id={self.pk}, kind={self.kind}, status={self.status})"

    @classmethod
    def stale_condition(cls, cutoff):
        running = models.Q(status=cls.Status.RUNNING) & (
            models.Q(last_progress_at__lt=cutoff)
            | models.Q(last_progress_at__isnull=True, started_at__lt=cutoff)
        )
        queued = models.Q(status=cls.Status.QUEUED, created__lt=cutoff)
        return running | queued

    @property
    def is_live(self):
        return self.status in self.LIVE_STATUSES

    @property
    def items_succeeded(self):
        return self.items_upserted + self.items_skipped

    def record_failure(self, *, position, external_id, step, error):
        self.items_failed += 1
        if len(self.failed_items) < self.MAX_FAILED_ITEMS:
            self.failed_items.append(
                {
                    "position": position,
                    "external_id": external_id,
                    "step": step,
                    "error": error,
                }
            )

    def _progress_values(self):
        return {field: getattr(self, field) for field in self.PROGRESS_FIELDS}

    def _transition(self, expected_statuses, conditions=None, **values):
        values.setdefault("modified", timezone.now())
        qs = type(self)._default_manager.filter(
            pk=self.pk, status__in=expected_statuses
        )
        if conditions is not None:
            qs = qs.filter(conditions)
        updated = qs.update(**values)
        if not updated:
            logger.info(
                "%s was not in any of the statuses %s and was not updated",
                self,
                ", ".join(expected_statuses),
            )
            return False
        for field, value in values.items():
            setattr(self, field, value)
        return True

    def mark_running(self, task_id=None):
        current = timezone.now()
        return self._transition(
            (self.Status.QUEUED,),
            status=self.Status.RUNNING,
            started_at=current,
            last_progress_at=current,
            task_id=task_id,
        )

    def save_progress(self):
        return self._transition(
            (self.Status.RUNNING,),
            last_progress_at=timezone.now(),
            **self._progress_values(),
        )

    def mark_succeeded(self):
        current = timezone.now()
        return self._transition(
            (self.Status.RUNNING,),
            status=self.Status.SUCCEEDED,
            finished_at=current,
            last_progress_at=current,
            **self._progress_values(),
        )

    def mark_failed(
        self,
        failure_reason,
        error_detail,
        expected_statuses=None,
        *,
        conditions=None,
        include_progress=True,
    ):
        """
        Fail a live job, recording why.

        Only the task running the job owns its progress counters, so callers
        such as the stale job sweep pass ``include_progress=False`` to leave the
        stored counters alone.
        """
        if expected_statuses is None:
            expected_statuses = self.LIVE_STATUSES
        values = self._progress_values() if include_progress else {}
        return self._transition(
            expected_statuses,
            conditions=conditions,
            status=self.Status.FAILED,
            finished_at=timezone.now(),
            failure_reason=failure_reason,
            error_detail=error_detail,
            **values,
        )
