"""
Reconciling parsed exercise records with the exercise library
"""

import enum
from logging import getLogger

from django.core.exceptions import ValidationError
from django.db import (
    DataError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    transaction,
)

from exercises.models import Exercise
from fitlog.logging import FitlogLogger

from .exceptions import RecordUpsertFailure, StorageUnavailable, SystemicUpsertFailure
from .parser import ExerciseRecord

logger = getLogger(__name__)
structured_logger = FitlogLogger.get_logger(__name__)


class UpsertResult(enum.Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def upsert_exercise(record: ExerciseRecord) -> UpsertResult:
    """
    Insert or update the Exercise matching ``record.external_id``.

    Only imported attributes are written, and only those which differ from
    the stored values; an exercise whose attributes all match is not written
    at all. Exercises are never deleted here.

    Raises:
        RecordUpsertFailure: The record was rejected (validation or
            constraint errors). Other records can still be imported.
        StorageUnavailable: The database could not be reached.
    """
    attributes = record.attributes()

    try:
        with transaction.atomic():
            exercise = (
                Exercise.objects.select_for_update()
                .filter(external_id=record.external_id)
                .first()
            )

            if exercise is None:
                exercise = Exercise(external_id=record.external_id, **attributes)
                exercise.full_clean()
                exercise.save()
                structured_logger.debug(
                    "Exercise inserted.",
                    event_code="exercise_inserted",
                    exercise=exercise,
                )
                return UpsertResult.INSERTED

            changed_fields = [
                field
                for field, value in attributes.items()
                if getattr(exercise, field) != value
            ]
            if not changed_fields:
                return UpsertResult.UNCHANGED

            for field in changed_fields:
                setattr(exercise, field, attributes[field])
            exercise.full_clean()
            exercise.save(update_fields=[*changed_fields, "modified"])
            structured_logger.debug(
                "Exercise updated.",
                event_code="exercise_updated",
                exercise=exercise,
                changed_fields=changed_fields,
            )
            return UpsertResult.UPDATED
    except (OperationalError, InterfaceError) as exc:
        raise StorageUnavailable(f"Exercise library is unavailable: {exc}") from exc
    except ValidationError as exc:
        raise RecordUpsertFailure(
            record.position, record.external_id, _format_validation_error(exc)
        ) from exc
    except (IntegrityError, DataError) as exc:
        raise RecordUpsertFailure(record.position, record.external_id, str(exc)) from exc


def _format_validation_error(exc):
    if hasattr(exc, "message_dict"):
        return "; ".join(
            f"{field}: {' '.join(messages)}"
            for field, messages in sorted(exc.message_dict.items())
        )
    return " ".join(exc.messages)


class ExerciseLibraryLoader:
    """
    Upserts records in order while watching for systemic failures.

    A single rejected record is the record's problem, but a run of
    ``systemic_failure_limit`` consecutive rejections almost always means
    something is wrong with the library itself, so the loader escalates to
    SystemicUpsertFailure rather than grinding through the whole dataset.

    A transient database error (a lock timeout, a dropped connection) counts
    as a rejection of the record being saved. With a limit of 0 escalation is
    disabled and such errors are raised as StorageUnavailable straight away.
    """

    def __init__(self, systemic_failure_limit=10):
        self.systemic_failure_limit = systemic_failure_limit
        self.consecutive_failures = 0

    def upsert(self, record: ExerciseRecord) -> UpsertResult:
        try:
            result = upsert_exercise(record)
        except RecordUpsertFailure as exc:
            self._count_failure(record, exc)
            raise
        except StorageUnavailable as exc:
            if not self.systemic_failure_limit:
                raise
            rejected = RecordUpsertFailure(
                record.position, record.external_id, str(exc)
            )
            self._count_failure(record, rejected)
            raise rejected from exc
        self.consecutive_failures = 0
        return result

    def _count_failure(self, record, rejected):
        self.consecutive_failures += 1
        if (
            self.systemic_failure_limit
            and self.consecutive_failures >= self.systemic_failure_limit
        ):
            logger.warning(
                "%s consecutive records were rejected, stopping at %s",
                self.consecutive_failures,
                record.external_id,
            )
            raise SystemicUpsertFailure(
                f"{self.consecutive_failures} consecutive records were "
                f"rejected by the exercise library; last error: {rejected}",
                rejected=rejected,
            ) from rejected
