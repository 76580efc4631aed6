from unittest import mock

from django.db import OperationalError
from django.test import TestCase, override_settings

from exercises.models import Exercise
from importer.dispatch import deploy_job
from importer.library import ExerciseLibraryLoader
from importer.models import ImportJob
from importer.tasks.library import run_exercise_library_import_task

from .utils import (
    ConfigurationCacheMixin,
    create_import_job,
    dataset_bytes,
    delete_dataset,
    exercise_data,
    set_configuration,
    store_dataset,
)

DATASET_NAME = "library-task-test.json"

IMPORT_SETTINGS = {"SOURCE": DATASET_NAME, "HTTP_TIMEOUT": 5, "CHUNK_SIZE": 64}


def valid_entries(count=5):
    return [exercise_data(f"Exercise_{i}") for i in range(count)]


@override_settings(EXERCISE_LIBRARY_IMPORT=IMPORT_SETTINGS)
class ExerciseLibraryImportTests(ConfigurationCacheMixin, TestCase):
    def tearDown(self):
        delete_dataset(DATASET_NAME)
        super().tearDown()

    def run_import(self, entries=None, data=None):
        if data is None:
            data = dataset_bytes(entries)
        store_dataset(DATASET_NAME, data)
        with self.captureOnCommitCallbacks(execute=True):
            job = deploy_job(ImportJob.Kind.UPDATE_EXERCISE_LIBRARY)
        job.refresh_from_db()
        return job

    def test_import_succeeds(self):
        job = self.run_import(valid_entries(5))

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(job.items_fetched, 5)
        self.assertEqual(job.items_upserted, 5)
        self.assertEqual(job.items_skipped, 0)
        self.assertEqual(job.items_failed, 0)
        self.assertEqual(job.error_detail, "")
        self.assertIsNotNone(job.started_at)
        self.assertIsNotNone(job.finished_at)
        self.assertIsNotNone(job.task_id)
        self.assertEqual(Exercise.objects.count(), 5)

        exercise = Exercise.objects.get(external_id="Exercise_3")
        self.assertEqual(exercise.name, "Exercise 3")
        self.assertEqual(exercise.images, ["Exercise_3/0.jpg", "Exercise_3/1.jpg"])

    def test_rerun_with_identical_data_changes_nothing(self):
        self.run_import(valid_entries(5))
        modified = dict(Exercise.objects.values_list("external_id", "modified"))

        job = self.run_import(valid_entries(5))

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(job.items_skipped, 5)
        self.assertEqual(job.items_upserted, 0)
        self.assertEqual(
            dict(Exercise.objects.values_list("external_id", "modified")), modified
        )

    def test_one_malformed_record(self):
        entries = valid_entries(4)
        entries.insert(2, {"id": "Broken", "name": None})

        job = self.run_import(entries)

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(job.items_failed, 1)
        self.assertEqual(job.items_upserted, 4)
        self.assertEqual(job.items_fetched, 5)
        self.assertEqual(
            job.failed_items,
            [
                {
                    "position": 3,
                    "external_id": "Broken",
                    "step": "parse",
                    "error": "Missing name",
                }
            ],
        )
        self.assertFalse(Exercise.objects.filter(external_id="Broken").exists())

    def test_rejected_record(self):
        entries = valid_entries(3)
        entries.append(exercise_data("Too_Long", name="x" * 300))

        job = self.run_import(entries)

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(job.items_upserted, 3)
        self.assertEqual(job.items_failed, 1)
        self.assertEqual(job.failed_items[0]["step"], "upsert")
        self.assertEqual(job.failed_items[0]["external_id"], "Too_Long")

    def test_unparsable_dataset(self):
        job = self.run_import(data=b"<html><body>Not Found</body></html>")

        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.PARSE)
        self.assertIn("neither a JSON array nor JSON Lines", job.error_detail)
        self.assertEqual(job.items_upserted, 0)
        self.assertIsNotNone(job.finished_at)
        self.assertFalse(Exercise.objects.exists())

    def test_missing_source(self):
        with self.captureOnCommitCallbacks(execute=True):
            job = deploy_job(ImportJob.Kind.UPDATE_EXERCISE_LIBRARY)
        job.refresh_from_db()

        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.FETCH)
        self.assertIn(DATASET_NAME, job.error_detail)

    def test_empty_dataset_fails(self):
        job = self.run_import([])

        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.THRESHOLD)
        self.assertIn("No records were imported", job.error_detail)

    def test_all_records_failing_fails_job(self):
        job = self.run_import([{"id": "A"}, {"id": "B"}])

        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.THRESHOLD)
        self.assertEqual(job.items_failed, 2)
        self.assertEqual(len(job.failed_items), 2)

    def test_configured_failure_ratio(self):
        set_configuration("exercise_import_max_failure_ratio", "0.2")
        entries = valid_entries(3) + [{"id": "A"}]

        job = self.run_import(entries)

        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.THRESHOLD)
        self.assertIn("1 of 4 records failed", job.error_detail)
        # Records imported before the threshold check are kept
        self.assertEqual(Exercise.objects.count(), 3)

    def test_local_fields_survive_reimport(self):
        self.run_import(valid_entries(2))
        Exercise.objects.filter(external_id="Exercise_1").update(
            notes="Use the light band"
        )

        entries = valid_entries(2)
        entries[1]["level"] = "expert"
        entries[1]["instructions"] = ["New instructions."]
        job = self.run_import(entries)

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(job.items_upserted, 1)
        self.assertEqual(job.items_skipped, 1)
        exercise = Exercise.objects.get(external_id="Exercise_1")
        self.assertEqual(exercise.level, "expert")
        self.assertEqual(exercise.instructions, ["New instructions."])
        self.assertEqual(exercise.notes, "Use the light band")

    def test_records_missing_from_import_are_kept(self):
        self.run_import(valid_entries(3))
        job = self.run_import(valid_entries(1))

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(Exercise.objects.count(), 3)

    def test_systemic_upsert_failure(self):
        set_configuration("exercise_import_systemic_failure_limit", "2")
        entries = valid_entries(1)
        entries += [exercise_data(f"Bad{i}", level="x" * 80) for i in range(3)]

        job = self.run_import(entries)

        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.STORAGE)
        self.assertIn("2 consecutive records", job.error_detail)
        self.assertEqual(job.items_fetched, 3)
        self.assertEqual(job.items_upserted, 1)
        self.assertEqual(job.items_failed, 2)
        self.assertEqual(
            job.items_fetched,
            job.items_upserted + job.items_skipped + job.items_failed,
        )
        self.assertEqual(
            [item["external_id"] for item in job.failed_items], ["Bad0", "Bad1"]
        )
        self.assertEqual(job.failed_items[1]["step"], "upsert")
        self.assertFalse(Exercise.objects.filter(external_id="Bad2").exists())

    def test_transient_database_error_fails_one_record(self):
        original_select_for_update = Exercise.objects.select_for_update
        calls = []

        def lock_timeout_once():
            calls.append(1)
            if len(calls) == 2:
                raise OperationalError("canceling statement due to lock timeout")
            return original_select_for_update()

        with mock.patch.object(
            Exercise.objects, "select_for_update", side_effect=lock_timeout_once
        ):
            job = self.run_import(valid_entries(3))

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(job.items_upserted, 2)
        self.assertEqual(job.items_failed, 1)
        self.assertEqual(job.failed_items[0]["external_id"], "Exercise_1")
        self.assertIn("lock timeout", job.failed_items[0]["error"])

    def test_database_outage_with_escalation_disabled(self):
        set_configuration("exercise_import_systemic_failure_limit", "0")

        with mock.patch.object(
            Exercise.objects,
            "select_for_update",
            side_effect=OperationalError("server closed the connection"),
        ):
            job = self.run_import(valid_entries(3))

        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.STORAGE)
        self.assertEqual(job.items_fetched, 1)
        self.assertEqual(job.items_failed, 1)
        self.assertEqual(job.failed_items[0]["external_id"], "Exercise_0")

    def test_progress_is_saved_periodically(self):
        set_configuration("exercise_import_progress_interval", "2")

        with mock.patch.object(
            ImportJob,
            "save_progress",
            autospec=True,
            side_effect=ImportJob.save_progress,
        ) as mock_save_progress:
            job = self.run_import(valid_entries(5))

        self.assertEqual(job.status, ImportJob.Status.SUCCEEDED)
        self.assertEqual(mock_save_progress.call_count, 2)

    def test_unexpected_error_fails_job_and_propagates(self):
        store_dataset(DATASET_NAME, dataset_bytes(valid_entries(2)))
        job = create_import_job(source_reference=DATASET_NAME)

        with mock.patch.object(
            ExerciseLibraryLoader, "upsert", side_effect=RuntimeError("boom")
        ):
            with self.assertRaisesRegex(RuntimeError, "boom"):
                run_exercise_library_import_task.delay(str(job.pk))

        job.refresh_from_db()
        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.UNEXPECTED)
        self.assertEqual(job.error_detail, "Unhandled exception: boom")
        self.assertIsNotNone(job.finished_at)

    def test_job_swept_while_running_is_left_alone(self):
        set_configuration("exercise_import_progress_interval", "1")
        store_dataset(DATASET_NAME, dataset_bytes(valid_entries(5)))
        job = create_import_job(source_reference=DATASET_NAME)
        original_upsert = ExerciseLibraryLoader.upsert

        def upsert_then_get_swept(loader, record):
            result = original_upsert(loader, record)
            if record.external_id == "Exercise_1":
                sweeper_copy = ImportJob.objects.get(pk=job.pk)
                sweeper_copy.mark_failed(
                    ImportJob.FailureReason.STALE,
                    "No progress was recorded",
                    include_progress=False,
                )
            return result

        with mock.patch.object(
            ExerciseLibraryLoader,
            "upsert",
            autospec=True,
            side_effect=upsert_then_get_swept,
        ):
            run_exercise_library_import_task.delay(str(job.pk))

        job.refresh_from_db()
        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertEqual(job.failure_reason, ImportJob.FailureReason.STALE)
        self.assertEqual(job.error_detail, "No progress was recorded")
        # The runner stopped at its first progress write after the sweep
        self.assertEqual(job.items_fetched, 1)
        self.assertEqual(
            Exercise.objects.filter(external_id__startswith="Exercise_").count(), 2
        )

    def test_job_which_is_not_queued_is_not_run(self):
        store_dataset(DATASET_NAME, dataset_bytes(valid_entries(2)))
        job = create_import_job(
            source_reference=DATASET_NAME, status=ImportJob.Status.FAILED
        )

        with self.assertLogs("importer.tasks.decorators", level="WARNING"):
            run_exercise_library_import_task.delay(str(job.pk))

        job.refresh_from_db()
        self.assertEqual(job.status, ImportJob.Status.FAILED)
        self.assertIsNone(job.started_at)
        self.assertFalse(Exercise.objects.exists())

    def test_missing_job(self):
        with self.assertLogs("importer.tasks.library", level="WARNING"):
            run_exercise_library_import_task.delay(
                "00000000-0000-0000-0000-000000000000"
            )
