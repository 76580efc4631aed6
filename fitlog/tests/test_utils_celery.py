from unittest import mock

from django.test import TestCase

from fitlog.celery import CeleryTaskIDFilter
from fitlog.utils.celery import get_registered_task


class GetRegisteredTaskTests(TestCase):
    def test_returns_registered_task(self):
        task = get_registered_task(
            "importer.tasks.library.run_exercise_library_import_task"
        )
        self.assertEqual(
            task.name, "importer.tasks.library.run_exercise_library_import_task"
        )

    def test_unknown_task_raises(self):
        with self.assertRaisesRegex(RuntimeError, "is not registered"):
            get_registered_task("importer.tasks.nope")


class CeleryTaskIDFilterTests(TestCase):
    def test_adds_task_id_inside_task(self):
        record = mock.MagicMock()
        fake_task = mock.MagicMock()
        fake_task.request.id = "abc"
        with mock.patch("fitlog.celery.current_task", fake_task):
            self.assertTrue(CeleryTaskIDFilter().filter(record))
        self.assertEqual(record.task_id, "/[abc]")

    def test_empty_task_id_outside_task(self):
        record = mock.MagicMock()
        with mock.patch("fitlog.celery.current_task", None):
            self.assertTrue(CeleryTaskIDFilter().filter(record))
        self.assertEqual(record.task_id, "")
