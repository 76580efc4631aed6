import warnings
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from django.test import TestCase

from fitlog.logging import FitlogLogger


class FitlogLoggerTests(TestCase):
    def setUp(self):
        self.mock_structlog_logger = MagicMock()
        self.logger = FitlogLogger(self.mock_structlog_logger)

    def test_info_logs_with_event(self):
        self.logger.info("info msg", event_code="info_event", key2="value2")
        self.mock_structlog_logger.info.assert_called_once()
        args, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(args[0], "info msg")
        self.assertEqual(kwargs["event_code"], "info_event")
        self.assertEqual(kwargs["key2"], "value2")

    def test_warning_requires_reason_and_reason_code(self):
        with self.assertRaises(TypeError):
            self.logger.warning(
                "warning msg", event_code="warn_event", reason="only_reason"
            )

        self.logger.warning(
            "warning msg",
            event_code="warn_event",
            reason="test reason",
            reason_code="warn_code",
        )
        args, kwargs = self.mock_structlog_logger.warning.call_args
        self.assertEqual(kwargs["reason"], "test reason")
        self.assertEqual(kwargs["reason_code"], "warn_code")

    def test_error_with_empty_reason_raises(self):
        with self.assertRaises(ValueError):
            self.logger.error(
                "error msg", event_code="error_event", reason="", reason_code="code"
            )
        self.mock_structlog_logger.error.assert_not_called()

    def test_missing_event_code_raises(self):
        with self.assertRaises(ValueError):
            self.logger.info("msg", event_code=None)

    def test_missing_message_raises(self):
        with self.assertRaises(ValueError):
            self.logger.info("", event_code="event")

    def test_job_extractor(self):
        job = SimpleNamespace(pk="1234", kind="update_exercise_library", status="running")
        self.logger.info("msg", event_code="event", job=job)
        _, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["job_id"], "1234")
        self.assertEqual(kwargs["job_kind"], "update_exercise_library")
        self.assertEqual(kwargs["job_status"], "running")
        self.assertNotIn("job", kwargs)

    def test_record_extractor_omits_none_values(self):
        record = SimpleNamespace(external_id=None, position=3)
        self.logger.debug("msg", event_code="event", record=record)
        _, kwargs = self.mock_structlog_logger.debug.call_args
        self.assertEqual(kwargs["record_position"], 3)
        self.assertNotIn("external_id", kwargs)

    def test_explicit_key_overrides_extracted(self):
        exercise = SimpleNamespace(pk=7, external_id="Air_Bike")
        self.logger.info(
            "msg", event_code="event", exercise=exercise, external_id="override"
        )
        _, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["exercise_id"], 7)
        self.assertEqual(kwargs["external_id"], "override")

    def test_bind_expands_objects_at_log_time(self):
        job = SimpleNamespace(pk="1234", kind="update_exercise_library", status="queued")
        bound = self.logger.bind(job=job, worker="w1")
        job.status = "running"
        bound.info("msg", event_code="event")
        _, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["job_status"], "running")
        self.assertEqual(kwargs["worker"], "w1")

    def test_bind_does_not_change_original(self):
        self.logger.bind(worker="w1")
        self.logger.info("msg", event_code="event")
        _, kwargs = self.mock_structlog_logger.info.call_args
        self.assertNotIn("worker", kwargs)

    def test_register_extractor_warns_on_default_override(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            self.logger.register_extractor("job", lambda job: {"job_id": "custom"})
        self.assertTrue(any(issubclass(w.category, UserWarning) for w in caught))

        self.logger.info("msg", event_code="event", job=SimpleNamespace())
        _, kwargs = self.mock_structlog_logger.info.call_args
        self.assertEqual(kwargs["job_id"], "custom")

        # Other loggers keep the default extractor
        other_structlog_logger = MagicMock()
        FitlogLogger(other_structlog_logger).info(
            "msg", event_code="event", job=SimpleNamespace(pk="1234")
        )
        _, kwargs = other_structlog_logger.info.call_args
        self.assertEqual(kwargs["job_id"], "1234")

    def test_unregister_extractor(self):
        self.logger.unregister_extractor("exercise")
        self.logger.info(
            "msg", event_code="event", exercise=SimpleNamespace(pk=1, external_id="x")
        )
        _, kwargs = self.mock_structlog_logger.info.call_args
        self.assertNotIn("exercise_id", kwargs)
        self.assertIn("exercise", kwargs)

    @patch("fitlog.logging.structlog.get_logger")
    def test_get_logger_uses_structlog_namespace(self, mock_get_logger):
        logger = FitlogLogger.get_logger("importer.dispatch")
        mock_get_logger.assert_called_once_with("structlog.importer.dispatch")
        self.assertIsInstance(logger, FitlogLogger)
