import warnings
from types import MappingProxyType
from typing import Any, Callable, Optional

import structlog

Extractor = Callable[[Any], dict[str, Any]]


def _job_fields(job) -> dict[str, Any]:
    pk = getattr(job, "pk", None)
    return {
        "job_id": str(pk) if pk else None,
        "job_kind": getattr(job, "kind", None),
        "job_status": getattr(job, "status", None),
    }


def _exercise_fields(exercise) -> dict[str, Any]:
    return {
        "exercise_id": getattr(exercise, "pk", None),
        "external_id": getattr(exercise, "external_id", None),
    }


def _record_fields(record) -> dict[str, Any]:
    # Parsed records and record errors share these attributes
    return {
        "external_id": getattr(record, "external_id", None),
        "record_position": getattr(record, "position", None),
    }


#: Context names which are expanded into flat fields for every logger
DEFAULT_EXTRACTORS: "MappingProxyType[str, Extractor]" = MappingProxyType(
    {
        "job": _job_fields,
        "exercise": _exercise_fields,
        "record": _record_fields,
    }
)


class FitlogLogger:
    """
    Structured logger used throughout fitlog, wrapping a structlog logger.

    Every event needs a message and an ``event_code``; warnings and errors
    also need ``reason`` and ``reason_code``. Domain objects passed as
    ``job=``, ``exercise=`` or ``record=`` are flattened into fields such as
    ``job_id`` and ``external_id``. Explicit keyword values take precedence
    over extracted ones and ``None`` values are dropped.

    Example::

        structured_logger = FitlogLogger.get_logger(__name__)
        job_logger = structured_logger.bind(job=job)
        job_logger.warning(
            "Import job rejected.",
            event_code="import_job_rejected",
            reason="A job of this kind is already running.",
            reason_code="already_running",
        )

    Objects bound with ``bind()`` are expanded each time an event is logged,
    so the fields reflect the object's state at that moment.
    """

    def __init__(self, logger, context: Optional[dict[str, Any]] = None):
        self._logger = logger
        self._context = dict(context or {})
        self._extractors: dict[str, Extractor] = dict(DEFAULT_EXTRACTORS)

    @classmethod
    def get_logger(cls, name: str) -> "FitlogLogger":
        """Create a logger named ``name`` under the ``structlog`` hierarchy"""
        return cls(structlog.get_logger(f"structlog.{name}"))

    def register_extractor(self, key: str, extractor: Extractor) -> None:
        """Expand ``key`` with ``extractor`` for this logger instance only"""
        if key in DEFAULT_EXTRACTORS:
            warnings.warn(
                f"Extractor for '{key}' overrides a default extractor for this "
                f"logger only.",
                UserWarning,
                stacklevel=2,
            )
        self._extractors[key] = extractor

    def unregister_extractor(self, key: str) -> None:
        self._extractors.pop(key, None)

    def bind(self, **kwargs: Any) -> "FitlogLogger":
        bound = FitlogLogger(self._logger, context={**self._context, **kwargs})
        bound._extractors = dict(self._extractors)
        return bound

    def _build_event(self, event_code, reason, reason_code, context):
        fields = {"event_code": event_code}
        if reason:
            fields["reason"] = reason
        if reason_code:
            fields["reason_code"] = reason_code

        for name, extractor in self._extractors.items():
            obj = context.pop(name, self._context.get(name))
            if obj is None:
                continue
            for key, value in extractor(obj).items():
                if value is not None:
                    fields.setdefault(key, value)

        plain_bound = {
            key: value
            for key, value in self._context.items()
            if key not in self._extractors and key not in context
        }
        for key, value in {**plain_bound, **context}.items():
            if value is not None:
                fields[key] = value
        return fields

    def log(
        self,
        level: str,
        message: str,
        *,
        event_code: str,
        reason: Optional[str] = None,
        reason_code: Optional[str] = None,
        **context: Any,
    ) -> None:
        """
        Emit an event at ``level``. Prefer the level methods below.

        Raises:
            ValueError: If the message or event_code is missing, or a warning
                or error lacks reason or reason_code.
        """
        if not message:
            raise ValueError("Log message is required.")
        if not event_code:
            raise ValueError("Structured logs must include an 'event_code' field.")
        if level in ("warning", "error") and not (reason and reason_code):
            raise ValueError(
                "Warnings and errors must include both 'reason' and 'reason_code'."
            )

        fields = self._build_event(event_code, reason, reason_code, context)
        getattr(self._logger, level)(message, **fields)

    def debug(self, message: str, *, event_code: str, **kwargs):
        self.log("debug", message, event_code=event_code, **kwargs)

    def info(self, message: str, *, event_code: str, **kwargs):
        self.log("info", message, event_code=event_code, **kwargs)

    def warning(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        self.log(
            "warning",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )

    def error(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        self.log(
            "error",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )
