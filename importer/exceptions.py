class ImporterError(Exception):
    """
    Base class for errors raised while importing the exercise library.

    Subclasses which are fatal to an import job set ``failure_reason`` to the
    ``ImportJob.FailureReason`` value recorded on the failed job.
    """

    failure_reason = "unexpected"


class UnknownJobKind(ImporterError):
    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"Unknown job kind: {kind}")


class JobAlreadyRunning(ImporterError):
    """
    Raised by the dispatcher when a job of the requested kind is already
    queued or running. This is an expected outcome, not a system error.
    """

    def __init__(self, kind, live_job_id=None):
        self.kind = kind
        self.live_job_id = live_job_id
        super().__init__(f"A {kind} job is already running")


class FetchFailure(ImporterError):
    failure_reason = "fetch"

    def __init__(self, source_reference, message):
        self.source_reference = source_reference
        super().__init__(f"Unable to fetch {source_reference}: {message}")


class SourceNotFound(FetchFailure):
    pass


class SourceTransportError(FetchFailure):
    pass


class FatalParseFailure(ImporterError):
    """
    Raised when the dataset as a whole is not in a format we can parse.
    Individual bad records are reported as RecordError values instead.
    """

    failure_reason = "parse"


class RecordError(ImporterError):
    """
    A single record which could not be parsed.

    The parser yields these rather than raising them so one bad record never
    stops the rest of the dataset from being imported.
    """

    step = "parse"

    def __init__(self, position, message, external_id=""):
        self.position = position
        self.external_id = external_id
        self.message = message
        super().__init__(f"Record {position}: {message}")

    def __eq__(self, other):
        if not isinstance(other, RecordError):
            return NotImplemented
        return (self.position, self.external_id, self.message) == (
            other.position,
            other.external_id,
            other.message,
        )

    def __hash__(self):
        return hash((self.position, self.external_id, self.message))


class UpsertFailure(ImporterError):
    failure_reason = "storage"


class RecordUpsertFailure(UpsertFailure):
    """
    A single record was rejected by the exercise library. Like RecordError
    this is counted against the job but does not stop it.
    """

    step = "upsert"

    def __init__(self, position, external_id, message):
        self.position = position
        self.external_id = external_id
        self.message = message
        super().__init__(f"Record {position} ({external_id}): {message}")


class StorageUnavailable(UpsertFailure):
    pass


class SystemicUpsertFailure(UpsertFailure):
    """
    Too many consecutive records failed to save. ``rejected`` is the
    RecordUpsertFailure for the record which stopped the import.
    """

    def __init__(self, message, rejected=None):
        self.rejected = rejected
        super().__init__(message)


class FailureThresholdExceeded(ImporterError):
    failure_reason = "threshold"


class StaleRunTimeout(ImporterError):
    """
    Raised inside a running job when its record has been failed by the stale
    job sweep. The runner stops without touching the record again.
    """

    failure_reason = "stale"
