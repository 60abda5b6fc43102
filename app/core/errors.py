class ClassStatsError(Exception):
    """Base class for failures of the statistics aggregator."""


class UpstreamReadError(ClassStatsError):
    """Progress records could not be fetched from the relational store."""


class DegenerateInputError(ClassStatsError):
    """A progress record has no usable percentage (max_score <= 0 or non-finite values)."""

    def __init__(self, record_id: str, message: str):
        super().__init__(message)
        self.record_id = record_id


class SummaryWriteError(ClassStatsError):
    """The summary row could not be inserted. Fatal for the run."""


class ArchiveWriteError(ClassStatsError):
    """The snapshot could not be written to the document store. Never fatal."""


class MissingIdentifierError(ClassStatsError, ValueError):
    """classroom_id or school_id was empty. Raised before any data access."""
