"""
Error kinds raised inside the recognition core.

None of these are fatal: classifiers turn them into an empty
ClassificationResult and the tick loop keeps running.
"""


class FingerspellError(Exception):
    """Base class for all recognition-core errors."""


class InvalidFrame(FingerspellError, ValueError):
    """Hand frame has fewer than 21 landmarks or an unusable shape."""


class DegenerateGeometry(FingerspellError, ValueError):
    """Palm size is below epsilon, so the frame cannot be normalized."""


class NotTrained(FingerspellError):
    """Sample store has not reached the readiness bar."""


class StorePersistenceFailure(FingerspellError):
    """Durable read or write of the sample store failed."""

    def __init__(self, path, cause: Exception):
        super().__init__(f"Sample store persistence failed for {path}: {cause}")
        self.path = path
        self.cause = cause
