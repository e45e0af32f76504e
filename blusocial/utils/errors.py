"""Custom exception types for consistent error handling."""


class FirestoreUnavailableError(Exception):
    """Raised when Firestore queries fail or are unavailable."""


class InvalidInputError(Exception):
    """Raised when request input or coordinates fail validation."""


class PartialBatchFailureError(Exception):
    """Raised when one or more chunk fetches of a batched lookup fail."""

    def __init__(self, failed_chunks: int, total_chunks: int):
        self.failed_chunks = failed_chunks
        self.total_chunks = total_chunks
        super().__init__(
            f"{failed_chunks} of {total_chunks} chunk fetches failed"
        )


class NotificationError(Exception):
    """Raised inside the push adapter when delivery cannot be attempted."""


class GraphExecutionError(Exception):
    """Raised when a graph fails to compile or execute."""
