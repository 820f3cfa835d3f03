"""Exceptions raised by the compression engine."""


class CompressionError(Exception):
    """Base class for all compression failures."""

    pass


class InvalidImageError(CompressionError):
    """Raised when a source cannot be decoded or has zero-area dimensions."""

    pass


class DirectoryCreationFailedError(CompressionError):
    """Raised when the destination directory cannot be created."""

    pass


class EncodingFailedError(CompressionError):
    """Raised when the underlying encoder fails."""

    pass


class BudgetUnattainableError(CompressionError):
    """Raised on request when the byte budget could not be met."""

    def __init__(self, size_bytes: int, budget_bytes: int):
        self.size_bytes = size_bytes
        self.budget_bytes = budget_bytes
        super().__init__(
            f"Smallest encoding is {size_bytes} bytes, budget is {budget_bytes} bytes"
        )
