"""Errors raised by content clients."""


class ContentClientError(Exception):
    """A remote call failed (transport error or non-success status)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ContentClientError):
    pass


class VersionMismatchError(ContentClientError):
    """The record's version moved on since it was read; reload and retry."""


class AssetProcessingTimeoutError(ContentClientError):
    """A locale was sent for processing but never came back with a finalized url."""
