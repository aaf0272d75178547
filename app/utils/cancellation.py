"""Cooperative cancellation for long traversals.

A :class:`CancellationToken` is created once per run, handed to every walker,
and set from a signal handler.  Walkers poll it between assets, environments
and spaces; a repair already in progress on one asset is never interrupted.
"""

import threading


class OperationCancelledError(Exception):
    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation.  Idempotent; safe to call from a signal handler."""
        self._event.set()

    def throw_if_cancelled(
        self, exc_class: type[Exception] = OperationCancelledError
    ) -> None:
        if self._event.is_set():
            raise exc_class()
