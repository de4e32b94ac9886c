"""Cooperative cancellation that is only honoured before the first write."""

from __future__ import annotations

from enrollsync.domain.errors import OperationCancelledError


class CancellationScope:
    """Cancellation handle for one gateway or planner operation.

    Once writes have begun, :meth:`cancel` refuses and returns False; the
    operation then runs to success, partial failure or hard failure.
    """

    def __init__(self) -> None:
        self._cancel_requested = False
        self._writes_started = False

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    @property
    def writes_started(self) -> bool:
        return self._writes_started

    def cancel(self) -> bool:
        if self._writes_started:
            return False
        self._cancel_requested = True
        return True

    def begin_writes(self, operation: str) -> None:
        if self._cancel_requested:
            raise OperationCancelledError(operation)
        self._writes_started = True
