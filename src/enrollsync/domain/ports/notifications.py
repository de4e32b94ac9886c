"""Port for operator-facing notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection


@runtime_checkable
class Notifier(Protocol):
    def notify(self, recipient_ids: Collection[str], *, subject: str, message: str) -> None: ...


__all__ = ["Notifier"]
