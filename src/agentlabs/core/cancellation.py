from __future__ import annotations
import threading
from typing import Iterable, Iterator, Optional, TypeVar

from .errors import OperationCancelledError

T = TypeVar("T")


class CancellationToken:
    """Caller-owned flag checked between stream fragments."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled")


def cancellable(items: Iterable[T], token: Optional[CancellationToken]) -> Iterator[T]:
    """Yield from items, stopping with OperationCancelledError once token is cancelled."""
    if token is None:
        yield from items
        return
    it = iter(items)
    try:
        while True:
            # Checked before pulling so nothing is produced after cancel()
            token.raise_if_cancelled()
            try:
                item = next(it)
            except StopIteration:
                return
            yield item
    finally:
        close = getattr(it, "close", None)
        if close is not None:
            close()
