import threading
from typing import Optional

from cluster_mover.core.exceptions import OperatorInterrupt


class CancellationToken:
    """Set once the operator asked to stop. Safe to cancel from a signal handler or another thread."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "interrupted by operator") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperatorInterrupt(self.reason or "interrupted by operator")
