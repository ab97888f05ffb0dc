"""
Per-operation deadlines
"""

import time

from campus_events.core.errors import DeadlineExceeded


class Deadline:
    """A monotonic point in time after which an operation must not commit"""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self) -> None:
        if self.expired:
            raise DeadlineExceeded(f"Operation exceeded its {self.seconds:g}s deadline")
