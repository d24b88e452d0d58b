"""Frame source interface for live session events."""

from __future__ import annotations

from typing import Callable

from .events import SessionEvent


class FrameSource:
    """Base interface for event sources driving a navigation session.

    Implementations may replay a recorded log or listen to a device bridge.
    """

    name: str = "base"

    def run(self, on_event: Callable[[SessionEvent], None]) -> None:
        """Run the source's loop and deliver each event to on_event in order."""
        raise NotImplementedError

    def has_tracking(self) -> bool:
        """Whether the source is currently receiving usable frames."""
        return True

    def close(self) -> None:
        pass
