from __future__ import annotations

import logging
import time

from .display_provider import DisplayProvider
from .events import SessionEvent
from .session import NavigationSession

logger = logging.getLogger(__name__)


class NavigationController:
    """Feeds source events to the session and refreshes the display at a fixed rate."""

    def __init__(
        self,
        session: NavigationSession,
        display_provider: DisplayProvider,
        display_hz: float = 5.0,
    ):
        self.session = session
        self.display_provider = display_provider
        self.display_interval = (1.0 / display_hz) if display_hz > 0.0 else 0.0
        self.last_display_t = 0.0
        self.events = 0
        self._announced_finish = False

    def tick(self, event: SessionEvent) -> None:
        self.session.handle(event)
        self.events += 1

        if self.session.progress.finished and not self._announced_finish:
            self._announced_finish = True
            logger.info("[NAV] final keypoint reached after %d frames", self.session.frames)

        now = time.time()
        if self.display_interval > 0.0 and (now - self.last_display_t) >= self.display_interval:
            self.display_provider.update(self.session.snapshot())
            self.last_display_t = now

    def flush(self) -> None:
        """Render the final state regardless of throttling."""
        if self.display_interval > 0.0:
            self.display_provider.update(self.session.snapshot())
