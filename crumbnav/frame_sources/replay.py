"""Replay of a recorded session event log (JSON lines)."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Iterator

from ..control.events import SessionEvent, parse_event_line
from ..control.frame_source import FrameSource

logger = logging.getLogger(__name__)


def read_events(path: str) -> Iterator[SessionEvent]:
    """Yield events from a JSON-lines log, skipping blank, comment and bad lines."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as fh:
        for lineno, raw_line in enumerate(fh, start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            event = parse_event_line(line)
            if event is None:
                logger.warning("[SOURCE] %s:%d: skipping malformed event", p, lineno)
                continue
            yield event


class ReplayFrameSource(FrameSource):
    """Feeds a recorded log to the session.

    rate:
      0 replays as fast as possible; 1.0 follows the "t" timestamps in real
      time, 2.0 twice as fast, and so on.
    """

    name = "replay"

    def __init__(self, path: str, rate: float = 0.0):
        p = Path(path)
        if not p.is_file():
            raise ValueError(f"event log not found: {p}")
        self.path = str(p)
        self.rate = float(max(0.0, rate))
        self._closed = False
        self.events_delivered = 0
        logger.info("[SOURCE] provider=replay (path=%s, rate=%.2f)", self.path, self.rate)

    def run(self, on_event: Callable[[SessionEvent], None]) -> None:
        t0_log = None
        t0_wall = time.monotonic()
        for event in read_events(self.path):
            if self._closed:
                break
            if self.rate > 0.0 and event.t is not None:
                if t0_log is None:
                    t0_log = event.t
                    t0_wall = time.monotonic()
                due = t0_wall + (event.t - t0_log) / self.rate
                delay = due - time.monotonic()
                if delay > 0.0:
                    time.sleep(delay)
            on_event(event)
            self.events_delivered += 1
        logger.info("[SOURCE] replay finished after %d events", self.events_delivered)
        self.close()

    def close(self) -> None:
        self._closed = True
