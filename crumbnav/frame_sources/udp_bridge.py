"""Live session events via an external device bridge.

This source avoids device AR SDK bindings. It consumes JSON event packets
(see ``control.events``) from a UDP socket so a phone-side bridge can own the
tracking session and forward frames, anchor resolutions and tracking state.
"""

from __future__ import annotations

import logging
import socket
import time
from typing import Callable

from ..control.events import LiveFrameEvent, SessionEvent, TrackingStateEvent, parse_event_line
from ..control.frame_source import FrameSource
from ..control.tracking_monitor import TrackingState

logger = logging.getLogger(__name__)


class _UdpEventReceiver:
    def __init__(self, host: str, port: int):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((host, int(port)))
        self.sock.setblocking(False)

    def recv_all(self) -> list[SessionEvent]:
        """Drain every pending packet; events keep arrival order."""
        events: list[SessionEvent] = []
        while True:
            try:
                data, _ = self.sock.recvfrom(65535)
            except BlockingIOError:
                break
            except OSError:
                break
            event = parse_event_line(data)
            if event is None:
                logger.debug("[SOURCE] dropped malformed bridge packet (%d bytes)", len(data))
                continue
            events.append(event)
        return events

    def close(self) -> None:
        self.sock.close()


class UdpBridgeFrameSource(FrameSource):
    """Event source fed by a device bridge over UDP.

    Unlike pose streams, no packet may be skipped: anchor resolutions and
    tracking transitions are delivered in order alongside frames.
    """

    name = "udp"

    def __init__(self, host: str = "127.0.0.1", port: int = 24568, poll_ms: int = 8):
        self.host = str(host)
        self.port = int(port)
        self.poll_s = max(0.001, float(poll_ms) / 1000.0)
        self._receiver = _UdpEventReceiver(self.host, self.port)
        self._closed = False
        self._has_tracking = False
        self._last_recv_t = 0.0
        self._last_warn_t = 0.0
        self._recv_count = 0

        logger.info(
            "[SOURCE] provider=udp-bridge (host=%s, port=%s, poll_ms=%.1f)",
            self.host,
            self.port,
            self.poll_s * 1000.0,
        )

    def has_tracking(self) -> bool:
        return bool(self._has_tracking)

    def _poll_once(self, on_event: Callable[[SessionEvent], None]) -> None:
        events = self._receiver.recv_all()
        if not events:
            now = time.time()
            # Only warn if we have not received any packet recently.
            if (now - self._last_recv_t) > 2.0 and (now - self._last_warn_t) > 2.0:
                logger.info("[SOURCE] waiting for bridge packets on %s:%s", self.host, self.port)
                self._last_warn_t = now
            return

        self._last_recv_t = time.time()
        for event in events:
            self._recv_count += 1
            if self._recv_count == 1:
                logger.info("[SOURCE] first bridge packet received on %s:%s", self.host, self.port)
            if isinstance(event, LiveFrameEvent):
                self._has_tracking = True
            elif isinstance(event, TrackingStateEvent):
                self._has_tracking = event.state is TrackingState.NORMAL
            on_event(event)

    def run(self, on_event: Callable[[SessionEvent], None]) -> None:
        while not self._closed:
            self._poll_once(on_event)
            time.sleep(self.poll_s)
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._receiver.close()
        except OSError:
            pass
