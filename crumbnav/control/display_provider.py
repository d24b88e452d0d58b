"""Display providers for rendering runtime navigation state."""

from __future__ import annotations

import logging
import math
import sys

import numpy as np

from .session import SessionSnapshot

logger = logging.getLogger(__name__)


class DisplayProvider:
    """Base display provider interface."""

    def update(self, frame: SessionSnapshot) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class NullDisplayProvider(DisplayProvider):
    def update(self, frame: SessionSnapshot) -> None:  # noqa: ARG002
        pass


def _status_lines(frame: SessionSnapshot) -> list[str]:
    c = frame.correction
    ct = c.position
    lines = [
        f"route           = {frame.route_name}",
        f"frames          = {frame.frames}",
        f"localization    = {frame.state.value}",
        (
            f"correction xyz  = [{ct[0]: .3f}, {ct[1]: .3f}, {ct[2]: .3f}]  "
            f"yaw={math.degrees(c.yaw): .1f} deg"
        ),
    ]
    if frame.live_pose is not None:
        p = frame.live_pose.position
        lines.append(f"live xyz (m)    = [{p[0]: .3f}, {p[1]: .3f}, {p[2]: .3f}]")
    if frame.geospatial is not None:
        g = frame.geospatial
        lines.append(
            f"geospatial      = ({g.latitude:.6f}, {g.longitude:.6f}) "
            f"+-{g.horizontal_uncertainty:.1f}m hdg+-{g.heading_uncertainty:.1f}deg"
        )
    last = len(frame.keypoints) - 1
    if frame.finished:
        lines.append(f"keypoints       = all {last} reached")
    else:
        dist = "n/a" if frame.distance_to_next is None else f"{frame.distance_to_next:.2f}m"
        lines.append(f"next keypoint   = {frame.next_keypoint_index}/{last}  dist={dist}")
    return lines


class _CliStatsSink:
    def __init__(self, mode: str):
        self.mode = "live" if mode == "live" else "scroll"
        self._is_tty = bool(getattr(sys.stderr, "isatty", lambda: False)())
        self._live_enabled = self.mode == "live" and self._is_tty
        self._line_count = 0

    def emit(self, lines: list[str], scroll_line: str) -> None:
        if not self._live_enabled:
            logger.info(scroll_line)
            return

        out = sys.stderr
        if self._line_count > 0:
            out.write(f"\x1b[{self._line_count}F")

        max_lines = max(self._line_count, len(lines))
        for i in range(max_lines):
            line = lines[i] if i < len(lines) else ""
            out.write("\x1b[2K")
            out.write(line)
            out.write("\n")
        out.flush()
        self._line_count = len(lines)


class TuiDisplayProvider(DisplayProvider):
    """Terminal text display provider."""

    def __init__(self, cli_output: str = "live"):
        self.cli_sink = _CliStatsSink(cli_output)

    def update(self, frame: SessionSnapshot) -> None:
        ct = frame.correction.position
        p = frame.live_pose.position if frame.live_pose is not None else np.zeros(3)
        self.cli_sink.emit(
            lines=["crumbnav live session", *_status_lines(frame)],
            scroll_line=(
                "[NAV] state=%s live_xyz=(%.3f, %.3f, %.3f) correction_xyz=(%.3f, %.3f, %.3f) "
                "next=%d/%d"
                % (
                    frame.state.value,
                    p[0],
                    p[1],
                    p[2],
                    ct[0],
                    ct[1],
                    ct[2],
                    frame.next_keypoint_index,
                    len(frame.keypoints) - 1,
                )
            ),
        )


class MatplotlibTopDownDisplayProvider(DisplayProvider):
    """Top-down (x, z) plot of corrected keypoints and the live position."""

    def __init__(self, title: str = "crumbnav route"):
        try:
            import matplotlib.pyplot as plt
        except ImportError as exc:  # pragma: no cover - optional dependency path
            raise RuntimeError(
                "display-provider=plot requires matplotlib. Install with: pip install crumbnav[plot]"
            ) from exc

        self.plt = plt
        self.plt.ion()
        self.fig = self.plt.figure(title)
        self.ax = self.fig.add_subplot(111)
        self.ax.set_xlabel("x (m)")
        self.ax.set_ylabel("z (m)")
        self.ax.set_aspect("equal", adjustable="datalim")

        (self.route_line,) = self.ax.plot([], [], c="gray", lw=1.2, marker="o", label="keypoints")
        (self.next_pt,) = self.ax.plot([], [], c="tab:orange", marker="*", ms=14, ls="", label="next")
        (self.live_pt,) = self.ax.plot([], [], c="tab:blue", marker="o", ms=8, ls="", label="you")
        (self.trail_line,) = self.ax.plot([], [], c="tab:blue", lw=0.8, alpha=0.5)
        self.ax.legend(loc="upper left")
        self._trail: list[tuple[float, float]] = []
        self._enabled = True

    def update(self, frame: SessionSnapshot) -> None:
        if not self._enabled:
            return
        if not self.plt.fignum_exists(self.fig.number):
            self._enabled = False
            return

        xs = [kp.pose.x for kp in frame.keypoints]
        zs = [kp.pose.z for kp in frame.keypoints]
        self.route_line.set_data(xs, zs)
        if not frame.finished and frame.next_keypoint_index < len(frame.keypoints):
            nxt = frame.keypoints[frame.next_keypoint_index].pose
            self.next_pt.set_data([nxt.x], [nxt.z])
        else:
            self.next_pt.set_data([], [])

        pts = list(zip(xs, zs))
        if frame.live_pose is not None:
            p = frame.live_pose
            self._trail.append((p.x, p.z))
            self._trail = self._trail[-500:]
            self.live_pt.set_data([p.x], [p.z])
            self.trail_line.set_data([t[0] for t in self._trail], [t[1] for t in self._trail])
            pts.append((p.x, p.z))

        if pts:
            arr = np.asarray(pts, dtype=np.float64)
            lo = arr.min(axis=0) - 1.0
            hi = arr.max(axis=0) + 1.0
            self.ax.set_xlim(lo[0], hi[0])
            self.ax.set_ylim(lo[1], hi[1])
        self.ax.set_title(f"{frame.route_name}  [{frame.state.value}]  frames={frame.frames}")

        self.fig.canvas.draw_idle()
        self.plt.pause(0.001)

    def close(self) -> None:
        if not getattr(self, "_enabled", False):
            return
        self._enabled = False
        self.plt.close(self.fig)
