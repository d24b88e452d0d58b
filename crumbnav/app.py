"""
Breadcrumb route follower:
- Route JSON (crumbs + cloud anchors) -> keypoints via corridor simplification
- Live frames from a recorded log (replay) or a device bridge (udp)
- Geospatial alignment filter proposes leveled corrections
- Cloud anchor resolutions override geospatial alignment
- World-map relocalization overrides both
- Display provider (tui/plot/none) renders the same session snapshot

Deps:
  pip install numpy PyYAML   (matplotlib for --display-provider plot)
"""

from __future__ import annotations

import logging

from .config import parse_args
from .control.arbitrator import AlignmentArbitrator
from .control.cloud_anchor_alignment import CloudAnchorAligner
from .control.controller import NavigationController
from .control.display_provider import (
    MatplotlibTopDownDisplayProvider,
    NullDisplayProvider,
    TuiDisplayProvider,
)
from .control.geospatial_filter import AlignmentFilter
from .control.session import NavigationSession
from .control.tracking_monitor import TrackingStateMonitor
from .frame_sources import ReplayFrameSource, UdpBridgeFrameSource
from .route.route_io import RouteFormatError, load_route
from .route.sample import QualityThresholds

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_alignment_filter(cfg) -> AlignmentFilter:
    thresholds = QualityThresholds(
        heading_max=cfg.heading_max_deg,
        altitude_max=cfg.altitude_max_m,
        horizontal_max=cfg.horizontal_max_m,
    )
    alignment_filter = AlignmentFilter(
        thresholds=thresholds,
        smoothing=cfg.geo_smoothing,
        max_jump_m=cfg.geo_max_jump_m,
        max_jump_deg=cfg.geo_max_jump_deg,
        min_consistent=cfg.geo_min_consistent,
        enabled=cfg.geo_filter,
    )
    logger.info(
        "[GEO] filter=%s heading<%.1fdeg altitude<%.2fm horizontal<%.2fm smoothing=%.2f",
        "on" if cfg.geo_filter else "off",
        cfg.heading_max_deg,
        cfg.altitude_max_m,
        cfg.horizontal_max_m,
        cfg.geo_smoothing,
    )
    return alignment_filter


def build_session(cfg) -> NavigationSession:
    try:
        route = load_route(cfg.route)
    except (OSError, RouteFormatError) as exc:
        raise SystemExit(f"failed to load route {cfg.route}: {exc}") from exc

    return NavigationSession(
        route,
        alignment_filter=build_alignment_filter(cfg),
        cloud_aligner=CloudAnchorAligner(max_anchors=cfg.max_cloud_anchors),
        arbitrator=AlignmentArbitrator(),
        tracking_monitor=TrackingStateMonitor(),
        path_width=cfg.path_width,
        keypoint_radius=cfg.keypoint_radius_m,
        reverse=cfg.reverse,
    )


def build_frame_source(cfg):
    if cfg.source == "replay":
        try:
            return ReplayFrameSource(cfg.events, rate=cfg.replay_rate)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc

    if cfg.source == "udp":
        try:
            return UdpBridgeFrameSource(
                host=cfg.bridge_host,
                port=cfg.bridge_port,
                poll_ms=cfg.poll_ms,
            )
        except OSError as exc:
            raise SystemExit(
                f"failed to bind bridge socket {cfg.bridge_host}:{cfg.bridge_port}: {exc}"
            ) from exc

    raise RuntimeError(f"Unsupported frame source: {cfg.source}")


def build_display_provider(cfg):
    if cfg.display_provider == "tui":
        return TuiDisplayProvider(cli_output=cfg.cli_output)

    if cfg.display_provider == "plot":
        try:
            return MatplotlibTopDownDisplayProvider(title="crumbnav route")
        except RuntimeError:
            logger.exception("[DISPLAY] failed to initialize plot display provider")
            logger.warning("[DISPLAY] fallback to tui provider")
            return TuiDisplayProvider(cli_output=cfg.cli_output)

    if cfg.display_provider == "none":
        return NullDisplayProvider()

    raise RuntimeError(f"Unsupported display provider: {cfg.display_provider}")


def main(argv=None):
    cfg = parse_args(argv)
    configure_logging(cfg.log_level)

    session = build_session(cfg)
    if session.pending_anchor_requests:
        logger.info(
            "[ANCHOR] requesting %d cloud anchors: %s",
            len(session.pending_anchor_requests),
            ", ".join(session.pending_anchor_requests),
        )

    frame_source = build_frame_source(cfg)
    display_provider = build_display_provider(cfg)
    controller = NavigationController(
        session=session,
        display_provider=display_provider,
        display_hz=cfg.display_hz,
    )

    try:
        frame_source.run(controller.tick)
        controller.flush()
    except KeyboardInterrupt:
        logger.info("[NAV] interrupted")
    finally:
        try:
            frame_source.close()
        finally:
            display_provider.close()

    snap = session.snapshot()
    logger.info(
        "[NAV] done: frames=%d state=%s next_keypoint=%d/%d finished=%s",
        snap.frames,
        snap.state.value,
        snap.next_keypoint_index,
        len(snap.keypoints) - 1,
        snap.finished,
    )
    return 0


if __name__ == "__main__":
    main()
