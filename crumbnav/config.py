"""CLI config and defaults."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass(frozen=True)
class AppConfig:
    route: str
    source: str = "replay"
    events: str = ""
    replay_rate: float = 0.0
    bridge_host: str = "127.0.0.1"
    bridge_port: int = 24568
    poll_ms: int = 8
    reverse: bool = False
    path_width: float = 0.3
    heading_max_deg: float = 10.0
    altitude_max_m: float = 1.5
    horizontal_max_m: float = 1.5
    geo_filter: bool = True
    geo_smoothing: float = 0.35
    geo_max_jump_m: float = 2.0
    geo_max_jump_deg: float = 15.0
    geo_min_consistent: int = 3
    keypoint_radius_m: float = 0.5
    max_cloud_anchors: int = 20
    log_level: str = "info"
    display_provider: str = "tui"
    display_hz: float = 5.0
    cli_output: str = "live"


_APP_CONFIG_FIELDS = {f.name for f in fields(AppConfig)}
_BOOL_FIELDS = {
    "reverse",
    "geo_filter",
}
_INT_FIELDS = {
    "bridge_port",
    "poll_ms",
    "geo_min_consistent",
    "max_cloud_anchors",
}
_FLOAT_FIELDS = {
    "replay_rate",
    "path_width",
    "heading_max_deg",
    "altitude_max_m",
    "horizontal_max_m",
    "geo_smoothing",
    "geo_max_jump_m",
    "geo_max_jump_deg",
    "keypoint_radius_m",
    "display_hz",
}
_STRING_FIELDS = {
    "route",
    "source",
    "events",
    "bridge_host",
    "log_level",
    "display_provider",
    "cli_output",
}


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in {"1", "true", "yes", "on"}:
            return True
        if s in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"config key '{key}' expects a bool, got {value!r}")


def _coerce_config_value(key: str, value: Any) -> Any:
    try:
        if key in _BOOL_FIELDS:
            return _parse_bool(value, key)
        if key in _INT_FIELDS:
            return int(value)
        if key in _FLOAT_FIELDS:
            return float(value)
        if key in _STRING_FIELDS:
            return "" if value is None else str(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid value for config key '{key}': {value!r}") from exc
    raise ValueError(f"unsupported config key '{key}'")


def _normalize_config_key(raw_key: Any) -> str:
    if not isinstance(raw_key, str):
        raise ValueError(f"config key must be string, got {type(raw_key).__name__}")
    key = raw_key.strip().replace("-", "_")
    if not key:
        raise ValueError("config key cannot be empty")
    return key


def _load_yaml_config(path: str) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ValueError(f"--config file not found: {p}")
    if not p.is_file():
        raise ValueError(f"--config must point to a file: {p}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"failed to read --config file {p}: {exc}") from exc
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to parse YAML config {p}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"--config root must be a mapping/object, got {type(loaded).__name__}")

    normalized: dict[str, Any] = {}
    for raw_key, raw_value in loaded.items():
        key = _normalize_config_key(raw_key)
        if key not in _APP_CONFIG_FIELDS:
            raise ValueError(f"unknown config key in {p}: {raw_key!r}")
        normalized[key] = _coerce_config_value(key, raw_value)
    return normalized


def _yaml_defaults_to_argparse_defaults(cfg: dict[str, Any]) -> dict[str, Any]:
    defaults: dict[str, Any] = {}
    for key, value in cfg.items():
        if key == "geo_filter":
            defaults["no_geo_filter"] = not bool(value)
        else:
            defaults[key] = value
    return defaults


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="crumbnav",
        description="Follow a recorded breadcrumb route with live pose alignment.",
    )
    ap.add_argument(
        "--config",
        type=str,
        default="",
        help="YAML config file path. CLI args override YAML values.",
    )
    ap.add_argument("--route", required=False, default=None, help="Route JSON file.")
    ap.add_argument(
        "--source",
        choices=["replay", "udp"],
        default="replay",
        help="Session event source: recorded JSON-lines log or live UDP device bridge.",
    )
    ap.add_argument(
        "--events",
        type=str,
        default="",
        help="JSON-lines event log for --source replay.",
    )
    ap.add_argument(
        "--replay-rate",
        type=float,
        default=0.0,
        help="Replay speed relative to recorded timestamps (0 = as fast as possible).",
    )
    ap.add_argument(
        "--bridge-host",
        type=str,
        default="127.0.0.1",
        help="Host for the device bridge UDP event stream.",
    )
    ap.add_argument(
        "--bridge-port",
        type=int,
        default=24568,
        help="Port for the device bridge UDP event stream.",
    )
    ap.add_argument(
        "--poll-ms",
        type=int,
        default=8,
        help="Bridge polling sleep in milliseconds.",
    )
    ap.add_argument("--reverse", action="store_true", help="Navigate the route end to start.")
    ap.add_argument(
        "--path-width",
        type=float,
        default=0.3,
        help="Corridor width in meters used when simplifying crumbs into keypoints.",
    )
    ap.add_argument(
        "--heading-max-deg",
        type=float,
        default=10.0,
        help="Geospatial heading uncertainty must be below this to count as accurate.",
    )
    ap.add_argument(
        "--altitude-max-m",
        type=float,
        default=1.5,
        help="Geospatial altitude uncertainty must be below this to count as accurate.",
    )
    ap.add_argument(
        "--horizontal-max-m",
        type=float,
        default=1.5,
        help="Geospatial horizontal uncertainty must be below this to count as accurate.",
    )
    ap.add_argument(
        "--no-geo-filter",
        action="store_true",
        help="Pass raw geospatial corrections through without smoothing or outlier gating.",
    )
    ap.add_argument(
        "--geo-smoothing",
        type=float,
        default=0.35,
        help="Geospatial correction smoothing alpha in [0.01,1]. Lower is smoother.",
    )
    ap.add_argument(
        "--geo-max-jump-m",
        type=float,
        default=2.0,
        help="Largest translation jump (m) accepted from a single geospatial correction.",
    )
    ap.add_argument(
        "--geo-max-jump-deg",
        type=float,
        default=15.0,
        help="Largest yaw jump (deg) accepted from a single geospatial correction.",
    )
    ap.add_argument(
        "--geo-min-consistent",
        type=int,
        default=3,
        help="Consistent geospatial corrections required before one is emitted.",
    )
    ap.add_argument(
        "--keypoint-radius-m",
        type=float,
        default=0.5,
        help="Horizontal distance at which a keypoint counts as reached.",
    )
    ap.add_argument(
        "--max-cloud-anchors",
        type=int,
        default=20,
        help="Warn when a route carries more cloud anchors than this.",
    )
    ap.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Global log level.",
    )
    ap.add_argument(
        "--display-provider",
        choices=["tui", "plot", "none"],
        default="tui",
        help="Display provider: terminal TUI, matplotlib top-down plot, or nothing.",
    )
    ap.add_argument(
        "--display-hz",
        type=float,
        default=5.0,
        help="Display refresh rate in Hz (0 disables display updates).",
    )
    ap.add_argument(
        "--cli-output",
        choices=["live", "scroll"],
        default="live",
        help="TUI output mode: in-place live panel or scrolling logs.",
    )

    return ap


def validate_config(cfg: AppConfig) -> None:
    if not str(cfg.route).strip():
        raise ValueError("--route must be provided (CLI or --config)")
    if cfg.source not in {"replay", "udp"}:
        raise ValueError(f"--source must be one of replay|udp, got {cfg.source}")
    if cfg.source == "replay" and not str(cfg.events).strip():
        raise ValueError("--events must be provided when --source replay")
    if cfg.replay_rate < 0.0:
        raise ValueError(f"--replay-rate must be >= 0, got {cfg.replay_rate}")
    if not cfg.bridge_host.strip():
        raise ValueError("--bridge-host must be non-empty")
    if not (1 <= cfg.bridge_port <= 65535):
        raise ValueError(f"--bridge-port must be in [1,65535], got {cfg.bridge_port}")
    if cfg.poll_ms <= 0:
        raise ValueError(f"--poll-ms must be > 0, got {cfg.poll_ms}")
    if cfg.path_width <= 0.0:
        raise ValueError(f"--path-width must be > 0, got {cfg.path_width}")
    if cfg.heading_max_deg <= 0.0:
        raise ValueError(f"--heading-max-deg must be > 0, got {cfg.heading_max_deg}")
    if cfg.altitude_max_m <= 0.0:
        raise ValueError(f"--altitude-max-m must be > 0, got {cfg.altitude_max_m}")
    if cfg.horizontal_max_m <= 0.0:
        raise ValueError(f"--horizontal-max-m must be > 0, got {cfg.horizontal_max_m}")
    if not (0.01 <= cfg.geo_smoothing <= 1.0):
        raise ValueError(f"--geo-smoothing must be in [0.01,1.0], got {cfg.geo_smoothing}")
    if cfg.geo_max_jump_m <= 0.0:
        raise ValueError(f"--geo-max-jump-m must be > 0, got {cfg.geo_max_jump_m}")
    if cfg.geo_max_jump_deg <= 0.0:
        raise ValueError(f"--geo-max-jump-deg must be > 0, got {cfg.geo_max_jump_deg}")
    if cfg.geo_min_consistent < 1:
        raise ValueError(f"--geo-min-consistent must be >= 1, got {cfg.geo_min_consistent}")
    if cfg.keypoint_radius_m <= 0.0:
        raise ValueError(f"--keypoint-radius-m must be > 0, got {cfg.keypoint_radius_m}")
    if cfg.max_cloud_anchors < 1:
        raise ValueError(f"--max-cloud-anchors must be >= 1, got {cfg.max_cloud_anchors}")
    if cfg.display_provider not in {"tui", "plot", "none"}:
        raise ValueError(
            f"--display-provider must be one of tui|plot|none, got {cfg.display_provider}"
        )
    if cfg.display_hz < 0.0:
        raise ValueError(f"--display-hz must be >= 0, got {cfg.display_hz}")
    if cfg.cli_output not in {"live", "scroll"}:
        raise ValueError(f"--cli-output must be live|scroll, got {cfg.cli_output}")


def parse_args(argv=None) -> AppConfig:
    bootstrap = argparse.ArgumentParser(add_help=False)
    bootstrap.add_argument("--config", type=str, default="")
    bootstrap_ns, _ = bootstrap.parse_known_args(argv)

    yaml_cfg: dict[str, Any] = {}
    yaml_error: Optional[str] = None
    if bootstrap_ns.config:
        try:
            yaml_cfg = _load_yaml_config(bootstrap_ns.config)
        except ValueError as exc:
            yaml_error = str(exc)

    ap = build_arg_parser()
    if yaml_error is not None:
        ap.error(yaml_error)
    if yaml_cfg:
        ap.set_defaults(**_yaml_defaults_to_argparse_defaults(yaml_cfg))
    args = ap.parse_args(argv)

    cfg = AppConfig(
        route=str(args.route or ""),
        source=args.source,
        events=args.events,
        replay_rate=float(args.replay_rate),
        bridge_host=args.bridge_host,
        bridge_port=args.bridge_port,
        poll_ms=args.poll_ms,
        reverse=args.reverse,
        path_width=float(args.path_width),
        heading_max_deg=float(args.heading_max_deg),
        altitude_max_m=float(args.altitude_max_m),
        horizontal_max_m=float(args.horizontal_max_m),
        geo_filter=not args.no_geo_filter,
        geo_smoothing=float(args.geo_smoothing),
        geo_max_jump_m=float(args.geo_max_jump_m),
        geo_max_jump_deg=float(args.geo_max_jump_deg),
        geo_min_consistent=args.geo_min_consistent,
        keypoint_radius_m=float(args.keypoint_radius_m),
        max_cloud_anchors=args.max_cloud_anchors,
        log_level=args.log_level,
        display_provider=args.display_provider,
        display_hz=float(args.display_hz),
        cli_output=args.cli_output,
    )
    try:
        validate_config(cfg)
    except ValueError as exc:
        ap.error(str(exc))
    return cfg
