import pytest

from crumbnav.config import AppConfig, parse_args, validate_config


def _cfg(**kwargs):
    kwargs.setdefault("route", "route.json")
    kwargs.setdefault("events", "events.jsonl")
    return AppConfig(**kwargs)


def test_validate_config_accepts_defaults():
    validate_config(_cfg())


def test_validate_config_requires_route():
    with pytest.raises(ValueError, match="--route"):
        validate_config(_cfg(route=""))


def test_validate_config_requires_events_for_replay_only():
    with pytest.raises(ValueError, match="--events"):
        validate_config(_cfg(events=""))
    validate_config(_cfg(events="", source="udp"))


def test_validate_config_rejects_invalid_bridge_port():
    with pytest.raises(ValueError, match="--bridge-port"):
        validate_config(_cfg(bridge_port=70000))


def test_validate_config_rejects_non_positive_path_width():
    with pytest.raises(ValueError, match="--path-width"):
        validate_config(_cfg(path_width=0.0))


def test_validate_config_rejects_invalid_geo_smoothing():
    with pytest.raises(ValueError, match="--geo-smoothing"):
        validate_config(_cfg(geo_smoothing=0.0))


def test_validate_config_rejects_invalid_cli_output():
    with pytest.raises(ValueError, match="--cli-output"):
        validate_config(_cfg(cli_output="bad"))


def test_validate_config_rejects_invalid_display_provider():
    with pytest.raises(ValueError, match="--display-provider"):
        validate_config(_cfg(display_provider="bad"))


def test_parse_args_uses_yaml_config(tmp_path):
    config_path = tmp_path / "crumbnav.yaml"
    config_path.write_text(
        "\n".join(
            [
                "route: route.json",
                "events: events.jsonl",
                "geo-smoothing: 0.5",
                "geo_filter: false",
                "heading_max_deg: 8",
                "display_provider: none",
            ]
        ),
        encoding="utf-8",
    )

    cfg = parse_args(["--config", str(config_path)])
    assert cfg.route == "route.json"
    assert cfg.geo_smoothing == 0.5
    assert cfg.geo_filter is False
    assert cfg.heading_max_deg == 8.0
    assert cfg.display_provider == "none"


def test_parse_args_cli_overrides_yaml(tmp_path):
    config_path = tmp_path / "crumbnav.yaml"
    config_path.write_text(
        "route: route.json\nevents: events.jsonl\nbridge_port: 30000\n", encoding="utf-8"
    )

    cfg = parse_args(["--config", str(config_path), "--bridge-port", "31000", "--reverse"])
    assert cfg.bridge_port == 31000
    assert cfg.reverse is True


def test_parse_args_rejects_unknown_yaml_key(tmp_path):
    config_path = tmp_path / "crumbnav.yaml"
    config_path.write_text("route: route.json\nunknown_key: 1\n", encoding="utf-8")

    with pytest.raises(SystemExit):
        parse_args(["--config", str(config_path)])


def test_parse_args_rejects_bad_yaml_value(tmp_path):
    config_path = tmp_path / "crumbnav.yaml"
    config_path.write_text("route: route.json\nreverse: maybe\n", encoding="utf-8")

    with pytest.raises(SystemExit):
        parse_args(["--config", str(config_path)])


def test_parse_args_requires_route():
    with pytest.raises(SystemExit):
        parse_args(["--events", "events.jsonl"])
