import json
from datetime import datetime

import numpy as np
import pytest

from crumbnav.route.pose import pose_at
from crumbnav.route.route_io import (
    RouteFormatError,
    load_route,
    pose_from_dict,
    pose_to_dict,
    route_from_dict,
)


def _pose(x, z):
    return {"position": [x, 0.0, z], "quaternion": [1.0, 0.0, 0.0, 0.0]}


def _route_doc():
    return {
        "id": "r1",
        "name": "Front door to lab",
        "date_created": "2024-05-01T10:00:00",
        "crumbs": [
            {
                "pose": _pose(0.0, 0.0),
                "geo": {
                    "latitude": 42.36,
                    "longitude": -71.06,
                    "altitude": 10.0,
                    "heading": 45.0,
                    "horizontal_uncertainty": 0.5,
                    "altitude_uncertainty": 0.5,
                    "heading_uncertainty": 2.0,
                },
            },
            {"pose": _pose(1.0, 0.0)},
            {"pose": _pose(2.0, 0.0), "anchor_id": "g2"},
        ],
        "cloud_anchors": {"c1": _pose(1.0, 1.0)},
        "begin_anchor_point": {"pose": _pose(0.0, 0.0), "information": "front door"},
        "intermediate_anchor_points": [{"voice_note": "notes/stairs.m4a"}],
    }


def test_route_from_dict_reads_all_sections():
    route = route_from_dict(_route_doc())
    assert route.id == "r1"
    assert route.name == "Front door to lab"
    assert route.date_created == datetime(2024, 5, 1, 10, 0, 0)
    assert len(route.crumbs) == 3
    assert route.crumbs[0].geo.heading == 45.0
    assert route.crumbs[1].geo is None
    assert route.crumbs[2].anchor_id == "g2"
    np.testing.assert_allclose(route.cloud_anchors["c1"].position, [1.0, 0.0, 1.0])
    assert route.begin_anchor_point.information == "front door"
    assert route.end_anchor_point.pose is None
    # Only anchor points with a pose are placed in the world.
    assert route.anchor_points() == [route.begin_anchor_point]


def test_route_name_defaults_to_id_and_reverse_order():
    doc = _route_doc()
    del doc["name"]
    route = route_from_dict(doc)
    assert route.name == "r1"
    assert [c.pose.x for c in route.crumbs_for(reverse=True)] == [2.0, 1.0, 0.0]


@pytest.mark.parametrize(
    "mutate, message",
    [
        (lambda d: d.pop("id"), "'id'"),
        (lambda d: d.update(crumbs=[]), "crumbs"),
        (lambda d: d["crumbs"][1].update(pose={"position": [0.0]}), r"crumbs\[1\]\.pose"),
        (lambda d: d["crumbs"][0]["geo"].pop("heading"), r"crumbs\[0\]\.geo"),
        (lambda d: d.update(cloud_anchors=["c1"]), "cloud_anchors"),
        (lambda d: d.update(date_created="yesterday"), "date_created"),
    ],
)
def test_route_from_dict_rejects_malformed_documents(mutate, message):
    doc = _route_doc()
    mutate(doc)
    with pytest.raises(RouteFormatError, match=message):
        route_from_dict(doc)


def test_pose_dict_helpers():
    pose = pose_at(1.0, 2.0, 3.0)
    np.testing.assert_allclose(pose_from_dict(pose_to_dict(pose)).position, [1.0, 2.0, 3.0])
    assert pose_from_dict({"position": [0, 0, 0], "quaternion": [1, 0, 0, float("nan")]}) is None
    assert pose_from_dict("not a pose") is None
    assert pose_from_dict({"position_m": [0, 0, 0], "quaternion_wxyz": [1, 0, 0, 0]}) is None


def test_load_route_from_file(tmp_path):
    path = tmp_path / "route.json"
    path.write_text(json.dumps(_route_doc()), encoding="utf-8")
    assert load_route(str(path)).id == "r1"


def test_load_route_reports_bad_files(tmp_path):
    with pytest.raises(RouteFormatError, match="not found"):
        load_route(str(tmp_path / "missing.json"))
    bad = tmp_path / "bad.json"
    bad.write_text("{oops", encoding="utf-8")
    with pytest.raises(RouteFormatError, match="failed to read"):
        load_route(str(bad))
