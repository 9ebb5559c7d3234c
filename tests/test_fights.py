import json

import pytest

from fightline.core.fights import (
    FightNotFoundError,
    ReportError,
    annotations_for_fight,
    events_for_fight,
    group_fights_by_zone,
    load_report,
    select_fight,
)

FIGHTS = [
    {"id": 1, "boss": 0, "kill": True, "zoneID": 10, "zoneName": "Trash Hall", "start_time": 0, "end_time": 100},
    {"id": 2, "boss": 77, "kill": False, "zoneID": 20, "zoneName": "The Arena", "start_time": 1000, "end_time": 60000},
    {"id": 3, "boss": 77, "kill": True, "zoneID": 20, "zoneName": "The Arena", "start_time": 70000, "end_time": 250000},
    {"id": 4, "boss": 88, "kill": True, "zoneID": 30, "zoneName": "The Tower", "start_time": 300000, "end_time": 400000},
    {"id": 5, "boss": 77, "kill": True, "zoneID": 20, "zoneName": "The Arena", "start_time": 500000, "end_time": 600000},
]


def test_group_fights_by_zone_drops_trash_and_wipes():
    zones = group_fights_by_zone(FIGHTS)

    assert [z.zone_id for z in zones] == [20, 30, 20]
    assert [f["id"] for f in zones[0].fights] == [3]
    assert zones[0].zone_name == "The Arena"


def test_group_fights_by_zone_keeps_wipes_when_asked():
    zones = group_fights_by_zone(FIGHTS, kills_only=False)
    assert [f["id"] for f in zones[0].fights] == [2, 3]


def test_zone_group_summary():
    summary = group_fights_by_zone(FIGHTS)[0].to_dict()
    assert summary["fights"][0]["duration"] == 180000
    assert summary["fights"][0]["durationText"] == "3:00.000"


def test_select_fight_by_id():
    session = select_fight({"fights": FIGHTS}, 4)
    assert session.fight_id == 4
    assert session.duration == 100000
    assert session.zone_name == "The Tower"


def test_select_fight_unknown_id():
    with pytest.raises(FightNotFoundError):
        select_fight({"fights": FIGHTS}, 99)


def test_select_fight_requires_single_candidate():
    with pytest.raises(FightNotFoundError):
        select_fight({"fights": FIGHTS})

    only = select_fight({"fights": FIGHTS[:3]}, kills_only=True)
    assert only.fight_id == 3


def test_events_for_fight_are_windowed_and_sorted():
    session = select_fight({"fights": FIGHTS}, 2)
    report = {
        "events": [
            {"type": "cast", "timestamp": 5000},
            {"type": "cast", "timestamp": 999},
            {"type": "cast", "timestamp": 2000},
            {"type": "cast"},
            "garbage",
            {"type": "cast", "timestamp": 60001},
        ]
    }

    assert [e["timestamp"] for e in events_for_fight(report, session)] == [2000, 5000]


def test_annotations_for_fight_filters_by_fight_tag():
    session = select_fight({"fights": FIGHTS}, 3)
    report = {
        "annotations": [
            {"fight": 3, "message": "a"},
            {"fight": 2, "message": "b"},
            {"message": "c"},
        ]
    }

    assert [a["message"] for a in annotations_for_fight(report, session)] == ["a", "c"]


def test_load_report_validation(tmp_path):
    good = tmp_path / "report.json"
    good.write_text(json.dumps({"code": "abc", "fights": FIGHTS, "events": []}))
    assert load_report(good)["code"] == "abc"

    with pytest.raises(ReportError):
        load_report(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"fights": {"id": 1}}))
    with pytest.raises(ReportError):
        load_report(bad)

    broken = tmp_path / "broken.json"
    broken.write_text("[1, 2")
    with pytest.raises(ReportError):
        load_report(broken)


def test_annotations_with_bad_fight_tag_are_skipped(caplog):
    session = select_fight({"fights": FIGHTS}, 3)
    report = {
        "annotations": [
            {"fight": "three", "message": "bad"},
            {"fight": [3], "message": "worse"},
            {"fight": "3", "message": "ok"},
        ]
    }

    assert [a["message"] for a in annotations_for_fight(report, session)] == ["ok"]
    assert sum("bad fight tag" in r.getMessage() for r in caplog.records) == 2
