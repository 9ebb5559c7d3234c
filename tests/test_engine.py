from fightline.config import Config
from fightline.core.action_data import ActionTable
from fightline.core.analyzers.base import (
    AnalysisContext,
    Analyzer,
    AnnotationAnalyzer,
    BuffAnalyzer,
    CastAnalyzer,
)
from fightline.core.engine import FightAnalysis
from fightline.core.models import FightSession
from fightline.core.sinks import MemorySink
from fightline.core.timeline import Timeline

START = 1_000_000

ACTIONS = ActionTable.from_records([
    {"id": 3577, "name": "Fire IV", "icon": "fire4.png", "castTime": 2.8, "onGcd": True},
    {"id": 152, "name": "Fire", "castTime": 2.5, "onGcd": True},
    {"id": 3574, "name": "Sharpcast", "onGcd": False},
    {"id": 7, "name": "Attack", "onGcd": False},
])


def _session():
    return FightSession(fight_id=3, start_time=START, end_time=START + 120_000, name="Boss")


def _cast(offset, guid):
    return {"type": "cast", "timestamp": START + offset, "ability": {"guid": guid}}


def _config(**overrides):
    config = Config()
    for key, value in overrides.items():
        config.set(key, value)
    config.set("plugin_dirs", [])
    return config


def _context(events, annotations=None):
    session = _session()
    return AnalysisContext(
        session=session,
        timeline=Timeline(session, actions=ACTIONS),
        events=events,
        actions=ACTIONS,
        annotations=annotations or [],
        config=_config(),
    )


def test_cast_analyzer_places_gcds_and_nests_ogcd_lanes():
    context = _context([
        _cast(1000, 3577),
        _cast(2000, 3574),
        _cast(4000, 152),
        _cast(5000, 3574),
        _cast(6000, 999),  # unknown action stays in the main lane
    ])

    CastAnalyzer().analyze(context)

    groups = {g.id: g for g in context.timeline.groups}
    assert list(groups) == ["casts", "action-3574"]
    assert groups["casts"].nested_groups == ["action-3574"]
    assert [i.start for i in groups["casts"].items] == [1000, 4000, 6000]
    assert [i.start for i in groups["action-3574"].items] == [2000, 5000]

    fire4 = groups["casts"].items[0]
    assert fire4.end == 1000 + 2800
    assert fire4.content.icon == "fire4.png"
    assert fire4.content.title == "Fire IV"
    assert groups["action-3574"].items[0].end is None


def test_buff_analyzer_pairs_apply_and_remove():
    def buff(kind, offset, guid=1001, target=1):
        return {
            "type": kind,
            "timestamp": START + offset,
            "targetID": target,
            "ability": {"guid": guid, "name": "Ley Lines"},
        }

    context = _context([
        buff("removebuff", 500, guid=2002),  # applied before the pull
        buff("applybuff", 1000),
        buff("applybuff", 1500),  # refresh
        buff("removebuff", 31000),
        buff("applybuff", 100_000, target=2),
    ])

    BuffAnalyzer().analyze(context)

    lane = context.timeline.get_group("buffs")
    windows = [(i.start, i.end) for i in lane.items]
    assert windows == [(0, 500), (1000, 31000), (100_000, 120_000)]
    assert all(i.class_name == "buff" for i in lane.items)
    assert lane.items[1].content.alt == "Ley Lines"


def test_annotation_analyzer_replays_records_and_skips_bad_ones(caplog):
    context = _context([_cast(1000, 3577)], annotations=[
        {"severity": "error", "timestamp": START + 3000, "message": "clipped", "castTime": 2800},
        {"severity": "bogus", "timestamp": START + 1000, "message": "ignored"},
        {"severity": "warning", "message": "no timestamp"},
        {"severity": "message", "timestamp": START + 50_000, "message": "queued"},
    ])
    CastAnalyzer().analyze(context)

    AnnotationAnalyzer().analyze(context)

    item = context.timeline.get_group("casts").items[0]
    assert item.has_error
    assert item.content.title == "Fire IV\n! clipped"
    assert context.timeline.queues.counts()["message"] == 1
    assert sum("Skipping malformed annotation" in r.getMessage() for r in caplog.records) == 2


def test_fight_analysis_runs_everything_and_reports():
    events = [_cast(1000, 3577), _cast(4000, 152), _cast(5000, 7)]
    annotations = [
        # Arrives for an item that is registered by the cast analyzer
        {"severity": "warning", "timestamp": START + 4000, "message": "late"},
        {"severity": "error", "timestamp": START + 90_000, "message": "nothing here"},
    ]
    sink = MemorySink()

    report = FightAnalysis(_config(), actions=ACTIONS).run(
        _session(), events, annotations, sink=sink
    )

    assert report["meta"]["analyzers"] == ["casts", "annotations"]
    assert report["fight"]["id"] == 3
    assert report["finalize"]["error"]["unresolved"] == 1
    assert report["unresolved"]["error"][0]["message"] == "nothing here"
    assert report["options"]["end"] == 60000
    assert sink.view_model == report["view_model"]

    items = report["view_model"]["items"]
    late = [i for i in items if i["start"] == 4000][0]
    assert late["hasWarning"] is True
    assert late["content"]["style"] == {"border": "4px solid yellow"}


def test_fight_analysis_respects_analyzer_flags():
    config = _config(analyzers={"casts": False, "buffs": True, "annotations": False})
    analysis = FightAnalysis(config, actions=ACTIONS)
    assert [a.name for a in analysis.analyzers] == ["buffs"]


def test_failing_analyzer_does_not_abort_run(caplog):
    class Exploding(Analyzer):
        def can_analyze(self, context):
            return True

        def analyze(self, context):
            raise RuntimeError("kaboom")

        @property
        def name(self):
            return "exploding"

    analysis = FightAnalysis(_config(), actions=ACTIONS)
    analysis.analyzers.insert(0, Exploding())

    report = analysis.run(_session(), [_cast(1000, 3577)])

    assert "exploding" not in report["meta"]["analyzers"]
    assert len(report["view_model"]["items"]) == 1
    assert any("Analyzer exploding failed" in r.getMessage() for r in caplog.records)


def test_window_argument_sets_initial_viewport():
    report = FightAnalysis(_config(), actions=ACTIONS).run(
        _session(), [], window=(10_000, 40_000)
    )
    assert (report["options"]["start"], report["options"]["end"]) == (10_000, 40_000)
