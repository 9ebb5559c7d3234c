import shutil
from pathlib import Path

from fightline.config import Config
from fightline.core.action_data import ActionTable
from fightline.core.analyzers.base import AnalysisContext, CastAnalyzer
from fightline.core.engine import FightAnalysis
from fightline.core.models import FightSession
from fightline.core.timeline import Timeline
from fightline.plugins import PluginManager
from fightline.plugins.example_plugin import GcdDriftAnalyzer

START = 1_000_000
EXAMPLE_PLUGIN = Path(__file__).resolve().parents[1] / "fightline" / "plugins" / "example_plugin.py"

ACTIONS = ActionTable.from_records([
    {"id": 3577, "name": "Fire IV", "castTime": 2.8, "onGcd": True},
    {"id": 152, "name": "Fire", "castTime": 2.5, "onGcd": True},
    {"id": 7, "name": "Attack", "onGcd": False},
])


def _cast(offset, guid):
    return {"type": "cast", "timestamp": START + offset, "ability": {"guid": guid}}


def test_plugin_manager_loads_analyzers_from_dir(tmp_path):
    shutil.copy(EXAMPLE_PLUGIN, tmp_path / "drift.py")
    (tmp_path / "_private.py").write_text("raise RuntimeError('never imported')\n")
    (tmp_path / "notes.txt").write_text("not a plugin")

    manager = PluginManager([tmp_path])
    manager.load_plugins()

    info = manager.get_plugin_info()
    assert info["loaded_plugins"] == ["drift"]
    assert info["analyzers"] == ["GcdDrift"]
    assert manager.get_analyzers()[0].priority == 1


def test_broken_plugin_is_skipped(tmp_path, caplog):
    (tmp_path / "broken.py").write_text("import definitely_not_a_module\n")

    manager = PluginManager([tmp_path])
    manager.load_plugins()

    assert manager.get_analyzers() == []
    assert "broken" in manager.get_plugin_info()["failed_plugins"]
    assert any("Failed to load plugin" in r.getMessage() for r in caplog.records)


def test_missing_plugin_dir_is_ignored(tmp_path):
    manager = PluginManager()
    manager.add_plugin_dir(tmp_path / "nope")
    manager.add_plugin_dir(tmp_path / "nope")
    manager.load_plugins()

    assert manager.plugin_dirs == [tmp_path / "nope"]
    assert manager.get_analyzers() == []


def test_gcd_drift_warns_on_late_gcd():
    session = FightSession(fight_id=1, start_time=START, end_time=START + 60_000)
    config = Config()
    config.set("gcd_recast_ms", 2500)
    config.set("gcd_drift_tolerance_ms", 500)
    context = AnalysisContext(
        session=session,
        timeline=Timeline(session, actions=ACTIONS),
        events=[_cast(1000, 3577), _cast(2000, 7), _cast(4000, 152), _cast(7600, 152)],
        actions=ACTIONS,
        config=config,
    )
    CastAnalyzer().analyze(context)

    GcdDriftAnalyzer().analyze(context)

    casts = context.timeline.get_group("casts").items
    assert [i.has_warning for i in casts] == [False, False, True]
    assert casts[2].content.title == "Fire\n- GCD drifted by 1100 ms"


def test_plugin_dirs_from_config_feed_the_analysis(tmp_path):
    shutil.copy(EXAMPLE_PLUGIN, tmp_path / "drift.py")
    config = Config()
    config.set("plugin_dirs", [str(tmp_path)])

    analysis = FightAnalysis(config, actions=ACTIONS)

    assert [a.name for a in analysis.analyzers][-1] == "GcdDrift"
