import json

from fightline.config import Config


def test_defaults_when_file_missing(tmp_path):
    config = Config(tmp_path / "none.json")
    assert config.get("default_window_ms") == 60000
    assert config["marker_styles"]["warning"] == "4px solid yellow"
    assert config.get("action_data_path") is None


def test_partial_nested_override_keeps_other_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "marker_styles": {"error": "2px dashed magenta"},
        "analyzers": {"buffs": False},
        "zoom_min_ms": 5000,
    }))

    config = Config(path)

    assert config["marker_styles"] == {
        "error": "2px dashed magenta",
        "warning": "4px solid yellow",
        "message": "4px solid green",
    }
    assert config["analyzers"] == {"casts": True, "buffs": False, "annotations": True}
    assert config.get("zoom_min_ms") == 5000


def test_invalid_json_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    assert Config(path).get("log_level") == "INFO"


def test_instances_do_not_share_nested_defaults(tmp_path):
    first = Config(tmp_path / "a.json")
    first["marker_styles"]["error"] = "none"
    assert Config(tmp_path / "b.json")["marker_styles"]["error"] == "4px solid red"


def test_save_and_reload(tmp_path):
    path = tmp_path / "nested" / "config.json"
    config = Config(path)
    config.set("gcd_recast_ms", 2400)
    config["plugin_dirs"] = ["/opt/plugins"]
    config.save()

    reloaded = Config(path)
    assert reloaded.get("gcd_recast_ms") == 2400
    assert reloaded.as_dict()["plugin_dirs"] == ["/opt/plugins"]


def test_env_var_selects_config_file(tmp_path, monkeypatch):
    path = tmp_path / "env.json"
    path.write_text(json.dumps({"stack_items": True}))
    monkeypatch.setenv("FIGHTLINE_CONFIG", str(path))

    config = Config()

    assert config.config_file == path
    assert config.get("stack_items") is True


def test_non_object_root_is_ignored(tmp_path, caplog):
    path = tmp_path / "config.json"
    path.write_text("[1, 2, 3]")

    config = Config(path)

    assert config.load() is False
    assert config.get("zoom_min_ms") == 10000
    assert any("root must be an object" in r.getMessage() for r in caplog.records)
