import logging

from sortinghall.config import get_logging_config, get_server_bind, load_config
from sortinghall.logging import runtime


def test_load_config_merges_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("AGILOX_BASE_URL", raising=False)
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("agilox:\n  base_url: http://fleet/api\nhall:\n  tables:\n    - name: T1\n", encoding="utf-8")

    config = load_config(cfg_file)
    assert config["agilox"]["base_url"] == "http://fleet/api"
    assert config["agilox"]["dispatch_workflow"] == 501
    assert config["hall"]["tables"] == [{"name": "T1"}]
    assert config["server"]["port"] == 8086


def test_load_config_missing_file_and_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("AGILOX_BASE_URL", "http://override/api")
    config = load_config(tmp_path / "fehlt.yaml")
    assert config["agilox"]["base_url"] == "http://override/api"
    assert config["hall"] == {"rows": [], "tables": []}


def test_server_bind_env(monkeypatch):
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "nope")
    assert get_server_bind({"server": {"port": 9000}}) == ("127.0.0.1", 8086)
    monkeypatch.setenv("PORT", "9001")
    assert get_server_bind({}) == ("127.0.0.1", 9001)


def test_reconfigure_logging_module_switches(tmp_path, monkeypatch):
    monkeypatch.setattr(runtime, "LOG_DIR", tmp_path / "app")
    monkeypatch.setattr(runtime, "LOG_FILE", tmp_path / "app" / "app.log")
    cfg = get_logging_config({"logging": {"level": "DEBUG", "modules": {"agilox": {"enabled": False}}}})

    statuses = runtime.reconfigure_logging(cfg)
    try:
        assert statuses["dispatch"] is True
        assert statuses["agilox"] is False
        assert logging.getLogger("agilox").disabled
        assert (tmp_path / "app" / "app.log").exists()
    finally:
        runtime._clear_handlers()
        for name in runtime.MODULES:
            logging.getLogger(name).disabled = False
            logging.getLogger(name).setLevel(logging.NOTSET)
