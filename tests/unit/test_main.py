# tests/unit/test_main.py
"""Tests for the command line entry point."""

from __future__ import annotations

import json
import logging

import pytest

from sevenpools.logging.logger import ROOT_LOGGER_NAME
from sevenpools.main import main


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CAPSULE_DB_PATH", str(tmp_path / "capsules.db"))
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.delenv("ENTITY_STORE_PATH", raising=False)
    yield
    logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()


@pytest.fixture
def seeded_store_file(tmp_path, monkeypatch):
    path = tmp_path / "store.json"
    path.write_text(json.dumps({
        "items": [{"id": "art-temple", "item_type": "art", "year": 2019,
                   "name": "Temple of Direction", "description": "A wooden temple."}],
        "entities": [{"item_id": "art-temple", "entity_type": "pool_idea",
                      "entity_value": "impermanence"}],
    }))
    monkeypatch.setenv("ENTITY_STORE_PATH", str(path))
    return path


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage: sevenpools" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "0.1.0" in capsys.readouterr().out

    def test_tools(self, capsys):
        assert main(["tools"]) == 0
        schemas = json.loads(capsys.readouterr().out)
        assert [s["name"] for s in schemas][:2] == ["search", "fetch"]
        assert len(schemas) == 7

    def test_call(self, capsys):
        assert main(["call", "clear_persona"]) == 0
        assert json.loads(capsys.readouterr().out)["ok"] is True

    def test_call_with_store(self, capsys, seeded_store_file):
        assert main(["call", "fetch", "--args", '{"id": "art-temple"}']) == 0
        result = json.loads(capsys.readouterr().out)
        assert result["title"] == "Temple of Direction"

    def test_call_failure_exit_code(self, capsys):
        assert main(["call", "fetch", "--args", '{"id": "missing"}']) == 1
        assert json.loads(capsys.readouterr().out)["ok"] is False

    def test_call_unknown_tool(self, capsys):
        assert main(["call", "teleport"]) == 1
        assert json.loads(capsys.readouterr().out)["error_code"] == "unknown_tool"

    def test_invalid_args_json(self, capsys):
        assert main(["call", "fetch", "--args", "{bad"]) == 1
        assert "Invalid --args JSON" in capsys.readouterr().err

    def test_args_must_be_object(self, capsys):
        assert main(["call", "fetch", "--args", "[1]"]) == 1
        assert "--args must be a JSON object" in capsys.readouterr().err

    def test_refresh(self, capsys):
        assert main(["refresh"]) == 0
        assert "Refresh complete: 1 jobs, 0 failed" in capsys.readouterr().out

    def test_cleanup(self, capsys):
        assert main(["cleanup"]) == 0
        assert "Cleanup complete: 0 expired capsules deleted" in capsys.readouterr().out

    def test_configuration_error_is_fatal(self, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "redis")
        monkeypatch.delenv("CACHE_REDIS_URL", raising=False)
        assert main(["tools"]) == 1
