"""Tests for the typer CLI."""

from __future__ import annotations

import os

import pytest
import yaml
from typer.testing import CliRunner

from chatstream import __version__
from chatstream.cli.app import app
from tests.mock_transport import gemini_text, openai_completed, openai_delta, sse_lines

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run every command from an empty directory with no credentials."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("CHATSTREAM_"):
            monkeypatch.delenv(key)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return tmp_path


class TestReplay:

    def test_gemini_recording(self, isolated):
        path = isolated / "gemini.sse"
        path.write_bytes(sse_lines([gemini_text("Hel"), gemini_text("lo", finish="STOP")]))
        result = runner.invoke(app, ["replay", str(path), "--chunk-size", "7"])
        assert result.exit_code == 0, result.output
        assert "Hello" in result.output
        assert "STOP" in result.output
        assert "completed" in result.output

    def test_openai_recording(self, isolated):
        path = isolated / "openai.sse"
        path.write_bytes(sse_lines([openai_delta("A"), openai_delta("B"), openai_completed()], done=True))
        result = runner.invoke(app, ["replay", str(path), "--provider", "openai"])
        assert result.exit_code == 0, result.output
        assert "AB" in result.output
        assert "1 reads, 3 events" in result.output

    def test_unknown_provider(self, isolated):
        path = isolated / "x.sse"
        path.write_bytes(b"")
        result = runner.invoke(app, ["replay", str(path), "--provider", "claude"])
        assert result.exit_code == 2
        assert "Unknown provider" in result.output

    def test_missing_file(self, isolated):
        result = runner.invoke(app, ["replay", str(isolated / "nope.sse")])
        assert result.exit_code != 0


class TestChat:

    def test_missing_credential(self):
        result = runner.invoke(app, ["chat", "hello"])
        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.output

    def test_model_flag_selects_openai(self):
        result = runner.invoke(app, ["chat", "hello", "--model", "gpt-4o-mini"])
        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output

    def test_set_selects_model(self):
        result = runner.invoke(app, ["chat", "hello", "--set", "chat.default_model=gpt-4.1"])
        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output


class TestConfigCommands:

    def test_show_defaults(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "gemini-2.0-flash" in result.output

    def test_show_reads_file(self, isolated):
        (isolated / "chatstream.yaml").write_text(
            yaml.safe_dump({"chat": {"default_model": "gpt-4.1"}}), encoding="utf-8",
        )
        result = runner.invoke(app, ["config", "show"])
        assert "gpt-4.1" in result.output

    def test_show_session_override(self):
        result = runner.invoke(app, ["config", "show", "--set", "chat.default_model=gpt-4.1"])
        assert result.exit_code == 0, result.output
        assert "gpt-4.1" in result.output
        assert "override chat.default_model" in result.output

    def test_show_rejects_unknown_key(self):
        result = runner.invoke(app, ["config", "show", "--set", "chat.colour=blue"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.output

    def test_validate_reports_missing_keys(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
        result = runner.invoke(app, ["config", "validate"])
        assert result.exit_code == 0
        assert "Config is valid." in result.output
        assert "No config file found" in result.output
        assert "missing" in result.output
        assert "GEMINI_API_KEY" in result.output

    def test_validate_bad_yaml(self, isolated):
        (isolated / "chatstream.yaml").write_text("chat: [unclosed", encoding="utf-8")
        result = runner.invoke(app, ["config", "validate"])
        assert result.exit_code == 1
        assert "Config validation failed" in result.output


class TestVersion:

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output
