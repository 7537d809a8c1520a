import json

import pytest

from callsim.__main__ import main, option, positionals
from callsim.simulation.testing import SAMPLE_CALL_SCRIPT


@pytest.fixture(autouse=True)
def no_project(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)


def test_option_parsing():
    args = ["--mood=anxious", "--voice", "file.json"]
    assert option(args, "mood") == "anxious"
    assert option(args, "max-turns", "20") == "20"
    assert positionals(args) == ["file.json"]


def test_voices_lists_available_voices(capsys):
    assert main(["voices"]) == 0
    out = capsys.readouterr().out
    assert "en-US-Neural2-F" in out
    assert "default assistant" in out


def test_unknown_command(capsys):
    assert main(["dance"]) == 1
    assert "Unknown command" in capsys.readouterr().out


def test_simulate_without_project_fails(capsys):
    assert main(["simulate", "--max-turns=3"]) == 1
    assert "Configuration Error" in capsys.readouterr().out


def test_audit_prints_json_report(tmp_path, capsys):
    script = tmp_path / "call-script.txt"
    script.write_text(SAMPLE_CALL_SCRIPT, encoding="utf-8")
    conversation = tmp_path / "conversation.json"
    conversation.write_text(json.dumps({
        "messages": [{"role": "ava", "content": "Could you confirm your date of birth?"}],
    }), encoding="utf-8")

    assert main(["audit", str(conversation), str(script)]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["expectedCount"] == 5
    assert report["askedCount"] == 1
    assert report["callScriptFile"] == str(script)


def test_audit_strict_rejects_script_without_questions(tmp_path, capsys):
    script = tmp_path / "call-script.txt"
    script.write_text("Say hello.", encoding="utf-8")
    conversation = tmp_path / "conversation.json"
    conversation.write_text(json.dumps({"messages": []}), encoding="utf-8")

    assert main(["audit", str(conversation), str(script), "--strict"]) == 1
    assert "Audit failed" in capsys.readouterr().out


def test_audit_requires_a_conversation(capsys):
    assert main(["audit"]) == 1
