import json
import os

from callsim.infrastructure.data import ConversationRecorder, ConversationRecord, ConversationTurn, AgentInfo


def make_record(record_type="simulation"):
    return ConversationRecord(
        conversation_id="abc123",
        timestamp="2026-10-19T12:00:00+00:00",
        record_type=record_type,
        call_script_file="./call-script.txt",
        patient_mood="confused",
        agents={"ava": AgentInfo(model="gemini-2.5-flash", provider="vertex", role="Healthcare Assistant")},
        messages=[
            ConversationTurn("assistant", "Hello, can you confirm your date of birth?", "2026-10-19T12:00:00+00:00"),
            ConversationTurn("patient", "Which one?", "2026-10-19T12:00:05+00:00"),
        ],
        total_turns=1,
        conversation_complete=False,
        stop_reason="stopped",
    )


def test_save_writes_camel_case_json(tmp_path):
    recorder = ConversationRecorder(str(tmp_path / "out"))
    path = recorder.save(make_record())

    assert os.path.basename(path).startswith("conversation_")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["conversationId"] == "abc123"
    assert data["type"] == "simulation"
    assert data["patientContextFile"] is None
    assert data["agents"]["ava"] == {"model": "gemini-2.5-flash", "provider": "vertex", "role": "Healthcare Assistant"}
    assert data["messages"][1] == {"role": "patient", "content": "Which one?", "timestamp": "2026-10-19T12:00:05+00:00"}


def test_voice_records_get_their_own_prefix(tmp_path):
    recorder = ConversationRecorder(str(tmp_path))
    path = recorder.save(make_record("voice_simulation"))
    assert os.path.basename(path).startswith("voice_conversation_")


def test_load_restores_record(tmp_path):
    recorder = ConversationRecorder(str(tmp_path))
    record = make_record()
    assert recorder.load(recorder.save(record)) == record


def test_each_save_is_a_new_file(tmp_path):
    recorder = ConversationRecorder(str(tmp_path))
    first = recorder.save(make_record())
    second = recorder.save(make_record())
    assert first != second
    assert len(os.listdir(tmp_path)) == 2


def test_list_conversations_skips_unreadable(tmp_path):
    recorder = ConversationRecorder(str(tmp_path))
    recorder.save(make_record())
    (tmp_path / "zz_broken.json").write_text("{not json", encoding="utf-8")

    summaries = recorder.list_conversations()
    assert len(summaries) == 1
    assert summaries[0]["messageCount"] == 2
    assert summaries[0]["totalTurns"] == 1


def test_list_conversations_without_directory(tmp_path):
    assert ConversationRecorder(str(tmp_path / "missing")).list_conversations() == []
