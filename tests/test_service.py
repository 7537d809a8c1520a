import threading

import pytest

from callsim.errors import NoActiveConversation
from callsim.simulation import ConversationService, PersonaConfig, Role
from callsim.simulation.prompts import DEFAULT_BACKGROUND
from callsim.simulation.service import read_text_file
from callsim.simulation.testing import (
    MockLLMClient, create_mock_simulation_setup, cleanup_test_files, SAMPLE_CALL_SCRIPT
)


@pytest.fixture
def setup():
    setup = create_mock_simulation_setup()
    yield setup
    cleanup_test_files(setup["temp_dir"])


@pytest.fixture
def service(setup):
    return ConversationService(setup["llm_client"], recorder=setup["recorder"])


def test_start_reads_script_file(service, setup):
    result = service.start_conversation(setup["script_path"], PersonaConfig("calm"))

    assert result.speaker is Role.ASSISTANT
    assert SAMPLE_CALL_SCRIPT.strip() in setup["llm_client"].request_history[0]["system_instruction"]


def test_missing_script_raises(service, setup):
    with pytest.raises(FileNotFoundError):
        service.start_conversation(setup["temp_dir"] + "/missing.txt")


def test_missing_background_uses_default(service, setup):
    service.start_conversation(setup["script_path"], background_ref=setup["temp_dir"] + "/missing.txt")
    service.advance_conversation()

    patient_request = setup["llm_client"].request_history[1]
    assert patient_request["system_instruction"].endswith(DEFAULT_BACKGROUND)


def test_background_file_is_loaded(service, setup):
    background = setup["temp_dir"] + "/context.txt"
    with open(background, "w", encoding="utf-8") as f:
        f.write("Allergic to shellfish.\n")

    service.start_conversation(setup["script_path"], background_ref=background)
    service.advance_conversation()

    assert "Allergic to shellfish." in setup["llm_client"].request_history[1]["system_instruction"]


def test_conversations_are_isolated(service, setup):
    service.start_conversation(setup["script_path"], conversation_id="a")
    service.start_conversation(setup["script_path"], conversation_id="b")
    service.advance_conversation("a")
    service.advance_conversation("a")

    assert service.conversation_state("a").total_messages == 3
    assert service.conversation_state("b").total_messages == 1

    service.stop_conversation("a")
    assert not service.conversation_state("a").active
    assert service.conversation_state("b").active


def test_default_conversation_is_replaced(service, setup):
    service.start_conversation(setup["script_path"])
    service.advance_conversation()
    service.start_conversation(setup["script_path"], PersonaConfig("irritable"))

    state = service.conversation_state()
    assert state.total_messages == 1
    assert state.mood.value == "irritable"


def test_unknown_conversation(service):
    assert service.conversation_state("nope") is None
    assert service.stop_conversation("nope") == ()
    with pytest.raises(NoActiveConversation):
        service.advance_conversation("nope")


def test_concurrent_advances_keep_alternation(service, setup):
    service.start_conversation(setup["script_path"], max_turns=50)

    threads = [threading.Thread(target=service.advance_conversation) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    turns = service.conversation_state().turns
    assert len(turns) == 9
    for previous, current in zip(turns, turns[1:]):
        assert previous.role is not current.role


def test_run_and_metrics(setup):
    llm = MockLLMClient(["Hello, date of birth please?", "Jan 1st.", "All done, goodbye!"])
    service = ConversationService(llm, recorder=setup["recorder"])
    service.start_conversation(setup["script_path"])

    turns = service.run_conversation()

    assert len(turns) == 3
    assert service.conversation_state().record_path is not None
    assert service.metrics.get_metrics()["conversations_terminated"] == 1
    assert service.metrics.get_metrics()["patient_turns"] == 1


def test_discard_conversation(service, setup):
    service.start_conversation(setup["script_path"], conversation_id="x")
    service.discard_conversation("x")
    assert service.conversation_state("x") is None


def test_audit_through_service():
    transcript = {"messages": [{"role": "assistant", "content": "What is your date of birth?"}]}
    result = ConversationService.audit_transcript(transcript, SAMPLE_CALL_SCRIPT)
    assert result.asked_count == 1


def test_read_text_file(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("  hello \n", encoding="utf-8")

    assert read_text_file(str(path)) == "hello"
    assert read_text_file(None) == ""
    assert read_text_file(str(tmp_path / "missing.txt"), required=False) == ""


def test_oldest_finished_conversations_are_pruned(setup):
    service = ConversationService(setup["llm_client"], keep_finished=1)
    for conversation_id in ("a", "b"):
        service.start_conversation(setup["script_path"], conversation_id=conversation_id)
        service.stop_conversation(conversation_id)
    service.start_conversation(setup["script_path"])
    service.stop_conversation()

    service.start_conversation(setup["script_path"], conversation_id="c")

    assert service.conversation_state("a") is None
    assert service.conversation_state("b").stop_reason == "stopped"
    assert service.conversation_state().stop_reason == "stopped"
    assert service.conversation_state("c").active


def test_active_conversations_are_never_pruned(setup):
    service = ConversationService(setup["llm_client"], keep_finished=0)
    service.start_conversation(setup["script_path"], conversation_id="a")
    service.start_conversation(setup["script_path"], conversation_id="b")

    assert service.conversation_state("a").active
    assert service.conversation_state("b").active
