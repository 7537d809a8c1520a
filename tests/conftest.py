import pytest

from callsim.simulation import ConversationOrchestrator, SimulationEventBus, SimulationMetrics, PersonaConfig
from callsim.simulation.testing import MockLLMClient, MockSpeechGateway, SAMPLE_CALL_SCRIPT
from callsim.infrastructure.data import ConversationRecorder

GREETING = "Hi, this is Ava calling about your upcoming procedure. Can you confirm your date of birth?"


@pytest.fixture
def llm():
    return MockLLMClient([GREETING, "Sure, it's March 3rd, 1961.", "Thank you. Do you have any allergies?", "No allergies."])


@pytest.fixture
def recorder(tmp_path):
    return ConversationRecorder(str(tmp_path / "conversations"))


@pytest.fixture
def metrics_bus():
    bus = SimulationEventBus()
    metrics = SimulationMetrics()
    bus.subscribe_all(metrics.handle_event)
    return bus, metrics


@pytest.fixture
def persona():
    return PersonaConfig("anxious", "You had a stent placed in 2019.")


@pytest.fixture
def script():
    return SAMPLE_CALL_SCRIPT


@pytest.fixture
def speech():
    return MockSpeechGateway()


@pytest.fixture
def orchestrator(llm):
    return ConversationOrchestrator(llm)
