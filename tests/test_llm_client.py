from unittest.mock import Mock, patch

import pytest
import requests

from callsim.errors import ProviderError
from callsim.infrastructure.llm import VertexChatClient

OK_BODY = {"candidates": [{"content": {"role": "model", "parts": [{"text": "Hello, this is Ava. "}]}}]}


def response(status_code, body=None, text=""):
    resp = Mock(status_code=status_code, text=text)
    resp.json.return_value = body
    return resp


@pytest.fixture
def client():
    client = VertexChatClient(project="demo-project", max_retries=2, retry_backoff=0.01)
    client._token = "token"
    return client


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("callsim.infrastructure.llm.client.time.sleep") as sleep:
        yield sleep


def test_build_contents_maps_roles():
    contents = VertexChatClient.build_contents([
        {"role": "other", "content": "Hi"},
        {"role": "self", "content": "Hello"},
    ])
    assert contents == [
        {"role": "user", "parts": [{"text": "Hi"}]},
        {"role": "model", "parts": [{"text": "Hello"}]},
    ]


def test_empty_history_is_seeded():
    assert VertexChatClient.build_contents([]) == [{"role": "user", "parts": [{"text": "Hello?"}]}]


def test_complete_posts_generate_content(client):
    with patch("callsim.infrastructure.llm.client.requests.post", return_value=response(200, OK_BODY)) as post:
        text = client.complete("Be Ava.", [], temperature=0.3)

    assert text == "Hello, this is Ava."
    url = post.call_args.args[0]
    kwargs = post.call_args.kwargs
    assert url.endswith("/projects/demo-project/locations/us-central1/publishers/google/models/gemini-2.5-flash:generateContent")
    assert kwargs["json"]["systemInstruction"] == {"parts": [{"text": "Be Ava."}]}
    assert kwargs["json"]["generationConfig"]["temperature"] == 0.3
    assert kwargs["headers"]["Authorization"] == "Bearer token"
    assert kwargs["timeout"] == client.timeout


def test_retries_transient_status(client, no_sleep):
    replies = [response(503, text="unavailable"), response(200, OK_BODY)]
    with patch("callsim.infrastructure.llm.client.requests.post", side_effect=replies) as post:
        assert client.complete("Be Ava.", []) == "Hello, this is Ava."

    assert post.call_count == 2
    assert no_sleep.call_count == 1


def test_gives_up_after_max_retries(client):
    with patch("callsim.infrastructure.llm.client.requests.post", return_value=response(500, text="boom")) as post:
        with pytest.raises(ProviderError) as excinfo:
            client.complete("Be Ava.", [])

    assert post.call_count == 3
    assert excinfo.value.status_code == 500
    assert excinfo.value.provider == "vertex"


def test_client_errors_are_not_retried(client):
    with patch("callsim.infrastructure.llm.client.requests.post", return_value=response(400, text="bad")) as post:
        with pytest.raises(ProviderError):
            client.complete("Be Ava.", [])

    assert post.call_count == 1


def test_network_errors_are_retried(client):
    replies = [requests.ConnectionError("reset"), response(200, OK_BODY)]
    with patch("callsim.infrastructure.llm.client.requests.post", side_effect=replies):
        assert client.complete("Be Ava.", []) == "Hello, this is Ava."


def test_expired_token_is_refreshed(client):
    def refresh():
        client._token = "fresh"

    replies = [response(401, text="expired"), response(200, OK_BODY)]
    with patch.object(client, "_refresh_token", side_effect=refresh) as refresh_token, \
            patch("callsim.infrastructure.llm.client.requests.post", side_effect=replies) as post:
        client.complete("Be Ava.", [])

    refresh_token.assert_called_once()
    assert post.call_args.kwargs["headers"]["Authorization"] == "Bearer fresh"


def test_response_without_text_raises(client):
    with patch("callsim.infrastructure.llm.client.requests.post",
               return_value=response(200, {"candidates": [{"finishReason": "SAFETY"}]})):
        with pytest.raises(ProviderError):
            client.complete("Be Ava.", [])
