import json

import pytest
import requests

from sugar_sim.config.settings import OracleSettings
from sugar_sim.llm.oracle_adapter import OracleAdapter
from sugar_sim.utils.errors import OracleAPIError, OracleSchemaError

CONTEXTS = [{"agent_id": 1}, {"agent_id": 2}]


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else json.dumps(body)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


def _ok(decisions):
    return FakeResponse(body={"response": json.dumps({"decisions": decisions})})


@pytest.fixture
def adapter():
    return OracleAdapter(OracleSettings(max_retries=2, retry_backoff_seconds=0.0))


@pytest.fixture
def scripted_post(monkeypatch):
    """Replace requests.post with a queue of responses or exceptions."""

    def _install(*outcomes):
        queue = list(outcomes)
        calls = []

        def fake_post(url, json=None, timeout=None):
            calls.append({"url": url, "json": json, "timeout": timeout})
            outcome = queue.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        monkeypatch.setattr(requests, "post", fake_post)
        return calls

    return _install


def test_batched_request_returns_decoded_decisions(adapter, scripted_post):
    calls = scripted_post(_ok([{"move": True}, {"move": False}]))

    payload = adapter.request_decisions(CONTEXTS)

    assert payload == {"decisions": [{"move": True}, {"move": False}]}
    assert len(calls) == 1
    sent = calls[0]["json"]
    assert calls[0]["url"].endswith("/api/generate")
    assert sent["stream"] is False
    assert sent["format"]["required"] == ["decisions"]
    assert '"agent_id": 2' in sent["prompt"]


def test_transient_failures_are_retried(adapter, scripted_post):
    calls = scripted_post(
        requests.exceptions.ConnectionError("refused"),
        FakeResponse(status_code=503, body={"error": "busy"}),
        _ok([{"move": True}, {"move": True}]),
    )

    payload = adapter.request_decisions(CONTEXTS)

    assert len(payload["decisions"]) == 2
    assert len(calls) == 3


def test_retry_bound_is_enforced(adapter, scripted_post):
    calls = scripted_post(
        requests.exceptions.Timeout("slow"),
        requests.exceptions.Timeout("slow"),
        FakeResponse(status_code=401, body={"error": "unauthorized"}),
        _ok([]),
    )

    with pytest.raises(OracleAPIError) as info:
        adapter.request_decisions(CONTEXTS)

    assert len(calls) == 3
    assert info.value.status_code == 401
    assert "unauthorized" in info.value.response_body


def test_non_json_answer_is_not_retried(adapter, scripted_post):
    calls = scripted_post(
        FakeResponse(body={"response": "I think agent 1 should move"}),
        _ok([]),
    )

    with pytest.raises(OracleSchemaError) as info:
        adapter.request_decisions(CONTEXTS)

    assert len(calls) == 1
    assert "agent 1" in info.value.raw_response


def test_envelope_without_response_text_is_a_schema_error(adapter, scripted_post):
    scripted_post(FakeResponse(body={"done": True}))

    with pytest.raises(OracleSchemaError):
        adapter.request_decisions(CONTEXTS)
