import pytest
import requests

import stores
from conftest import build_profile


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = "error" if not self.ok else ""

    def json(self):
        return self._payload


@pytest.fixture
def http_calls(monkeypatch):
    calls = []
    responses = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append(("POST", url, json, headers))
        return responses.get(("POST", url), FakeResponse({"status": "ok"}))

    def fake_get(url, headers=None, timeout=None):
        calls.append(("GET", url, None, headers))
        return responses.get(("GET", url), FakeResponse([]))

    monkeypatch.setattr(stores.requests, "post", fake_post)
    monkeypatch.setattr(stores.requests, "get", fake_get)
    return calls, responses


def test_statement_store_posts_batch(http_calls):
    calls, _ = http_calls
    store = stores.HttpStatementStore("http://localhost:5050/api/")
    store.save_bulk_statements([{"id": "1"}, {"id": "2"}])

    method, url, payload, headers = calls[0]
    assert method == "POST"
    assert url == "http://localhost:5050/api/statements"
    assert payload == [{"id": "1"}, {"id": "2"}]
    assert headers["X-Experience-API-Version"] == "1.0.3"


def test_http_errors_become_transport_errors(http_calls):
    _, responses = http_calls
    responses[("POST", "http://lrs.test/statements")] = FakeResponse(status_code=500)
    with pytest.raises(stores.TransportError, match="HTTP 500"):
        stores.HttpStatementStore("http://lrs.test").save_bulk_statements([{"id": "1"}])


def test_connection_failures_become_transport_errors(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(stores.requests, "get", boom)
    with pytest.raises(stores.TransportError, match="refused"):
        stores.HttpStatementStore("http://lrs.test").get_statements()


def test_learner_store_round_trip(http_calls):
    calls, responses = http_calls
    profile = build_profile(learner_id="3")
    store = stores.HttpLearnerStore("http://lrs.test", auth="Bearer token")
    store.store_learner_profiles([profile])
    assert calls[0][2] == [profile.to_store_dict()]
    assert calls[0][3]["Authorization"] == "Bearer token"

    responses[("GET", "http://lrs.test/learners")] = FakeResponse([profile.to_store_dict()])
    assert store.get_learner_profiles() == [profile]


def test_learner_store_rejects_invalid_profiles(http_calls):
    _, responses = http_calls
    responses[("GET", "http://lrs.test/learners")] = FakeResponse([{"id": "1"}])
    with pytest.raises(stores.TransportError, match="invalid profiles"):
        stores.HttpLearnerStore("http://lrs.test").get_learner_profiles()


def test_verb_store_lists_verbs(http_calls):
    _, responses = http_calls
    verbs = [{"id": "http://adlnet.gov/expapi/verbs/passed", "prefLabel": "passed"}]
    responses[("GET", "http://lrs.test/verbs")] = FakeResponse(verbs)
    assert stores.HttpVerbStore("http://lrs.test").get_verbs() == verbs


def test_in_memory_store_replaces_contents():
    store = stores.InMemoryStatementStore()
    store.save_bulk_statements([{"id": "a"}])
    store.save_bulk_statements([{"id": "b"}])
    assert store.get_statements() == [{"id": "b"}]
    assert store.batches == 2
