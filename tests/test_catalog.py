import json

import pytest

import catalog
from env_validation import ConfigurationError
from schemas import VerbKind


def test_sample_catalog_loads_all_activities(sample_catalog):
    activities = sample_catalog.all_activities()
    assert len(activities) == 6
    spreadsheet = sample_catalog.find_activity("spreadsheet-basics")
    assert spreadsheet.estimated_duration == 25
    assert sample_catalog.find_activity("charts-that-work").estimated_duration == 60
    assert sample_catalog.find_activity("missing") is None


def test_missing_catalog_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        catalog.load_course_catalog(tmp_path / "nope.json")


def test_catalog_without_activities_is_rejected(tmp_path):
    path = tmp_path / "course.json"
    path.write_text(json.dumps({"id": "c1", "sections": [{"title": "Empty"}]}), encoding="utf-8")
    with pytest.raises(ConfigurationError, match="no activities"):
        catalog.load_course_catalog(path)


def test_catalog_with_invalid_activity_is_rejected(tmp_path):
    path = tmp_path / "course.json"
    payload = {"id": "c1", "sections": [{"activities": [{"id": "a", "difficulty": 4}]}]}
    path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid course catalog"):
        catalog.load_course_catalog(path)


def test_catalog_with_malformed_json_is_rejected(tmp_path):
    path = tmp_path / "course.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid JSON"):
        catalog.load_course_catalog(path)


@pytest.mark.parametrize(
    "document",
    [
        [{"id": "http://adlnet.gov/expapi/verbs/rated"}],
        {"concepts": [{"type": "Verb", "prefLabel": {"en": "scored"}}]},
        {"concepts": ["scored"]},
    ],
)
def test_malformed_verb_documents_are_rejected(tmp_path, document):
    path = tmp_path / "verbs.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid verb document"):
        catalog.load_verb_catalog(path)


def test_verbs_from_profile_document(tmp_path):
    profile = {
        "concepts": [
            {
                "id": "https://w3id.org/xapi/dod-isd/verbs/completed",
                "type": "Verb",
                "prefLabel": {"en": "completed"},
                "definition": {"en": "Finished the activity"},
            },
            {"id": "https://example.com/verbs/liked", "type": "Verb", "prefLabel": {"en": "liked"}},
            {"id": "https://example.com/activity-types/module", "type": "ActivityType"},
        ]
    }
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(profile), encoding="utf-8")

    verbs = catalog.load_verb_catalog(path)
    assert len(verbs) == 1
    assert verbs.resolve(VerbKind.COMPLETED).id == "https://w3id.org/xapi/dod-isd/verbs/completed"
    assert verbs.name_for_id("https://w3id.org/xapi/dod-isd/verbs/completed") == "completed"
    assert verbs.get("liked") is None


def test_verbs_from_record_list(tmp_path):
    path = tmp_path / "verbs.json"
    path.write_text(
        json.dumps([{"id": "http://adlnet.gov/expapi/verbs/rated", "prefLabel": "rated"}]),
        encoding="utf-8",
    )
    verbs = catalog.load_verb_catalog(path)
    assert "rated" in verbs


def test_default_verb_catalog_is_empty():
    verbs = catalog.load_verb_catalog(None)
    assert len(verbs) == 0
    assert verbs.resolve("exited").id == catalog.DEFAULT_VERB_BASE + "exited"


def test_fetch_profile_verbs_uses_requests(monkeypatch):
    class FakeResponse:
        def raise_for_status(self):
            return None

        def json(self):
            return {
                "concepts": [
                    {"id": "http://adlnet.gov/expapi/verbs/scored", "type": "Verb", "prefLabel": {"en": "scored"}}
                ]
            }

    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse()

    monkeypatch.setattr(catalog.requests, "get", fake_get)
    verbs = catalog.fetch_profile_verbs("https://profiles.example.com/profile.json")
    assert "scored" in verbs
    assert calls == [("https://profiles.example.com/profile.json", 10.0)]
