import json
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from abfi.config import Settings
from abfi.services import rating_insights


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.setattr(rating_insights, "get_settings", lambda: Settings(openai_api_key=None))


@pytest.fixture
def with_api_key(monkeypatch):
    monkeypatch.setattr(rating_insights, "get_settings", lambda: Settings(openai_api_key="sk-test"))


def _fake_client(create):
    class FakeOpenAI:
        def __init__(self, api_key):
            self.chat = SimpleNamespace(completions=SimpleNamespace(create=create))

    return FakeOpenAI


class TestFallbackInsights:
    def test_uses_rules_without_api_key(self, no_api_key, abfi_result):
        insights = rating_insights.generate_rating_insights(abfi_result)
        assert insights.source == "rules"
        assert "63 (Average)" in insights.overall
        assert "B+" in insights.overall

    def test_strengths_and_improvements_follow_pillars(self, no_api_key, abfi_result):
        insights = rating_insights.generate_rating_insights(abfi_result)
        # reliability 83, carbon 80 are strong; sustainability 65, quality 30 are not
        assert insights.strengths == ["Strong reliability score of 83.", "Strong carbon intensity score of 80."]
        assert insights.improvements == [
            rating_insights._IMPROVEMENT_HINTS["quality"],
            rating_insights._IMPROVEMENT_HINTS["sustainability"],
        ]


class TestOpenAIInsights:
    def test_parses_structured_response(self, with_api_key, monkeypatch, abfi_result):
        payload = {"overall": "Solid UCO supply.", "strengths": ["Low CI"], "improvements": ["More lab data"]}
        message = SimpleNamespace(content=json.dumps(payload))
        completion = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        monkeypatch.setattr(rating_insights, "OpenAI", _fake_client(lambda **kwargs: completion))

        insights = rating_insights.generate_rating_insights(abfi_result)
        assert insights.source == "openai"
        assert insights.overall == "Solid UCO supply."
        assert insights.strengths == ["Low CI"]

    def test_api_error_falls_back_to_rules(self, with_api_key, monkeypatch, abfi_result):
        def fail(**kwargs):
            raise OpenAIError("service unavailable")

        monkeypatch.setattr(rating_insights, "OpenAI", _fake_client(fail))

        insights = rating_insights.generate_rating_insights(abfi_result)
        assert insights.source == "rules"

    def test_invalid_json_falls_back_to_rules(self, with_api_key, monkeypatch, abfi_result):
        message = SimpleNamespace(content="not json")
        completion = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        monkeypatch.setattr(rating_insights, "OpenAI", _fake_client(lambda **kwargs: completion))

        assert rating_insights.generate_rating_insights(abfi_result).source == "rules"

    def test_empty_content_falls_back_to_rules(self, with_api_key, monkeypatch, abfi_result):
        message = SimpleNamespace(content=None, refusal="I can't help with that.")
        completion = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        monkeypatch.setattr(rating_insights, "OpenAI", _fake_client(lambda **kwargs: completion))

        assert rating_insights.generate_rating_insights(abfi_result).source == "rules"
