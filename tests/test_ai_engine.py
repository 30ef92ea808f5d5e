from types import SimpleNamespace

import pytest
from google.api_core.exceptions import ResourceExhausted, NotFound

from pagepulse import ai_engine
from pagepulse.ai_engine import AIServiceError


class FakeModels:
    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append((model, contents, config))
        outcome = self.outcomes.get(model, "")
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(text=outcome)


@pytest.fixture
def fake_gemini(monkeypatch):
    """Installs a fake genai client whose per-model replies the test sets."""
    models = FakeModels({})
    sleeps = []

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(ai_engine.genai, "Client", lambda api_key: SimpleNamespace(models=models))
    monkeypatch.setattr(ai_engine.time, "sleep", sleeps.append)
    models.sleeps = sleeps
    return models


def test_readability():
    assert ai_engine.calculate_readability("") == 0
    assert ai_engine.calculate_readability(None) == 0
    simple = ai_engine.calculate_readability("The cat sat. The dog ran.")
    dense = ai_engine.calculate_readability(
        "Comprehensive organizational transformation necessitates considerable interdisciplinary collaboration."
    )
    assert simple < dense


def test_parse_json_response_variants():
    assert ai_engine.parse_json_response('{"a": 1}') == {"a": 1}
    assert ai_engine.parse_json_response('Here you go:\n```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}
    assert ai_engine.parse_json_response('Sure! {"a": "x}"} hope that helps') == {"a": "x}"}
    assert ai_engine.parse_json_response('{"a": 1, "b": [2, 3,],}') == {"a": 1, "b": [2, 3]}
    assert ai_engine.parse_json_response("no json here") is None
    assert ai_engine.parse_json_response(None) is None


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(AIServiceError):
        ai_engine.generate_gemini_response("hi")


def test_requested_model_is_tried_first(fake_gemini):
    fake_gemini.outcomes = {"custom-model": "hello"}
    assert ai_engine.generate_gemini_response("hi", model_name="custom-model") == "hello"
    assert [c[0] for c in fake_gemini.calls] == ["custom-model"]


def test_fallback_chain_with_backoff(fake_gemini):
    fake_gemini.outcomes = {
        "gemini-2.5-flash": ResourceExhausted("quota"),
        "gemini-2.5-pro": NotFound("gone"),
        "gemini-2.0-flash": "",
        "gemini-1.5-flash": "finally",
    }
    assert ai_engine.generate_gemini_response("hi") == "finally"
    assert [c[0] for c in fake_gemini.calls] == ai_engine.MODEL_PRIORITY_CHAIN
    assert fake_gemini.sleeps == [1]


def test_all_models_failing_raises(fake_gemini):
    fake_gemini.outcomes = {m: RuntimeError("boom") for m in ai_engine.MODEL_PRIORITY_CHAIN}
    with pytest.raises(AIServiceError, match="boom"):
        ai_engine.generate_gemini_response("hi")


def test_marketing_prompt_defaults():
    system, user = ai_engine.build_marketing_prompt("https://example.com")
    assert system == ai_engine.MARKETING_SYSTEM_PROMPT
    assert "Landing Page URL: https://example.com" in user
    assert "Target Audience: Not specified" in user
    assert "Desired Tone: professional" in user

    with pytest.raises(ValueError, match="No landing page URL provided"):
        ai_engine.build_marketing_prompt("")


def test_marketing_optimizations_pass_system_prompt(fake_gemini):
    fake_gemini.outcomes = {"gemini-2.5-flash": "Keywords: ..."}
    result = ai_engine.generate_marketing_optimizations("https://example.com", "Founders", "SaaS", "bold")
    assert result == "Keywords: ..."

    model, contents, config = fake_gemini.calls[0]
    assert "Industry: SaaS" in contents
    assert config.system_instruction == ai_engine.MARKETING_SYSTEM_PROMPT
    assert config.max_output_tokens == ai_engine.MAX_OUTPUT_TOKENS


def test_ai_content_modes(fake_gemini):
    fake_gemini.outcomes = {"gemini-2.5-flash": '```json\n{"headline": "Better"}\n```'}

    assert ai_engine.generate_ai_content("optimize", mode="page_optimization") == {"headline": "Better"}
    assert fake_gemini.calls[-1][2].system_instruction == ai_engine.SYSTEM_MESSAGES['page_optimization']

    raw = ai_engine.generate_ai_content("write", mode="landing_page_content")
    assert raw.startswith("```json")

    ai_engine.generate_ai_content("anything", mode="unknown")
    assert fake_gemini.calls[-1][2].system_instruction == ai_engine.DEFAULT_SYSTEM_MESSAGE


def test_structured_mode_falls_back_to_text(fake_gemini):
    fake_gemini.outcomes = {"gemini-2.5-flash": "Not JSON at all"}
    assert ai_engine.generate_ai_content("ads", mode="ad_generation") == "Not JSON at all"


def test_ai_content_requires_prompt():
    with pytest.raises(ValueError, match="No prompt provided"):
        ai_engine.generate_ai_content("")


def test_optimized_content_prompts(monkeypatch):
    seen = []
    monkeypatch.setattr(ai_engine, "generate_gemini_response", lambda prompt, **kw: seen.append(prompt) or "ok")

    assert ai_engine.generate_optimized_content("Buy now", "button") == "ok"
    assert seen == ['Suggest better button text for this CTA: "Buy now"']

    with pytest.raises(ValueError):
        ai_engine.generate_optimized_content("x", "footer")


def test_empty_replies_use_fallback_text(fake_gemini):
    # Every model answers, none with text
    assert ai_engine.generate_gemini_response("hi") == ""
    assert len(fake_gemini.calls) == len(ai_engine.MODEL_PRIORITY_CHAIN)

    assert ai_engine.generate_marketing_optimizations("https://example.com") == ai_engine.NO_MARKETING_RESULT
    assert ai_engine.generate_ai_content("write something") == ai_engine.NO_CONTENT_RESULT


def test_empty_reply_after_errors_is_not_an_error(fake_gemini):
    fake_gemini.outcomes = {"gemini-2.5-flash": RuntimeError("boom")}
    assert ai_engine.generate_gemini_response("hi") == ""


PAGE_INFO = {
    "title": "Spring Sale",
    "audience": "Shoppers",
    "industry": "Retail",
    "campaign_type": "Promotion",
    "initial_keywords": ["discounts", "spring deals"],
}


def test_page_optimizations_from_json(fake_gemini):
    fake_gemini.outcomes = {"gemini-2.5-flash": '{"headline": {"suggested": "Spring savings"}}'}
    result = ai_engine.generate_page_optimizations("<h1>Hi</h1>" + "x" * 20000, PAGE_INFO)
    assert result == {"headline": {"suggested": "Spring savings"}}

    _, contents, config = fake_gemini.calls[0]
    assert "Title: Spring Sale" in contents
    assert "Keywords: discounts, spring deals" in contents
    assert "x" * (ai_engine.PAGE_HTML_LIMIT - 11) in contents
    assert "x" * ai_engine.PAGE_HTML_LIMIT not in contents
    assert config.system_instruction == ai_engine.SYSTEM_MESSAGES['page_optimization']


def test_page_optimizations_fall_back_to_templates(fake_gemini):
    fake_gemini.outcomes = {"gemini-2.5-flash": "I would change the headline."}
    result = ai_engine.generate_page_optimizations("<h1>Hi</h1>", PAGE_INFO)
    assert set(result) >= {"headline", "cta", "content"}
    assert result["headline"]["original"] == "Spring Sale"


def test_ad_suggestions(fake_gemini):
    fake_gemini.outcomes = {"gemini-2.5-flash": '```json\n{"twitter": {"tweet_copy": "Sale!"}}\n```'}
    assert ai_engine.generate_ad_suggestions("<p>x</p>", PAGE_INFO) == {"twitter": {"tweet_copy": "Sale!"}}
    assert fake_gemini.calls[0][2].system_instruction == ai_engine.SYSTEM_MESSAGES['ad_generation']

    fake_gemini.outcomes = {}
    fallback = ai_engine.generate_ad_suggestions("<p>x</p>", dict(PAGE_INFO, initial_keywords="sale"))
    assert set(fallback) == {"facebook", "instagram", "twitter"}
    assert "#Retail" in fallback["instagram"]["hashtags"]
