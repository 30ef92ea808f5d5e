import pytest
from fastapi.testclient import TestClient

from pagepulse import ai_engine, analytics
from pagepulse.ai_engine import AIServiceError
from pagepulse.api import create_app


@pytest.fixture
def client():
    with TestClient(create_app(), raise_server_exceptions=False) as c:
        yield c


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_cors_preflight(client):
    response = client.options(
        "/generate-ai-content",
        headers={"Origin": "https://mypage.example", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("*", "https://mypage.example")


def test_marketing_requires_url(client):
    response = client.post("/generate-ai-marketing", json={"industry": "SaaS"})
    assert response.status_code == 400
    assert response.json() == {"error": "No landing page URL provided"}


def test_marketing_result(client, monkeypatch):
    seen = {}

    def fake(url, audience_type=None, industry=None, tone=None):
        seen.update(url=url, audience=audience_type, industry=industry, tone=tone)
        return "Keyword ideas"

    monkeypatch.setattr(ai_engine, "generate_marketing_optimizations", fake)
    response = client.post("/generate-ai-marketing", json={
        "landingPageUrl": "https://example.com", "audienceType": "Founders", "tone": "bold",
    })

    assert response.status_code == 200
    assert response.json() == {"result": "Keyword ideas"}
    assert seen == {"url": "https://example.com", "audience": "Founders", "industry": None, "tone": "bold"}


def test_content_key_depends_on_mode(client, monkeypatch):
    monkeypatch.setattr(ai_engine, "generate_ai_content", lambda prompt, mode=None: {"mode": mode})

    landing = client.post("/generate-ai-content", json={"prompt": "p", "mode": "landing_page_content"})
    assert landing.json() == {"content": {"mode": "landing_page_content"}}

    other = client.post("/generate-ai-content", json={"prompt": "p", "mode": "ad_generation"})
    assert other.json() == {"result": {"mode": "ad_generation"}}


def test_content_requires_prompt(client):
    response = client.post("/generate-ai-content", json={"mode": "page_optimization"})
    assert response.status_code == 400
    assert response.json() == {"error": "No prompt provided"}


def test_malformed_body(client):
    response = client.post("/generate-ai-content", content="not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_upstream_failure_maps_to_502(client, monkeypatch):
    def failing(*args, **kwargs):
        raise AIServiceError("All models failed. Last error: quota")

    monkeypatch.setattr(ai_engine, "generate_ai_content", failing)
    response = client.post("/generate-ai-content", json={"prompt": "p"})
    assert response.status_code == 502
    assert "quota" in response.json()['error']


def test_unexpected_error_maps_to_500(client, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(ai_engine, "generate_ai_content", broken)
    response = client.post("/generate-ai-content", json={"prompt": "p"})
    assert response.status_code == 500
    assert response.json() == {"error": "kaboom"}


def test_track_click(client, database):
    response = client.post("/track-click", json={"pageId": "p1", "x": 12, "y": 40, "deviceType": "mobile"})
    assert response.status_code == 201
    assert response.json() == {"success": True}
    assert [(p.x, p.y, p.value) for p in analytics.get_click_points("p1", "mobile")] == [(12, 40, 1)]


def test_track_click_rejects_unknown_device(client, database):
    response = client.post("/track-click", json={"pageId": "p1", "x": 1, "y": 1, "deviceType": "watch"})
    assert response.status_code == 400


def test_marketing_empty_reply_uses_fallback_text(client, monkeypatch):
    monkeypatch.setattr(ai_engine, "generate_gemini_response", lambda *args, **kwargs: "")
    response = client.post("/generate-ai-marketing", json={"landingPageUrl": "https://example.com"})
    assert response.status_code == 200
    assert response.json() == {"result": "No marketing suggestions available at this time"}
