import json

import pytest

from pagepulse import landing_pages as lp
from pagepulse.db import get_session, OptimizationHistory


def test_split_keywords():
    assert lp.split_keywords("seo, ads ,, growth") == ["seo", "ads", "growth"]
    assert lp.split_keywords("") == []
    assert lp.split_keywords([" a ", "", "b"]) == ["a", "b"]


def test_slugify():
    assert lp.slugify("Spring Sale: 50% Off!") == "spring-sale-50-off"
    assert lp.slugify("!!!") == "page"


def test_save_draft_then_update(database, form_values):
    created = lp.save_landing_page_draft("u1", form_values, None, "<p>v1</p>", {"selected_theme_index": 1})
    assert created['success']

    page = lp.get_landing_page(created['id'])
    assert page['is_draft'] is True
    assert page['initial_keywords'] == ["discounts", "spring deals"]
    assert json.loads(page['metadata']) == {"selected_theme_index": 1}

    form_values['title'] = "Spring Sale v2"
    updated = lp.save_landing_page_draft("u1", form_values, created['id'], "<p>v2</p>")
    assert updated == {'success': True, 'id': created['id']}
    page = lp.get_landing_page(created['id'])
    assert page['title'] == "Spring Sale v2"
    assert page['html_content'] == "<p>v2</p>"


def test_draft_update_rejects_other_users(database, form_values):
    created = lp.save_landing_page_draft("u1", form_values)
    result = lp.save_landing_page_draft("intruder", form_values, created['id'])
    assert result['success'] is False
    assert "not found" in result['error']


def test_check_for_existing_draft_returns_latest(database, form_values):
    assert lp.check_for_existing_draft("u1") is None
    lp.save_landing_page_draft("u1", form_values)
    form_values['title'] = "Newer"
    newer = lp.save_landing_page_draft("u1", form_values)

    draft = lp.check_for_existing_draft("u1")
    assert draft['id'] == newer['id']
    assert lp.check_for_existing_draft("someone-else") is None


def test_publish_assigns_unique_slugs(database, form_values, monkeypatch):
    monkeypatch.setenv("PAGEPULSE_PUBLIC_BASE_URL", "https://pages.test/")

    first = lp.publish_landing_page("u1", form_values, None, "<h1>A</h1>", {"headline": "A"})
    second = lp.publish_landing_page("u1", form_values, None, "<h1>B</h1>", "raw text")

    assert first['slug'] == "spring-sale"
    assert second['slug'] == "spring-sale-2"
    assert first['published_url'] == "https://pages.test/p/spring-sale"

    page = lp.get_landing_page(first['id'])
    assert page['is_draft'] is False
    assert json.loads(page['generated_content']) == {"headline": "A"}
    assert lp.get_landing_page(second['id'])['generated_content'] == "raw text"


def test_publishing_a_draft_keeps_its_id(database, form_values):
    draft = lp.save_landing_page_draft("u1", form_values)
    published = lp.publish_landing_page("u1", form_values, draft['id'], "<h1>x</h1>", {})
    assert published['id'] == draft['id']
    assert lp.check_for_existing_draft("u1") is None


def test_get_published_page_by_slug_filters_drafts(database, form_values):
    published = lp.publish_landing_page("u1", form_values, None, "<h1>live</h1>", {})
    assert lp.get_published_page_by_slug(published['slug'])['html_content'] == "<h1>live</h1>"
    assert lp.get_published_page_by_slug("nope") is None

    lp.update_landing_page(published['id'], is_draft=True)
    assert lp.get_published_page_by_slug(published['slug']) is None


def test_get_missing_page_returns_none(database):
    assert lp.get_landing_page("does-not-exist") is None


def test_update_landing_page(database, form_values):
    created = lp.save_landing_page_draft("u1", form_values)
    assert lp.update_landing_page(created['id'], title="Renamed", initial_keywords=["x"])
    page = lp.get_landing_page(created['id'])
    assert page['title'] == "Renamed"
    assert page['initial_keywords'] == ["x"]

    assert lp.update_landing_page("missing", title="x") is False
    with pytest.raises(ValueError):
        lp.update_landing_page(created['id'], user_id="someone")


def test_list_and_delete(database, form_values):
    a = lp.save_landing_page_draft("u1", form_values)
    lp.save_landing_page_draft("u2", form_values)
    lp.save_ai_suggestion(a['id'], "headline", "Better headline")

    assert len(lp.list_landing_pages()) == 2
    assert [p['id'] for p in lp.list_landing_pages("u1")] == [a['id']]

    assert lp.delete_landing_page(a['id']) is True
    assert lp.get_landing_page(a['id']) is None
    assert lp.get_ai_suggestions(a['id']) == []
    assert lp.delete_landing_page(a['id']) is False


def test_page_status(database, form_values):
    created = lp.save_landing_page_draft("u1", form_values)
    assert lp.page_status(lp.get_landing_page(created['id'])) == "draft"

    lp.publish_landing_page("u1", form_values, created['id'], "", {})
    assert lp.page_status(lp.get_landing_page(created['id'])) == "active"

    lp.update_landing_page(created['id'], is_draft=True)
    assert lp.page_status(lp.get_landing_page(created['id'])) == "archived"


def test_apply_optimization_marks_suggestion(database, form_values):
    created = lp.save_landing_page_draft("u1", form_values, html_content="<h1>Old</h1>")
    suggestion_id = lp.save_ai_suggestion(created['id'], "headline", "New")

    result = lp.apply_optimization_to_page(created['id'], "<h1>New</h1>", suggestion_id, user_id="u1")
    assert result == {'success': True}
    assert lp.get_landing_page(created['id'])['html_content'] == "<h1>New</h1>"

    suggestion = lp.get_ai_suggestions(created['id'])[0]
    assert suggestion['status'] == "applied"
    assert suggestion['applied_at'] is not None
    assert lp.get_ai_suggestions(created['id'], status="pending") == []

    history = lp.get_optimization_history(created['id'])
    assert [h['optimization_type'] for h in history] == ["single_suggestion"]


def test_apply_optimization_survives_history_failure(database, form_values, monkeypatch):
    created = lp.save_landing_page_draft("u1", form_values)

    def broken(*args, **kwargs):
        raise RuntimeError("history table missing")

    monkeypatch.setattr(lp, "_log_optimization", broken)
    assert lp.apply_optimization_to_page(created['id'], "<p>new</p>") == {'success': True}
    assert lp.get_landing_page(created['id'])['html_content'] == "<p>new</p>"


def test_apply_optimization_unknown_page(database):
    result = lp.apply_optimization_to_page("missing", "<p></p>")
    assert result['success'] is False

    session = get_session()
    try:
        assert session.query(OptimizationHistory).count() == 0
    finally:
        session.close()


def test_republish_creates_url_once(database, form_values, monkeypatch):
    monkeypatch.setenv("PAGEPULSE_PUBLIC_BASE_URL", "https://pages.test")
    created = lp.save_landing_page_draft("u1", form_values)

    first = lp.republish_optimized_page(created['id'])
    assert first == {'success': True, 'published_url': "https://pages.test/p/spring-sale"}

    second = lp.republish_optimized_page(created['id'])
    assert second['published_url'] == first['published_url']
    assert lp.get_landing_page(created['id'])['published_at'] is not None

    assert lp.republish_optimized_page("missing")['success'] is False


def test_delete_removes_clicks_metrics_and_keywords(database, form_values):
    from datetime import date
    from pagepulse import analytics

    page = lp.save_landing_page_draft("u1", form_values)
    other = lp.save_landing_page_draft("u1", form_values)
    for page_id in (page['id'], other['id']):
        analytics.record_click(page_id, 10, 10)
        analytics.record_page_metrics(page_id, date(2024, 1, 1), 10, 1)
        lp.add_keyword(page_id, "spring deals")

    assert lp.delete_landing_page(page['id']) is True

    assert analytics.get_click_points(page['id']) == []
    assert analytics.get_metrics_frame(page['id']).empty
    assert lp.get_keywords(page['id']) == []

    assert len(analytics.get_click_points(other['id'])) == 1
    assert len(analytics.get_metrics_frame(other['id'])) == 1
    assert len(lp.get_keywords(other['id'])) == 1


def test_keyword_lifecycle(database, form_values):
    page = lp.save_landing_page_draft("u1", form_values)

    added = lp.add_keyword(page['id'], "  spring deals ", volume=1200, cpc=1.25)
    lp.add_keyword(page['id'], "discount codes")
    assert added['keyword'] == "spring deals"
    assert added['performance_score'] is None

    keywords = lp.get_keywords(page['id'])
    assert sorted(k['keyword'] for k in keywords) == ["discount codes", "spring deals"]
    assert [k['keyword'] for k in lp.get_keywords(page['id'], search="DISC")] == ["discount codes"]

    assert lp.update_keyword(added['id'], performance_score=0.42, cpc=2.0) is True
    updated = lp.get_keywords(page['id'], search="spring")[0]
    assert updated['performance_score'] == pytest.approx(0.42)
    assert updated['cpc'] == 2.0

    assert lp.delete_keyword(added['id']) is True
    assert lp.delete_keyword(added['id']) is False
    assert lp.update_keyword(added['id'], volume=1) is False


def test_keyword_validation(database, form_values):
    page = lp.save_landing_page_draft("u1", form_values)
    kept = lp.add_keyword(page['id'], "Spring Deals")

    with pytest.raises(ValueError):
        lp.add_keyword(page['id'], "   ")
    with pytest.raises(ValueError):
        lp.add_keyword(page['id'], "spring deals")
    with pytest.raises(ValueError):
        lp.add_keyword(page['id'], "cheap", cpc=-1)
    with pytest.raises(ValueError):
        lp.add_keyword(page['id'], "cheap", performance_score=1.5)
    with pytest.raises(LookupError):
        lp.add_keyword("missing-page", "cheap")
    with pytest.raises(ValueError):
        lp.update_keyword(kept['id'], page_id="elsewhere")

    other = lp.add_keyword(page['id'], "coupons")
    with pytest.raises(ValueError):
        lp.update_keyword(other['id'], keyword="SPRING DEALS")
    assert lp.update_keyword(kept['id'], keyword="spring deals") is True
