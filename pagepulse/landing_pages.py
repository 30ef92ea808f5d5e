"""
Landing Page Service
Draft/publish lifecycle, lookups and optimization bookkeeping for landing pages.
"""

import json
import logging
import os
import re
from datetime import datetime

from pagepulse.db import (
    get_session, LandingPage, AISuggestion, OptimizationHistory, Keyword, ClickEvent, PageMetric
)

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_BASE_URL = "https://pagepulse.example.com"

UPDATABLE_FIELDS = {
    'title', 'audience', 'industry', 'campaign_type', 'initial_keywords', 'html_content',
    'generated_content', 'metadata_json', 'is_draft', 'published_at', 'published_url', 'slug'
}


def split_keywords(keywords):
    """
    Turns a comma separated keyword string into a clean list.

    Examples:
    - "seo, ads ,, growth" → ['seo', 'ads', 'growth']
    """
    if not keywords:
        return []
    if isinstance(keywords, (list, tuple)):
        return [k.strip() for k in keywords if k and k.strip()]
    return [k.strip() for k in keywords.split(",") if k.strip()]


def slugify(text):
    slug = re.sub(r'[^a-z0-9]+', '-', (text or '').lower()).strip('-')
    return slug or 'page'


def public_base_url():
    return os.getenv("PAGEPULSE_PUBLIC_BASE_URL", DEFAULT_PUBLIC_BASE_URL).rstrip('/')


def page_to_dict(page):
    if page is None:
        return None
    try:
        keywords = json.loads(page.initial_keywords) if page.initial_keywords else []
    except (TypeError, ValueError):
        keywords = []
    return {
        'id': page.id,
        'user_id': page.user_id,
        'title': page.title,
        'slug': page.slug,
        'audience': page.audience,
        'industry': page.industry,
        'campaign_type': page.campaign_type,
        'initial_keywords': keywords,
        'html_content': page.html_content,
        'generated_content': page.generated_content,
        'metadata': page.metadata_json,
        'is_draft': page.is_draft,
        'published_at': page.published_at,
        'published_url': page.published_url,
        'created_at': page.created_at,
        'updated_at': page.updated_at,
    }


def page_status(page):
    """
    Dashboard status for a page dict: 'draft', 'active' (published) or 'archived'
    (was published once, since moved back to draft).
    """
    if not page['is_draft']:
        return 'active'
    if page.get('published_at'):
        return 'archived'
    return 'draft'


def _form_fields(form_values):
    return {
        'title': form_values['title'],
        'audience': form_values['audience'],
        'industry': form_values['industry'],
        'campaign_type': form_values['campaign_type'],
        'initial_keywords': json.dumps(split_keywords(form_values.get('keywords', ''))),
    }


def _unique_slug(session, title, page_id):
    base = slugify(title)
    slug = base
    suffix = 2
    while True:
        existing = session.query(LandingPage).filter(LandingPage.slug == slug).first()
        if existing is None or existing.id == page_id:
            return slug
        slug = f"{base}-{suffix}"
        suffix += 1


def _upsert_page(session, user_id, page_id, fields):
    """Updates the user's page `page_id`, or inserts a new one when page_id is None."""
    now = datetime.utcnow()
    if page_id:
        page = session.query(LandingPage).filter(
            LandingPage.id == page_id, LandingPage.user_id == user_id
        ).first()
        if page is None:
            raise LookupError(f"Landing page {page_id} not found for user {user_id}")
        for key, value in fields.items():
            setattr(page, key, value)
        page.updated_at = now
    else:
        page = LandingPage(user_id=user_id, created_at=now, updated_at=now, **fields)
        session.add(page)
    session.flush()
    return page


def check_for_existing_draft(user_id):
    """
    Returns the user's most recently updated draft, or None.
    """
    session = get_session()

    try:
        page = session.query(LandingPage).filter(
            LandingPage.user_id == user_id,
            LandingPage.is_draft.is_(True)
        ).order_by(LandingPage.updated_at.desc()).first()
        return page_to_dict(page)
    except Exception as e:
        logger.error("Error checking for existing draft: %s", e)
        return None
    finally:
        session.close()


def save_landing_page_draft(user_id, form_values, existing_draft_id=None, html_content="", metadata=None):
    """
    Create or update a draft landing page.

    Args:
        user_id: Owner of the page
        form_values: dict with title, audience, industry, campaign_type, keywords
        existing_draft_id: ID of the draft to update (optional)
        html_content: Generated HTML
        metadata: dict of theme options / selected theme / media / layout (optional)

    Returns:
        {'success': True, 'id': ...} or {'success': False, 'error': ...}
    """
    session = get_session()

    try:
        fields = _form_fields(form_values)
        fields['html_content'] = html_content
        fields['is_draft'] = True
        fields['metadata_json'] = json.dumps(metadata) if metadata is not None else None

        page = _upsert_page(session, user_id, existing_draft_id, fields)
        session.commit()
        return {'success': True, 'id': page.id}

    except Exception as e:
        session.rollback()
        logger.error("Error saving landing page draft: %s", e)
        return {'success': False, 'error': str(e)}
    finally:
        session.close()


def publish_landing_page(user_id, form_values, existing_page_id, html_content, generated_content):
    """
    Publish a landing page, assigning it a unique slug and public URL.

    Returns:
        {'success': True, 'id': ..., 'slug': ..., 'published_url': ...} or {'success': False, 'error': ...}
    """
    session = get_session()

    try:
        fields = _form_fields(form_values)
        fields['html_content'] = html_content
        fields['is_draft'] = False
        fields['published_at'] = datetime.utcnow()
        fields['generated_content'] = (
            generated_content if isinstance(generated_content, str) else json.dumps(generated_content)
        )

        page = _upsert_page(session, user_id, existing_page_id, fields)
        page.slug = _unique_slug(session, page.title, page.id)
        page.published_url = f"{public_base_url()}/p/{page.slug}"
        session.commit()

        logger.info("Published landing page %s at %s", page.id, page.published_url)
        return {'success': True, 'id': page.id, 'slug': page.slug, 'published_url': page.published_url}

    except Exception as e:
        session.rollback()
        logger.error("Error publishing landing page: %s", e)
        return {'success': False, 'error': str(e)}
    finally:
        session.close()


def get_landing_page(page_id):
    """Fetch a page by primary key. Returns a dict or None if not found."""
    session = get_session()

    try:
        return page_to_dict(session.get(LandingPage, page_id))
    except Exception as e:
        logger.error("Error loading landing page %s: %s", page_id, e)
        return None
    finally:
        session.close()


def get_published_page_by_slug(slug):
    """Fetch a published (non-draft) page by slug. Returns a dict or None if not found."""
    session = get_session()

    try:
        page = session.query(LandingPage).filter(
            LandingPage.slug == slug,
            LandingPage.is_draft.is_(False)
        ).first()
        return page_to_dict(page)
    except Exception as e:
        logger.error("Error loading published page %s: %s", slug, e)
        return None
    finally:
        session.close()


def list_landing_pages(user_id=None):
    """
    All landing pages, newest first, optionally restricted to one user.
    """
    session = get_session()

    try:
        query = session.query(LandingPage)
        if user_id:
            query = query.filter(LandingPage.user_id == user_id)
        return [page_to_dict(p) for p in query.order_by(LandingPage.created_at.desc()).all()]
    except Exception as e:
        logger.error("Error listing landing pages: %s", e)
        return []
    finally:
        session.close()


def update_landing_page(page_id, **fields):
    """
    Update selected columns of a page.

    Returns:
        True if a page was updated, False if it does not exist
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown landing page fields: {', '.join(sorted(unknown))}")

    if isinstance(fields.get('initial_keywords'), (list, tuple)):
        fields['initial_keywords'] = json.dumps(list(fields['initial_keywords']))

    session = get_session()

    try:
        page = session.get(LandingPage, page_id)
        if page is None:
            return False
        for key, value in fields.items():
            setattr(page, key, value)
        page.updated_at = datetime.utcnow()
        session.commit()
        return True
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def delete_landing_page(page_id):
    """
    Delete a page together with everything keyed to it: suggestions, optimization
    history, keywords, click events and daily metrics.

    Returns:
        True if deleted, False if not found
    """
    session = get_session()

    try:
        page = session.get(LandingPage, page_id)
        if page is None:
            return False
        for model in (AISuggestion, OptimizationHistory, Keyword, ClickEvent, PageMetric):
            session.query(model).filter(model.page_id == page_id).delete()
        session.delete(page)
        session.commit()
        logger.info("Deleted landing page %s", page_id)
        return True
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def save_ai_suggestion(page_id, suggestion_type, content):
    """Store an AI suggestion for a page. Returns the suggestion ID."""
    session = get_session()

    try:
        suggestion = AISuggestion(page_id=page_id, suggestion_type=suggestion_type, content=content)
        session.add(suggestion)
        session.commit()
        return suggestion.id
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def get_ai_suggestions(page_id, status=None):
    session = get_session()

    try:
        query = session.query(AISuggestion).filter(AISuggestion.page_id == page_id)
        if status:
            query = query.filter(AISuggestion.status == status)
        return [
            {
                'id': s.id,
                'suggestion_type': s.suggestion_type,
                'content': s.content,
                'status': s.status,
                'applied_at': s.applied_at,
                'created_at': s.created_at,
            }
            for s in query.order_by(AISuggestion.created_at.desc()).all()
        ]
    except Exception as e:
        logger.error("Error loading AI suggestions for %s: %s", page_id, e)
        return []
    finally:
        session.close()


# --- Keywords ---

KEYWORD_FIELDS = {'keyword', 'volume', 'cpc', 'performance_score'}


def keyword_to_dict(k):
    return {
        'id': k.id,
        'page_id': k.page_id,
        'keyword': k.keyword,
        'volume': k.volume,
        'cpc': k.cpc,
        'performance_score': k.performance_score,
        'created_at': k.created_at,
        'updated_at': k.updated_at,
    }


def _check_keyword_fields(fields):
    unknown = set(fields) - KEYWORD_FIELDS
    if unknown:
        raise ValueError(f"Cannot update keyword fields: {', '.join(sorted(unknown))}")
    if 'keyword' in fields:
        fields['keyword'] = (fields['keyword'] or '').strip()
        if not fields['keyword']:
            raise ValueError("Keyword cannot be empty")
    for key in ('volume', 'cpc'):
        if fields.get(key) is not None and fields[key] < 0:
            raise ValueError(f"{key} must be non-negative")
    score = fields.get('performance_score')
    if score is not None and not 0 <= score <= 1:
        raise ValueError("performance_score must be between 0 and 1")
    return fields


def _duplicate_keyword(session, page_id, keyword, exclude_id=None):
    query = session.query(Keyword).filter(Keyword.page_id == page_id)
    return any(
        k.keyword.lower() == keyword.lower() and k.id != exclude_id
        for k in query.all()
    )


def add_keyword(page_id, keyword, volume=None, cpc=None, performance_score=None):
    """
    Track a keyword for a page. Keywords are unique per page, ignoring case.

    Returns:
        The stored keyword as a dict
    """
    fields = _check_keyword_fields({
        'keyword': keyword, 'volume': volume, 'cpc': cpc, 'performance_score': performance_score
    })
    session = get_session()

    try:
        if session.get(LandingPage, page_id) is None:
            raise LookupError(f"Landing page {page_id} not found")
        if _duplicate_keyword(session, page_id, fields['keyword']):
            raise ValueError(f"Keyword '{fields['keyword']}' is already tracked for this page")

        now = datetime.utcnow()
        k = Keyword(page_id=page_id, created_at=now, updated_at=now, **fields)
        session.add(k)
        session.commit()
        return keyword_to_dict(k)
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def get_keywords(page_id, search=None):
    """Keywords for a page in the order they were added, optionally filtered by substring."""
    session = get_session()

    try:
        rows = session.query(Keyword).filter(Keyword.page_id == page_id).order_by(Keyword.created_at).all()
        keywords = [keyword_to_dict(k) for k in rows]
    finally:
        session.close()

    if search:
        needle = search.lower()
        keywords = [k for k in keywords if needle in k['keyword'].lower()]
    return keywords


def update_keyword(keyword_id, **fields):
    """
    Returns:
        True if updated, False if the keyword does not exist
    """
    fields = _check_keyword_fields(fields)
    session = get_session()

    try:
        k = session.get(Keyword, keyword_id)
        if k is None:
            return False
        if 'keyword' in fields and _duplicate_keyword(session, k.page_id, fields['keyword'], exclude_id=k.id):
            raise ValueError(f"Keyword '{fields['keyword']}' is already tracked for this page")
        for key, value in fields.items():
            setattr(k, key, value)
        k.updated_at = datetime.utcnow()
        session.commit()
        return True
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def delete_keyword(keyword_id):
    session = get_session()

    try:
        deleted = session.query(Keyword).filter(Keyword.id == keyword_id).delete()
        session.commit()
        return deleted > 0
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def _log_optimization(page_id, user_id, optimization_type):
    session = get_session()
    try:
        session.add(OptimizationHistory(page_id=page_id, user_id=user_id, optimization_type=optimization_type))
        session.commit()
    finally:
        session.close()


def apply_optimization_to_page(page_id, updated_html, suggestion_id=None, user_id=None):
    """
    Replace a page's HTML with its optimized version and mark the suggestion applied.
    A failure to write optimization history does not fail the operation.

    Returns:
        {'success': bool, 'error'?: str}
    """
    session = get_session()

    try:
        now = datetime.utcnow()
        page = session.get(LandingPage, page_id)
        if page is None:
            raise LookupError(f"Landing page {page_id} not found")
        page.html_content = updated_html
        page.updated_at = now

        if suggestion_id:
            suggestion = session.get(AISuggestion, suggestion_id)
            if suggestion is None:
                raise LookupError(f"Suggestion {suggestion_id} not found")
            suggestion.status = 'applied'
            suggestion.applied_at = now

        session.commit()
    except Exception as e:
        session.rollback()
        logger.error("Error applying optimization: %s", e)
        return {'success': False, 'error': str(e)}
    finally:
        session.close()

    try:
        _log_optimization(page_id, user_id, "single_suggestion" if suggestion_id else "full_optimization")
    except Exception as e:
        logger.error("Failed to log optimization history: %s", e)

    return {'success': True}


def get_optimization_history(page_id):
    session = get_session()

    try:
        rows = session.query(OptimizationHistory).filter(
            OptimizationHistory.page_id == page_id
        ).order_by(OptimizationHistory.created_at.desc()).all()
        return [{'optimization_type': r.optimization_type, 'user_id': r.user_id, 'created_at': r.created_at} for r in rows]
    finally:
        session.close()


def republish_optimized_page(page_id):
    """
    Refresh the published timestamp, creating a published URL if the page never had one.

    Returns:
        {'success': True, 'published_url': ...} or {'success': False, 'error': ...}
    """
    session = get_session()

    try:
        page = session.get(LandingPage, page_id)
        if page is None:
            raise LookupError(f"Landing page {page_id} not found")

        if not page.slug:
            page.slug = _unique_slug(session, page.title, page.id)
        if not page.published_url:
            page.published_url = f"{public_base_url()}/p/{page.slug}"
        page.published_at = datetime.utcnow()
        session.commit()

        return {'success': True, 'published_url': page.published_url}
    except Exception as e:
        session.rollback()
        logger.error("Error republishing page: %s", e)
        return {'success': False, 'error': str(e)}
    finally:
        session.close()
