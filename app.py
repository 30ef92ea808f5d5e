import streamlit as st
import os
import time
import json
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

import pandas as pd
from bs4 import BeautifulSoup

from pagepulse.log import setup_logging
setup_logging()

from pagepulse.db import init_db
import pagepulse.ai_engine as ai_engine
from pagepulse.ai_engine import AIServiceError, calculate_readability
from pagepulse import analytics
from pagepulse.landing_pages import (
    check_for_existing_draft, save_landing_page_draft, publish_landing_page, get_landing_page,
    get_published_page_by_slug, list_landing_pages, delete_landing_page, apply_optimization_to_page,
    republish_optimized_page, save_ai_suggestion, get_ai_suggestions, page_status, split_keywords,
    add_keyword, get_keywords, delete_keyword
)
from pagepulse.page_generator import (
    THEME_OPTIONS, CAMPAIGN_TYPES, LAYOUT_STYLES, MEDIA_TYPES, generate_landing_page_content,
    generate_enhanced_html
)
from pagepulse.heatmap import (
    HeatmapView, ImageCache, RenderState, validate_image_url, DEFAULT_WIDTH, DEFAULT_HEIGHT, MOBILE_MAX_WIDTH
)
from pagepulse.report import generate_heatmap_report
import pagepulse.ui as ui

# Page Config
st.set_page_config(
    page_title="PagePulse | Landing Pages",
    page_icon="📈",
    layout="wide"
)

try:
    init_db()
except Exception as e:
    st.error(f"Database Connection Error: {e}")

ui.setup_app_styling()

USER_ID = os.getenv("PAGEPULSE_USER_ID", "demo-user")

CONTENT_MODES = {
    "Landing page copy": "landing_page_content",
    "Page optimization (JSON)": "page_optimization",
    "Ad copy (JSON)": "ad_generation",
}

HEATMAP_RECOMMENDATIONS = [
    "Consider moving the CTA button above the fold",
    "Simplify the navigation menu if it sees low engagement",
    "Make testimonials more prominent near the hottest areas",
]

with st.sidebar:
    st.markdown('<div class="pagepulse-logo">PagePulse</div>', unsafe_allow_html=True)

    selection = st.radio(
        "Navigation",
        ["Dashboard", "Landing Pages", "Page Creator", "Page Editor", "Keywords", "Page Metrics",
         "Heatmap", "AI Content", "AI Marketing", "Page Viewer"],
        label_visibility="collapsed"
    )


@st.cache_resource
def get_image_cache():
    """One background-image cache shared by every session, bounded by HEATMAP_CACHE_SIZE."""
    return ImageCache()


def render_model_selector(key_suffix):
    return st.selectbox(
        "AI Model",
        options=ai_engine.MODEL_PRIORITY_CHAIN,
        index=0,
        key=f"model_selector_{key_suffix}",
        help="The system falls back to other models if the selected one is unavailable."
    )


def page_options(pages):
    return {f"{p['title']} ({page_status(p)})": p['id'] for p in pages}


def select_page(pages, label="Select Page"):
    """Page picker that remembers the last choice across sidebar sections. Returns (page_id, label)."""
    options = page_options(pages)
    ids = list(options.values())
    default_id = st.session_state.get("selected_page_id")
    selected_label = st.selectbox(label, list(options.keys()), index=ids.index(default_id) if default_id in ids else 0)
    st.session_state.selected_page_id = options[selected_label]
    return options[selected_label], selected_label


# --- PAGE ROUTING ---

if selection == "Dashboard":
    st.header("📊 Dashboard")
    st.caption("Your marketing performance at a glance")

    df = analytics.get_metrics_frame()
    summary = analytics.summarize_metrics(df)
    current, trend = summary['current'], summary['trend']

    cols = st.columns(4)
    with cols[0]:
        ui.render_metric_card("Total Visitors", f"{current['visitors']:,}", trend['visitors'])
    with cols[1]:
        ui.render_metric_card("Conversion Rate", f"{current['conversion_rate']:.1f}%", trend['conversion_rate'])
    with cols[2]:
        minutes, seconds = divmod(int(current['avg_time']), 60)
        ui.render_metric_card("Avg. Time on Page", f"{minutes}m {seconds:02d}s", trend['avg_time'])
    with cols[3]:
        ui.render_metric_card("Bounce Rate", f"{current['bounce_rate']:.1f}%", trend['bounce_rate'])

    st.write("")
    series = analytics.monthly_series(df)
    if series.empty:
        st.info("No page metrics recorded yet. Metrics appear once published pages receive traffic.")
    else:
        chart_cols = st.columns(2)
        with chart_cols[0]:
            st.markdown("**Visitors by Month**")
            st.line_chart(series.set_index('month')['visitors'])
        with chart_cols[1]:
            st.markdown("**Conversion Rate % by Month**")
            st.bar_chart(series.set_index('month')['conversion_rate'])

    st.subheader("Recent Landing Pages")
    pages = list_landing_pages(USER_ID)[:10]
    if not pages:
        st.info("No landing pages yet. Head to 'Page Creator' to build your first one.")
    else:
        performance = analytics.page_performance(df)
        rows = []
        for p in pages:
            perf = performance.get(p['id'], {'visitors': 0, 'conversion_rate': 0.0})
            rows.append({
                "Name": p['title'],
                "Status": page_status(p),
                "Conversion Rate": f"{perf['conversion_rate'] * 100:.1f}%",
                "Visitors": perf['visitors'],
                "Created": p['created_at'],
            })
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


elif selection == "Landing Pages":
    st.header("🗂️ Landing Pages")
    st.caption("Manage drafts and published pages.")

    search = st.text_input("Search pages", placeholder="Filter by title...")
    pages = list_landing_pages(USER_ID)
    if search:
        pages = [p for p in pages if search.lower() in p['title'].lower()]

    if not pages:
        st.info("No landing pages found.")

    for p in pages:
        with st.container(border=True):
            c1, c2, c3 = st.columns([4, 2, 2])
            with c1:
                st.markdown(f"**{p['title']}** {ui.status_badge_html(page_status(p))}", unsafe_allow_html=True)
                st.caption(f"{p['campaign_type']} · {p['industry']} · {p['audience']}")
                if p['published_url']:
                    st.caption(f"🔗 {p['published_url']}")
            with c2:
                if st.button("Select", key=f"select_{p['id']}"):
                    st.session_state.selected_page_id = p['id']
                    st.info("Selected. Open 'Page Editor', 'Keywords', 'Page Metrics' or 'Heatmap' in the sidebar.")
            with c3:
                if st.button("Delete", key=f"delete_{p['id']}"):
                    delete_landing_page(p['id'])
                    st.toast(f"Deleted {p['title']}")
                    st.rerun()


elif selection == "Page Creator":
    st.header("✨ Landing Page Creator")
    st.caption("Generate a themed landing page from a few campaign details.")

    if "creator_draft_id" not in st.session_state:
        existing = check_for_existing_draft(USER_ID)
        st.session_state.creator_draft_id = existing['id'] if existing else None
        if existing:
            st.toast(f"Resumed draft: {existing['title']}")

    draft = get_landing_page(st.session_state.creator_draft_id) if st.session_state.creator_draft_id else None

    with st.form("landing_page_form"):
        title = st.text_input("Page Title", value=draft['title'] if draft else "")
        audience = st.text_input("Target Audience", value=draft['audience'] if draft else "")
        industry = st.text_input("Industry", value=draft['industry'] if draft else "")
        campaign_index = CAMPAIGN_TYPES.index(draft['campaign_type']) if draft and draft['campaign_type'] in CAMPAIGN_TYPES else 0
        campaign_type = st.selectbox("Campaign Type", CAMPAIGN_TYPES, index=campaign_index)
        keywords = st.text_input("Keywords (comma separated)", value=", ".join(draft['initial_keywords']) if draft else "")

        c1, c2, c3 = st.columns(3)
        with c1:
            theme_name = st.selectbox("Theme", [t['name'] for t in THEME_OPTIONS])
        with c2:
            media_type = st.selectbox("Media", MEDIA_TYPES)
        with c3:
            layout_style = st.selectbox("Layout", LAYOUT_STYLES)

        generate = st.form_submit_button("Generate Page", type="primary")

    if generate:
        if not all([title, audience, industry]):
            st.error("Title, audience and industry are required.")
        else:
            keyword_list = split_keywords(keywords)
            generated = generate_landing_page_content(title, audience, industry, campaign_type, keyword_list)
            theme_index = [t['name'] for t in THEME_OPTIONS].index(theme_name)
            html = generate_enhanced_html(
                title, audience, industry, keyword_list, THEME_OPTIONS[theme_index],
                generated['content'], media_type, layout_style
            )
            st.session_state.creator_form = {
                'title': title, 'audience': audience, 'industry': industry,
                'campaign_type': campaign_type, 'keywords': keywords,
            }
            st.session_state.creator_generated = generated['content']
            st.session_state.creator_html = html
            st.session_state.creator_metadata = {
                'generated_content': generated['content'],
                'theme_options': generated['theme_options'],
                'selected_theme_index': theme_index,
                'media_type': media_type,
                'layout_style': layout_style,
            }

    if "creator_html" in st.session_state:
        st.subheader("Preview")
        st.components.v1.html(st.session_state.creator_html, height=600, scrolling=True)

        with st.expander("Keyword Suggestions"):
            for kw in st.session_state.creator_generated['keyword_suggestions']:
                st.markdown(f"- {kw}")

        c1, c2 = st.columns(2)
        with c1:
            if st.button("💾 Save Draft"):
                result = save_landing_page_draft(
                    USER_ID, st.session_state.creator_form, st.session_state.creator_draft_id,
                    st.session_state.creator_html, st.session_state.creator_metadata
                )
                if result['success']:
                    st.session_state.creator_draft_id = result['id']
                    st.success("Draft saved.")
                else:
                    st.error(f"Failed to save draft: {result['error']}")
        with c2:
            if st.button("🚀 Publish", type="primary"):
                result = publish_landing_page(
                    USER_ID, st.session_state.creator_form, st.session_state.creator_draft_id,
                    st.session_state.creator_html, st.session_state.creator_generated
                )
                if result['success']:
                    st.success(f"Published at {result['published_url']}")
                    for key in ("creator_draft_id", "creator_html", "creator_generated", "creator_form", "creator_metadata"):
                        st.session_state.pop(key, None)
                else:
                    st.error(f"Failed to publish: {result['error']}")


elif selection == "Page Editor":
    st.header("🛠️ Page Editor & AI Optimizer")

    pages = list_landing_pages(USER_ID)
    if not pages:
        st.info("No landing pages yet.")
        st.stop()

    page_id, _ = select_page(pages)
    page = get_landing_page(page_id)
    if page is None:
        st.error("Page not found.")
        st.stop()

    html = st.text_area("HTML Content", value=page['html_content'] or "", height=300, key=f"html_{page['id']}")

    visible_text = BeautifulSoup(html, 'html.parser').get_text(" ", strip=True)
    st.metric("Readability (Flesch-Kincaid grade)", calculate_readability(visible_text))

    st.subheader("AI Element Optimization")
    c1, c2 = st.columns([1, 3])
    with c1:
        element_type = st.selectbox("Element", list(ai_engine.ELEMENT_PROMPTS.keys()))
        model = render_model_selector("editor")
    with c2:
        element_text = st.text_area("Current text", height=100)

    if st.button("Suggest Improvement", type="primary"):
        if not element_text.strip():
            st.warning("Enter the text you want to optimize.")
        else:
            with st.spinner("Asking the AI..."):
                try:
                    suggestion = ai_engine.generate_optimized_content(element_text, element_type, model_name=model)
                    save_ai_suggestion(page['id'], element_type, suggestion if isinstance(suggestion, str) else json.dumps(suggestion))
                except AIServiceError as e:
                    st.error(f"Unable to generate suggestions at this time: {e}")

    suggestions = get_ai_suggestions(page['id'], status='pending')
    if suggestions:
        st.markdown("**Pending suggestions**")
        for s in suggestions:
            with st.container(border=True):
                st.caption(s['suggestion_type'])
                st.markdown(s['content'])
                if element_text and st.button("Apply to page", key=f"apply_{s['id']}"):
                    updated = html.replace(element_text, s['content'])
                    result = apply_optimization_to_page(page['id'], updated, s['id'], user_id=USER_ID)
                    if result['success']:
                        st.success("Optimization applied.")
                        st.rerun()
                    else:
                        st.error(result['error'])

    st.subheader("Whole-Page Optimization")
    if st.button("Analyze Page"):
        with st.spinner("Analyzing the page..."):
            try:
                st.session_state[f"page_opt_{page['id']}"] = ai_engine.generate_page_optimizations(html, page, model_name=model)
            except AIServiceError as e:
                st.error(f"Unable to generate suggestions at this time: {e}")

    optimizations = st.session_state.get(f"page_opt_{page['id']}")
    if optimizations:
        for element in ("headline", "cta"):
            item = optimizations.get(element) or {}
            if item.get('suggested'):
                with st.container(border=True):
                    st.markdown(f"**{element.upper()}**: {item.get('original', '')} → **{item['suggested']}**")
                    st.caption(item.get('reason', ''))
                    if st.button("Save as suggestion", key=f"save_opt_{element}_{page['id']}"):
                        save_ai_suggestion(page['id'], element, item['suggested'])
                        st.rerun()
        with st.expander("Full analysis"):
            st.json(optimizations)

    c1, c2 = st.columns(2)
    with c1:
        if st.button("💾 Save HTML"):
            result = apply_optimization_to_page(page['id'], html, user_id=USER_ID)
            if result['success']:
                st.success("Saved.")
            else:
                st.error(result['error'])
    with c2:
        if st.button("🚀 Republish"):
            result = republish_optimized_page(page['id'])
            if result['success']:
                st.success(f"Republished: {result['published_url']}")
            else:
                st.error(result['error'])


elif selection == "Keywords":
    st.header("🔑 Keywords Manager")
    st.caption("Track and optimize keywords for better landing page performance")

    pages = list_landing_pages(USER_ID)
    if not pages:
        st.info("No landing pages yet.")
        st.stop()

    page_id, _ = select_page(pages)

    with st.form("add_keyword_form", clear_on_submit=True):
        c1, c2, c3, c4 = st.columns([3, 1, 1, 1])
        with c1:
            new_keyword = st.text_input("Keyword")
        with c2:
            volume = st.number_input("Monthly volume", min_value=0, value=0, step=100)
        with c3:
            cpc = st.number_input("CPC ($)", min_value=0.0, value=0.0, step=0.1, format="%.2f")
        with c4:
            score = st.number_input("Score (%)", min_value=0.0, max_value=100.0, value=0.0, step=1.0)
        add = st.form_submit_button("Add Keyword", type="primary")

    if add:
        try:
            add_keyword(page_id, new_keyword, volume=volume or None, cpc=cpc or None,
                        performance_score=(score / 100) if score else None)
            st.success("Keyword added successfully!")
        except (ValueError, LookupError) as e:
            st.error(f"Error adding keyword: {e}")

    search = st.text_input("Search keywords", placeholder="Filter...")
    keywords = get_keywords(page_id, search=search)
    if not keywords:
        st.info("No keywords tracked for this page yet.")

    for k in keywords:
        c1, c2, c3, c4, c5 = st.columns([3, 1, 1, 1, 1])
        c1.markdown(f"**{k['keyword']}**")
        c2.write(f"{k['volume']:,}" if k['volume'] is not None else "-")
        c3.write(f"${k['cpc']:.2f}" if k['cpc'] is not None else "-")
        c4.write(f"{k['performance_score'] * 100:.1f}%" if k['performance_score'] is not None else "-")
        if c5.button("Delete", key=f"kw_delete_{k['id']}"):
            delete_keyword(k['id'])
            st.toast(f"Deleted keyword '{k['keyword']}'")
            st.rerun()


elif selection == "Page Metrics":
    st.header("📈 Page Metrics")

    pages = list_landing_pages(USER_ID)
    if not pages:
        st.info("No landing pages yet.")
        st.stop()

    c1, c2 = st.columns([3, 1])
    with c1:
        page_id, selected_label = select_page(pages)
    with c2:
        time_range = st.radio("Range", ["7d", "14d", "30d"], index=2, horizontal=True)

    if st.button("🔄 Refresh Metrics"):
        analytics.refresh_page_metrics(page_id)
        st.toast("Metrics updated successfully")

    latest = analytics.latest_page_metrics(page_id) or {
        'visitors': 0, 'clicks': 0, 'scroll_depth': 0.0, 'avg_time': 0.0, 'bounce_rate': 0.0, 'date': None
    }
    if latest['date']:
        st.caption(f"Latest data: {latest['date']:%b %d, %Y}")

    cols = st.columns(5)
    with cols[0]:
        ui.render_metric_card("Visitors", f"{latest['visitors']:,}")
    with cols[1]:
        ui.render_metric_card("Clicks", f"{latest['clicks']:,}")
    with cols[2]:
        ui.render_metric_card("Scroll Depth", f"{latest['scroll_depth']:.0f}%")
    with cols[3]:
        ui.render_metric_card("Avg. Time", f"{latest['avg_time']:.0f}s")
    with cols[4]:
        ui.render_metric_card("Bounce Rate", f"{latest['bounce_rate']:.0f}%")

    daily = analytics.daily_series(analytics.get_metrics_frame(page_id), days=int(time_range[:-1]))
    tabs = st.tabs(["Traffic", "Engagement"])
    with tabs[0]:
        st.line_chart(daily[['visitors', 'clicks']])
    with tabs[1]:
        st.bar_chart(daily[['scroll_depth', 'bounce_rate']])


elif selection == "Heatmap":
    st.header("🔥 Heatmap Analysis")
    st.caption("Visualize how users interact with your landing pages")

    pages = list_landing_pages(USER_ID)
    if not pages:
        st.info("No landing pages yet.")
        st.stop()

    c1, c2, c3 = st.columns([3, 2, 3])
    with c1:
        page_id, selected_label = select_page(pages, "Select a landing page")
    with c2:
        device_type = st.radio("Device", ["desktop", "mobile"], horizontal=True)
    with c3:
        image_src = st.text_input("Page screenshot URL (optional)", placeholder="https://...").strip() or None

    if image_src:
        try:
            validate_image_url(image_src)
        except ValueError as e:
            st.error(str(e))
            image_src = None

    width = DEFAULT_WIDTH if device_type == "desktop" else MOBILE_MAX_WIDTH

    view_key = f"heatmap_view_{page_id}_{device_type}"
    if view_key not in st.session_state:
        st.session_state[view_key] = HeatmapView(width, DEFAULT_HEIGHT, device_type=device_type, cache=get_image_cache())
    view = st.session_state[view_key]
    view.set_image_src(image_src)

    if view.state == RenderState.FAILED and st.button("🔄 Retry screenshot"):
        view.retry()

    points = analytics.get_click_points(page_id, device_type)
    using_sample = not points
    if using_sample:
        points = analytics.sample_click_points(50 if device_type == "desktop" else 30, width, DEFAULT_HEIGHT, seed=page_id)

    main, side = st.columns([3, 1])
    with main:
        image = ui.render_heatmap_view(view, points)
        if using_sample:
            st.caption("No clicks recorded yet. Showing sample data.")

    stats = analytics.click_statistics(points, DEFAULT_HEIGHT)
    with side:
        loading = image is None
        ui.render_metric_card("Total Clicks", f"{stats['total_clicks']:,.0f}", loading=loading)
        ui.render_metric_card("Most Clicked Area", stats['most_clicked_area'] or "n/a", loading=loading)
        ui.render_metric_card("Least Engaged Section", stats['least_engaged_area'] or "n/a", loading=loading)

        st.markdown("**Recommendations**")
        for rec in HEATMAP_RECOMMENDATIONS:
            st.markdown(f"- {rec}")

        if image is not None:
            pdf = generate_heatmap_report(selected_label, device_type, image, stats, HEATMAP_RECOMMENDATIONS)
            st.download_button("📄 Export PDF", data=pdf, file_name=f"heatmap_{page_id}_{device_type}.pdf", mime="application/pdf")

    if view.state == RenderState.LOADING:
        # Poll until the background decode settles (bounded by the fetch timeout)
        time.sleep(0.5)
        st.rerun()


elif selection == "AI Content":
    st.header("🪄 AI Content Generator")
    st.caption("Generate landing page copy and platform-specific ads with AI.")

    tab_content, tab_ads = st.tabs(["Content", "Ad Generator"])

    with tab_content:
        with st.form("ai_content_form"):
            mode_label = st.selectbox("Mode", list(CONTENT_MODES.keys()))
            prompt = st.text_area("Prompt", placeholder="Describe the page, product or copy you need...", height=150)
            model = render_model_selector("content")
            generate = st.form_submit_button("Generate", type="primary")

        if generate:
            if not prompt.strip():
                st.error("Please enter some content to generate from")
            else:
                with st.spinner("Generating AI suggestions..."):
                    try:
                        st.session_state.ai_content_result = ai_engine.generate_ai_content(
                            prompt, mode=CONTENT_MODES[mode_label], model_name=model
                        )
                    except AIServiceError as e:
                        st.error(f"Failed to generate content: {e}")

        result = st.session_state.get("ai_content_result")
        if isinstance(result, (dict, list)):
            st.json(result)
        elif result:
            st.markdown(result)

    with tab_ads:
        pages = list_landing_pages(USER_ID)
        if not pages:
            st.info("Create a landing page first to generate ads from it.")
        else:
            page_id, _ = select_page(pages, "Landing page")
            page = get_landing_page(page_id)
            if st.button("Generate Ads", type="primary"):
                with st.spinner("Creating ad variations..."):
                    try:
                        st.session_state[f"ads_{page_id}"] = ai_engine.generate_ad_suggestions(page['html_content'], page)
                    except AIServiceError as e:
                        st.error(f"Failed to generate ad suggestions: {e}")

            ads = st.session_state.get(f"ads_{page_id}")
            if ads:
                fb, ig, tw = ads.get('facebook') or {}, ads.get('instagram') or {}, ads.get('twitter') or {}
                platform_tabs = st.tabs(["Facebook", "Instagram", "Twitter"])
                with platform_tabs[0]:
                    st.markdown(f"**{fb.get('headline', '')}**\n\n{fb.get('primary_text', '')}\n\n_{fb.get('description', '')}_")
                    if fb.get('cta'):
                        st.button(fb['cta'], disabled=True)
                with platform_tabs[1]:
                    st.markdown(f"{ig.get('caption', '')}\n\n{ig.get('hashtags', '')}")
                with platform_tabs[2]:
                    st.markdown(f"{tw.get('tweet_copy', '')}\n\n{tw.get('hashtags', '')}")


elif selection == "AI Marketing":
    st.header("🤖 AI Marketing Optimizer")
    st.caption("Keyword ideas, ad copy variations and A/B test recommendations for a landing page.")

    with st.form("marketing_form"):
        landing_page_url = st.text_input("Landing Page URL")
        c1, c2, c3 = st.columns(3)
        with c1:
            audience_type = st.text_input("Target Audience")
        with c2:
            industry = st.text_input("Industry")
        with c3:
            tone = st.selectbox("Tone", ["professional", "friendly", "bold", "playful", "luxury"])
        model = render_model_selector("marketing")
        submitted = st.form_submit_button("Generate Recommendations", type="primary")

    if submitted:
        if not landing_page_url:
            st.error("No landing page URL provided")
        else:
            with st.spinner("Generating marketing recommendations..."):
                try:
                    st.session_state.marketing_result = ai_engine.generate_marketing_optimizations(
                        landing_page_url, audience_type, industry, tone, model_name=model
                    )
                except AIServiceError as e:
                    st.error(f"Unable to generate marketing suggestions at this time: {e}")

    if st.session_state.get("marketing_result"):
        st.markdown(st.session_state.marketing_result)


elif selection == "Page Viewer":
    st.header("👁️ Page Viewer")

    c1, c2 = st.columns([3, 1])
    with c1:
        lookup = st.text_input("Published slug, or draft ID")
    with c2:
        is_draft = st.checkbox("Draft (look up by ID)")

    if lookup:
        page = get_landing_page(lookup) if is_draft else get_published_page_by_slug(lookup)
        if page is None:
            st.error("404 - Page Not Found")
        elif not (page['html_content'] or "").strip():
            st.info("This landing page has no content yet.")
        else:
            st.components.v1.html(page['html_content'], height=800, scrolling=True)
