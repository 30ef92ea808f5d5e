from html import escape

import streamlit as st

from pagepulse.heatmap import RenderState

STATUS_COLORS = {
    "active": ("#dcfce7", "#15803d"),
    "draft": ("#fef9c3", "#a16207"),
    "archived": ("#f1f5f9", "#64748b"),
}


def setup_app_styling():
    """
    Injects global CSS: dark sidebar, light main area, blue accents, card and placeholder styles.
    """
    st.markdown("""
    <style>
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@300;400;500;600;700&display=swap');

    :root {
        --primary: #0f172a;
        --accent: #1a56db;
        --accent-glow: rgba(26, 86, 219, 0.15);
        --bg-sidebar: #0f172a;
        --bg-body: #f8fafc;
        --text-main: #0f172a;
        --text-muted: #64748b;
        --border-light: #e2e8f0;
        --border-dark: #334155;
        --shadow-sm: 0 1px 2px 0 rgba(0, 0, 0, 0.05);
        --shadow-md: 0 4px 6px -1px rgba(0, 0, 0, 0.05), 0 2px 4px -1px rgba(0, 0, 0, 0.03);
    }

    html, body, [class*="css"] {
        font-family: 'Inter', sans-serif !important;
        color: var(--text-main);
    }
    .stApp { background-color: var(--bg-body); }

    /* SIDEBAR */
    [data-testid="stSidebar"] {
        background-color: var(--bg-sidebar);
        border-right: 1px solid var(--border-dark);
    }
    [data-testid="stSidebar"] p, [data-testid="stSidebar"] span, [data-testid="stSidebar"] label {
        color: #cbd5e1 !important;
    }
    .pagepulse-logo {
        font-weight: 800;
        font-size: 2rem;
        background: linear-gradient(135deg, #ffffff 0%, #93c5fd 100%);
        -webkit-background-clip: text;
        -webkit-text-fill-color: transparent;
        margin-bottom: 1.5rem;
        padding-left: 0.5rem;
    }

    /* NAVIGATION PILLS */
    .stRadio [role="radiogroup"] > label > div:first-child { display: none !important; }
    .stRadio [role="radiogroup"] > label {
        padding: 0.7rem 1rem !important;
        border-radius: 8px !important;
        margin-bottom: 0.3rem !important;
        color: #94a3b8 !important;
        transition: all 0.2s ease !important;
    }
    .stRadio [role="radiogroup"] > label:has(input:checked) {
        background: rgba(26, 86, 219, 0.2) !important;
        border-left: 4px solid var(--accent) !important;
        font-weight: 600 !important;
    }

    /* CARDS */
    .metric-card {
        background: white;
        padding: 1.25rem 1.5rem;
        border-radius: 12px;
        border: 1px solid var(--border-light);
        box-shadow: var(--shadow-sm);
        transition: all 0.2s;
    }
    .metric-card:hover { transform: translateY(-2px); box-shadow: var(--shadow-md); }
    .metric-title { font-size: 0.85rem; color: var(--text-muted); font-weight: 500; }
    .metric-value { font-size: 1.6rem; font-weight: 700; margin-top: 0.25rem; }
    .metric-trend { font-size: 0.75rem; font-weight: 600; margin-top: 0.5rem; }
    .trend-up { color: #22c55e; }
    .trend-down { color: #ef4444; }

    .status-badge {
        padding: 0.2rem 0.7rem;
        border-radius: 100px;
        font-size: 0.75rem;
        font-weight: 600;
    }

    /* LOADING PLACEHOLDER */
    @keyframes pulse { 0%, 100% { opacity: 1; } 50% { opacity: 0.5; } }
    .pulse-placeholder {
        background: #e2e8f0;
        border-radius: 8px;
        animation: pulse 2s cubic-bezier(0.4, 0, 0.6, 1) infinite;
    }

    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
    </style>
    """, unsafe_allow_html=True)


def format_trend(trend):
    """'↑ 12.5% from last period' / '↓ 3.2% from last period', or '' when there is no prior period."""
    if trend is None:
        return ""
    arrow = "↑" if trend > 0 else "↓"
    return f"{arrow} {abs(trend)}% from last period"


def metric_card_html(title, value, trend=None, description=None, loading=False):
    if loading:
        body = '<div class="pulse-placeholder" style="height:2.2rem;width:7rem;"></div>'
    else:
        body = f'<div class="metric-value">{escape(str(value))}</div>'

    extra = ""
    if description:
        extra += f'<div class="metric-title">{escape(description)}</div>'
    if trend is not None:
        css = "trend-up" if trend > 0 else "trend-down"
        extra += f'<div class="metric-trend {css}">{format_trend(trend)}</div>'

    return f'<div class="metric-card"><div class="metric-title">{escape(title)}</div>{body}{extra}</div>'


def render_metric_card(title, value, trend=None, description=None, loading=False):
    st.markdown(metric_card_html(title, value, trend, description, loading), unsafe_allow_html=True)


def render_placeholder(width, height):
    """Inert pulsing box with the heatmap's dimensions, shown while the background decodes."""
    st.markdown(
        f'<div class="pulse-placeholder" style="width:100%;max-width:{width}px;aspect-ratio:{width}/{height};"></div>',
        unsafe_allow_html=True
    )


def status_badge_html(status):
    bg, fg = STATUS_COLORS.get(status, STATUS_COLORS["archived"])
    return f'<span class="status-badge" style="background:{bg};color:{fg};">{escape(status)}</span>'


def render_heatmap_view(view, points):
    """
    Draws a HeatmapView into the page: the rendered image when ready, a placeholder while loading.
    Returns the rendered PIL image, or None while loading.
    """
    st.subheader(f"Click Heatmap ({view.device_type})")

    image = view.render(points)
    if image is None:
        render_placeholder(view.display_width, view.height)
        return None

    if view.state == RenderState.FAILED:
        st.caption(f"⚠️ Page screenshot could not be loaded ({view.error}). Showing clicks only.")

    st.image(image, width=view.display_width)
    return image
