"""
Analytics Module
Click capture for heatmaps and page performance metrics for the dashboard.
"""

import logging
import random
from collections import Counter
from datetime import date

import pandas as pd

from pagepulse.db import get_session, ClickEvent, PageMetric
from pagepulse.heatmap import HeatmapPoint

logger = logging.getLogger(__name__)

DEVICE_TYPES = ("desktop", "mobile")

PAGE_REGIONS = ["Header / Hero CTA", "Main Content", "Footer Links"]

METRIC_COLUMNS = ['page_id', 'date', 'visitors', 'clicks', 'bounce_rate', 'avg_time', 'scroll_depth']


def record_click(page_id, x, y, device_type="desktop"):
    """
    Store one click. Coordinates are in the page's heatmap canvas space.

    Returns:
        Click event ID
    """
    if device_type not in DEVICE_TYPES:
        raise ValueError(f"Unknown device type: {device_type}")
    if x < 0 or y < 0:
        raise ValueError("Click coordinates must be non-negative")

    session = get_session()

    try:
        event = ClickEvent(page_id=page_id, x=float(x), y=float(y), device_type=device_type)
        session.add(event)
        session.commit()
        return event.id
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def get_click_points(page_id, device_type="desktop"):
    """
    Collapse a page's clicks into heatmap points; clicks landing on the same
    (rounded) pixel become one point whose value is the click count.
    """
    session = get_session()

    try:
        rows = session.query(ClickEvent.x, ClickEvent.y).filter(
            ClickEvent.page_id == page_id,
            ClickEvent.device_type == device_type
        ).order_by(ClickEvent.id).all()
    except Exception as e:
        logger.error("Error loading clicks for %s: %s", page_id, e)
        return []
    finally:
        session.close()

    counts = Counter((round(x), round(y)) for x, y in rows)
    return [HeatmapPoint(x=x, y=y, value=count) for (x, y), count in counts.items()]


def sample_click_points(count, width, height, seed=None):
    """Random demo points for pages with no recorded clicks."""
    rng = random.Random(seed)
    return [
        HeatmapPoint(x=rng.random() * width, y=rng.random() * height, value=rng.random() * 10)
        for _ in range(count)
    ]


def click_statistics(points, height):
    """
    Summary for the heatmap side panel: total clicks plus the most and least
    clicked horizontal band (header, content, footer thirds).
    """
    total = sum(p.value for p in points)
    if not points:
        return {'total_clicks': 0, 'most_clicked_area': None, 'least_engaged_area': None}

    band_height = height / len(PAGE_REGIONS)
    bands = [0.0] * len(PAGE_REGIONS)
    for p in points:
        index = min(len(PAGE_REGIONS) - 1, int(p.y // band_height))
        bands[index] += p.value

    most = max(range(len(bands)), key=lambda i: bands[i])
    least = min(range(len(bands)), key=lambda i: bands[i])
    return {
        'total_clicks': total,
        'most_clicked_area': PAGE_REGIONS[most],
        'least_engaged_area': PAGE_REGIONS[least],
    }


def record_page_metrics(page_id, metric_date, visitors, clicks, bounce_rate=0.0, avg_time=0.0, scroll_depth=0.0):
    """
    Save one day of metrics for a page. A page has at most one row per day;
    writing the same day again replaces that row's numbers.

    Returns:
        Metric row ID
    """
    session = get_session()

    try:
        values = {
            'visitors': visitors,
            'clicks': clicks,
            'bounce_rate': bounce_rate,
            'avg_time': avg_time,
            'scroll_depth': scroll_depth,
        }
        metric = session.query(PageMetric).filter(
            PageMetric.page_id == page_id,
            PageMetric.date == metric_date
        ).first()
        if metric is None:
            metric = PageMetric(page_id=page_id, date=metric_date, **values)
            session.add(metric)
        else:
            for key, value in values.items():
                setattr(metric, key, value)
        session.commit()
        return metric.id
    except Exception as e:
        session.rollback()
        raise e
    finally:
        session.close()


def latest_page_metrics(page_id):
    """Most recent day of metrics for a page as a dict, or None if it has none yet."""
    session = get_session()

    try:
        row = session.query(PageMetric).filter(
            PageMetric.page_id == page_id
        ).order_by(PageMetric.date.desc()).first()
        if row is None:
            return None
        return {col: getattr(row, col) for col in METRIC_COLUMNS}
    finally:
        session.close()


def refresh_page_metrics(page_id, metric_date=None, seed=None):
    """
    Writes a simulated day of traffic for a page (today by default) and returns it.
    Stands in for a real analytics feed on the per-page metrics view.
    """
    metric_date = metric_date or date.today()
    rng = random.Random(seed)
    values = {
        'visitors': rng.randint(20, 119),
        'clicks': rng.randint(5, 44),
        'scroll_depth': float(rng.randint(0, 99)),
        'avg_time': float(rng.randint(30, 329)),
        'bounce_rate': float(rng.randint(10, 49)),
    }
    record_page_metrics(page_id, metric_date, **values)
    return dict(values, page_id=page_id, date=metric_date)


def daily_series(df, days=30, today=None):
    """
    Per-day rows for the last `days` days, one row per calendar day, zero-filled
    where nothing was recorded. Index is the day label ('Jan 05').
    """
    today = pd.Timestamp(today or date.today()).normalize()
    index = pd.date_range(end=today, periods=days, freq='D')
    columns = ['visitors', 'clicks', 'scroll_depth', 'avg_time', 'bounce_rate']
    if df.empty:
        daily = pd.DataFrame(0.0, index=index, columns=columns)
    else:
        daily = df.groupby('date')[columns].sum().reindex(index, fill_value=0)
    daily.index = daily.index.strftime('%b %d')
    return daily


def get_metrics_frame(page_id=None):
    """
    Page metrics as a DataFrame (one row per page per day), optionally for a single page.
    """
    session = get_session()

    try:
        query = session.query(PageMetric)
        if page_id:
            query = query.filter(PageMetric.page_id == page_id)
        rows = query.order_by(PageMetric.date).all()
        data = [{col: getattr(r, col) for col in METRIC_COLUMNS} for r in rows]
    except Exception as e:
        logger.error("Error loading page metrics: %s", e)
        data = []
    finally:
        session.close()

    df = pd.DataFrame(data, columns=METRIC_COLUMNS)
    if not df.empty:
        df['date'] = pd.to_datetime(df['date'])
    return df


def _pct_change(current, previous):
    if not previous:
        return None
    return round((current - previous) / previous * 100, 1)


def _period_summary(df):
    visitors = int(df['visitors'].sum())
    clicks = int(df['clicks'].sum())
    return {
        'visitors': visitors,
        'conversion_rate': round(clicks / visitors * 100, 2) if visitors else 0.0,
        # Visitor-weighted so busy days count more
        'avg_time': float((df['avg_time'] * df['visitors']).sum() / visitors) if visitors else 0.0,
        'bounce_rate': float((df['bounce_rate'] * df['visitors']).sum() / visitors) if visitors else 0.0,
    }


def summarize_metrics(df, period_days=30, today=None):
    """
    Headline numbers for the dashboard cards: totals over the last `period_days`
    and the percent change versus the period before it.
    """
    empty = {'visitors': 0, 'conversion_rate': 0.0, 'avg_time': 0.0, 'bounce_rate': 0.0}
    if df.empty:
        return {'current': empty, 'trend': {k: None for k in empty}}

    today = pd.Timestamp(today or date.today())
    start = today - pd.Timedelta(days=period_days)
    prev_start = start - pd.Timedelta(days=period_days)

    current_df = df[(df['date'] > start) & (df['date'] <= today)]
    previous_df = df[(df['date'] > prev_start) & (df['date'] <= start)]

    current = _period_summary(current_df) if not current_df.empty else dict(empty)
    previous = _period_summary(previous_df) if not previous_df.empty else None

    trend = {
        key: (_pct_change(current[key], previous[key]) if previous else None)
        for key in current
    }
    return {'current': current, 'trend': trend}


def monthly_series(df):
    """
    Month-by-month visitors and conversion rate (percent) for the dashboard charts.
    """
    if df.empty:
        return pd.DataFrame(columns=['month', 'visitors', 'conversion_rate'])

    grouped = df.groupby(df['date'].dt.to_period('M')).agg(visitors=('visitors', 'sum'), clicks=('clicks', 'sum'))
    grouped['conversion_rate'] = (grouped['clicks'] / grouped['visitors'].where(grouped['visitors'] > 0) * 100).fillna(0).round(2)
    grouped = grouped.reset_index()
    grouped['month'] = grouped['date'].dt.strftime('%b %Y')
    return grouped[['month', 'visitors', 'conversion_rate']]


def page_performance(df):
    """Per-page visitors and conversion rate (fraction) for the pages table."""
    if df.empty:
        return {}
    grouped = df.groupby('page_id').agg(visitors=('visitors', 'sum'), clicks=('clicks', 'sum'))
    return {
        page_id: {
            'visitors': int(row['visitors']),
            'conversion_rate': (row['clicks'] / row['visitors']) if row['visitors'] else 0.0,
        }
        for page_id, row in grouped.iterrows()
    }
