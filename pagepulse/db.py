"""
Database module for the landing page dashboard.
Uses SQLAlchemy ORM with a PostgreSQL (Supabase) backend; any SQLAlchemy URL works.
"""

import os
import uuid
import logging
from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime, Boolean, Float, Date, UniqueConstraint
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime

logger = logging.getLogger(__name__)

# Create declarative base
Base = declarative_base()


def _new_id():
    return str(uuid.uuid4())


# Database Models
class LandingPage(Base):
    __tablename__ = 'landing_pages'

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=True)
    audience = Column(String, nullable=False)
    industry = Column(String, nullable=False)
    campaign_type = Column(String, nullable=False)
    initial_keywords = Column(Text)  # JSON list
    html_content = Column(Text)
    generated_content = Column(Text)  # JSON of generated copy
    metadata_json = Column(Text)  # Theme options, selected theme, media/layout
    is_draft = Column(Boolean, default=True, nullable=False)
    published_at = Column(DateTime, nullable=True)
    published_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class PageMetric(Base):
    __tablename__ = 'page_metrics'
    __table_args__ = (UniqueConstraint('page_id', 'date', name='uq_page_metrics_page_date'),)

    id = Column(Integer, primary_key=True)
    page_id = Column(String(36), nullable=False, index=True)
    date = Column(Date, nullable=False)
    visitors = Column(Integer, default=0)
    clicks = Column(Integer, default=0)
    bounce_rate = Column(Float, default=0.0)  # percent
    avg_time = Column(Float, default=0.0)  # seconds
    scroll_depth = Column(Float, default=0.0)  # percent
    created_at = Column(DateTime, default=datetime.utcnow)


class Keyword(Base):
    __tablename__ = 'keywords'

    id = Column(String(36), primary_key=True, default=_new_id)
    page_id = Column(String(36), nullable=False, index=True)
    keyword = Column(String, nullable=False)
    volume = Column(Integer, nullable=True)  # monthly searches
    cpc = Column(Float, nullable=True)  # USD
    performance_score = Column(Float, nullable=True)  # 0..1
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class ClickEvent(Base):
    __tablename__ = 'click_events'

    id = Column(Integer, primary_key=True)
    page_id = Column(String(36), nullable=False, index=True)
    x = Column(Float, nullable=False)
    y = Column(Float, nullable=False)
    device_type = Column(String, default='desktop')  # 'desktop', 'mobile'
    created_at = Column(DateTime, default=datetime.utcnow)


class AISuggestion(Base):
    __tablename__ = 'ai_suggestions'

    id = Column(String(36), primary_key=True, default=_new_id)
    page_id = Column(String(36), nullable=False, index=True)
    suggestion_type = Column(String, nullable=False)  # 'headline', 'cta', 'paragraph', ...
    content = Column(Text, nullable=False)
    status = Column(String, default='pending')  # 'pending', 'applied', 'dismissed'
    applied_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class OptimizationHistory(Base):
    __tablename__ = 'optimization_history'

    id = Column(Integer, primary_key=True)
    page_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String, nullable=True)
    optimization_type = Column(String)  # 'single_suggestion', 'full_optimization'
    created_at = Column(DateTime, default=datetime.utcnow)


import streamlit as st

# Global engine and session
engine = None
Session = None


def normalize_db_url(db_url):
    # SQLAlchemy requires 'postgresql://' instead of 'postgres://'
    if db_url and db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    return db_url


@st.cache_resource
def get_engine(db_url):
    """
    Creates and caches the SQLAlchemy engine for a URL.
    This ensures we don't reconnect to Supabase on every script rerun.
    """
    # pool_pre_ping=True helps with dropped connections
    engine = create_engine(db_url, echo=False, pool_pre_ping=True)

    # Create tables (only does so if they don't exist)
    Base.metadata.create_all(engine)
    return engine


def init_db(db_url=None):
    """
    Initialize the database connection from `db_url` or DATABASE_URL.
    """
    global engine, Session

    db_url = normalize_db_url(db_url or os.getenv("DATABASE_URL"))
    if not db_url:
        raise ValueError("DATABASE_URL environment variable not set")

    engine = get_engine(db_url)
    Session = sessionmaker(bind=engine, expire_on_commit=False)
    logger.info("Database initialised (%s)", engine.url.get_backend_name())

    return engine


def get_session():
    """Get a new database session."""
    global Session
    if Session is None:
        init_db()
    return Session()
