"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (Postgres) or a shared connection (SQLite)
- Table definitions for profiles, payments, promo codes, generations and preferences
"""
from typing import Optional, Generator
from datetime import datetime, timezone
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, UniqueConstraint, select
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.sql import func, false, true
import logging
import os

from appreciations.core.config import settings


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None

logger = logging.getLogger("appreciations")


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across threads
        _engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=False,  # Set to True for SQL query logging
        )

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def dispose_engine() -> None:
    """Drop the current engine so the next call re-reads configuration."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
            session.commit()
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI-friendly DB dependency that yields a Session and closes it.

    Use this with `Depends(get_db)` in route functions to ensure the session
    lifecycle works with both sync and async endpoints under FastAPI.
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)


def truncate_all_tables() -> None:
    """Delete every row, children first. Test helper."""
    engine = get_engine()
    with engine.begin() as conn:
        for table in reversed(metadata.sorted_tables):
            conn.execute(table.delete())


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(select(1))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; they were written as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# User profiles: credit pools and purchased plan
profiles = Table(
    'profiles',
    metadata,
    Column('id', String(100), primary_key=True),  # Supabase auth user id
    Column('email', String(320), nullable=True),
    Column('display_name', String(200), nullable=True),
    Column('free_students_remaining', Integer, nullable=False, server_default='0'),
    Column('students_balance', Integer, nullable=False, server_default='0'),
    Column('free_regenerations_used', JSON, nullable=True),
    Column('plan', String(50), nullable=True),
    Column('plan_purchased_at', DateTime(timezone=True), nullable=True),
    Column('plan_expires_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)

# Completed Stripe checkout sessions
payments = Table(
    'payments',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('stripe_session_id', String(255), nullable=False, unique=True),
    Column('stripe_payment_intent', String(255), nullable=True),
    Column('plan', String(50), nullable=False),
    Column('amount', Integer, nullable=False, server_default='0'),  # cents
    Column('students_credited', Integer, nullable=False),
    Column('status', String(50), nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# Webhook idempotency
billing_events = Table(
    'billing_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('stripe_event_id', String(100), nullable=False),
    Column('event_type', String(100), nullable=False, index=True),
    Column('received_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('payload_hash', String(64), nullable=False),  # SHA256 of raw body
    Column('processed', Boolean, nullable=False, server_default=false()),
    Column('processed_at', DateTime(timezone=True), nullable=True),
    Column('error', Text, nullable=True),
    UniqueConstraint('stripe_event_id', name='uq_billing_events_stripe_id'),
)

promo_codes = Table(
    'promo_codes',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('code', String(64), nullable=False, unique=True),
    Column('type', String(20), nullable=False),  # free_credits | discount
    Column('value', Integer, nullable=False),
    Column('max_uses', Integer, nullable=True),  # NULL = unlimited
    Column('max_uses_per_user', Integer, nullable=False, server_default='1'),
    Column('current_uses', Integer, nullable=False, server_default='0'),
    Column('is_active', Boolean, nullable=False, server_default=true()),
    Column('valid_from', DateTime(timezone=True), nullable=True),
    Column('valid_until', DateTime(timezone=True), nullable=True),
    Column('description', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_promo_codes_active', 'is_active'),
)

promo_code_redemptions = Table(
    'promo_code_redemptions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('promo_code_id', Integer, nullable=False, index=True),
    Column('credits_awarded', Integer, nullable=False, server_default='0'),
    Column('metadata', JSON, nullable=True),
    Column('redeemed_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    UniqueConstraint('user_id', 'promo_code_id', name='uq_promo_redemption_user_code'),
)

# Every credit consumption, free regenerations included
generations = Table(
    'generations',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('tool', String(50), nullable=False),
    Column('action', String(50), nullable=False),
    Column('students_used', Integer, nullable=False),
    Column('is_free', Boolean, nullable=False, server_default=false()),
    Column('is_free_regeneration', Boolean, nullable=False, server_default=false()),
    Column('class_id', String(100), nullable=True),
    Column('metadata', JSON, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
)

# Key/value preferences (theme, consent, anonymization level)
user_preferences = Table(
    'user_preferences',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('key', String(100), nullable=False),
    Column('value', Text, nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    UniqueConstraint('user_id', 'key', name='uq_user_preferences_user_key'),
)
