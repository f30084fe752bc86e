"""Pytest configuration and shared fixtures."""
import itertools
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auditlog.database import Base
from auditlog.models.audit import AuditRecord

BASE_TIME = datetime(2026, 3, 14, 10, 0, 0)


@pytest.fixture
def engine():
    """In-memory database shared by every connection (the writer thread included)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create a fresh in-memory database session for each test."""
    session = session_factory()
    yield session
    session.close()


def at(seconds: float) -> datetime:
    """Timestamp `seconds` after 10:00:00 on the fixture day."""
    return BASE_TIME + timedelta(seconds=seconds)


_ids = itertools.count(1)


def make_record(
    created_at,
    entity_type="Product",
    action="UPDATE",
    actor_id="u1",
    actor_name="Alisher",
    correlation_id=None,
    entity_id="1",
    old_snapshot=None,
    new_snapshot=None,
    record_id=None,
):
    """Unsaved AuditRecord for pure grouping tests."""
    return AuditRecord(
        id=record_id if record_id is not None else next(_ids),
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_snapshot=old_snapshot,
        new_snapshot=new_snapshot,
        actor_id=actor_id,
        actor_name=actor_name,
        correlation_id=correlation_id,
        created_at=created_at,
    )


@pytest.fixture
def add_record(db_session):
    """Persist an AuditRecord and return it."""
    def _add(created_at, **kwargs):
        kwargs.setdefault("action", "UPDATE")
        kwargs.setdefault("entity_type", "Product")
        kwargs.setdefault("entity_id", "1")
        kwargs.setdefault("actor_id", "u1")
        kwargs.setdefault("actor_name", "Alisher")
        record = AuditRecord(created_at=created_at, **kwargs)
        db_session.add(record)
        db_session.commit()
        db_session.refresh(record)
        return record
    return _add
