"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "secret-key")
os.environ.setdefault("READ_ONLY_DEMO", "false")
os.environ.setdefault("OPENAI_API_KEY", "")

from studymind.db.base import Base  # noqa: E402
from tests.utils import FakeClock, FakeGateway, create_user  # noqa: E402


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture()
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def user(db_session):
    return create_user(db_session, username="learner", email="learner@example.com")


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def gateway():
    return FakeGateway()
