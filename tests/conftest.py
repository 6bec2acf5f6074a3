"""Shared database fixtures."""

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

from audit_trail.db.base import Base
from audit_trail.db.session import build_engine

import fixture_models  # noqa: F401  registers the audited test models


@pytest.fixture()
def session_local(tmp_path: Path) -> Generator[sessionmaker, None, None]:
    engine = build_engine(f"sqlite:///{tmp_path / 'audits.db'}")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_local: sessionmaker) -> Generator[Session, None, None]:
    with session_local() as session:
        yield session
