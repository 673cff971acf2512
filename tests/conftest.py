from __future__ import annotations

import os

os.environ.setdefault("ENV", "test")
os.environ.setdefault("SMTP_SANDBOX_MODE", "true")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from itemize_jobs.models import Base, Tenant


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'itemize_jobs_test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def tenant_id(session) -> int:
    tenant = Tenant(tenant_key="acme", name="Acme Co")
    session.add(tenant)
    session.commit()
    return tenant.id
