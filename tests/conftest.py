from __future__ import annotations

import os
import tempfile
from datetime import timedelta
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient


def pytest_configure() -> None:
    # Ensure the SQLAlchemy engine is created against sqlite for tests.
    os.environ["DB_URL"] = "sqlite:///./test.db"

    # Ensure local .env cannot switch on the LLM or a real storage dir in tests.
    os.environ["ENVIRONMENT"] = "test"
    os.environ["OPENAI_API_KEY"] = ""
    os.environ["JWT_SECRET"] = "test-secret"
    os.environ.pop("JWT_AUDIENCE", None)
    os.environ["RESUME_STORAGE_DIR"] = tempfile.mkdtemp(prefix="skillhire-resumes-")


def _reset_tables() -> None:
    from skillhire.database import Base, engine
    import skillhire.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture()
def db() -> Any:
    _reset_tables()

    from skillhire.database import SessionLocal

    with SessionLocal() as session:
        yield session


@pytest.fixture()
def client(db) -> Any:
    from skillhire.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_profile(db) -> Callable[..., Any]:
    from skillhire.models.profile import Profile

    def _make(role: str = "employee", *, email: str | None = None, first_name: str = "Test", last_name: str = "User"):
        profile = Profile(role=role, email=email, first_name=first_name, last_name=last_name)
        db.add(profile)
        db.commit()
        db.refresh(profile)
        return profile

    return _make


@pytest.fixture()
def make_skill(db) -> Callable[..., Any]:
    from skillhire.models.skills import Skill

    def _make(name: str, *, skill_id: str | None = None):
        skill = Skill(id=skill_id, name=name) if skill_id else Skill(name=name)
        db.add(skill)
        db.commit()
        db.refresh(skill)
        return skill

    return _make


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    from skillhire.utils.jwt_handler import create_access_token

    def _headers(profile_id: str) -> dict[str, str]:
        token = create_access_token({"sub": profile_id}, timedelta(minutes=5))
        return {"Authorization": f"Bearer {token}"}

    return _headers
