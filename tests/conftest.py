"""Shared fixtures: an in-memory database per test, trees, services and an API client."""

import os

# Must be set before app.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("CONNECTIVITY_POLICY", "lenient")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.person import Person
from app.models.tree import Tree
from app.services.persons_service import PersonsService


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_tree(db, name: str) -> Tree:
    # Hashes are never checked in service tests; skip bcrypt cost
    slug = name.lower().replace(" ", "_")
    tree = Tree(
        name=name,
        admin_username=f"{slug}_admin",
        admin_password_hash="x",
        guest_username=f"{slug}_guest",
        guest_password_hash="x",
    )
    db.add(tree)
    db.commit()
    db.refresh(tree)
    return tree


@pytest.fixture
def tree(db):
    return make_tree(db, "Smith Family")


@pytest.fixture
def other_tree(db):
    return make_tree(db, "Jones Family")


# ============================================================================
# Services
# ============================================================================

@pytest.fixture
def service(db, tree):
    return PersonsService(db, tree.id)


@pytest.fixture
def strict_service(db, tree):
    return PersonsService(db, tree.id, policy="strict")


@pytest.fixture
def other_service(db, other_tree):
    return PersonsService(db, other_tree.id)


@pytest.fixture
def add(service):
    """Create a person in the default tree with sensible defaults."""

    def _add(first_name: str, gender: str = "male", **fields) -> Person:
        data = {
            "first_name": first_name,
            "last_name": fields.pop("last_name", "Smith"),
            "gender": gender,
            **fields,
        }
        return service.create_person(data)

    return _add


# ============================================================================
# API
# ============================================================================

@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
