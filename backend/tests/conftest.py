"""Test fixtures for the nursery backend.

Every test runs against a fresh in-memory SQLite database. The engine uses a
single shared connection, so the sessions opened by the API under test and
the ``db`` fixture see the same data.
"""
from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Callable, Dict  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import func  # noqa: E402

from nursery.auth import create_access_token, hash_password  # noqa: E402
from nursery.database import Base, SessionLocal, engine  # noqa: E402
from nursery.main import app  # noqa: E402
from nursery.models import (  # noqa: E402
    Batch, Bed, OCCUPYING_STATUSES, Role, Species, User, Zone,
)

PASSWORD = "password123"


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_user(db, password_hash) -> Callable[..., User]:
    def _make(role: Role, email: str | None = None) -> User:
        user = User(
            email=email or f"{role.value.lower()}@plant.test",
            first_name=role.value.title(),
            last_name="Tester",
            password_hash=password_hash,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(Role.SUPER_ADMIN)


@pytest.fixture
def manager(make_user) -> User:
    return make_user(Role.MANAGER)


@pytest.fixture
def officer(make_user) -> User:
    return make_user(Role.FIELD_OFFICER)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_headers(admin) -> Dict[str, str]:
    return auth_headers(admin)


@pytest.fixture
def manager_headers(manager) -> Dict[str, str]:
    return auth_headers(manager)


@pytest.fixture
def officer_headers(officer) -> Dict[str, str]:
    return auth_headers(officer)


@pytest.fixture
def species(db) -> Species:
    species = Species(name="Mango Tree", scientific_name="Mangifera indica", target_girth=3.0, target_height=45.0)
    db.add(species)
    db.commit()
    db.refresh(species)
    return species


@pytest.fixture
def zone(db) -> Zone:
    zone = Zone(name="Zone A - Propagation", capacity=1000)
    zone.beds = [
        Bed(name="Bed A1", capacity=100, occupied=0),
        Bed(name="Bed A2", capacity=200, occupied=0),
    ]
    db.add(zone)
    db.commit()
    db.refresh(zone)
    return zone


@pytest.fixture
def bed(zone) -> Bed:
    return next(b for b in zone.beds if b.name == "Bed A1")


@pytest.fixture
def other_bed(zone) -> Bed:
    return next(b for b in zone.beds if b.name == "Bed A2")


def assert_occupancy_consistent(db) -> None:
    """Every bed's cached ``occupied`` equals the sum over its occupying batches."""
    db.expire_all()
    for bed in db.query(Bed).all():
        expected = (
            db.query(func.coalesce(func.sum(Batch.current_qty), 0))
            .filter(Batch.bed_id == bed.id, Batch.status.in_(OCCUPYING_STATUSES))
            .scalar()
        )
        assert bed.occupied == expected, f"{bed.name}: occupied={bed.occupied}, batches={expected}"


@pytest.fixture
def check_occupancy(db) -> Callable[[], None]:
    return lambda: assert_occupancy_consistent(db)
