import os

# Metrics print to stdout instead of looking for a CloudWatch agent
os.environ.setdefault("AWS_EMF_ENVIRONMENT", "Local")
os.environ.setdefault("LOG_FORMAT", "console")

import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from fastapi import Depends
from fastapi.testclient import TestClient

# --- Alembic Imports ---
from alembic.config import Config
from alembic import command
# --- End Alembic Imports ---

# Import app and DB dependency function first
from main import app, get_db
from auth import get_current_user

# Import database components needed for setup
from database import Base, apply_sqlite_pragmas
import crud
import models
import schemas
from permissions import AuthContext

TEST_DATABASE_URL = "sqlite:///./matchboard-test.db"

connect_args = (
    {"check_same_thread": False} if TEST_DATABASE_URL.startswith("sqlite") else {}
)
test_engine = create_engine(TEST_DATABASE_URL, connect_args=connect_args)
apply_sqlite_pragmas(test_engine)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create the test database from models and stamp with Alembic head."""
    db_path = TEST_DATABASE_URL.split("///")[-1]
    for path in (db_path, f"{db_path}-wal", f"{db_path}-shm"):
        if os.path.exists(path):
            os.unlink(path)

    Base.metadata.create_all(bind=test_engine)

    # Mark the schema as up to date so migrations start from head
    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", TEST_DATABASE_URL)
    command.stamp(alembic_cfg, "head")

    yield  # Tests run here

    test_engine.dispose()
    for path in (db_path, f"{db_path}-wal", f"{db_path}-shm"):
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture(scope="function")
def db_session(setup_test_database):
    """Yields a SQLAlchemy session directly from the test factory."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


# Override the get_db dependency for tests
@pytest.fixture(scope="function")
def override_get_db():
    """Override the get_db dependency to use our test database.

    This creates a new session for each API call, allowing proper
    transaction handling within FastAPI endpoints.
    """

    def _override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    original = app.dependency_overrides.get(get_db)
    app.dependency_overrides[get_db] = _override_get_db

    yield

    if original:
        app.dependency_overrides[get_db] = original
    else:
        del app.dependency_overrides[get_db]
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture(scope="function")
def test_client(override_get_db):
    """Provides a test client configured with our test database session."""
    return TestClient(app)


@pytest.fixture
def act_as():
    """Make API requests run as the given user id."""

    def _act_as(user_id: int):
        def _current_user(db: Session = Depends(get_db)):
            return crud.get_user_by_id(db, user_id)

        app.dependency_overrides[get_current_user] = _current_user

    yield _act_as
    app.dependency_overrides.pop(get_current_user, None)


# --- Data helpers ---
def make_user(db: Session, user_type: models.UserType, email: str = None, **fields) -> models.User:
    email = email or f"{user_type.value}-{uuid.uuid4().hex[:8]}@example.com"
    user = crud.create_user(db, schemas.UserCreate(email=email, user_type=user_type, **fields))
    db.commit()
    db.refresh(user)
    return user


def make_jobseeker(db: Session, **profile) -> models.User:
    user = make_user(db, models.UserType.JOBSEEKER)
    crud.create_or_update_jobseeker_profile(
        db, user.id, schemas.JobseekerProfileIn(school="State University", **profile)
    )
    db.refresh(user)
    return user


def make_company(db: Session, name: str = "Acme", role: models.CompanyRole = models.CompanyRole.ADMIN):
    """A company with one member holding ``role``. Returns (company, member)."""
    member = make_user(db, models.UserType.EMPLOYER)
    company = crud.insert_company(db, {"name": name})
    crud.link_user_to_company(db, member, company.id, role.value)
    db.commit()
    db.refresh(company)
    db.refresh(member)
    return company, member


def add_member(db: Session, company: models.Company, role: models.CompanyRole) -> models.User:
    member = make_user(db, models.UserType.EMPLOYER)
    crud.link_user_to_company(db, member, company.id, role.value)
    db.commit()
    db.refresh(member)
    return member


def make_job(db: Session, company: models.Company, employer: models.User, title: str = "Backend Engineer"):
    job = models.JobPosting(
        company_id=company.id,
        employer_id=employer.id,
        title=title,
        description=f"{title} at {company.name}",
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def ctx_for(user: models.User) -> AuthContext:
    return AuthContext.from_user(user)
