import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.database import Base, get_db
from app.core.security import get_password_hash
from app.models.user import User, UserRole
from app.models.client import Client
from app.models.project import Project
from main import app

PASSWORD = "secret123"

# Test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db

client = TestClient(app)


def login(username: str, password: str = PASSWORD) -> dict:
    """Log in through the API and return the auth header."""
    response = client.post(
        "/api/auth/login",
        data={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def make_user(db, username: str, role: str = UserRole.USER.value, manager_id=None, **kwargs) -> User:
    user = User(
        username=username,
        hashed_password=get_password_hash(kwargs.pop("password", PASSWORD)),
        full_name=kwargs.pop("full_name", username.title()),
        role=role,
        manager_id=manager_id,
        is_active=kwargs.pop("is_active", True),
        **kwargs
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def setup_database():
    """Create tables before each test and drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(setup_database):
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def admin(db):
    return make_user(db, "admin", UserRole.ADMIN.value, full_name="Ada Admin")


@pytest.fixture
def manager(db, admin):
    return make_user(db, "manager", UserRole.MANAGER.value, full_name="Mia Manager")


@pytest.fixture
def employee(db, manager):
    return make_user(db, "employee", manager_id=manager.id, full_name="Eli Employee")


@pytest.fixture
def acme(db, admin):
    record = Client(name="Acme", description="Main client", created_by=admin.id)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def project(db, acme, employee):
    record = Project(name="Apollo", client_id=acme.id, allocated_hours=100, is_active=True)
    record.members.append(employee)
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def full_week(project_id: int, hours: float = 8, friday: float = 0) -> dict:
    return {
        str(project_id): {
            "monday_hours": hours,
            "tuesday_hours": hours,
            "wednesday_hours": hours,
            "thursday_hours": hours,
            "friday_hours": friday,
        }
    }
