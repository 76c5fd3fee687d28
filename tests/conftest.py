import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.models.organization import Organization, OrganizationMember
from app.models.user import User
from app.services.object_store import get_object_store
from app.services.tenant import build_tenant_context
from tests.helpers import FakeObjectStore

# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Fresh database session for each test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def store():
    return FakeObjectStore()


@pytest.fixture(scope="function")
def client(db_session, store):
    """Test client with database and object store overrides"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def create_test_user(db_session):
    """Factory fixture that creates a user"""
    def _create_user(email="testuser@example.com", name="Test User"):
        user = User(name=name, email=email)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def create_test_org(db_session):
    """Factory fixture that creates an organization with members"""
    def _create_org(name="Acme Builders", members=()):
        org = Organization(name=name)
        db_session.add(org)
        db_session.commit()
        for user, role in members:
            db_session.add(OrganizationMember(org_id=org.id, user_id=user.id, role=role))
        db_session.commit()
        db_session.refresh(org)
        return org

    return _create_org


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token(data={"sub": user.id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def authenticated_client(client, create_test_user, auth_headers):
    """Authenticated client for a solo user"""
    user = create_test_user()
    client.headers = {**client.headers, **auth_headers(user)}
    return client, user


@pytest.fixture
def solo_ctx():
    def _ctx(user):
        return build_tenant_context(user.id, None)

    return _ctx


@pytest.fixture
def create_project(client, auth_headers):
    """Create a provisioned project through the API and return its payload"""
    def _create(user, name="Tower A"):
        response = client.post(
            "/api/v1/projects/", json={"name": name}, headers=auth_headers(user)
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def upload_file(client, store, auth_headers):
    """Run both upload phases for a file and return the completed record"""
    def _upload(user, folder_id, filename="plan.pdf", data=b"%PDF-1.4", content_type="application/pdf"):
        headers = auth_headers(user)
        slot = client.post(
            "/api/v1/files/upload-url",
            json={
                "filename": filename,
                "contentType": content_type,
                "size": len(data),
                "folderId": folder_id,
            },
            headers=headers,
        )
        assert slot.status_code == 200, slot.text
        store.client_upload(slot.json()["storage_key"], data)

        done = client.post(
            "/api/v1/files/complete",
            json={"fileId": slot.json()["file_id"]},
            headers=headers,
        )
        assert done.status_code == 200, done.text
        return done.json()

    return _upload
