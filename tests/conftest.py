"""
PPMKFriends provisioning API - Test Configuration and Fixtures
"""
import asyncio
import os
import time
import uuid
from typing import AsyncGenerator, Dict, List, Optional, Set

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set testing environment before the app reads its settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["IDENTITY_URL"] = "http://identity.test"
os.environ["IDENTITY_SERVICE_KEY"] = "test-service-key"
os.environ["IDENTITY_JWT_SECRET"] = "test-jwt-secret-for-testing-only"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_MAX_ATTEMPTS"] = "2"
os.environ["EMAIL_RETRY_WAIT_SECONDS"] = "0"
os.environ["BULK_IMPORT_ROW_TIMEOUT_SECONDS"] = "10"
for key in ("RESEND_API_KEY", "SENDGRID_API_KEY", "EMAIL_REDIRECT_TO"):
    os.environ.pop(key, None)

from app.api import deps  # noqa: E402
from app.core.config import get_settings  # noqa: E402
from app.core.db import get_db  # noqa: E402
from app.core.exceptions import EmailDeliveryError, IdentityServiceError  # noqa: E402
from app.main import app  # noqa: E402
from app.models.base import Base  # noqa: E402
from app.models.rbac import UserRole  # noqa: E402

fake = Faker()

DUPLICATE_EMAIL_MESSAGE = "A user with this email address has already been registered"


class FakeIdentityClient:
    """In-memory stand-in for the identity admin API."""

    def __init__(self):
        self.created: List[Dict[str, Optional[str]]] = []
        self.password_updates: List[Dict[str, str]] = []
        self.registered: Set[str] = set()
        self.delay: float = 0

    async def create_user(self, email: str, password: str, full_name: Optional[str] = None) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if email.lower() in self.registered:
            raise IdentityServiceError(DUPLICATE_EMAIL_MESSAGE, status_code=422)
        user_id = str(uuid.uuid4())
        self.registered.add(email.lower())
        self.created.append({"id": user_id, "email": email, "password": password, "full_name": full_name})
        return user_id

    async def update_user_password(self, user_id: str, password: str) -> None:
        self.password_updates.append({"user_id": user_id, "password": password})


class FakeEmailService:
    """Records deliveries; set outage to make every attempt fail."""

    def __init__(self):
        self.sent: List[Dict[str, Optional[str]]] = []
        self.attempts: int = 0
        self.outage: bool = False

    async def deliver_credentials(self, email: str, password: str, full_name: Optional[str] = None) -> None:
        self.attempts += 1
        if self.outage:
            raise EmailDeliveryError("Email provider unavailable")
        self.sent.append({"email": email, "password": password, "full_name": full_name})

    async def send_credentials(self, email: str, password: str, full_name: Optional[str] = None) -> bool:
        try:
            await self.deliver_credentials(email, password, full_name)
            return True
        except EmailDeliveryError:
            return False


def make_token(user_id: str, email: Optional[str] = None) -> str:
    settings = get_settings()
    claims = {
        "sub": user_id,
        "email": email,
        "aud": settings.identity_jwt_audience,
        "role": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    return jwt.encode(claims, settings.identity_jwt_secret, algorithm=settings.identity_jwt_algorithm)


@pytest.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    session_factory = async_sessionmaker(bind=db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def identity_client() -> FakeIdentityClient:
    return FakeIdentityClient()


@pytest.fixture
def email_service() -> FakeEmailService:
    return FakeEmailService()


@pytest.fixture
async def client(
    db_session: AsyncSession,
    identity_client: FakeIdentityClient,
    email_service: FakeEmailService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and collaborator overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_identity_client] = lambda: identity_client
    app.dependency_overrides[deps.get_email_service] = lambda: email_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _operator(db_session: AsyncSession, role: Optional[str]) -> Dict[str, str]:
    user_id = str(uuid.uuid4())
    email = fake.unique.free_email()
    if role is not None:
        db_session.add(UserRole(user_id=user_id, role=role))
        await db_session.commit()
    return {"user_id": user_id, "email": email, "token": make_token(user_id, email)}


@pytest.fixture
async def admin_operator(db_session: AsyncSession) -> Dict[str, str]:
    return await _operator(db_session, "admin")


@pytest.fixture
async def superadmin_operator(db_session: AsyncSession) -> Dict[str, str]:
    return await _operator(db_session, "superadmin")


@pytest.fixture
async def member_operator(db_session: AsyncSession) -> Dict[str, str]:
    return await _operator(db_session, "member")


@pytest.fixture
def admin_headers(admin_operator) -> Dict[str, str]:
    return {"Authorization": f"Bearer {admin_operator['token']}"}


@pytest.fixture
def superadmin_headers(superadmin_operator) -> Dict[str, str]:
    return {"Authorization": f"Bearer {superadmin_operator['token']}"}


@pytest.fixture
def member_headers(member_operator) -> Dict[str, str]:
    return {"Authorization": f"Bearer {member_operator['token']}"}


@pytest.fixture
def token_for():
    """Build a bearer header for an arbitrary identity."""
    def _headers(user_id: str, email: Optional[str] = None) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id, email)}"}
    return _headers
