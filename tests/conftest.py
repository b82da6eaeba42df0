import os

# Settings are read at import time; configure the test environment first
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-share-links-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_sharelink.db")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("LOG_DIR", "./test_logs")
os.environ.setdefault("UPLOAD_DIR", "./test_uploads")
os.environ.setdefault("STORAGE_PROVIDER", "local")
os.environ.setdefault("LINK_BASE_URL", "https://share.example.com")

import uuid
import pytest
from datetime import timedelta
from typing import AsyncGenerator, Generator, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from sharelink.database import Base, get_db
from sharelink.core.clock import utcnow
from sharelink.core.security import SecretVerifier, create_access_token
from sharelink.external.object_store import FileMetadata, ObjectStore
from sharelink.models.document import Document
from sharelink.models.document_link import DocumentLink
from sharelink.services.link_service import LinkService

# Test database URL
TEST_DATABASE_URL = os.environ["DATABASE_URL"]

OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class FakeObjectStore(ObjectStore):
    """In-memory object store recording every call."""

    def __init__(self):
        self.objects = {}
        self.signed: List[Tuple[str, int]] = []
        self.deleted: List[str] = []

    async def upload(self, content: bytes, metadata: FileMetadata) -> str:
        path = f"{metadata.owner_id}/{metadata.file_name}"
        self.objects[path] = content
        return path

    async def delete(self, path: str) -> None:
        self.deleted.append(path)
        self.objects.pop(path, None)

    async def generate_signed_url(self, path: str, ttl_seconds: int) -> str:
        self.signed.append((path, ttl_seconds))
        return f"https://storage.test/{path}?ttl={ttl_seconds}"


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    # Create tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    # Drop tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def fake_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def link_service(fake_store: FakeObjectStore) -> LinkService:
    return LinkService(object_store=fake_store, secret_verifier=SecretVerifier(rounds=4))


async def create_document(db: AsyncSession, owner_id: str = OWNER_ID, file_name: str = "report.pdf") -> Document:
    document = Document(
        document_id=uuid.uuid4().hex,
        owner_id=owner_id,
        file_path=f"{owner_id}/{uuid.uuid4().hex}.pdf",
        file_name=file_name,
        size=1024,
        file_type="application/pdf",
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)
    return document


async def create_link_row(db: AsyncSession, document: Document, **overrides) -> DocumentLink:
    """Insert a link directly, bypassing creation-time validation (e.g. for already expired links)."""
    values = dict(
        link_id=uuid.uuid4().hex,
        document_id=document.document_id,
        created_by_user_id=document.owner_id,
        is_public=False,
        password_hash=None,
        expiration_time=utcnow() + timedelta(days=1),
        visitor_fields=[],
    )
    values.update(overrides)
    link = DocumentLink(**values)
    db.add(link)
    await db.commit()
    await db.refresh(link)
    return link


@pytest.fixture
async def document(db_session: AsyncSession) -> Document:
    return await create_document(db_session)


@pytest.fixture
def owner_headers() -> dict:
    token = create_access_token({"sub": OWNER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_owner_headers() -> dict:
    token = create_access_token({"sub": OTHER_OWNER_ID})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def client() -> Generator:
    """Create a sync test client (doesn't require db_session)."""
    from fastapi.testclient import TestClient
    from sharelink.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="function")
async def async_client(db_session: AsyncSession, fake_store: FakeObjectStore) -> AsyncGenerator:
    """Create an async test client with database session and object store overrides."""
    from httpx import AsyncClient, ASGITransport
    from sharelink.main import app
    from sharelink.api.deps import get_object_store

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_object_store] = lambda: fake_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
