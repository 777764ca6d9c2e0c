import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from stockroom.main import app
from stockroom.database import Base, get_db
from stockroom.api.deps import get_password_hash
from stockroom.models.user import User, UserRole

from tests.factories import UserFactory

TEST_PASSWORD = "testpassword123"  # noqa: S105


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """File-backed SQLite so several sessions can share one database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_db(session_factory):
    """Create test database and tables."""
    async with session_factory() as session:
        yield session


async def _create_user(db: AsyncSession, **overrides) -> User:
    data = UserFactory(**overrides)
    password = data.pop("password")
    user = User(hashed_password=get_password_hash(password), **data)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def admin_user(test_db: AsyncSession):
    return await _create_user(test_db, email="admin@school.edu", role=UserRole.ADMIN.value, password=TEST_PASSWORD)


@pytest_asyncio.fixture
async def test_user(test_db: AsyncSession):
    """Create a regular staff user."""
    return await _create_user(test_db, email="staff@school.edu", role=UserRole.STAFF.value, password=TEST_PASSWORD)


@pytest_asyncio.fixture
async def client(test_db: AsyncSession):
    """Create test client with overridden database."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _login(client: AsyncClient, email: str) -> dict:
    response = await client.post("/api/v1/auth/login", json={"email": email, "password": TEST_PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest_asyncio.fixture
async def authenticated_client(client: AsyncClient, test_user: User):
    """Client logged in as the staff user."""
    client.headers.update(await _login(client, test_user.email))
    return client


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin_user: User):
    """Client logged in as the administrator."""
    client.headers.update(await _login(client, admin_user.email))
    return client
