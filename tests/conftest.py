"""
Test infrastructure for the Blogsphere API.

Strategy
--------
- SQLite in-memory via aiosqlite, with StaticPool so every task shares
  the one connection that holds the database.
- SAVEPOINT support is switched on for the test engine exactly as for a
  SQLite production engine; ``DocumentStore.insert`` depends on it.
- ``get_db`` is overridden with the test session factory, and the
  Identity Service dependency with one that uses a fake federated token
  verifier, so no test touches the network.
- Tables are created before and dropped after every test.
- Redis is disabled (``cache._redis = None``) unless a test asks for the
  ``feed_cache`` fixture; the cache manager treats a missing backend
  as a permanent miss.
- Argon2 cost parameters are lowered through the environment before
  ``blogsphere`` is imported, keeping password hashing fast.
"""
import fnmatch
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_PARALLELISM", "1")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from redis.exceptions import ConnectionError as RedisConnectionError  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from blogsphere.cache import cache  # noqa: E402
from blogsphere.config import settings  # noqa: E402
from blogsphere.database import Base, enable_sqlite_savepoints, get_db, session_scope  # noqa: E402
from blogsphere.dependencies import get_identity_service  # noqa: E402
from blogsphere.errors import InvalidCredentialError  # noqa: E402
from blogsphere.federated import FederatedClaims  # noqa: E402
from blogsphere.main import app  # noqa: E402
from blogsphere.middleware import install_query_counter  # noqa: E402
from blogsphere.services.blog_service import BlogLifecycle  # noqa: E402
from blogsphere.services.identity_service import IdentityService  # noqa: E402

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)
enable_sqlite_savepoints(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Federated identity stand-in
# ---------------------------------------------------------------------------

class FakeTokenVerifier:
    """Maps opaque test tokens to claims; anything else is rejected."""

    def __init__(self) -> None:
        self.tokens: dict[str, FederatedClaims] = {}

    def register(self, token: str, email: str, name: str, picture: str = "") -> str:
        self.tokens[token] = FederatedClaims(email=email, name=name, picture=picture)
        return token

    async def verify(self, token: str) -> FederatedClaims:
        try:
            return self.tokens[token]
        except KeyError:
            raise InvalidCredentialError("Failed to authenticate you with Google") from None


fake_verifier = FakeTokenVerifier()
identity_service = IdentityService(settings, fake_verifier)


# ---------------------------------------------------------------------------
# Redis stand-in
# ---------------------------------------------------------------------------

class InMemoryRedis:
    """Implements only the Redis calls ``CacheManager`` makes."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("down")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value

    async def scan_iter(self, match):
        self._check()
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.data.pop(key, None)


# ---------------------------------------------------------------------------
# Dependency overrides
# ---------------------------------------------------------------------------

async def override_get_db():
    async with session_scope(async_session_test) as session:
        yield session


app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_identity_service] = lambda: identity_service


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    fake_verifier.tokens.clear()
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for service-level tests; never committed."""
    async with async_session_test() as session:
        yield session


@pytest.fixture
def identity() -> IdentityService:
    return identity_service


@pytest.fixture
def verifier() -> FakeTokenVerifier:
    return fake_verifier


@pytest.fixture
def lifecycle() -> BlogLifecycle:
    return BlogLifecycle(settings)


@pytest.fixture
def make_user(db_session: AsyncSession, identity: IdentityService):
    """
    Factory registering a local account and returning its user id.

    ``await make_user("alice")`` creates alice@example.com.
    """
    async def _make(name: str, password: str = "Secret123", fullname: str | None = None) -> int:
        login = await identity.register(
            db_session, fullname or f"{name.title()} Tester", f"{name}@example.com", password
        )
        return identity.verify(login.access_token)

    return _make


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """httpx client bound to the app through ASGITransport, Redis disabled."""
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def feed_cache(fake_redis: InMemoryRedis):
    """Back the shared feed cache with an in-memory Redis for one test."""
    cache._redis = fake_redis
    yield fake_redis
    cache._redis = None
