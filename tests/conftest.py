"""Pytest configuration and fixtures"""

import asyncio
import os
import tempfile
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# File-backed so the app, the fixtures and concurrent sessions share one database
DEFAULT_TEST_DATABASE_PATH = Path(tempfile.gettempdir()) / f"cfp_test_{os.getpid()}.db"
DEFAULT_TEST_DATABASE_URL = f"sqlite+aiosqlite:///{DEFAULT_TEST_DATABASE_PATH}"

if "DATABASE_URL" not in os.environ:
    os.environ["DATABASE_URL"] = DEFAULT_TEST_DATABASE_URL
os.environ["ANALYTICS_WEBHOOK_URL"] = ""

from core.config import get_settings
from core.database import Base, reset_engine
import models  # noqa: F401  registers every table on Base.metadata
from factories import ReviewerFactory, SpeakerFactory, SubmissionFactory
from models.reviewer import ReviewerRole
from models.submission import Submission


@pytest.fixture(autouse=True, scope="session")
def set_test_database():
    """Set test database URL before any settings are read"""
    if "DATABASE_URL" not in os.environ:
        os.environ["DATABASE_URL"] = DEFAULT_TEST_DATABASE_URL
    # Clear cached settings to force reload
    get_settings.cache_clear()
    yield
    DEFAULT_TEST_DATABASE_PATH.unlink(missing_ok=True)


@pytest.fixture(scope="function")
async def db_engine():
    """Create test database engine with a fresh schema"""
    from sqlalchemy import text

    database_url = os.environ.get("DATABASE_URL", DEFAULT_TEST_DATABASE_URL)
    engine = create_async_engine(database_url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        if not database_url.startswith("sqlite"):
            await conn.execute(text("DROP SCHEMA public CASCADE"))
            await conn.execute(text("CREATE SCHEMA public"))
        else:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(autouse=True, scope="function")
def reset_db_engine():
    """Reset cached engine between tests"""
    reset_engine()
    yield
    reset_engine()


@pytest.fixture(scope="function")
async def db_session_maker(db_engine):
    """Create test database session maker"""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def db_session(db_session_maker):
    """Create test database session"""
    async with db_session_maker() as session:
        yield session


@pytest.fixture(scope="function")
def override_get_db(db_engine):
    """Override get_db dependency for testing"""

    async def _get_test_db():
        session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    return _get_test_db


@pytest.fixture(scope="function")
async def client(override_get_db):
    """Create async test client"""
    from asgi_lifespan import LifespanManager
    from httpx import ASGITransport, AsyncClient

    from app.dependencies import get_db_session
    from app.main import app

    app.dependency_overrides[get_db_session] = override_get_db

    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as test_client:
            yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="session", autouse=True)
def verify_postgres():
    """Verify PostgreSQL is running when tests target it"""
    database_url = os.environ.get("DATABASE_URL", DEFAULT_TEST_DATABASE_URL)
    if not database_url.startswith("postgresql"):
        return

    import asyncpg

    async def _check():
        dsn = database_url.replace("postgresql+asyncpg://", "postgresql://")
        conn = await asyncpg.connect(dsn)
        await conn.execute("SELECT 1")
        await conn.close()

    try:
        asyncio.run(_check())
    except (OSError, asyncpg.PostgresError) as e:
        pytest.skip(f"PostgreSQL not available: {e}. Run 'docker-compose up' first.")


# Domain fixtures


@pytest.fixture
async def speaker(db_session):
    """Speaker with a complete profile"""
    speaker = SpeakerFactory()
    db_session.add(speaker)
    await db_session.commit()
    return speaker


@pytest.fixture
async def other_speaker(db_session):
    speaker = SpeakerFactory()
    db_session.add(speaker)
    await db_session.commit()
    return speaker


async def _add_reviewer(db_session, **kwargs):
    reviewer = ReviewerFactory(**kwargs)
    db_session.add(reviewer)
    await db_session.commit()
    return reviewer


@pytest.fixture
async def reviewer(db_session):
    """Activated anonymous reviewer"""
    return await _add_reviewer(db_session)


@pytest.fixture
async def identity_reviewer(db_session):
    """Activated reviewer allowed to see speaker identity"""
    return await _add_reviewer(db_session, can_see_speaker_identity=True)


@pytest.fixture
async def readonly_reviewer(db_session):
    return await _add_reviewer(db_session, role=ReviewerRole.READONLY.value)


@pytest.fixture
async def super_admin(db_session):
    return await _add_reviewer(
        db_session,
        role=ReviewerRole.SUPER_ADMIN.value,
        can_see_speaker_identity=True,
    )


@pytest.fixture
def make_submission(db_session, speaker):
    """Async factory persisting a submission, by default submitted by ``speaker``"""

    async def _make(owner=None, status="submitted", **kwargs) -> Submission:
        submission = SubmissionFactory(
            speaker_id=(owner or speaker).id,
            status=status,
            **kwargs,
        )
        db_session.add(submission)
        await db_session.commit()
        return submission

    return _make


@pytest.fixture
def admin_headers():
    """Gateway-asserted admin principal"""
    return {"X-Admin-Id": "ops@example.com"}
