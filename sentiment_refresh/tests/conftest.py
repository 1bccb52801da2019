import os
import sys
import uuid

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add project root to path so the package resolves without an editable install
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Optional test overrides (e.g. a local TEST_DATABASE_URL) from .env.test in the project root
dotenv_path = os.path.join(project_root, ".env.test")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path)

from sentiment_refresh.config.settings import Settings
from sentiment_refresh.models import Base, CommunityDTO
from sentiment_refresh.storage.repository import RefreshRepository


@pytest.fixture
def test_settings() -> Settings:
    """Settings with client credentials and no courtesy delays."""
    return Settings(
        REDDIT_CLIENT_ID="client-id",
        REDDIT_CLIENT_SECRET="client-secret",
        REDDIT_USERNAME="",
        REDDIT_PASSWORD="",
        REQUEST_DELAY_SECONDS=0.0,
        DATABASE_URL="sqlite+aiosqlite://",
    )


@pytest.fixture
def community() -> CommunityDTO:
    return CommunityDTO(id=uuid.uuid4(), name="openai", display_name="r/openai", reddit_path="/r/openai")


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A throwaway SQLite database with every table created from the ORM metadata."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'refresh.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False, class_=AsyncSession)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def repository(db_session) -> RefreshRepository:
    return RefreshRepository(session=db_session)
