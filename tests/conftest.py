"""Pytest configuration and fixtures."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["WALLET_SEED_PHRASE"] = ""

from solswap.config import WRAPPED_SOL_MINT, Settings
from solswap.storage.models import Base
from solswap.storage.repository import StateRepository, StateStore
from solswap.swap.signer import WalletAdapter
from solswap.tokens.models import Token

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def state_repo(db_session: AsyncSession) -> StateRepository:
    """Create state repository for testing."""
    return StateRepository(db_session)


@pytest_asyncio.fixture
async def state_store(db_engine) -> StateStore:
    """State store whose sessions commit to the in-memory engine."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return StateStore(db)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, wallet_seed_phrase=None)


@pytest.fixture
def sol_token() -> Token:
    return Token(WRAPPED_SOL_MINT, "SOL", "Wrapped SOL", 9)


@pytest.fixture
def usdc_token() -> Token:
    return Token(USDC_MINT, "USDC", "USD Coin", 6)


@pytest.fixture
def bonk_token() -> Token:
    return Token(BONK_MINT, "BONK", "Bonk", 5)


class FakeWallet(WalletAdapter):
    """Wallet adapter recording which send path was used."""

    def __init__(
        self,
        native: bool = True,
        native_error: Optional[Exception] = None,
        adapter_error: Optional[Exception] = None,
        signature: str = "5igSig",
    ):
        self.native = native
        self.native_error = native_error
        self.adapter_error = adapter_error
        self.signature = signature
        self.native_calls = 0
        self.adapter_calls = 0

    @property
    def public_key(self) -> str:
        return WALLET

    @property
    def supports_native_send(self) -> bool:
        return self.native

    async def sign_and_send_transaction(self, tx) -> str:
        self.native_calls += 1
        if self.native_error:
            raise self.native_error
        return self.signature

    async def send_transaction(self, tx) -> str:
        self.adapter_calls += 1
        if self.adapter_error:
            raise self.adapter_error
        return self.signature


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()
