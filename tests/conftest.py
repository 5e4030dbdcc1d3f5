# tests/conftest.py

from datetime import datetime, UTC
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

# app.main을 임포트하여 FastAPI 앱 인스턴스에 접근합니다.
from app.main import app as main_app
from app.core import dependencies as deps
from app.core.database import get_session
from app.domains.tpl import models as tpl_models  # noqa: F401 (테이블 등록)
from app.domains.tpl.clients import PlatformServices
from app.domains.tpl.exporter import PackageExporter
from app.domains.tpl.importer import PackageImporter
from app.domains.tpl.validation import PackageValidator

from tests.fakes import make_fake_services

# --- 테스트용 데이터베이스 설정 ---
# 템플릿 라이브러리 테스트는 인메모리 sqlite(aiosqlite)를 사용합니다.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SOURCE_TENANT = "11111111-1111-1111-1111-111111111111"
TARGET_TENANT = "22222222-2222-2222-2222-222222222222"
FIXED_NOW = datetime(2024, 5, 17, 9, 30, tzinfo=UTC)


# --- 데이터베이스 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    테스트 함수마다 새 인메모리 데이터베이스를 만들고 테이블을 생성한 세션을 제공합니다.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # 모든 세션이 같은 인메모리 연결을 공유
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with TestingSessionLocal() as session:
        yield session
    await engine.dispose()


# --- 도메인 서비스 픽스처 ---
@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def source_services() -> PlatformServices:
    """export 원본 테넌트의 인메모리 서비스."""
    return make_fake_services()


@pytest.fixture
def target_services() -> PlatformServices:
    """import 대상 테넌트의 인메모리 서비스."""
    return make_fake_services()


@pytest.fixture
def validator() -> PackageValidator:
    return PackageValidator()


@pytest.fixture
def exporter(source_services: PlatformServices, fixed_clock) -> PackageExporter:
    return PackageExporter(source_services, clock=fixed_clock)


@pytest.fixture
def importer(target_services: PlatformServices, fixed_clock) -> PackageImporter:
    return PackageImporter(target_services, clock=fixed_clock)


# --- API 클라이언트 픽스처 ---
@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, target_services: PlatformServices) -> AsyncGenerator[AsyncClient, None]:
    """
    데이터베이스 세션과 외부 서비스를 테스트용으로 오버라이드한 비동기 클라이언트.
    외부 서비스는 `target_services` 인메모리 구현을 사용합니다.
    """
    async def override_get_session():
        yield db_session

    original_overrides = main_app.dependency_overrides.copy()
    main_app.dependency_overrides.update({
        get_session: override_get_session,
        deps.get_db_session: override_get_session,
        deps.get_platform_services: lambda: target_services,
    })
    try:
        transport = ASGITransport(app=main_app)
        async with AsyncClient(transport=transport, base_url="http://test") as test_client:
            yield test_client
    finally:
        main_app.dependency_overrides = original_overrides
