# app/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 정의하는 모듈입니다.

- 데이터베이스 세션 관리 (get_db_session).
- 요청 헤더에서 테넌트 식별 (get_tenant_id).
- 외부 플랫폼 서비스 클라이언트와 패키지 검증기 / exporter / importer 제공.
"""

import uuid
from typing import AsyncGenerator, Optional

import httpx
from fastapi import Depends, HTTPException, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.config import settings
from app.core.database import get_session as get_main_app_session
from app.domains.tpl.clients import PlatformServices, build_platform_services
from app.domains.tpl.exporter import PackageExporter
from app.domains.tpl.importer import PackageImporter
from app.domains.tpl.validation import PackageValidator


# --- 데이터베이스 세션 의존성 주입 ---
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    app.core.database.get_session을 래핑하여 사용합니다.
    """
    async for session in get_main_app_session():
        yield session


# --- 테넌트 식별 ---
def get_tenant_id(request: Request) -> str:
    """
    테넌트 헤더(기본 `X-Tenant-Id`)에서 테넌트 ID를 읽습니다.
    헤더가 없으면 개발용 기본 테넌트를 사용하고, UUID 형식이 아니면 400을 반환합니다.
    """
    raw: Optional[str] = request.headers.get(settings.TENANT_HEADER)
    if not raw:
        return settings.DEFAULT_TENANT_ID
    try:
        return str(uuid.UUID(raw.strip()))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {settings.TENANT_HEADER} header: {raw!r}",
        )


# --- 외부 서비스 ---
def get_http_client(request: Request) -> httpx.AsyncClient:
    """lifespan 에서 생성한 공유 httpx 클라이언트."""
    return request.app.state.http_client


def get_platform_services(client: httpx.AsyncClient = Depends(get_http_client)) -> PlatformServices:
    return build_platform_services(client)


def get_package_validator() -> PackageValidator:
    return PackageValidator()


def get_package_exporter(services: PlatformServices = Depends(get_platform_services)) -> PackageExporter:
    return PackageExporter(services)


def get_package_importer(services: PlatformServices = Depends(get_platform_services)) -> PackageImporter:
    return PackageImporter(services)
