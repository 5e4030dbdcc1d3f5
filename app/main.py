# app/main.py

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from app import API_PREFIX
from app.core.config import settings
from app.core.database import create_db_and_tables, engine, get_session
from app.domains.tpl.routers import router as tpl_router

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI 애플리케이션의 수명 주기(로깅, DB, 외부 서비스 HTTP 클라이언트)를 처리합니다.
    """
    configure_logging()
    logger.info("FastAPI 애플리케이션 시작 중... (env=%s)", settings.APP_ENV)

    if settings.AUTO_CREATE_TABLES:
        await create_db_and_tables()

    # 모든 외부 서비스 호출이 공유하는 httpx 클라이언트
    app.state.http_client = httpx.AsyncClient(timeout=settings.SERVICE_TIMEOUT_SECONDS)
    logger.info("외부 서비스 HTTP 클라이언트 생성 완료.")

    try:
        yield  # 애플리케이션 실행
    finally:
        logger.info("FastAPI 애플리케이션 종료 중...")
        await app.state.http_client.aclose()
        await engine.dispose()
        logger.info("HTTP 클라이언트 및 데이터베이스 연결 풀 종료 완료.")


# -- FastAPI 애플리케이션 인스턴스 생성 --
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",       # Swagger UI
    redoc_url="/redoc",     # ReDoc
    lifespan=lifespan
)

# -- CORS (Cross-Origin Resource Sharing) 미들웨어 설정 --
# 프로덕션에서는 'allow_origins'를 실제 프론트엔드 도메인으로 제한해야 합니다.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- 도메인 라우터 포함 --
app.include_router(tpl_router, prefix=f"{API_PREFIX}/templates")


# -- 루트 엔드포인트 --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    """
    API의 루트 엔드포인트입니다.
    API의 시작점을 알리고 문서 링크를 제공합니다.
    """
    return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}


# -- 헬스 체크 엔드포인트 --
@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    애플리케이션의 헬스 체크 엔드포인트입니다.
    템플릿 라이브러리 데이터베이스 연결을 테스트합니다.
    """
    try:
        result = await session.exec(select(1))
        if result.first():
            return {"status": "ok", "database_connection": "successful"}
    except Exception as e:
        logger.error("헬스 체크 중 데이터베이스 오류: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Database health check failed: No result from test query"
    )


# -- Uvicorn 서버 직접 실행 (개발용) --
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG_MODE, log_level="info")
