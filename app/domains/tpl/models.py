# app/domains/tpl/models.py

"""
'tpl' 도메인의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

템플릿 라이브러리: export 된 패키지를 테넌트별로 저장해 두고
나중에 다시 내려받거나 다른 테넌트에 import 할 수 있게 합니다.
패키지 본문은 JSON 컬럼에 camelCase 와이어 형식 그대로 저장합니다.
"""

import uuid
from typing import Any, Dict, List, Optional
from datetime import datetime, UTC
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import JSON
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP


# =============================================================================
# 1. package_templates 테이블 모델
# =============================================================================
class PackageTemplate(SQLModel, table=True):
    """
    저장된 구성 패키지. 소유 테넌트와 공개 여부로 조회 범위가 결정됩니다.
    """
    __tablename__ = "package_templates"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, description="템플릿 고유 ID")
    tenant_id: str = Field(max_length=64, index=True, description="소유 테넌트 ID")
    name: str = Field(max_length=200, description="패키지 이름")
    version: str = Field(max_length=50, description="패키지 버전 (semantic)")
    schema_version: str = Field(max_length=20, description="패키지 포맷 버전")
    description: Optional[str] = Field(default=None, description="설명")
    author: Optional[str] = Field(default=None, max_length=200, description="작성자")
    author_email: Optional[str] = Field(default=None, max_length=200, description="작성자 이메일")
    category: Optional[str] = Field(default=None, max_length=100, description="분류")
    license: Optional[str] = Field(default=None, max_length=50, description="라이선스")
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False), description="태그 목록")
    template_json: Dict[str, Any] = Field(sa_column=Column(JSON, nullable=False), description="패키지 본문")
    is_public: bool = Field(default=False, description="다른 테넌트에 공개 여부")
    download_count: int = Field(default=0, description="다운로드 횟수")

    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )
