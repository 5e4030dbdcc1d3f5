# app/domains/tpl/routers.py

"""
'tpl' 도메인의 API 엔드포인트를 정의하는 모듈입니다.

- 패키지 export / import / 미리보기 / 검증
- 템플릿 라이브러리 (저장된 패키지 목록, 조회, 저장, 삭제)

모든 엔드포인트는 테넌트 헤더로 대상 테넌트를 식별합니다.
외부 플랫폼 서비스 오류는 502 Bad Gateway 로 변환합니다.
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import dependencies as deps
from app.domains.tpl import crud as tpl_crud
from app.domains.tpl import schemas as tpl_schemas
from app.domains.tpl.clients import ServiceError
from app.domains.tpl.exporter import PackageExporter
from app.domains.tpl.importer import PackageImporter
from app.domains.tpl.validation import PackageValidator

logger = logging.getLogger(__name__)

# 라우터 인스턴스 생성
router = APIRouter(
    tags=["Template Migration (구성 패키지 이전)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 패키지 export / import / 미리보기 / 검증
# =============================================================================
@router.post("/export", response_model=tpl_schemas.Package, summary="현재 테넌트의 리소스를 패키지로 export")
async def export_package(
    request: tpl_schemas.ExportRequest,
    tenant_id: str = Depends(deps.get_tenant_id),
    exporter: PackageExporter = Depends(deps.get_package_exporter),
):
    """
    선택한 리소스를 로컬 ID로 서로 참조하는 패키지로 내보냅니다.
    - `includeResources.schemas`: 스키마 전체 포함 여부
    - `includeResources.*Ids`: 포함할 리소스 ID 목록
    """
    try:
        return await exporter.export(tenant_id, request)
    except ServiceError as e:
        logger.error("패키지 export 실패 (tenant=%s): %s", tenant_id, e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to export template: {e}")


@router.post("/import", response_model=tpl_schemas.ImportResult, summary="패키지를 현재 테넌트로 import")
async def import_package(
    request: tpl_schemas.ImportRequest,
    tenant_id: str = Depends(deps.get_tenant_id),
    validator: PackageValidator = Depends(deps.get_package_validator),
    importer: PackageImporter = Depends(deps.get_package_importer),
):
    """
    패키지를 먼저 검증하고, 오류가 있으면 400과 검증 결과를 반환합니다.
    리소스별 실패는 응답의 `errors` 에 기록되며 나머지 리소스는 계속 처리됩니다.
    """
    validation = validator.validate(request.template)
    if not validation.is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Template validation failed",
                "validation": validation.model_dump(mode="json", by_alias=True),
            },
        )
    return await importer.import_package(tenant_id, request.template, request.import_options)


@router.post("/preview", response_model=tpl_schemas.ImportPreview, summary="import 미리보기 (생성 없음)")
async def preview_import(
    request: tpl_schemas.ImportRequest,
    tenant_id: str = Depends(deps.get_tenant_id),
    importer: PackageImporter = Depends(deps.get_package_importer),
):
    """생성될 리소스 수와 대상 테넌트의 이름 충돌 목록을 반환합니다."""
    try:
        return await importer.preview(tenant_id, request.template)
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to preview import: {e}")


@router.post("/validate", response_model=tpl_schemas.ValidationResult, summary="패키지 검증")
async def validate_package(
    package: tpl_schemas.Package,
    validator: PackageValidator = Depends(deps.get_package_validator),
):
    return validator.validate(package)


# =============================================================================
# 2. 템플릿 라이브러리
# =============================================================================
@router.get("/", response_model=List[tpl_schemas.TemplateSummary], summary="저장된 템플릿 목록 조회")
async def read_templates(
    skip: int = 0,
    limit: int = 100,
    tenant_id: str = Depends(deps.get_tenant_id),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    테넌트가 소유한 템플릿과 공개 템플릿을 최근 생성 순으로 조회합니다.
    - `skip`: 건너뛸 레코드 수
    - `limit`: 가져올 최대 레코드 수
    """
    templates = await tpl_crud.package_template.list_visible(db, tenant_id=tenant_id, skip=skip, limit=limit)
    return [tpl_crud.to_summary(template) for template in templates]


@router.get("/{template_id}", response_model=tpl_schemas.Package, summary="저장된 템플릿 조회")
async def read_template(
    template_id: uuid.UUID,
    tenant_id: str = Depends(deps.get_tenant_id),
    db: AsyncSession = Depends(deps.get_db_session),
):
    template = await tpl_crud.package_template.get_visible(db, tenant_id=tenant_id, template_id=template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    template = await tpl_crud.package_template.record_download(db, template=template)
    return tpl_crud.to_package(template)


@router.post("/", response_model=tpl_schemas.Package, status_code=status.HTTP_201_CREATED, summary="템플릿 저장")
async def create_template(
    package: tpl_schemas.Package,
    is_public: bool = False,
    tenant_id: str = Depends(deps.get_tenant_id),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """
    패키지를 템플릿 라이브러리에 저장합니다. 저장된 ID는 `metadata.id` 로 반환됩니다.
    - `is_public`: 다른 테넌트에도 공개할지 여부
    """
    template = await tpl_crud.package_template.save_package(
        db, tenant_id=tenant_id, package=package, is_public=is_public
    )
    return tpl_crud.to_package(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT, summary="템플릿 삭제")
async def delete_template(
    template_id: uuid.UUID,
    tenant_id: str = Depends(deps.get_tenant_id),
    db: AsyncSession = Depends(deps.get_db_session),
):
    """소유 테넌트만 삭제할 수 있습니다."""
    deleted = await tpl_crud.package_template.delete_owned(db, tenant_id=tenant_id, template_id=template_id)
    if deleted is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
