# app/domains/tpl/crud.py

"""
'tpl' 도메인의 템플릿 라이브러리 CRUD 로직을 담당하는 모듈입니다.

- 목록/단건 조회는 소유 테넌트의 템플릿과 공개 템플릿만 대상으로 합니다.
- 삭제는 소유 테넌트만 할 수 있습니다.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import or_
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from . import models as tpl_models
from . import schemas as tpl_schemas

logger = logging.getLogger(__name__)


def _parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


# =============================================================================
# 1. 템플릿 (PackageTemplate) CRUD
# =============================================================================
class CRUDPackageTemplate(CRUDBase[tpl_models.PackageTemplate]):
    def __init__(self):
        super().__init__(model=tpl_models.PackageTemplate)

    def _visible_to(self, tenant_id: str):
        return or_(self.model.tenant_id == tenant_id, self.model.is_public.is_(True))

    async def list_visible(
        self, db: AsyncSession, *, tenant_id: str, skip: int = 0, limit: int = 100
    ) -> List[tpl_models.PackageTemplate]:
        """테넌트가 볼 수 있는 템플릿 목록 (최근 생성 순)."""
        return await self.get_multi(
            db,
            conditions=[self._visible_to(tenant_id)],
            order_by=self.model.created_at.desc(),
            skip=skip,
            limit=limit,
        )

    async def get_visible(
        self, db: AsyncSession, *, tenant_id: str, template_id: uuid.UUID
    ) -> Optional[tpl_models.PackageTemplate]:
        template = await self.get(db, template_id)
        if template is None or not (template.tenant_id == tenant_id or template.is_public):
            return None
        return template

    async def save_package(
        self, db: AsyncSession, *, tenant_id: str, package: tpl_schemas.Package, is_public: bool = False
    ) -> tpl_models.PackageTemplate:
        """
        패키지를 저장합니다.
        metadata.id 가 유효한 UUID 이고 아직 사용되지 않았다면 그대로 쓰고, 아니면 새로 발급합니다.
        """
        template_id = _parse_uuid(package.metadata.id)
        if template_id is None or await self.get(db, template_id) is not None:
            template_id = uuid.uuid4()

        metadata = package.metadata.model_copy(update={"id": str(template_id)})
        stored = package.model_copy(update={"metadata": metadata})
        db_obj = tpl_models.PackageTemplate(
            id=template_id,
            tenant_id=tenant_id,
            name=metadata.name,
            version=metadata.version,
            schema_version=metadata.schema_version,
            description=metadata.description or None,
            author=metadata.author or None,
            author_email=metadata.author_email,
            category=metadata.category,
            license=metadata.license,
            tags=list(metadata.tags),
            template_json=stored.model_dump(mode="json", by_alias=True),
            is_public=is_public,
        )
        db_obj = await self.create(db, db_obj=db_obj)
        logger.info("템플릿 '%s' 저장 완료 (id=%s, tenant=%s)", db_obj.name, db_obj.id, tenant_id)
        return db_obj

    async def record_download(
        self, db: AsyncSession, *, template: tpl_models.PackageTemplate
    ) -> tpl_models.PackageTemplate:
        template.download_count += 1
        db.add(template)
        await db.commit()
        await db.refresh(template)
        return template

    async def delete_owned(
        self, db: AsyncSession, *, tenant_id: str, template_id: uuid.UUID
    ) -> Optional[tpl_models.PackageTemplate]:
        template = await self.get(db, template_id)
        if template is None or template.tenant_id != tenant_id:
            return None
        return await self.delete(db, db_obj=template)


def to_package(template: tpl_models.PackageTemplate) -> tpl_schemas.Package:
    return tpl_schemas.Package.model_validate(template.template_json)


def to_summary(template: tpl_models.PackageTemplate) -> tpl_schemas.TemplateSummary:
    return tpl_schemas.TemplateSummary(
        id=str(template.id),
        name=template.name,
        version=template.version,
        schema_version=template.schema_version,
        description=template.description or "",
        author=template.author or "",
        author_email=template.author_email,
        tags=list(template.tags or []),
        category=template.category or "General",
        license=template.license or "MIT",
        created_at=template.created_at,
        updated_at=template.updated_at,
        is_public=template.is_public,
        download_count=template.download_count,
    )


package_template = CRUDPackageTemplate()
