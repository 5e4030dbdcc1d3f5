# app/domains/tpl/exporter.py

"""
테넌트의 리소스를 이식 가능한 패키지로 변환하는 exporter 모듈입니다.

1단계에서 선택된 리소스를 모두 조회하면서 종류별 로컬 ID를 발급하고,
2단계에서 실제 ID 참조를 로컬 ID로 바꿔 패키지 리소스를 만듭니다.
모든 ID를 먼저 발급하므로 선택 목록의 순서와 무관하게
(예: 부모보다 먼저 나온 자식 자산) 패키지 안의 대상이면 참조가 유지됩니다.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.domains.tpl import schemas as tpl_schemas
from app.domains.tpl.clients import PlatformServices, ResourceService, ServiceError
from app.domains.tpl.mapping import LocalIdAllocator, ResourceKind, localize_widget_config

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class _FetchedResources:
    """종류별 (로컬 ID, 레코드) 목록."""
    schemas: List[Tuple[str, tpl_schemas.SchemaRecord]] = field(default_factory=list)
    device_types: List[Tuple[str, tpl_schemas.DeviceTypeRecord]] = field(default_factory=list)
    dashboards: List[Tuple[str, tpl_schemas.DashboardRecord]] = field(default_factory=list)
    alert_rules: List[Tuple[str, tpl_schemas.AlertRuleRecord]] = field(default_factory=list)
    assets: List[Tuple[str, tpl_schemas.AssetRecord]] = field(default_factory=list)
    integrations: List[Tuple[str, tpl_schemas.IntegrationRecord]] = field(default_factory=list)


class PackageExporter:
    """선택된 리소스를 조회해 패키지를 만듭니다."""

    def __init__(self, services: PlatformServices, clock: Callable[[], datetime] = utc_now):
        self.services = services
        self.clock = clock

    async def export(self, tenant_id: str, request: tpl_schemas.ExportRequest) -> tpl_schemas.Package:
        allocator = LocalIdAllocator()
        fetched = await self._fetch(tenant_id, request.include_resources, allocator)

        resources = tpl_schemas.PackageResources(
            schemas=[
                tpl_schemas.SchemaResource(
                    local_id=local_id,
                    name=record.name,
                    version=record.version,
                    schema_definition=record.schema_definition,
                    description=record.description,
                )
                for local_id, record in fetched.schemas
            ],
            device_types=[
                tpl_schemas.DeviceTypeResource(
                    local_id=local_id,
                    name=record.name,
                    description=record.description,
                    schema_ref=allocator.lookup(ResourceKind.SCHEMA, record.schema_id),
                    custom_fields=record.custom_fields,
                    field_mappings=record.field_mappings,
                    icon=record.icon,
                    color=record.color,
                )
                for local_id, record in fetched.device_types
            ],
            dashboards=[
                tpl_schemas.DashboardResource(
                    local_id=local_id,
                    name=record.name,
                    description=record.description,
                    layout=record.layout,
                    widgets=[
                        widget.model_copy(update={"config": localize_widget_config(widget.config, allocator.lookup)})
                        for widget in record.widgets
                    ],
                    filters=record.filters,
                )
                for local_id, record in fetched.dashboards
            ],
            alert_rules=[
                tpl_schemas.AlertRuleResource(
                    local_id=local_id,
                    name=record.name,
                    description=record.description,
                    condition=record.condition,
                    device_type_ref=allocator.lookup(ResourceKind.DEVICE_TYPE, record.device_type_id),
                    severity=record.severity,
                    is_enabled=record.is_enabled,
                    actions=record.actions,
                    cooldown_minutes=record.cooldown_minutes,
                )
                for local_id, record in fetched.alert_rules
            ],
            assets=[
                tpl_schemas.AssetResource(
                    local_id=local_id,
                    name=record.name,
                    type=record.type,
                    parent_ref=allocator.lookup(ResourceKind.ASSET, record.parent_id),
                    icon=record.icon,
                    metadata=record.metadata,
                    location=record.location,
                )
                for local_id, record in fetched.assets
            ],
            integrations=[
                tpl_schemas.IntegrationResource(
                    local_id=local_id,
                    name=record.name,
                    protocol=record.protocol,
                    configuration=record.configuration,
                    auth_type=record.auth_type,
                    is_enabled=record.is_enabled,
                )
                for local_id, record in fetched.integrations
            ],
        )

        now = self.clock()
        package = tpl_schemas.Package(
            metadata=tpl_schemas.PackageMetadata(
                id=str(uuid.uuid4()),
                name=request.name,
                version=request.version or "1.0.0",
                schema_version=settings.PACKAGE_SCHEMA_VERSION,
                description=request.description,
                author=request.author,
                author_email=request.author_email,
                tags=list(request.tags),
                category=request.category,
                created_at=now,
                updated_at=now,
            ),
            resources=resources,
            mappings=tpl_schemas.PackageMappings(references=build_reference_map(resources)),
        )
        logger.info(
            "패키지 '%s' export 완료 (tenant=%s): schemas=%d, deviceTypes=%d, dashboards=%d, "
            "alertRules=%d, assets=%d, integrations=%d",
            request.name, tenant_id, len(resources.schemas), len(resources.device_types),
            len(resources.dashboards), len(resources.alert_rules), len(resources.assets),
            len(resources.integrations),
        )
        return package

    async def _fetch(
        self,
        tenant_id: str,
        selection: tpl_schemas.ResourceSelection,
        allocator: LocalIdAllocator,
    ) -> _FetchedResources:
        """선택된 리소스를 정해진 순서로 조회하고 로컬 ID를 발급합니다."""
        fetched = _FetchedResources()

        if selection.schemas:
            # 스키마 목록 조회 실패는 export 전체를 중단합니다.
            for record in await self.services.schemas.list(tenant_id):
                local_id = _claim(allocator, ResourceKind.SCHEMA, record)
                if local_id is not None:
                    fetched.schemas.append((local_id, record))

        fetched.device_types = await self._fetch_each(
            tenant_id, self.services.device_types, ResourceKind.DEVICE_TYPE, selection.device_type_ids, allocator)
        fetched.dashboards = await self._fetch_each(
            tenant_id, self.services.dashboards, ResourceKind.DASHBOARD, selection.dashboard_ids, allocator)
        fetched.alert_rules = await self._fetch_each(
            tenant_id, self.services.alert_rules, ResourceKind.ALERT_RULE, selection.alert_rule_ids, allocator)
        fetched.assets = await self._fetch_each(
            tenant_id, self.services.assets, ResourceKind.ASSET, selection.asset_ids, allocator)
        fetched.integrations = await self._fetch_each(
            tenant_id, self.services.integrations, ResourceKind.INTEGRATION, selection.integration_ids, allocator)
        return fetched

    async def _fetch_each(
        self,
        tenant_id: str,
        service: ResourceService,
        kind: ResourceKind,
        resource_ids: Sequence[str],
        allocator: LocalIdAllocator,
    ) -> List[Tuple[str, Any]]:
        records = []
        for resource_id in resource_ids:
            if allocator.lookup(kind, resource_id) is not None:
                continue
            try:
                record = await service.get(tenant_id, resource_id)
            except ServiceError as e:
                logger.warning("%s '%s' 조회 실패, export에서 제외합니다: %s", kind.label, resource_id, e)
                continue
            except Exception:
                logger.exception("%s '%s' 조회 중 예기치 않은 오류, export에서 제외합니다.", kind.label, resource_id)
                continue
            if record is None:
                logger.warning("%s '%s' 을(를) 찾을 수 없어 export에서 제외합니다.", kind.label, resource_id)
                continue
            if record.id is None:
                record = record.model_copy(update={"id": resource_id})
            local_id = _claim(allocator, kind, record)
            if local_id is not None:
                records.append((local_id, record))
        return records


def _claim(allocator: LocalIdAllocator, kind: ResourceKind, record: Any) -> Optional[str]:
    """아직 발급되지 않은 레코드면 로컬 ID를 발급해 반환하고, 중복이면 None."""
    if record.id is not None and allocator.lookup(kind, record.id) is not None:
        return None
    return allocator.allocate(kind, record.id)


def build_reference_map(resources: tpl_schemas.PackageResources) -> Dict[str, List[str]]:
    """
    스키마 -> 이를 참조하는 디바이스 타입,
    디바이스 타입 -> 이를 참조하는 대시보드(위젯)와 알림 규칙.
    빈 목록은 넣지 않습니다.
    """
    references: Dict[str, List[str]] = {}

    for schema in resources.schemas:
        dependents = [dt.local_id for dt in resources.device_types if dt.schema_ref == schema.local_id]
        if dependents:
            references[schema.local_id] = dependents

    for device_type in resources.device_types:
        dependents: List[str] = []
        for dashboard in resources.dashboards:
            if any(widget.config.get("deviceTypeRef") == device_type.local_id for widget in dashboard.widgets):
                dependents.append(dashboard.local_id)
        dependents.extend(
            rule.local_id for rule in resources.alert_rules if rule.device_type_ref == device_type.local_id
        )
        if dependents:
            references[device_type.local_id] = dependents

    return references
