# app/domains/tpl/importer.py

"""
패키지를 대상 테넌트에 생성하는 importer 모듈입니다.

의존 관계 순서대로 세 단계로 진행합니다.
  1) 기반 리소스: 스키마, 자산(부모 우선 정렬)
  2) 의존 리소스: 디바이스 타입(스키마 참조), 연동 설정
  3) 말단 리소스: 대시보드(위젯 참조), 알림 규칙(디바이스 타입 참조)

리소스 하나의 처리 결과는 `Ok` / `Err` 값으로 반환되며,
외부 서비스 오류는 해당 리소스의 오류로만 기록되고 다음 리소스로 계속 진행합니다 (롤백 없음).
전달받은 패키지는 변경하지 않습니다.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar, Union

from app.core.config import settings
from app.domains.tpl import schemas as tpl_schemas
from app.domains.tpl.clients import PlatformServices, ResourceService, ServiceError
from app.domains.tpl.exporter import utc_now
from app.domains.tpl.mapping import IdentifierMap, ResourceKind, resolve_widget_config, sort_assets_by_hierarchy

logger = logging.getLogger(__name__)

T = TypeVar("T")
ConflictResolution = tpl_schemas.ConflictResolution


# =============================================================================
# 1. 단계별 결과 값
# =============================================================================
@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: str


Result = Union[Ok[T], Err]


async def attempt(call: Awaitable[T]) -> "Result[T]":
    """
    외부 서비스 호출 실패를 Err 값으로 바꿉니다.
    CancelledError 는 Exception 이 아니므로 그대로 전파됩니다.
    """
    try:
        return Ok(await call)
    except ServiceError as e:
        return Err(str(e))
    except Exception as e:
        logger.exception("외부 서비스 호출 중 예기치 않은 오류")
        return Err(f"{type(e).__name__}: {e}")


class Outcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Placed:
    """리소스가 대상 테넌트에서 차지하게 된 실제 ID와 처리 방식."""
    real_id: str
    outcome: Outcome
    note: Optional[str] = None


@dataclass
class ImportContext:
    """import 한 번의 상태. 각 단계에 명시적으로 전달됩니다."""
    tenant_id: str
    options: tpl_schemas.ImportOptions
    id_map: IdentifierMap
    result: tpl_schemas.ImportResult


# =============================================================================
# 2. Importer
# =============================================================================
class PackageImporter:
    """구성 패키지를 대상 테넌트에 의존 순서대로 생성하고 로컬 ID 매핑을 기록합니다."""

    def __init__(self, services: PlatformServices, clock: Callable[[], datetime] = utc_now):
        self.services = services
        self.clock = clock

    async def import_package(
        self,
        tenant_id: str,
        package: tpl_schemas.Package,
        options: Optional[tpl_schemas.ImportOptions] = None,
        id_map: Optional[IdentifierMap] = None,
    ) -> tpl_schemas.ImportResult:
        """
        패키지를 import 합니다.
        `id_map` 을 넘기면 진행 중 기록되는 매핑을 호출자가 직접 관찰할 수 있습니다 (취소 시 포함).
        """
        options = options or tpl_schemas.ImportOptions()
        if id_map is None:
            id_map = IdentifierMap()
        id_map.seed(options.existing_mappings or {})
        ctx = ImportContext(
            tenant_id=tenant_id,
            options=options,
            id_map=id_map,
            result=tpl_schemas.ImportResult(),
        )
        resources = package.resources
        logger.info(
            "패키지 '%s' import 시작 (tenant=%s, policy=%s)",
            package.metadata.name, tenant_id, options.conflict_resolution.value,
        )

        try:
            # 1단계: 기반 리소스
            await self._run(ctx, ResourceKind.SCHEMA, resources.schemas, self._import_schema)
            await self._run(ctx, ResourceKind.ASSET, sort_assets_by_hierarchy(resources.assets), self._import_asset)
            # 2단계: 의존 리소스
            await self._run(ctx, ResourceKind.DEVICE_TYPE, resources.device_types, self._import_device_type)
            await self._run(ctx, ResourceKind.INTEGRATION, resources.integrations, self._import_integration)
            # 3단계: 말단 리소스
            await self._run(ctx, ResourceKind.DASHBOARD, resources.dashboards, self._import_dashboard)
            await self._run(ctx, ResourceKind.ALERT_RULE, resources.alert_rules, self._import_alert_rule)
        finally:
            ctx.result.mappings = ctx.id_map.as_dict()
            ctx.result.success = not ctx.result.errors

        logger.info(
            "패키지 '%s' import 완료: imported=%d, skipped=%d, errors=%d",
            package.metadata.name, ctx.result.imported.total,
            sum(len(notes) for notes in ctx.result.skipped.values()), len(ctx.result.errors),
        )
        return ctx.result

    async def preview(self, tenant_id: str, package: tpl_schemas.Package) -> tpl_schemas.ImportPreview:
        """아무것도 생성하지 않고 생성 예정 수와 이름 충돌을 보고합니다."""
        resources = package.resources
        preview = tpl_schemas.ImportPreview(
            will_import=tpl_schemas.ResourceCounts(
                schemas=len(resources.schemas),
                device_types=len(resources.device_types),
                dashboards=len(resources.dashboards),
                alert_rules=len(resources.alert_rules),
                assets=len(resources.assets),
                integrations=len(resources.integrations),
            )
        )
        checks = [
            (ResourceKind.SCHEMA, self.services.schemas, resources.schemas),
            (ResourceKind.DEVICE_TYPE, self.services.device_types, resources.device_types),
            (ResourceKind.DASHBOARD, self.services.dashboards, resources.dashboards),
            (ResourceKind.ALERT_RULE, self.services.alert_rules, resources.alert_rules),
            (ResourceKind.INTEGRATION, self.services.integrations, resources.integrations),
        ]
        for kind, service, items in checks:
            for item in items:
                if await service.find_by_name(tenant_id, item.name) is not None:
                    preview.conflicts.append(tpl_schemas.ConflictInfo(
                        resource_type=kind.type_name,
                        resource_name=item.name,
                        local_id=item.local_id,
                        conflict_reason=f"{kind.type_name} with same name already exists",
                    ))
        return preview

    # -------------------------------------------------------------------------
    # 공통 처리 루프
    # -------------------------------------------------------------------------
    async def _run(
        self,
        ctx: ImportContext,
        kind: ResourceKind,
        items: Sequence[Any],
        step: Callable[[ImportContext, Any], Awaitable["Result[Placed]"]],
    ) -> None:
        for item in items:
            # 진행 중인 리소스는 취소와 무관하게 끝까지 처리하고 매핑을 기록한 뒤 취소를 전파합니다.
            task = asyncio.ensure_future(step(ctx, item))
            try:
                outcome = await asyncio.shield(task)
            except asyncio.CancelledError:
                self._record(ctx, kind, item, await task)
                raise
            self._record(ctx, kind, item, outcome)

    @staticmethod
    def _record(ctx: ImportContext, kind: ResourceKind, item: Any, outcome: "Result[Placed]") -> None:
        result = ctx.result
        if isinstance(outcome, Err):
            message = f"Failed to import {kind.label} '{item.name}': {outcome.error}"
            result.errors.append(message)
            logger.error(message)
            return

        placed = outcome.value
        ctx.id_map.bind(kind, item.local_id, placed.real_id)
        if placed.outcome is Outcome.SKIPPED:
            result.skipped.setdefault(kind.value, []).append(placed.note or item.name)
            logger.info("%s '%s' 건너뜀: %s", kind.label, item.name, placed.note)
        else:
            field_name = kind.count_field
            setattr(result.imported, field_name, getattr(result.imported, field_name) + 1)

    async def _place(
        self,
        ctx: ImportContext,
        kind: ResourceKind,
        service: ResourceService,
        record: Any,
        allow_overwrite: bool = False,
    ) -> "Result[Placed]":
        """이름 충돌 정책을 적용해 레코드를 생성/갱신하거나 기존 리소스에 연결합니다."""
        lookup = await attempt(service.find_by_name(ctx.tenant_id, record.name))
        if isinstance(lookup, Err):
            return lookup
        existing = lookup.value

        if existing is not None:
            policy = ctx.options.conflict_resolution
            if policy is ConflictResolution.RENAME:
                renamed = await self._unused_name(ctx, service, record.name)
                if isinstance(renamed, Err):
                    return renamed
                record = record.model_copy(update={"name": renamed.value})
            elif policy is ConflictResolution.OVERWRITE and allow_overwrite:
                updated = await attempt(service.update(ctx.tenant_id, existing.id, record))
                if isinstance(updated, Err):
                    return updated
                return Ok(Placed(existing.id, Outcome.UPDATED))
            else:
                note = f"{kind.type_name} already exists: {record.name}"
                if policy is ConflictResolution.OVERWRITE:
                    note += f" (overwrite is not supported for {kind.label}s)"
                return Ok(Placed(existing.id, Outcome.SKIPPED, note))

        created = await attempt(service.create(ctx.tenant_id, record))
        if isinstance(created, Err):
            return created
        return Ok(Placed(created.value, Outcome.CREATED))

    async def _unused_name(self, ctx: ImportContext, service: ResourceService, name: str) -> "Result[str]":
        """Rename 정책의 새 이름. 같은 이름이 이미 있으면 ` (2)`, ` (3)` ... 을 붙입니다."""
        base = settings.IMPORT_RENAME_FORMAT.format(name=name, timestamp=self.clock())
        candidate, counter = base, 1
        while True:
            lookup = await attempt(service.find_by_name(ctx.tenant_id, candidate))
            if isinstance(lookup, Err):
                return lookup
            if lookup.value is None:
                return Ok(candidate)
            counter += 1
            candidate = f"{base} ({counter})"

    # -------------------------------------------------------------------------
    # 리소스별 처리
    # -------------------------------------------------------------------------
    async def _import_schema(self, ctx: ImportContext, schema: tpl_schemas.SchemaResource) -> "Result[Placed]":
        record = tpl_schemas.SchemaRecord(
            name=schema.name,
            version=schema.version,
            schema_definition=schema.schema_definition,
            description=schema.description,
        )
        return await self._place(ctx, ResourceKind.SCHEMA, self.services.schemas, record, allow_overwrite=True)

    async def _import_asset(self, ctx: ImportContext, asset: tpl_schemas.AssetResource) -> "Result[Placed]":
        # 자산은 이름 충돌을 검사하지 않습니다 (같은 이름이 계층의 여러 위치에 존재할 수 있음).
        record = tpl_schemas.AssetRecord(
            name=asset.name,
            type=asset.type,
            parent_id=ctx.id_map.resolve(ResourceKind.ASSET, asset.parent_ref),
            icon=asset.icon,
            metadata=asset.metadata,
            location=asset.location,
        )
        created = await attempt(self.services.assets.create(ctx.tenant_id, record))
        if isinstance(created, Err):
            return created
        return Ok(Placed(created.value, Outcome.CREATED))

    async def _import_device_type(
        self, ctx: ImportContext, device_type: tpl_schemas.DeviceTypeResource
    ) -> "Result[Placed]":
        record = tpl_schemas.DeviceTypeRecord(
            name=device_type.name,
            description=device_type.description,
            schema_id=ctx.id_map.resolve(ResourceKind.SCHEMA, device_type.schema_ref),
            custom_fields=device_type.custom_fields,
            field_mappings=device_type.field_mappings,
            icon=device_type.icon,
            color=device_type.color,
        )
        return await self._place(ctx, ResourceKind.DEVICE_TYPE, self.services.device_types, record)

    async def _import_integration(
        self, ctx: ImportContext, integration: tpl_schemas.IntegrationResource
    ) -> "Result[Placed]":
        record = tpl_schemas.IntegrationRecord(
            name=integration.name,
            protocol=integration.protocol,
            configuration=integration.configuration,
            auth_type=integration.auth_type,
            is_enabled=integration.is_enabled,
        )
        return await self._place(ctx, ResourceKind.INTEGRATION, self.services.integrations, record)

    async def _import_dashboard(
        self, ctx: ImportContext, dashboard: tpl_schemas.DashboardResource
    ) -> "Result[Placed]":
        record = tpl_schemas.DashboardRecord(
            name=dashboard.name,
            description=dashboard.description,
            layout=dashboard.layout,
            widgets=[
                widget.model_copy(update={"config": resolve_widget_config(widget.config, ctx.id_map)})
                for widget in dashboard.widgets
            ],
            filters=dashboard.filters,
        )
        return await self._place(ctx, ResourceKind.DASHBOARD, self.services.dashboards, record)

    async def _import_alert_rule(
        self, ctx: ImportContext, rule: tpl_schemas.AlertRuleResource
    ) -> "Result[Placed]":
        record = tpl_schemas.AlertRuleRecord(
            name=rule.name,
            description=rule.description,
            condition=rule.condition,
            device_type_id=ctx.id_map.resolve(ResourceKind.DEVICE_TYPE, rule.device_type_ref),
            severity=rule.severity,
            is_enabled=rule.is_enabled,
            actions=rule.actions,
            cooldown_minutes=rule.cooldown_minutes,
        )
        return await self._place(ctx, ResourceKind.ALERT_RULE, self.services.alert_rules, record)
