# tests/domains/test_tpl_export.py

"""
'tpl' 도메인의 exporter 테스트입니다.

- 로컬 ID 발급과 참조 변환 (schemaRef, deviceTypeRef, parentRef, 위젯 참조)
- 참조 관계 요약 생성
- 개별 조회 실패 시 건너뛰기, 스키마 목록 실패 시 중단
- export 결과는 항상 검증을 통과
"""

import pytest

from app.domains.tpl import schemas as tpl_schemas
from app.domains.tpl.clients import PlatformServices, ServiceError
from app.domains.tpl.exporter import PackageExporter
from app.domains.tpl.validation import PackageValidator

from tests.conftest import FIXED_NOW, SOURCE_TENANT


def seed_source(services: PlatformServices) -> dict:
    """원본 테넌트에 서로 참조하는 리소스를 만들고 실제 ID를 반환합니다."""
    schema = services.schemas.add(tpl_schemas.SchemaRecord(
        name="Telemetry", schema_definition={"type": "object"}))
    unused_schema = services.schemas.add(tpl_schemas.SchemaRecord(
        name="Unused", schema_definition={"type": "object"}))
    device_type = services.device_types.add(tpl_schemas.DeviceTypeRecord(
        name="Pump", schema_id=schema.id,
        field_mappings=[tpl_schemas.FieldMapping(field_name="temp", friendly_name="Temperature")]))
    site = services.assets.add(tpl_schemas.AssetRecord(name="Plant", type="Site"))
    room = services.assets.add(tpl_schemas.AssetRecord(name="Pump Room", type="Area", parent_id=site.id))
    dashboard = services.dashboards.add(tpl_schemas.DashboardRecord(name="Overview", widgets=[
        tpl_schemas.Widget(id="w1", type="chart", config={"deviceTypeId": device_type.id, "metric": "temp"}),
        tpl_schemas.Widget(id="w2", type="map", config={"assetId": room.id}),
        tpl_schemas.Widget(id="w3", type="text", config={"deviceTypeId": "not-exported"}),
    ]))
    rule = services.alert_rules.add(tpl_schemas.AlertRuleRecord(
        name="High Temp", condition="temp > 80", device_type_id=device_type.id, severity=3))
    integration = services.integrations.add(tpl_schemas.IntegrationRecord(
        name="Broker", configuration={"host": "mqtt.local"}))
    return {
        "schema": schema.id, "unused_schema": unused_schema.id, "device_type": device_type.id,
        "site": site.id, "room": room.id, "dashboard": dashboard.id, "rule": rule.id,
        "integration": integration.id,
    }


def full_request(ids: dict) -> tpl_schemas.ExportRequest:
    return tpl_schemas.ExportRequest(
        name="Plant Template",
        author="ops",
        tags=["water"],
        include_resources=tpl_schemas.ResourceSelection(
            device_type_ids=[ids["device_type"]],
            dashboard_ids=[ids["dashboard"]],
            alert_rule_ids=[ids["rule"]],
            # 자식 자산을 부모보다 먼저 선택해도 참조가 유지되어야 합니다.
            asset_ids=[ids["room"], ids["site"]],
            integration_ids=[ids["integration"]],
        ),
    )


@pytest.mark.asyncio
async def test_export_builds_portable_package(exporter: PackageExporter, source_services: PlatformServices):
    ids = seed_source(source_services)

    package = await exporter.export(SOURCE_TENANT, full_request(ids))
    resources = package.resources

    assert package.metadata.name == "Plant Template"
    assert package.metadata.version == "1.0.0"
    assert package.metadata.schema_version == "1.0"
    assert package.metadata.created_at == FIXED_NOW
    assert package.metadata.id

    assert [s.local_id for s in resources.schemas] == ["schema_1", "schema_2"]
    assert resources.device_types[0].local_id == "deviceType_1"
    assert resources.device_types[0].schema_ref == "schema_1"
    assert resources.device_types[0].field_mappings[0].friendly_name == "Temperature"
    assert resources.alert_rules[0].local_id == "alert_1"
    assert resources.alert_rules[0].device_type_ref == "deviceType_1"
    assert resources.alert_rules[0].severity == 3

    room, site = resources.assets
    assert (room.local_id, site.local_id) == ("asset_1", "asset_2")
    assert room.parent_ref == "asset_2"
    assert site.parent_ref is None

    widgets = resources.dashboards[0].widgets
    assert widgets[0].config == {"deviceTypeRef": "deviceType_1", "metric": "temp"}
    assert widgets[1].config == {"assetRef": "asset_1"}
    assert widgets[2].config == {"deviceTypeId": "not-exported"}

    assert resources.integrations[0].local_id == "integration_1"
    assert package.mappings.references == {
        "schema_1": ["deviceType_1"],
        "deviceType_1": ["dashboard_1", "alert_1"],
    }


@pytest.mark.asyncio
async def test_export_result_always_validates(
    exporter: PackageExporter, source_services: PlatformServices, validator: PackageValidator
):
    ids = seed_source(source_services)
    package = await exporter.export(SOURCE_TENANT, full_request(ids))

    result = validator.validate(package)

    assert result.errors == []
    assert result.is_valid


@pytest.mark.asyncio
async def test_export_leaves_refs_unset_when_target_not_exported(
    exporter: PackageExporter, source_services: PlatformServices
):
    ids = seed_source(source_services)
    request = tpl_schemas.ExportRequest(
        name="Partial",
        include_resources=tpl_schemas.ResourceSelection(
            schemas=False,
            device_type_ids=[ids["device_type"]],
            asset_ids=[ids["room"]],
        ),
    )

    package = await exporter.export(SOURCE_TENANT, request)

    assert package.resources.schemas == []
    assert package.resources.device_types[0].schema_ref is None
    assert package.resources.assets[0].parent_ref is None
    assert package.mappings.references == {}


@pytest.mark.asyncio
async def test_export_skips_failed_and_missing_resources(
    exporter: PackageExporter, source_services: PlatformServices
):
    ids = seed_source(source_services)
    source_services.dashboards.fail_on_get.add(ids["dashboard"])
    request = tpl_schemas.ExportRequest(
        name="Skips",
        include_resources=tpl_schemas.ResourceSelection(
            device_type_ids=[ids["device_type"], "does-not-exist", ids["device_type"]],
            dashboard_ids=[ids["dashboard"]],
        ),
    )

    package = await exporter.export(SOURCE_TENANT, request)

    assert [dt.name for dt in package.resources.device_types] == ["Pump"]
    assert package.resources.dashboards == []


@pytest.mark.asyncio
async def test_export_skips_resource_on_unexpected_exception(
    exporter: PackageExporter, source_services: PlatformServices, monkeypatch
):
    ids = seed_source(source_services)
    fetch = source_services.assets.get

    async def get_or_reset(tenant_id, resource_id):
        if resource_id == ids["room"]:
            raise RuntimeError("connection reset")
        return await fetch(tenant_id, resource_id)

    monkeypatch.setattr(source_services.assets, "get", get_or_reset)
    request = tpl_schemas.ExportRequest(
        name="Assets",
        include_resources=tpl_schemas.ResourceSelection(asset_ids=[ids["room"], ids["site"]]),
    )

    package = await exporter.export(SOURCE_TENANT, request)

    assert [asset.name for asset in package.resources.assets] == ["Plant"]


@pytest.mark.asyncio
async def test_export_aborts_when_schema_listing_fails(
    exporter: PackageExporter, source_services: PlatformServices
):
    source_services.schemas.fail_list = True

    with pytest.raises(ServiceError):
        await exporter.export(SOURCE_TENANT, tpl_schemas.ExportRequest(name="Broken"))


@pytest.mark.asyncio
async def test_export_does_not_modify_source_records(
    exporter: PackageExporter, source_services: PlatformServices
):
    ids = seed_source(source_services)
    before = source_services.dashboards.records[ids["dashboard"]].model_dump()

    await exporter.export(SOURCE_TENANT, full_request(ids))

    assert source_services.dashboards.records[ids["dashboard"]].model_dump() == before
