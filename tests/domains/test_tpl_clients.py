# tests/domains/test_tpl_clients.py

"""
외부 서비스 HTTP 클라이언트 테스트입니다. `httpx.MockTransport` 로 서비스 응답을 흉내냅니다.
"""

import json

import httpx
import pytest

from app.core.config import settings
from app.domains.tpl import schemas as tpl_schemas
from app.domains.tpl.clients import DeviceTypeService, SchemaRegistryService, ServiceError

from tests.conftest import TARGET_TENANT

BASE_URL = "http://registry.test"


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_list_sends_tenant_header_and_unwraps_envelope():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"schemas": [
            {"id": "s-1", "name": "Telemetry", "schemaDefinition": {"type": "object"}},
        ]})

    async with make_client(handler) as client:
        records = await SchemaRegistryService(client, BASE_URL + "/").list(TARGET_TENANT)

    assert [(r.id, r.name) for r in records] == [("s-1", "Telemetry")]
    assert records[0].schema_definition == {"type": "object"}
    request = seen[0]
    assert request.headers[settings.TENANT_HEADER] == TARGET_TENANT
    assert request.url.path == "/api/schemas"
    assert request.url.params["take"] == "1000"
    # 공유 클라이언트의 기본 헤더는 바뀌지 않아야 합니다.
    assert settings.TENANT_HEADER not in client.headers


@pytest.mark.asyncio
async def test_get_returns_none_on_404():
    async with make_client(lambda request: httpx.Response(404)) as client:
        assert await DeviceTypeService(client, BASE_URL).get(TARGET_TENANT, "missing") is None


@pytest.mark.asyncio
async def test_error_status_raises_service_error():
    async with make_client(lambda request: httpx.Response(500, text="boom")) as client:
        with pytest.raises(ServiceError) as exc_info:
            await DeviceTypeService(client, BASE_URL).get(TARGET_TENANT, "dt-1")

    assert exc_info.value.status_code == 500
    assert exc_info.value.service == "device"


@pytest.mark.asyncio
async def test_transport_error_raises_service_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(ServiceError) as exc_info:
            await DeviceTypeService(client, BASE_URL).list(TARGET_TENANT)

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_create_posts_camel_case_body_and_returns_id():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"id": "dt-9"})

    record = tpl_schemas.DeviceTypeRecord(id="ignored", name="Pump", schema_id="s-1")
    async with make_client(handler) as client:
        new_id = await DeviceTypeService(client, BASE_URL).create(TARGET_TENANT, record)

    assert new_id == "dt-9"
    assert bodies[0]["name"] == "Pump"
    assert bodies[0]["schemaId"] == "s-1"
    assert "id" not in bodies[0]


@pytest.mark.asyncio
async def test_create_without_id_in_response_fails():
    async with make_client(lambda request: httpx.Response(200, json={})) as client:
        with pytest.raises(ServiceError):
            await DeviceTypeService(client, BASE_URL).create(
                TARGET_TENANT, tpl_schemas.DeviceTypeRecord(name="Pump"))


@pytest.mark.asyncio
async def test_find_by_name_is_case_insensitive():
    payload = [{"id": "dt-1", "name": "Pump"}, {"id": "dt-2", "name": "Valve"}]
    async with make_client(lambda request: httpx.Response(200, json=payload)) as client:
        service = DeviceTypeService(client, BASE_URL)
        found = await service.find_by_name(TARGET_TENANT, "VALVE")
        missing = await service.find_by_name(TARGET_TENANT, "Compressor")

    assert found.id == "dt-2"
    assert missing is None
