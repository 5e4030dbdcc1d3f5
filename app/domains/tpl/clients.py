# app/domains/tpl/clients.py

"""
외부 플랫폼 서비스(스키마 레지스트리, 디바이스, 대시보드, 알림, 디지털 트윈, 연동 설정)에
접근하는 클라이언트 모듈입니다.

exporter / importer 는 `ResourceService` 인터페이스에만 의존하며,
운영 환경에서는 공유 `httpx.AsyncClient` 를 사용하는 HTTP 구현을 주입합니다.
모든 요청은 테넌트 헤더를 요청 단위로 전달하며 클라이언트 기본 헤더는 변경하지 않습니다.
"""

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, List, Optional, Protocol, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.domains.tpl import schemas as tpl_schemas

logger = logging.getLogger(__name__)

RecordType = TypeVar("RecordType", bound=BaseModel)


class ServiceError(Exception):
    """외부 서비스 호출 실패 (전송 오류, 2xx 외 응답, 해석할 수 없는 응답)."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.message = message
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class ResourceService(Protocol[RecordType]):
    """exporter / importer 가 사용하는 최소 리소스 서비스 인터페이스."""

    async def get(self, tenant_id: str, resource_id: str) -> Optional[RecordType]: ...

    async def list(self, tenant_id: str) -> List[RecordType]: ...

    async def find_by_name(self, tenant_id: str, name: str) -> Optional[RecordType]: ...

    async def create(self, tenant_id: str, record: RecordType) -> str: ...

    async def update(self, tenant_id: str, resource_id: str, record: RecordType) -> None: ...


# =============================================================================
# 1. HTTP 구현 기반 클래스
# =============================================================================
class HttpResourceService(Generic[RecordType]):
    """
    REST 리소스 하나에 대한 공통 HTTP 클라이언트입니다.
    하위 클래스는 서비스 이름, 경로, 레코드 타입, 목록 응답의 봉투 키만 지정합니다.
    """
    service_name: ClassVar[str] = "service"
    resource_path: ClassVar[str] = ""
    record_type: ClassVar[Type[BaseModel]]
    list_key: ClassVar[Optional[str]] = None
    list_params: ClassVar[Dict[str, Any]] = {}

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    def _url(self, resource_id: Optional[str] = None) -> str:
        url = f"{self.base_url}{self.resource_path}"
        return f"{url}/{resource_id}" if resource_id else url

    async def _request(self, method: str, url: str, tenant_id: str, **kwargs: Any) -> httpx.Response:
        headers = {settings.TENANT_HEADER: tenant_id}
        logger.debug("%s %s 호출 (tenant=%s)", method, url, tenant_id)
        try:
            return await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ServiceError(self.service_name, f"{method} {url} failed: {e}") from e

    def _ensure_success(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        raise ServiceError(
            self.service_name,
            f"{response.request.method} {response.request.url} returned {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(self.service_name, f"invalid JSON response: {e}", response.status_code) from e

    def _to_record(self, payload: Any) -> RecordType:
        try:
            return self.record_type.model_validate(payload)
        except ValidationError as e:
            raise ServiceError(self.service_name, f"unexpected {self.record_type.__name__} payload: {e}") from e

    async def get(self, tenant_id: str, resource_id: str) -> Optional[RecordType]:
        """ID로 조회합니다. 404는 None을 반환합니다."""
        response = await self._request("GET", self._url(resource_id), tenant_id)
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        self._ensure_success(response)
        return self._to_record(self._decode(response))

    async def list(self, tenant_id: str) -> List[RecordType]:
        response = await self._request("GET", self._url(), tenant_id, params=self.list_params or None)
        self._ensure_success(response)
        payload = self._decode(response)
        if self.list_key is not None:
            if not isinstance(payload, dict):
                raise ServiceError(self.service_name, f"expected an object with '{self.list_key}'")
            payload = payload.get(self.list_key) or []
        if not isinstance(payload, list):
            raise ServiceError(self.service_name, "expected a list response")
        return [self._to_record(item) for item in payload]

    async def find_by_name(self, tenant_id: str, name: str) -> Optional[RecordType]:
        """대소문자를 구분하지 않고 이름이 같은 첫 번째 레코드를 찾습니다."""
        wanted = name.casefold()
        for record in await self.list(tenant_id):
            if record.name.casefold() == wanted:
                return record
        return None

    async def create(self, tenant_id: str, record: RecordType) -> str:
        body = record.model_dump(mode="json", by_alias=True, exclude={"id"})
        response = await self._request("POST", self._url(), tenant_id, json=body)
        self._ensure_success(response)
        created = self._decode(response)
        new_id = created.get("id") if isinstance(created, dict) else None
        if not new_id:
            raise ServiceError(self.service_name, "create response did not contain an id", response.status_code)
        return str(new_id)

    async def update(self, tenant_id: str, resource_id: str, record: RecordType) -> None:
        body = record.model_dump(mode="json", by_alias=True, exclude={"id"})
        response = await self._request("PUT", self._url(resource_id), tenant_id, json=body)
        self._ensure_success(response)


# =============================================================================
# 2. 서비스별 클라이언트
# =============================================================================
class SchemaRegistryService(HttpResourceService[tpl_schemas.SchemaRecord]):
    service_name = "schema-registry"
    resource_path = "/api/schemas"
    record_type = tpl_schemas.SchemaRecord
    list_key = "schemas"
    list_params = {"take": 1000}


class DeviceTypeService(HttpResourceService[tpl_schemas.DeviceTypeRecord]):
    service_name = "device"
    resource_path = "/api/devicetype"
    record_type = tpl_schemas.DeviceTypeRecord


class DashboardService(HttpResourceService[tpl_schemas.DashboardRecord]):
    service_name = "dashboard"
    resource_path = "/api/dashboards"
    record_type = tpl_schemas.DashboardRecord


class AlertRuleService(HttpResourceService[tpl_schemas.AlertRuleRecord]):
    service_name = "alerts"
    resource_path = "/api/alert-rules"
    record_type = tpl_schemas.AlertRuleRecord


class AssetService(HttpResourceService[tpl_schemas.AssetRecord]):
    service_name = "digital-twin"
    resource_path = "/api/assets"
    record_type = tpl_schemas.AssetRecord


class IntegrationService(HttpResourceService[tpl_schemas.IntegrationRecord]):
    service_name = "nexus-configuration"
    resource_path = "/api/nexusconfiguration"
    record_type = tpl_schemas.IntegrationRecord


@dataclass
class PlatformServices:
    """exporter / importer 가 사용하는 서비스 묶음."""
    schemas: ResourceService[tpl_schemas.SchemaRecord]
    device_types: ResourceService[tpl_schemas.DeviceTypeRecord]
    dashboards: ResourceService[tpl_schemas.DashboardRecord]
    alert_rules: ResourceService[tpl_schemas.AlertRuleRecord]
    assets: ResourceService[tpl_schemas.AssetRecord]
    integrations: ResourceService[tpl_schemas.IntegrationRecord]


def build_platform_services(client: httpx.AsyncClient) -> PlatformServices:
    """설정된 서비스 주소로 HTTP 클라이언트 묶음을 만듭니다."""
    return PlatformServices(
        schemas=SchemaRegistryService(client, settings.SCHEMA_REGISTRY_URL),
        device_types=DeviceTypeService(client, settings.DEVICE_API_URL),
        dashboards=DashboardService(client, settings.DASHBOARD_API_URL),
        alert_rules=AlertRuleService(client, settings.ALERTS_API_URL),
        assets=AssetService(client, settings.DIGITAL_TWIN_API_URL),
        integrations=IntegrationService(client, settings.NEXUS_CONFIGURATION_API_URL),
    )
