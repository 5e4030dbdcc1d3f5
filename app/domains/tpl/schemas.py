# app/domains/tpl/schemas.py

"""
'tpl' 도메인의 Pydantic 모델을 정의하는 모듈입니다.

- 패키지 와이어 모델 (metadata / resources / mappings)
- 외부 플랫폼 서비스가 주고받는 레코드 (실제 ID 사용)
- 검증, import, export, 미리보기 API의 요청 및 응답 모델

파이썬 속성은 snake_case 이며, JSON 필드는 camelCase 별칭으로 직렬화됩니다.
입력은 두 형식 모두 허용합니다.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase 별칭을 사용하는 공통 기반 모델."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# 1. 패키지 메타데이터
# =============================================================================
class PackageMetadata(CamelModel):
    id: Optional[str] = None
    name: str = ""
    version: str = ""
    schema_version: str = ""
    description: str = ""
    author: str = ""
    author_email: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: str = "General"
    license: str = "MIT"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# 2. 패키지 리소스 (로컬 ID로 서로 참조)
# =============================================================================
class SchemaResource(CamelModel):
    local_id: str = ""
    name: str = ""
    version: str = "1.0.0"
    schema_definition: Dict[str, Any] = Field(default_factory=dict)
    description: Optional[str] = None


class FieldMapping(CamelModel):
    field_name: str = ""
    friendly_name: str = ""
    description: Optional[str] = None
    unit: Optional[str] = None
    data_type: str = "String"
    is_queryable: bool = True
    is_visible: bool = True
    field_source: str = "Schema"


class DeviceTypeResource(CamelModel):
    local_id: str = ""
    name: str = ""
    description: Optional[str] = None
    schema_ref: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    field_mappings: List[FieldMapping] = Field(default_factory=list)
    icon: Optional[str] = None
    color: Optional[str] = None


class WidgetPosition(CamelModel):
    x: int = 0
    y: int = 0
    w: int = 4
    h: int = 3


class Widget(CamelModel):
    """대시보드 위젯. config 안의 참조 필드만 export/import 시 변환됩니다."""
    id: str = ""
    type: str = ""
    position: WidgetPosition = Field(default_factory=WidgetPosition)
    config: Dict[str, Any] = Field(default_factory=dict)


class DashboardLayout(CamelModel):
    columns: int = 12
    row_height: int = 60


class DashboardResource(CamelModel):
    local_id: str = ""
    name: str = ""
    description: Optional[str] = None
    layout: DashboardLayout = Field(default_factory=DashboardLayout)
    widgets: List[Widget] = Field(default_factory=list)
    filters: Optional[Dict[str, Any]] = None


class AlertAction(CamelModel):
    type: str = ""
    config: Dict[str, Any] = Field(default_factory=dict)


class AlertRuleResource(CamelModel):
    local_id: str = ""
    name: str = ""
    description: Optional[str] = None
    condition: str = ""
    device_type_ref: Optional[str] = None
    severity: int = 1
    is_enabled: bool = True
    actions: List[AlertAction] = Field(default_factory=list)
    cooldown_minutes: int = 15


class AssetResource(CamelModel):
    local_id: str = ""
    name: str = ""
    type: str = "Equipment"
    parent_ref: Optional[str] = None
    icon: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    location: Optional[Dict[str, Any]] = None


class IntegrationResource(CamelModel):
    """외부 연동 설정 (nexus configuration)."""
    local_id: str = ""
    name: str = ""
    protocol: str = "MQTT"
    configuration: Dict[str, Any] = Field(default_factory=dict)
    auth_type: str = "None"
    is_enabled: bool = True


class PackageResources(CamelModel):
    schemas: List[SchemaResource] = Field(default_factory=list)
    device_types: List[DeviceTypeResource] = Field(default_factory=list)
    dashboards: List[DashboardResource] = Field(default_factory=list)
    alert_rules: List[AlertRuleResource] = Field(default_factory=list)
    assets: List[AssetResource] = Field(default_factory=list)
    integrations: List[IntegrationResource] = Field(default_factory=list)


class PackageMappings(CamelModel):
    """참조 관계 요약 (정보용, import 순서에는 사용하지 않음)."""
    references: Dict[str, List[str]] = Field(default_factory=dict)


class Package(CamelModel):
    metadata: PackageMetadata = Field(default_factory=PackageMetadata)
    resources: PackageResources = Field(default_factory=PackageResources)
    mappings: PackageMappings = Field(default_factory=PackageMappings)


# =============================================================================
# 3. 외부 서비스 레코드 (테넌트의 실제 ID 사용)
# =============================================================================
class SchemaRecord(CamelModel):
    id: Optional[str] = None
    name: str = ""
    version: str = "1.0.0"
    schema_definition: Dict[str, Any] = Field(default_factory=dict)
    description: Optional[str] = None


class DeviceTypeRecord(CamelModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    schema_id: Optional[str] = None
    custom_fields: Optional[Dict[str, Any]] = None
    field_mappings: List[FieldMapping] = Field(default_factory=list)
    icon: Optional[str] = None
    color: Optional[str] = None


class DashboardRecord(CamelModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    layout: DashboardLayout = Field(default_factory=DashboardLayout)
    widgets: List[Widget] = Field(default_factory=list)
    filters: Optional[Dict[str, Any]] = None


class AlertRuleRecord(CamelModel):
    id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    condition: str = ""
    device_type_id: Optional[str] = None
    severity: int = 1
    is_enabled: bool = True
    actions: List[AlertAction] = Field(default_factory=list)
    cooldown_minutes: int = 15


class AssetRecord(CamelModel):
    id: Optional[str] = None
    name: str = ""
    type: str = "Equipment"
    parent_id: Optional[str] = None
    icon: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    location: Optional[Dict[str, Any]] = None


class IntegrationRecord(CamelModel):
    id: Optional[str] = None
    name: str = ""
    protocol: str = "MQTT"
    configuration: Dict[str, Any] = Field(default_factory=dict)
    auth_type: str = "None"
    is_enabled: bool = True


# =============================================================================
# 4. 검증 결과
# =============================================================================
class ValidationIssue(CamelModel):
    code: str
    message: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None


class ValidationResult(CamelModel):
    is_valid: bool = True
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)


# =============================================================================
# 5. Import 요청 / 결과
# =============================================================================
class ConflictResolution(str, Enum):
    """대상 테넌트에 같은 이름의 리소스가 이미 있을 때의 처리 정책."""
    SKIP = "Skip"
    OVERWRITE = "Overwrite"
    RENAME = "Rename"


class ImportOptions(CamelModel):
    conflict_resolution: ConflictResolution = ConflictResolution.SKIP
    # 이전 import에서 얻은 localId -> 실제 ID 매핑 (증분 import용)
    existing_mappings: Optional[Dict[str, str]] = None


class ImportRequest(CamelModel):
    template: Package
    import_options: ImportOptions = Field(default_factory=ImportOptions)


class ResourceCounts(CamelModel):
    schemas: int = 0
    device_types: int = 0
    dashboards: int = 0
    alert_rules: int = 0
    assets: int = 0
    integrations: int = 0

    @property
    def total(self) -> int:
        return (
            self.schemas + self.device_types + self.dashboards
            + self.alert_rules + self.assets + self.integrations
        )


class ImportResult(CamelModel):
    success: bool = True
    imported: ResourceCounts = Field(default_factory=ResourceCounts)
    skipped: Dict[str, List[str]] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    mappings: Dict[str, str] = Field(default_factory=dict)


class ConflictInfo(CamelModel):
    resource_type: str
    resource_name: str
    local_id: str
    conflict_reason: str


class ImportPreview(CamelModel):
    will_import: ResourceCounts = Field(default_factory=ResourceCounts)
    conflicts: List[ConflictInfo] = Field(default_factory=list)


# =============================================================================
# 6. Export 요청
# =============================================================================
class ResourceSelection(CamelModel):
    """export 대상 선택. 스키마는 전체 포함 여부만, 나머지는 ID 목록으로 지정합니다."""
    schemas: bool = True
    device_type_ids: List[str] = Field(default_factory=list)
    dashboard_ids: List[str] = Field(default_factory=list)
    alert_rule_ids: List[str] = Field(default_factory=list)
    asset_ids: List[str] = Field(default_factory=list)
    integration_ids: List[str] = Field(default_factory=list)


class ExportRequest(CamelModel):
    name: str
    version: str = "1.0.0"
    description: str = ""
    author: str = ""
    author_email: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: str = "General"
    include_resources: ResourceSelection = Field(default_factory=ResourceSelection)


# =============================================================================
# 7. 템플릿 라이브러리
# =============================================================================
class TemplateSummary(PackageMetadata):
    """저장된 템플릿 목록 항목."""
    is_public: bool = False
    download_count: int = 0
