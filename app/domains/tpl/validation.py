# app/domains/tpl/validation.py

"""
패키지의 구조적 / 참조 무결성을 검사하는 검증기 모듈입니다.

검증기는 입력 패키지를 변경하지 않으며, 잘못된 데이터에 대해서도 예외를 던지지 않습니다.
모든 검사를 끝까지 수행하고 오류(import 차단)와 경고(보고만)를 누적합니다.
"""

import re
from typing import Dict, Iterable, List, Optional, Sequence, Set

from app.core.config import settings
from app.domains.tpl.mapping import ResourceKind, widget_references
from app.domains.tpl.schemas import AssetResource, Package, ValidationIssue, ValidationResult

_VERSION_PART = re.compile(r"[0-9]+")


def check_semantic_version(version: str) -> Optional[bool]:
    """
    X.Y.Z 이면 True, X.Y 이면 False(허용하되 경고), 그 외는 None(오류).
    각 구성 요소는 부호 없는 10진수여야 합니다.
    """
    parts = version.split(".")
    if not all(_VERSION_PART.fullmatch(part) for part in parts):
        return None
    if len(parts) == 3:
        return True
    if len(parts) == 2:
        return False
    return None


class PackageValidator:
    """패키지 검증기. 지원하는 포맷 버전 목록은 설정에서 가져옵니다."""

    def __init__(self, supported_schema_versions: Optional[Iterable[str]] = None):
        versions = supported_schema_versions or settings.SUPPORTED_SCHEMA_VERSIONS
        self.supported_schema_versions = frozenset(versions)

    def validate(self, package: Package) -> ValidationResult:
        result = ValidationResult()

        self._check_metadata(package, result)
        local_ids = self._check_collections(package, result)
        self._check_references(package, local_ids, result)
        self._check_asset_hierarchy(package.resources.assets, result)
        self._check_reference_map(package, local_ids, result)

        result.is_valid = not result.errors
        return result

    # -------------------------------------------------------------------------
    # 1. 메타데이터
    # -------------------------------------------------------------------------
    def _check_metadata(self, package: Package, result: ValidationResult) -> None:
        metadata = package.metadata
        if not metadata.name.strip():
            _error(result, "METADATA_NAME_REQUIRED", "Template name is required")

        if not metadata.version.strip():
            _error(result, "METADATA_VERSION_REQUIRED", "Template version is required")
        else:
            canonical = check_semantic_version(metadata.version)
            if canonical is None:
                _error(
                    result, "METADATA_VERSION_INVALID",
                    f"Version '{metadata.version}' must be a semantic version (e.g. 1.0.0)",
                )
            elif not canonical:
                _warning(
                    result, "METADATA_VERSION_NOT_CANONICAL",
                    f"Version '{metadata.version}' should have three components (e.g. {metadata.version}.0)",
                )

        if metadata.schema_version not in self.supported_schema_versions:
            supported = ", ".join(sorted(self.supported_schema_versions))
            _error(
                result, "SCHEMA_VERSION_UNSUPPORTED",
                f"Unsupported schema version '{metadata.schema_version}'. Supported: {supported}",
            )

    # -------------------------------------------------------------------------
    # 2. 컬렉션별 로컬 ID / 필수 필드
    # -------------------------------------------------------------------------
    def _check_collections(self, package: Package, result: ValidationResult) -> Dict[ResourceKind, Set[str]]:
        resources = package.resources
        local_ids = {
            ResourceKind.SCHEMA: self._check_local_ids(ResourceKind.SCHEMA, resources.schemas, result),
            ResourceKind.DEVICE_TYPE: self._check_local_ids(ResourceKind.DEVICE_TYPE, resources.device_types, result),
            ResourceKind.DASHBOARD: self._check_local_ids(ResourceKind.DASHBOARD, resources.dashboards, result),
            ResourceKind.ALERT_RULE: self._check_local_ids(ResourceKind.ALERT_RULE, resources.alert_rules, result),
            ResourceKind.ASSET: self._check_local_ids(ResourceKind.ASSET, resources.assets, result),
            ResourceKind.INTEGRATION: self._check_local_ids(ResourceKind.INTEGRATION, resources.integrations, result),
        }

        for schema in resources.schemas:
            if not schema.name.strip():
                _error(result, "NAME_REQUIRED", "Schema name is required", ResourceKind.SCHEMA, schema.local_id)
            if not schema.schema_definition:
                _error(
                    result, "SCHEMA_DEFINITION_REQUIRED", f"Schema '{schema.name}' has no definition",
                    ResourceKind.SCHEMA, schema.local_id,
                )

        for device_type in resources.device_types:
            if not device_type.name.strip():
                _error(
                    result, "NAME_REQUIRED", "Device type name is required",
                    ResourceKind.DEVICE_TYPE, device_type.local_id,
                )

        for rule in resources.alert_rules:
            if not rule.condition.strip():
                _error(
                    result, "CONDITION_REQUIRED", f"Alert rule '{rule.name}' has no condition",
                    ResourceKind.ALERT_RULE, rule.local_id,
                )

        for integration in resources.integrations:
            if not integration.name.strip():
                _error(
                    result, "NAME_REQUIRED", "Integration name is required",
                    ResourceKind.INTEGRATION, integration.local_id,
                )

        self._check_shared_local_ids(local_ids, result)
        return local_ids

    @staticmethod
    def _check_local_ids(kind: ResourceKind, resources: Sequence, result: ValidationResult) -> Set[str]:
        seen: Set[str] = set()
        for resource in resources:
            local_id = resource.local_id
            if not local_id.strip():
                _error(
                    result, "LOCALID_REQUIRED", f"{kind.type_name} '{resource.name}' has no localId", kind,
                )
                continue
            if local_id in seen:
                _error(result, "LOCALID_DUPLICATE", f"Duplicate localId '{local_id}'", kind, local_id)
            seen.add(local_id)
        return seen

    @staticmethod
    def _check_shared_local_ids(local_ids: Dict[ResourceKind, Set[str]], result: ValidationResult) -> None:
        # import 식별자 맵은 컬렉션 구분 없이 로컬 ID 하나로 키를 잡습니다.
        owners: Dict[str, List[ResourceKind]] = {}
        for kind, ids in local_ids.items():
            for local_id in ids:
                owners.setdefault(local_id, []).append(kind)
        for local_id, kinds in sorted(owners.items()):
            if len(kinds) > 1:
                names = ", ".join(kind.type_name for kind in kinds)
                _warning(
                    result, "LOCALID_SHARED_ACROSS_COLLECTIONS",
                    f"localId '{local_id}' is used by more than one collection ({names})",
                    resource_id=local_id,
                )

    # -------------------------------------------------------------------------
    # 3. 교차 참조
    # -------------------------------------------------------------------------
    def _check_references(
        self, package: Package, local_ids: Dict[ResourceKind, Set[str]], result: ValidationResult
    ) -> None:
        resources = package.resources
        schema_ids = local_ids[ResourceKind.SCHEMA]
        device_type_ids = local_ids[ResourceKind.DEVICE_TYPE]

        for device_type in resources.device_types:
            if device_type.schema_ref and device_type.schema_ref not in schema_ids:
                _error(
                    result, "REFERENCE_NOT_FOUND",
                    f"Device type '{device_type.name}' references unknown schema '{device_type.schema_ref}'",
                    ResourceKind.DEVICE_TYPE, device_type.local_id,
                )

        for rule in resources.alert_rules:
            if rule.device_type_ref and rule.device_type_ref not in device_type_ids:
                _error(
                    result, "REFERENCE_NOT_FOUND",
                    f"Alert rule '{rule.name}' references unknown device type '{rule.device_type_ref}'",
                    ResourceKind.ALERT_RULE, rule.local_id,
                )

        for dashboard in resources.dashboards:
            for widget in dashboard.widgets:
                for ref_field, local_id, kind in widget_references(widget.config):
                    if local_id not in local_ids[kind]:
                        _warning(
                            result, "WIDGET_REFERENCE_NOT_FOUND",
                            f"Widget '{widget.id}' in dashboard '{dashboard.name}' has unresolved {ref_field} '{local_id}'",
                            ResourceKind.DASHBOARD, dashboard.local_id,
                        )

    # -------------------------------------------------------------------------
    # 4. 자산 계층
    # -------------------------------------------------------------------------
    def _check_asset_hierarchy(self, assets: Sequence[AssetResource], result: ValidationResult) -> None:
        parent_of: Dict[str, Optional[str]] = {}
        for asset in assets:
            parent_of.setdefault(asset.local_id, asset.parent_ref)

        for asset in assets:
            if not asset.parent_ref:
                continue
            if asset.parent_ref not in parent_of:
                _warning(
                    result, "PARENT_NOT_IN_PACKAGE",
                    f"Asset '{asset.name}' has parent '{asset.parent_ref}' outside the package; it is imported as a root",
                    ResourceKind.ASSET, asset.local_id,
                )
                continue
            if _reaches_itself(asset, parent_of):
                _error(
                    result, "CIRCULAR_REFERENCE",
                    f"Asset '{asset.name}' is part of a circular parent chain",
                    ResourceKind.ASSET, asset.local_id,
                )

    # -------------------------------------------------------------------------
    # 5. 참조 관계 요약
    # -------------------------------------------------------------------------
    def _check_reference_map(
        self, package: Package, local_ids: Dict[ResourceKind, Set[str]], result: ValidationResult
    ) -> None:
        known: Set[str] = set().union(*local_ids.values())
        for source, targets in package.mappings.references.items():
            if source not in known:
                _warning(
                    result, "MAPPING_SOURCE_UNKNOWN",
                    f"Reference map source '{source}' is not a resource in this package", resource_id=source,
                )
            for target in targets:
                if target not in known:
                    _warning(
                        result, "MAPPING_TARGET_UNKNOWN",
                        f"Reference map target '{target}' (from '{source}') is not a resource in this package",
                        resource_id=target,
                    )


def _reaches_itself(asset: AssetResource, parent_of: Dict[str, Optional[str]]) -> bool:
    """부모 체인을 따라가다 이미 방문한 자산을 다시 만나면 True."""
    visited = {asset.local_id}
    current = asset.parent_ref
    for _ in range(len(parent_of) + 1):
        if not current or current not in parent_of:
            return False
        if current in visited:
            return True
        visited.add(current)
        current = parent_of[current]
    return True


def _error(
    result: ValidationResult, code: str, message: str,
    kind: Optional[ResourceKind] = None, resource_id: Optional[str] = None,
) -> None:
    result.errors.append(
        ValidationIssue(code=code, message=message, resource_type=kind.type_name if kind else None, resource_id=resource_id)
    )


def _warning(
    result: ValidationResult, code: str, message: str,
    kind: Optional[ResourceKind] = None, resource_id: Optional[str] = None,
) -> None:
    result.warnings.append(
        ValidationIssue(code=code, message=message, resource_type=kind.type_name if kind else None, resource_id=resource_id)
    )
