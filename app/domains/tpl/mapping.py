# app/domains/tpl/mapping.py

"""
패키지 로컬 ID와 테넌트 실제 ID 사이의 변환 유틸리티 모듈입니다.

- `ResourceKind`: 패키지의 리소스 컬렉션 종류와 표시 이름.
- `LocalIdAllocator`: export 시 실제 ID -> 로컬 ID 발급 (`schema_1`, `deviceType_2` ...).
- `IdentifierMap`: import 시 (종류, 로컬 ID) -> 실제 ID 매핑.
- 위젯 config 안에 포함된 참조(`deviceTypeId` <-> `deviceTypeRef`, `assetId` <-> `assetRef`) 변환.
- 자산 계층을 부모 우선 순서로 정렬.
"""

from collections import defaultdict
from enum import Enum
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from app.domains.tpl.schemas import AssetResource


# =============================================================================
# 1. 리소스 종류
# =============================================================================
class ResourceKind(str, Enum):
    """값은 패키지 JSON의 컬렉션 키와 같습니다."""
    SCHEMA = "schemas"
    DEVICE_TYPE = "deviceTypes"
    DASHBOARD = "dashboards"
    ALERT_RULE = "alertRules"
    ASSET = "assets"
    INTEGRATION = "integrations"

    @property
    def label(self) -> str:
        """오류 메시지용 소문자 이름 (예: 'device type')."""
        return _LABELS[self]

    @property
    def type_name(self) -> str:
        """검증 결과의 resourceType 값 (예: 'DeviceType')."""
        return _TYPE_NAMES[self]

    @property
    def local_id_prefix(self) -> str:
        return _LOCAL_ID_PREFIXES[self]

    @property
    def count_field(self) -> str:
        """ResourceCounts 의 속성 이름."""
        return _COUNT_FIELDS[self]


_LABELS = {
    ResourceKind.SCHEMA: "schema",
    ResourceKind.DEVICE_TYPE: "device type",
    ResourceKind.DASHBOARD: "dashboard",
    ResourceKind.ALERT_RULE: "alert rule",
    ResourceKind.ASSET: "asset",
    ResourceKind.INTEGRATION: "integration",
}

_TYPE_NAMES = {
    ResourceKind.SCHEMA: "Schema",
    ResourceKind.DEVICE_TYPE: "DeviceType",
    ResourceKind.DASHBOARD: "Dashboard",
    ResourceKind.ALERT_RULE: "AlertRule",
    ResourceKind.ASSET: "Asset",
    ResourceKind.INTEGRATION: "Integration",
}

_LOCAL_ID_PREFIXES = {
    ResourceKind.SCHEMA: "schema",
    ResourceKind.DEVICE_TYPE: "deviceType",
    ResourceKind.DASHBOARD: "dashboard",
    ResourceKind.ALERT_RULE: "alert",
    ResourceKind.ASSET: "asset",
    ResourceKind.INTEGRATION: "integration",
}

_COUNT_FIELDS = {
    ResourceKind.SCHEMA: "schemas",
    ResourceKind.DEVICE_TYPE: "device_types",
    ResourceKind.DASHBOARD: "dashboards",
    ResourceKind.ALERT_RULE: "alert_rules",
    ResourceKind.ASSET: "assets",
    ResourceKind.INTEGRATION: "integrations",
}


# =============================================================================
# 2. 위젯 config 내장 참조
# =============================================================================
class EmbeddedReference(NamedTuple):
    id_field: str      # 테넌트 내부에서 사용하는 실제 ID 필드
    ref_field: str     # 패키지에서 사용하는 로컬 ID 필드
    kind: ResourceKind


EMBEDDED_REFERENCES: List[EmbeddedReference] = [
    EmbeddedReference("deviceTypeId", "deviceTypeRef", ResourceKind.DEVICE_TYPE),
    EmbeddedReference("assetId", "assetRef", ResourceKind.ASSET),
]


def localize_widget_config(
    config: Mapping[str, object],
    lookup: Callable[[ResourceKind, str], Optional[str]],
) -> Dict[str, object]:
    """
    실제 ID 필드를 로컬 참조 필드로 바꾼 새 config를 반환합니다.
    export 대상에 없는 ID는 그대로 둡니다.
    """
    localized = dict(config)
    for reference in EMBEDDED_REFERENCES:
        real_id = config.get(reference.id_field)
        if not real_id:
            continue
        local_id = lookup(reference.kind, str(real_id))
        if local_id is None:
            continue
        localized.pop(reference.id_field, None)
        localized[reference.ref_field] = local_id
    return localized


def resolve_widget_config(config: Mapping[str, object], id_map: "IdentifierMap") -> Dict[str, object]:
    """
    로컬 참조 필드를 실제 ID 필드로 바꾼 새 config를 반환합니다 (localize의 역변환).
    해석할 수 없는 참조는 그대로 둡니다.
    """
    resolved = dict(config)
    for reference in EMBEDDED_REFERENCES:
        local_id = config.get(reference.ref_field)
        if not local_id:
            continue
        real_id = id_map.resolve(reference.kind, str(local_id))
        if real_id is None:
            continue
        resolved.pop(reference.ref_field, None)
        resolved[reference.id_field] = real_id
    return resolved


def widget_references(config: Mapping[str, object]) -> List[Tuple[str, str, ResourceKind]]:
    """config 안의 (참조 필드, 로컬 ID, 종류) 목록."""
    found = []
    for reference in EMBEDDED_REFERENCES:
        local_id = config.get(reference.ref_field)
        if local_id:
            found.append((reference.ref_field, str(local_id), reference.kind))
    return found


# =============================================================================
# 3. 로컬 ID 발급 (export)
# =============================================================================
class LocalIdAllocator:
    """
    export 한 번 동안 사용하는 실제 ID -> 로컬 ID 변환표입니다.
    종류별 카운터로 `<prefix>_<n>` 형식의 로컬 ID를 발급합니다.
    """

    def __init__(self) -> None:
        self._counters: Dict[ResourceKind, int] = defaultdict(int)
        self._local_ids: Dict[ResourceKind, Dict[str, str]] = defaultdict(dict)

    def allocate(self, kind: ResourceKind, real_id: Optional[str]) -> str:
        self._counters[kind] += 1
        local_id = f"{kind.local_id_prefix}_{self._counters[kind]}"
        if real_id:
            self._local_ids[kind][str(real_id)] = local_id
        return local_id

    def lookup(self, kind: ResourceKind, real_id: Optional[str]) -> Optional[str]:
        if not real_id:
            return None
        return self._local_ids[kind].get(str(real_id))


# =============================================================================
# 4. 식별자 맵 (import)
# =============================================================================
class IdentifierMap:
    """
    import 한 번 동안 사용하는 로컬 ID -> 실제 ID 매핑입니다.

    로컬 ID는 컬렉션 안에서만 고유하므로 `(종류, 로컬 ID)` 로 기록하고 조회합니다.
    호출자가 넘긴 기존 매핑은 종류 구분이 없는 평면 매핑이며,
    종류별 매핑에 없는 참조를 해석할 때만 사용합니다.
    """

    def __init__(self, seed: Optional[Mapping[str, str]] = None) -> None:
        self._seeded: Dict[str, str] = dict(seed or {})
        self._entries: Dict[Tuple[ResourceKind, str], str] = {}

    def seed(self, entries: Mapping[str, str]) -> None:
        for local_id, real_id in entries.items():
            if local_id:
                self._seeded[local_id] = real_id

    def bind(self, kind: ResourceKind, local_id: str, real_id: str) -> None:
        if local_id:
            self._entries[(kind, local_id)] = real_id

    def resolve(self, kind: ResourceKind, local_id: Optional[str]) -> Optional[str]:
        if not local_id:
            return None
        real_id = self._entries.get((kind, local_id))
        if real_id is None:
            real_id = self._seeded.get(local_id)
        return real_id

    def as_dict(self) -> Dict[str, str]:
        """결과로 돌려주는 평면 매핑. 같은 로컬 ID는 나중에 기록된 값이 남습니다."""
        flat = dict(self._seeded)
        for (_, local_id), real_id in self._entries.items():
            flat[local_id] = real_id
        return flat

    def __contains__(self, key: object) -> bool:
        if isinstance(key, tuple):
            return key in self._entries
        return key in self._seeded or any(local_id == key for _, local_id in self._entries)

    def __len__(self) -> int:
        return len(self.as_dict())


# =============================================================================
# 5. 자산 계층 정렬
# =============================================================================
def sort_assets_by_hierarchy(assets: Sequence[AssetResource]) -> List[AssetResource]:
    """
    부모 자산이 항상 자식보다 먼저 오도록 정렬합니다.

    부모 체인을 따라 올라가며 방문한 자산을 기록하고, 체인을 역순으로 결과에 붙입니다.
    이미 방문한 자산에서 멈추므로 순환이 있어도 종료하며, 각 자산은 정확히 한 번 나옵니다.
    패키지에 없는 부모를 가리키는 자산은 루트로 취급합니다.
    """
    index_by_local_id: Dict[str, int] = {}
    for index, asset in enumerate(assets):
        index_by_local_id.setdefault(asset.local_id, index)

    visited = set()
    ordered: List[AssetResource] = []
    for start in range(len(assets)):
        chain = []
        current: Optional[int] = start
        while current is not None and current not in visited:
            visited.add(current)
            chain.append(current)
            parent_ref = assets[current].parent_ref
            current = index_by_local_id.get(parent_ref) if parent_ref else None
        ordered.extend(assets[index] for index in reversed(chain))
    return ordered
