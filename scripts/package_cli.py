# scripts/package_cli.py

"""
구성 패키지 운영용 CLI 입니다.

    python -m scripts.package_cli validate package.json
    python -m scripts.package_cli export --tenant <id> --name "Plant A" --device-type-id <id> -o package.json
    python -m scripts.package_cli import package.json --tenant <id> --conflict rename --mappings-out ids.json

외부 서비스 주소는 애플리케이션과 같은 설정(.env / 환경 변수)을 사용합니다.
"""

import asyncio
import json
from typing import Dict, List, Optional

import aiofiles
import httpx
import typer
from pydantic import ValidationError

from app.core.config import settings
from app.domains.tpl import schemas as tpl_schemas
from app.domains.tpl.clients import ServiceError, build_platform_services
from app.domains.tpl.exporter import PackageExporter
from app.domains.tpl.importer import PackageImporter
from app.domains.tpl.validation import PackageValidator

cli = typer.Typer(help="Export, validate and import configuration packages.")


async def read_package(path: str) -> tpl_schemas.Package:
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        raw = await f.read()
    return tpl_schemas.Package.model_validate_json(raw)


async def read_mappings(path: str) -> Dict[str, str]:
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        payload = json.loads(await f.read())
    if not isinstance(payload, dict):
        raise ValueError("mapping file must contain a JSON object of localId -> id")
    return {str(local_id): str(real_id) for local_id, real_id in payload.items()}


async def write_json(path: str, payload: object) -> None:
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(payload, indent=2, ensure_ascii=False))


def print_validation(result: tpl_schemas.ValidationResult) -> None:
    for issue in result.errors:
        print(f"ERROR   [{issue.code}] {issue.message}")
    for issue in result.warnings:
        print(f"WARNING [{issue.code}] {issue.message}")
    state = "유효" if result.is_valid else "유효하지 않음"
    print(f"검증 결과: {state} (오류 {len(result.errors)}건, 경고 {len(result.warnings)}건)")


def load_or_exit(path: str) -> tpl_schemas.Package:
    try:
        return asyncio.run(read_package(path))
    except (OSError, ValidationError) as e:
        print(f"오류: 패키지 파일을 읽을 수 없습니다: {e}")
        raise typer.Exit(code=2)


def load_mappings_or_exit(path: str) -> Dict[str, str]:
    try:
        return asyncio.run(read_mappings(path))
    except (OSError, ValueError) as e:
        print(f"오류: 매핑 파일을 읽을 수 없습니다: {e}")
        raise typer.Exit(code=2)


@cli.command()
def validate(path: str = typer.Argument(..., help="검증할 패키지 JSON 파일")):
    """패키지 파일의 구조와 참조 무결성을 검사합니다."""
    result = PackageValidator().validate(load_or_exit(path))
    print_validation(result)
    if not result.is_valid:
        raise typer.Exit(code=1)


@cli.command()
def export(
    tenant: str = typer.Option(..., "--tenant", "-t", help="원본 테넌트 ID"),
    name: str = typer.Option(..., "--name", "-n", help="패키지 이름"),
    output: str = typer.Option(..., "--output", "-o", help="저장할 JSON 파일 경로"),
    version: str = typer.Option("1.0.0", "--version", help="패키지 버전"),
    schemas: bool = typer.Option(True, "--schemas/--no-schemas", help="스키마 전체 포함 여부"),
    device_type_ids: List[str] = typer.Option([], "--device-type-id"),
    dashboard_ids: List[str] = typer.Option([], "--dashboard-id"),
    alert_rule_ids: List[str] = typer.Option([], "--alert-rule-id"),
    asset_ids: List[str] = typer.Option([], "--asset-id"),
    integration_ids: List[str] = typer.Option([], "--integration-id"),
):
    """테넌트의 리소스를 패키지 파일로 내보냅니다."""
    request = tpl_schemas.ExportRequest(
        name=name,
        version=version,
        include_resources=tpl_schemas.ResourceSelection(
            schemas=schemas,
            device_type_ids=device_type_ids,
            dashboard_ids=dashboard_ids,
            alert_rule_ids=alert_rule_ids,
            asset_ids=asset_ids,
            integration_ids=integration_ids,
        ),
    )

    async def run() -> tpl_schemas.Package:
        async with httpx.AsyncClient(timeout=settings.SERVICE_TIMEOUT_SECONDS) as client:
            package = await PackageExporter(build_platform_services(client)).export(tenant, request)
        await write_json(output, package.model_dump(mode="json", by_alias=True))
        return package

    try:
        package = asyncio.run(run())
    except ServiceError as e:
        print(f"오류: export 실패: {e}")
        raise typer.Exit(code=1)
    print(f"패키지 '{package.metadata.name}' 을(를) {output} 에 저장했습니다.")


@cli.command("import")
def import_(
    path: str = typer.Argument(..., help="import 할 패키지 JSON 파일"),
    tenant: str = typer.Option(..., "--tenant", "-t", help="대상 테넌트 ID"),
    conflict: tpl_schemas.ConflictResolution = typer.Option(
        tpl_schemas.ConflictResolution.SKIP, "--conflict", case_sensitive=False, help="이름 충돌 처리 정책"
    ),
    mappings_in: Optional[str] = typer.Option(None, "--mappings-in", help="이전 import의 ID 매핑 파일"),
    mappings_out: Optional[str] = typer.Option(None, "--mappings-out", help="ID 매핑을 저장할 파일"),
):
    """패키지를 검증한 뒤 대상 테넌트로 가져옵니다."""
    package = load_or_exit(path)
    validation = PackageValidator().validate(package)
    if not validation.is_valid:
        print_validation(validation)
        raise typer.Exit(code=1)

    existing = load_mappings_or_exit(mappings_in) if mappings_in else None

    async def run() -> tpl_schemas.ImportResult:
        options = tpl_schemas.ImportOptions(conflict_resolution=conflict, existing_mappings=existing)
        async with httpx.AsyncClient(timeout=settings.SERVICE_TIMEOUT_SECONDS) as client:
            result = await PackageImporter(build_platform_services(client)).import_package(tenant, package, options)
        if mappings_out:
            await write_json(mappings_out, result.mappings)
        return result

    result = asyncio.run(run())
    print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    if not result.success:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    cli()
