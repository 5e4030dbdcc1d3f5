# tests/test_package_cli.py

import json

import pytest
from typer.testing import CliRunner

from app.domains.tpl import schemas as tpl_schemas
from app.domains.tpl.clients import PlatformServices
from scripts import package_cli
from scripts.package_cli import cli

from tests.conftest import SOURCE_TENANT, TARGET_TENANT
from tests.fakes import make_fake_services, make_full_package, make_package

runner = CliRunner()


def write_package(tmp_path, package) -> str:
    path = tmp_path / "package.json"
    path.write_text(package.model_dump_json(by_alias=True), encoding="utf-8")
    return str(path)


def test_validate_command_accepts_valid_package(tmp_path):
    result = runner.invoke(cli, ["validate", write_package(tmp_path, make_full_package())])
    print(result.output)
    assert result.exit_code == 0


def test_validate_command_reports_errors(tmp_path):
    package = make_full_package()
    package.resources.device_types[0].schema_ref = "schema_404"

    result = runner.invoke(cli, ["validate", write_package(tmp_path, package)])

    assert result.exit_code == 1
    assert "REFERENCE_NOT_FOUND" in result.output


def test_validate_command_rejects_unreadable_file(tmp_path):
    result = runner.invoke(cli, ["validate", str(tmp_path / "missing.json")])
    assert result.exit_code == 2


# =============================================================================
# export / import (외부 서비스는 인메모리 구현으로 대체)
# =============================================================================
@pytest.fixture
def cli_services(monkeypatch) -> PlatformServices:
    services = make_fake_services()
    monkeypatch.setattr(package_cli, "build_platform_services", lambda client: services)
    return services


def test_export_command_writes_package_file(tmp_path, cli_services: PlatformServices):
    schema = cli_services.schemas.add(tpl_schemas.SchemaRecord(name="Telemetry", schema_definition={"type": "object"}))
    device_type = cli_services.device_types.add(tpl_schemas.DeviceTypeRecord(name="Pump", schema_id=schema.id))
    output = tmp_path / "exported.json"

    result = runner.invoke(cli, [
        "export", "--tenant", SOURCE_TENANT, "--name", "CLI Export",
        "--device-type-id", device_type.id, "--output", str(output),
    ])
    print(result.output)

    assert result.exit_code == 0
    written = json.loads(output.read_text(encoding="utf-8"))
    assert written["metadata"]["name"] == "CLI Export"
    assert written["resources"]["deviceTypes"][0]["schemaRef"] == "schema_1"


def test_import_command_writes_mappings(tmp_path, cli_services: PlatformServices):
    mappings_out = tmp_path / "ids.json"

    result = runner.invoke(cli, [
        "import", write_package(tmp_path, make_full_package()),
        "--tenant", TARGET_TENANT, "--mappings-out", str(mappings_out),
    ])
    print(result.output)

    assert result.exit_code == 0
    mappings = json.loads(mappings_out.read_text(encoding="utf-8"))
    assert mappings["deviceType_1"] == cli_services.device_types.by_name("Pump")[0].id
    assert mappings["schema_1"] == cli_services.schemas.by_name("Telemetry")[0].id


def test_import_command_applies_conflict_policy(tmp_path, cli_services: PlatformServices):
    cli_services.schemas.add(tpl_schemas.SchemaRecord(name="Telemetry"))

    result = runner.invoke(cli, [
        "import", write_package(tmp_path, make_full_package()), "--tenant", TARGET_TENANT, "--conflict", "rename",
    ])

    assert result.exit_code == 0
    assert cli_services.schemas.created[0].name.startswith("Telemetry (Imported ")


def test_import_command_reads_existing_mappings(tmp_path, cli_services: PlatformServices):
    package = make_package(assets=[
        tpl_schemas.AssetResource(local_id="asset_5", name="Valve Pit", parent_ref="asset_1"),
    ])
    mappings_in = tmp_path / "previous.json"
    mappings_in.write_text(json.dumps({"asset_1": "ast-existing"}), encoding="utf-8")

    result = runner.invoke(cli, [
        "import", write_package(tmp_path, package), "--tenant", TARGET_TENANT, "--mappings-in", str(mappings_in),
    ])

    assert result.exit_code == 0
    assert cli_services.assets.created[0].parent_id == "ast-existing"


def test_import_command_validates_before_importing(tmp_path, cli_services: PlatformServices):
    package = make_full_package()
    package.resources.device_types[0].schema_ref = "schema_404"

    result = runner.invoke(cli, ["import", write_package(tmp_path, package), "--tenant", TARGET_TENANT])

    assert result.exit_code == 1
    assert "REFERENCE_NOT_FOUND" in result.output
    assert cli_services.schemas.created == []


def test_import_command_exits_on_failed_resource(tmp_path, cli_services: PlatformServices):
    cli_services.schemas.fail_on_create.add("Telemetry")

    result = runner.invoke(cli, ["import", write_package(tmp_path, make_full_package()), "--tenant", TARGET_TENANT])

    assert result.exit_code == 1
    assert "Failed to import schema 'Telemetry'" in result.output


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_import_command_rejects_bad_mappings_file(tmp_path, cli_services: PlatformServices, content):
    mappings_in = tmp_path / "previous.json"
    mappings_in.write_text(content, encoding="utf-8")

    result = runner.invoke(cli, [
        "import", write_package(tmp_path, make_full_package()),
        "--tenant", TARGET_TENANT, "--mappings-in", str(mappings_in),
    ])

    assert result.exit_code == 2
    assert cli_services.schemas.created == []
