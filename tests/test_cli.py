import json
from pathlib import Path

import yaml
from typer.testing import CliRunner

from webapp.cli import app

runner = CliRunner()


def test_ping():
    result = runner.invoke(app, ["ping"])
    assert result.exit_code == 0
    assert "pong" in result.output


def test_openapi_json_to_stdout():
    result = runner.invoke(app, ["openapi", "sample_app:api", "--title", "Sample", "--server", "https://a.example"])
    assert result.exit_code == 0, result.output
    spec = json.loads(result.output)
    assert spec["openapi"] == "3.0.3"
    assert spec["info"]["title"] == "Sample"
    assert spec["servers"] == [{"url": "https://a.example", "description": ""}]
    assert "/users/{id}" in spec["paths"]


def test_openapi_yaml_to_file_with_config(tmp_path: Path):
    config = tmp_path / "openapi.yml"
    config.write_text("title: From file\nversion: 3.0.0\ndescription: Config driven\n", encoding="utf-8")
    out = tmp_path / "out" / "spec.yaml"

    result = runner.invoke(
        app,
        ["openapi", "sample_app", "--config", str(config), "--version", "4.0.0", "--format", "yaml", "--out", str(out)],
    )
    assert result.exit_code == 0, result.output
    assert "Wrote" in result.output

    spec = yaml.safe_load(out.read_text(encoding="utf-8"))
    assert spec["info"] == {"title": "From file", "version": "4.0.0", "description": "Config driven"}
    assert "SampleUser" in spec["components"]["schemas"]


def test_openapi_rejects_bad_references(tmp_path: Path):
    result = runner.invoke(app, ["openapi", "no_such_module_here:api"])
    assert result.exit_code != 0

    result = runner.invoke(app, ["openapi", "sample_app:not_an_api"])
    assert result.exit_code != 0

    result = runner.invoke(app, ["openapi", "sample_app:missing"])
    assert result.exit_code != 0

    bad = tmp_path / "bad.yml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    result = runner.invoke(app, ["openapi", "sample_app:api", "--config", str(bad)])
    assert result.exit_code != 0

    result = runner.invoke(app, ["openapi", "sample_app:api", "--format", "xml"])
    assert result.exit_code != 0


def test_routes_json():
    result = runner.invoke(app, ["routes", "sample_app:api", "--format", "json"])
    assert result.exit_code == 0, result.output
    rows = json.loads(result.output)
    assert {"method": "GET", "regex": "/users/(\\d+)", "path": "/users/{id}", "handler": "ShowUser"} in rows
    assert {r["method"] for r in rows} == {"GET", "POST", "DELETE"}


def test_routes_table():
    result = runner.invoke(app, ["routes", "sample_app:api"])
    assert result.exit_code == 0, result.output
    assert "Routes:" in result.output
    assert "METHOD" in result.output
