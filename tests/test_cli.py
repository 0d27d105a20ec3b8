"""Tests for the click command line."""

import json

import pytest
import yaml
from click.testing import CliRunner

from ctxfile import __version__
from ctxfile.main import cli
from ctxfile.output import DEFAULT_OUTPUT_NAME


@pytest.fixture
def runner():
    return CliRunner()


class TestInit:
    def test_writes_context_file(self, runner, fastapi_repo):
        result = runner.invoke(cli, ["init", str(fastapi_repo), "--ai", "off"])

        assert result.exit_code == 0, result.output
        assert "Context written to" in result.output
        document = yaml.safe_load((fastapi_repo / DEFAULT_OUTPUT_NAME).read_text())
        assert document["project"]["name"] == "Shop API"
        assert document["ai_score"] == "82%"

    def test_refuses_to_overwrite(self, runner, fastapi_repo):
        existing = fastapi_repo / DEFAULT_OUTPUT_NAME
        existing.write_text("keep: me\n")

        result = runner.invoke(cli, ["init", str(fastapi_repo), "--ai", "off"])
        assert result.exit_code == 1
        assert "Use --force to overwrite" in result.output
        assert existing.read_text() == "keep: me\n"

    def test_force_overwrites(self, runner, fastapi_repo):
        existing = fastapi_repo / DEFAULT_OUTPUT_NAME
        existing.write_text("keep: me\n")

        result = runner.invoke(cli, ["init", str(fastapi_repo), "--ai", "off", "--force"])
        assert result.exit_code == 0, result.output
        assert "keep: me" not in existing.read_text()

    def test_stdout(self, runner, fastapi_repo):
        result = runner.invoke(cli, ["init", str(fastapi_repo), "--ai", "off", "--stdout"])

        assert result.exit_code == 0, result.output
        assert yaml.safe_load(result.output)["project"]["type"] == "python-api"
        assert not (fastapi_repo / DEFAULT_OUTPUT_NAME).exists()

    def test_custom_output_and_user_values(self, runner, fastapi_repo, tmp_path):
        out = tmp_path / "ctx.yaml"
        result = runner.invoke(cli, [
            "init", str(fastapi_repo), "--ai", "off",
            "-o", str(out), "--name", "Storefront", "--goal", "Sell things",
        ])

        assert result.exit_code == 0, result.output
        document = yaml.safe_load(out.read_text())
        assert document["project"]["name"] == "Storefront"
        assert document["project"]["goal"] == "Sell things"

    def test_missing_directory(self, runner, tmp_path):
        result = runner.invoke(cli, ["init", str(tmp_path / "nope"), "--ai", "off", "--stdout"])
        assert result.exit_code == 1
        assert "Not a directory" in result.output

    def test_rejects_unknown_provider(self, runner, fastapi_repo):
        result = runner.invoke(cli, ["init", str(fastapi_repo), "--ai", "gpt"])
        assert result.exit_code == 2


class TestScan:
    def test_json(self, runner, fastapi_repo):
        result = runner.invoke(cli, ["scan", str(fastapi_repo), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["primary_language"] == "Python"
        assert data["has_docker"] is True
        assert data["readme"]["name"] == "Shop API"

    def test_table(self, runner, fastapi_repo):
        result = runner.invoke(cli, ["scan", str(fastapi_repo)])
        assert result.exit_code == 0, result.output
        assert "Local Scan" in result.output
        assert "Python" in result.output

    def test_missing_directory(self, runner, tmp_path):
        result = runner.invoke(cli, ["scan", str(tmp_path / "nope")])
        assert result.exit_code == 1
        assert "Not a directory" in result.output


class TestScore:
    def test_slot_breakdown(self, runner, fastapi_repo):
        result = runner.invoke(cli, ["score", str(fastapi_repo)])

        assert result.exit_code == 0, result.output
        assert "python-api" in result.output
        assert "missing" in result.output
        assert "N/A" in result.output
        assert "Score 82%" in result.output

    def test_type_hint(self, runner, tmp_path):
        (tmp_path / "tool.sh").write_text("echo hi\n")
        result = runner.invoke(cli, ["score", str(tmp_path), "--type", "cli"])

        assert result.exit_code == 0, result.output
        assert "(cli)" in result.output


class TestInfoCommands:
    def test_providers(self, runner, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
        result = runner.invoke(cli, ["providers"])

        assert result.exit_code == 0, result.output
        assert "anthropic" in result.output
        assert "ollama" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert f"ctxfile v{__version__}" in result.output

    def test_version_option(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
