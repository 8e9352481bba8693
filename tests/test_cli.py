"""Tests for the augment-proxy CLI."""

import json

import pytest
from click.testing import CliRunner

from augment_proxy.cli import check_config, cli, serve


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def valid_config(tmp_path):
    path = tmp_path / "augment.yaml"
    path.write_text(
        "augment:\n"
        "  enabled: true\n"
        "  openrouter_auth: sk-or-test\n"
        "  additional_instructions:\n"
        "    - One\n"
        "    - Two\n"
    )
    return str(path)


@pytest.fixture
def invalid_config(tmp_path):
    path = tmp_path / "augment.yaml"
    path.write_text("augment:\n  enabled: true\n")
    return str(path)


class TestCheckConfig:
    """Tests for augment-proxy check-config."""

    def test_valid_config(self, runner, valid_config):
        """A valid file prints a summary and exits 0."""
        result = runner.invoke(cli, ["check-config", valid_config])

        assert result.exit_code == 0
        assert "Config OK" in result.output
        assert "enabled" in result.output
        assert "x-agent=claude-code" in result.output

    def test_missing_auth(self, runner, invalid_config):
        """An enabled policy without auth fails."""
        result = runner.invoke(cli, ["check-config", invalid_config])

        assert result.exit_code == 1
        assert "openrouter_auth is required" in result.output

    def test_json_output(self, runner, valid_config):
        """--json prints a machine-readable report."""
        result = runner.invoke(check_config, [valid_config, "--json"])

        assert result.exit_code == 0
        report = json.loads(result.output)
        assert report["valid"] is True
        assert report["errors"] == []
        assert report["enabled"] is True

    def test_malformed_file(self, runner, tmp_path):
        """Unknown settings are reported as errors."""
        path = tmp_path / "augment.yaml"
        path.write_text("augment:\n  openrouter_token: sk\n")

        result = runner.invoke(cli, ["check-config", str(path)])

        assert result.exit_code == 1
        assert "openrouter_token" in result.output

    def test_nonexistent_path(self, runner, tmp_path):
        """Missing files are rejected by argument validation."""
        result = runner.invoke(cli, ["check-config", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 2


class TestServe:
    """Tests for augment-proxy serve argument handling."""

    def test_invalid_policy_exits_before_serving(self, runner, invalid_config, monkeypatch):
        """Serve refuses to start with an invalid policy."""
        monkeypatch.setattr("augment_proxy.logging_config.configure_logging", lambda **kwargs: None)
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)

        result = runner.invoke(serve, ["--config", invalid_config])

        assert result.exit_code == 1
        assert "openrouter_auth is required" in result.output

    def test_unreadable_config_exits(self, runner, tmp_path, monkeypatch):
        """Serve reports configuration errors."""
        monkeypatch.setattr("augment_proxy.logging_config.configure_logging", lambda **kwargs: None)

        result = runner.invoke(serve, ["--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Cannot read config file" in result.output
