"""Fixtures for CLI tests."""

import pytest
from click.testing import CliRunner

import autoreel.cli
from autoreel.cli import main
from autoreel.config import AutoReelConfig, RenderConfig


@pytest.fixture
def cli_config(db_path, workspace) -> AutoReelConfig:
    return AutoReelConfig(
        render=RenderConfig(temp_directory=workspace.root), database_path=db_path
    )


@pytest.fixture
def invoke(monkeypatch, cli_config, db_conn):
    """Run the CLI against the test database without touching logging."""
    monkeypatch.setattr(autoreel.cli, "_logging_configured", True)
    runner = CliRunner()

    def _invoke(*args: str):
        return runner.invoke(
            main, list(args), obj={"config": cli_config, "db_conn": db_conn}
        )

    return _invoke
