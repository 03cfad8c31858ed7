"""Fixtures for CLI interface tests."""

from __future__ import annotations

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from tessera.cli import cli


@pytest.fixture
def cli_in_project(tmp_path: Path, cli_runner: CliRunner) -> Generator[tuple[CliRunner, Path], None, None]:
    """Initialize a tessera project in tmp_path and return (runner, project_root)."""
    original_cwd = os.getcwd()
    os.chdir(str(tmp_path))
    result = cli_runner.invoke(cli, ["init"])
    assert result.exit_code == 0
    yield cli_runner, tmp_path
    os.chdir(original_cwd)


@pytest.fixture
def cli_with_redis(cli_in_project: tuple[CliRunner, Path]) -> tuple[CliRunner, Path]:
    """Project holding capability ``redis`` (L2) with template ``redis-v1``."""
    runner, root = cli_in_project
    r = runner.invoke(
        cli,
        ["register", "redis", "Redis", "-d", "In-memory cache", "-m", "L2", "--phase", "STANDARDIZATION"],
    )
    assert r.exit_code == 0, r.output
    r = runner.invoke(cli, ["add-template", "redis", "redis-v1", "Redis Cache", "-d", "Managed Redis cache cluster"])
    assert r.exit_code == 0, r.output
    return runner, root
