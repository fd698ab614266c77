"""Every command exposes --examples and exits cleanly without opening a store."""

from __future__ import annotations

from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from retaildiscount.cli import cli


def _all_command_paths(group: click.Group, prefix: list[str]) -> list[list[str]]:
    paths: list[list[str]] = []
    for name, command in group.commands.items():
        path = [*prefix, name]
        paths.append(path)
        if isinstance(command, click.Group):
            paths.extend(_all_command_paths(command, path))
    return paths


@pytest.mark.usefixtures("_isolated_store")
@pytest.mark.parametrize("path", _all_command_paths(cli, []), ids=" ".join)
def test_examples(cli_runner: CliRunner, path: list[str], tmp_path: Path) -> None:
    result = cli_runner.invoke(cli, [*path, "--examples"])
    assert result.exit_code == 0, result.output
    assert f"Examples for 'cli {' '.join(path)}'" in result.stdout
    assert "retaildiscount" in result.stdout
    assert not (tmp_path / ".retaildiscount").exists()
