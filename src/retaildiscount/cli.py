"""Root CLI group for retaildiscount with global flags and command registration."""

from __future__ import annotations

import click

from retaildiscount import __version__
from retaildiscount.commands import register_commands
from retaildiscount.commands._context import AppContext
from retaildiscount.config.settings import DiscountSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="retaildiscount")
@click.option("--json", "json_output", is_flag=True, help="Structured JSON output.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Detailed output with debug logging.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.option("--sync", is_flag=True, help="Dispatch plugin events synchronously.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
    sync: bool,
) -> None:
    """retaildiscount: customer-tier and bill-based discounts for retail bills."""
    settings = DiscountSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
        sync=sync,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
