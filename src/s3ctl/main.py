"""
Entry Point.
This is the root of the CLI command tree. It should not contain business logic.
It registers the object/bucket commands and the config sub-application.
"""

from importlib.metadata import PackageNotFoundError, version

import typer

from s3ctl.cli import config_app, info_command
from s3ctl.core.runner import GlobalOptions
from s3ctl.services.s3.cli import register_commands

app = typer.Typer(
    help="s3ctl: filesystem-style commands for S3-compatible object storage",
    no_args_is_help=True,
)


def version_callback(value: bool):
    if not value:
        return
    try:
        typer.echo(version("s3ctl"))
    except PackageNotFoundError:
        typer.echo("unknown")
    raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    profile: str = typer.Option(
        None, "--profile", help="Profile to use instead of the current one"
    ),
    config_path: str = typer.Option(
        None, "--config", help="Config file (default: ~/.s3ctl.json)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
):
    ctx.obj = GlobalOptions(profile=profile, verbose=verbose, config_path=config_path)


register_commands(app)
app.command("info")(info_command)
app.add_typer(config_app, name="config")

if __name__ == "__main__":
    app()
