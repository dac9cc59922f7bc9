import typer
from rich.console import Console
from rich.markup import escape

from s3ctl.core.config import ConfigStore
from s3ctl.core.errors import S3CtlError
from s3ctl.core.presenter import ProfilePresenter
from s3ctl.core.runner import report_error, setup_logging
from s3ctl.services.s3.cli.common import options_from

app = typer.Typer(help="Manage connection profiles")
console_err = Console(stderr=True, soft_wrap=True)


def store_for(ctx: typer.Context) -> ConfigStore:
    options = options_from(ctx)
    setup_logging(options.verbose)
    return ConfigStore(options.config_path)


@app.command("init")
def init_command(ctx: typer.Context):
    """
    Create a template config file; an existing file is never overwritten.
    """
    store = store_for(ctx)
    try:
        created = store.create_default()
    except S3CtlError as e:
        report_error(e)
        raise typer.Exit(1) from e

    path = escape(str(store.path))
    if created:
        console_err.print(
            f"[bold green]Created config file {path}[/bold green], "
            "edit it before use."
        )
    else:
        console_err.print(f"[bold blue]Config file already exists: {path}[/bold blue]")


@app.command("list")
def list_command(ctx: typer.Context):
    """
    Show the active profile and every available profile name.
    """
    options = options_from(ctx)
    store = store_for(ctx)
    try:
        profiles = store.load()
        active = profiles.select(options.profile)
    except S3CtlError as e:
        report_error(e)
        raise typer.Exit(1) from e

    presenter = ProfilePresenter()
    presenter.print_profile(active, store.path)
    presenter.print_profiles(profiles, active.name)


@app.command("use")
def use_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Profile name to make current"),
):
    """
    Make a profile the current one.
    """
    store = store_for(ctx)
    try:
        store.use(name)
    except S3CtlError as e:
        report_error(e)
        raise typer.Exit(1) from e
    console_err.print(f"[bold green]Switched to profile {escape(name)}[/bold green]")


def info_command(ctx: typer.Context):
    """
    Show the profile the next command will use.
    """
    options = options_from(ctx)
    store = store_for(ctx)
    try:
        active = store.load().select(options.profile)
    except S3CtlError as e:
        report_error(e)
        raise typer.Exit(1) from e
    ProfilePresenter().print_profile(active, store.path)
