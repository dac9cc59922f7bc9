import typer
from rich.console import Console
from rich.markup import escape

from s3ctl.core.runner import S3Context, run_operation
from s3ctl.services.s3.cli.common import options_from, parse_bucket

console_err = Console(stderr=True, soft_wrap=True)


def make_bucket_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="s3://bucketname"),
):
    """
    Create a bucket. An existing bucket is reported, not treated as an error.
    """
    bucket = parse_bucket(target)

    def operation(context: S3Context) -> int:
        if context.bulk.make_bucket(bucket):
            console_err.print(
                f"[bold green]Bucket '{escape(bucket)}' created.[/bold green]"
            )
        else:
            console_err.print(
                f"[bold blue]Bucket '{escape(bucket)}' already exists.[/bold blue]"
            )
        return 0

    code = run_operation(options_from(ctx), operation)
    if code != 0:
        raise typer.Exit(code)


def remove_bucket_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="s3://bucketname"),
):
    """
    Remove an empty bucket. A bucket that still holds objects is left intact.
    """
    bucket = parse_bucket(target)

    def operation(context: S3Context) -> int:
        if context.bulk.remove_bucket(bucket):
            console_err.print(
                f"[bold green]Bucket '{escape(bucket)}' removed.[/bold green]"
            )
        else:
            console_err.print(
                f"[bold yellow]Bucket '{escape(bucket)}' is not empty, "
                "not removed.[/bold yellow]"
            )
        return 0

    code = run_operation(options_from(ctx), operation)
    if code != 0:
        raise typer.Exit(code)
