import os
from contextlib import closing

import typer
from rich.console import Console
from rich.markup import escape

from s3ctl.core.errors import NotFoundError
from s3ctl.core.models import SCHEME, SignatureVersion
from s3ctl.core.presenter import ListingPresenter, console_out
from s3ctl.core.runner import S3Context, run_operation
from s3ctl.core.transfer import local_name
from s3ctl.services.s3.cli.common import (
    options_from,
    parse_address,
    parse_duration,
)

console_err = Console(stderr=True, soft_wrap=True)


def list_command(
    ctx: typer.Context,
    target: str = typer.Argument(None, help="s3://bucket/prefix to list"),
    recursive: bool = typer.Option(
        False, "--recursive", "-r", help="List every object below the prefix"
    ),
    folders_only: bool = typer.Option(
        False, "--folders", "-f", help="Only list folders"
    ),
    full_path: bool = typer.Option(
        False, "--full-path", "-p", help="Show full s3:// paths"
    ),
):
    """
    List buckets, or the objects under a bucket prefix.
    """
    address = None
    if target is not None:
        address = parse_address(target)

    def operation(context: S3Context) -> int:
        presenter = ListingPresenter()

        if address is None or "/" not in target[len(SCHEME) :]:
            buckets = context.backend.list_buckets()
            if not buckets:
                console_err.print("[bold blue]No buckets found[/bold blue]")
                return 0
            presenter.print_buckets(buckets, filter_prefix=target or "")
            return 0

        listing = context.lister.list(
            address.bucket,
            address.key,
            recursive=recursive,
            folders_only=folders_only,
        )
        try:
            with closing(listing) as entries:
                presenter.print_entries(
                    address.bucket, address.key, entries, full_path=full_path
                )
        except NotFoundError:
            bucket = escape(address.bucket)
            console_err.print(
                f"[bold yellow]Bucket {bucket} does not exist[/bold yellow]"
            )
        return 0

    code = run_operation(options_from(ctx), operation)
    if code != 0:
        raise typer.Exit(code)


def put_command(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Local file or directory"),
    destination: str = typer.Argument(..., help="s3://bucket/key or s3://bucket/dir/"),
    public: bool = typer.Option(
        False, "--public", "-p", help="Upload with a public-read ACL"
    ),
):
    """
    Upload a file or a directory tree.
    """
    address = parse_address(destination)

    def operation(context: S3Context) -> int:
        if os.path.isdir(source):
            console_err.print(
                f"Uploading directory {escape(source)} to {escape(address.uri)}..."
            )
            count = context.bulk.upload_directory(
                address.bucket, source, address.key, is_public=public
            )
            console_err.print(f"[bold green]Uploaded {count} files.[/bold green]")
        else:
            context.engine.upload_file(
                address.bucket, source, address.key, is_public=public
            )
            console_err.print("[bold green]File uploaded.[/bold green]")
        return 0

    code = run_operation(options_from(ctx), operation)
    if code != 0:
        raise typer.Exit(code)


def download_command(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="s3://bucket/key or s3://bucket/dir/"),
    destination: str = typer.Argument(".", help="Local file or directory"),
):
    """
    Download an object, or every object under a prefix.
    """
    address = parse_address(source)

    def operation(context: S3Context) -> int:
        if address.is_prefix:
            count = context.bulk.download_directory(
                address.bucket, address.key, destination
            )
            console_err.print(f"[bold green]Downloaded {count} files.[/bold green]")
            return 0

        local_path = destination
        if os.path.isdir(local_path) or local_path.endswith(("/", os.sep)):
            local_path = os.path.join(local_path, local_name(address.key))
        context.engine.get_object(address.bucket, address.key, local_path)
        console_err.print("[bold green]File downloaded.[/bold green]")
        return 0

    code = run_operation(options_from(ctx), operation)
    if code != 0:
        raise typer.Exit(code)


def delete_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="s3://bucket/key or s3://bucket/dir/"),
):
    """
    Delete an object, or recursively delete a folder.
    """
    address = parse_address(target)
    is_folder = address.is_prefix and (address.key != "" or target.endswith("/"))

    def operation(context: S3Context) -> int:
        if is_folder:
            count = context.bulk.delete_directory(address.bucket, address.key)
            console_err.print(f"[bold green]Deleted {count} objects.[/bold green]")
        else:
            context.engine.delete_object(address.bucket, address.key)
            console_err.print("[bold green]Object deleted.[/bold green]")
        return 0

    code = run_operation(options_from(ctx), operation)
    if code != 0:
        raise typer.Exit(code)


def url_command(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="s3://bucket/key"),
    expiry: str = typer.Option(
        "24h", "--expiry", "-e", help="URL lifetime, e.g. 90s, 1h30m, 7d"
    ),
    use_v2: bool = typer.Option(
        False, "--v2", "-2", help="Sign with signature version 2"
    ),
):
    """
    Print a presigned download URL for an object.
    """
    address = parse_address(target)
    ttl = parse_duration(expiry)

    def operation(context: S3Context) -> int:
        url = context.engine.presign_get(address.bucket, address.key, ttl)
        console_out.print(url, markup=False, highlight=False)
        return 0

    signature = SignatureVersion.V2 if use_v2 else None
    code = run_operation(options_from(ctx), operation, signature_version=signature)
    if code != 0:
        raise typer.Exit(code)
