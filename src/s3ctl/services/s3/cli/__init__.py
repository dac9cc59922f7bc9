import typer

from s3ctl.services.s3.cli import buckets, objects

COMMANDS = {
    "ls": objects.list_command,
    "put": objects.put_command,
    "download": objects.download_command,
    "del": objects.delete_command,
    "url": objects.url_command,
    "mb": buckets.make_bucket_command,
    "rb": buckets.remove_bucket_command,
}


def register_commands(app: typer.Typer) -> None:
    for name, command in COMMANDS.items():
        app.command(name)(command)
