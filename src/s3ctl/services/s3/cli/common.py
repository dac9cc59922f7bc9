import re

import typer
from rich.console import Console

from s3ctl.core.address import resolve, resolve_bucket
from s3ctl.core.errors import AddressError
from s3ctl.core.models import Address
from s3ctl.core.runner import GlobalOptions, report_error

console_err = Console(stderr=True, soft_wrap=True)

DURATION_UNITS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
DURATION_PATTERN = re.compile(r"(\d+)([smhd])")


def options_from(ctx: typer.Context) -> GlobalOptions:
    if isinstance(ctx.obj, GlobalOptions):
        return ctx.obj
    return GlobalOptions()


def parse_address(raw: str) -> Address:
    try:
        return resolve(raw)
    except AddressError as e:
        report_error(e)
        raise typer.Exit(1) from e


def parse_bucket(raw: str) -> str:
    try:
        return resolve_bucket(raw)
    except AddressError as e:
        report_error(e)
        raise typer.Exit(1) from e


def parse_duration(value: str) -> int:
    """
    Converts durations such as ``90``, ``90s``, ``1h30m`` or ``7d`` to seconds.
    """
    text = value.strip().lower()
    if text.isdigit():
        seconds = int(text)
    else:
        position, seconds = 0, 0
        for match in DURATION_PATTERN.finditer(text):
            if match.start() != position:
                break
            seconds += int(match.group(1)) * DURATION_UNITS[match.group(2)]
            position = match.end()
        if position != len(text) or not text:
            raise typer.BadParameter(f"invalid duration '{value}'")

    if seconds <= 0:
        raise typer.BadParameter("duration must be greater than zero")
    return seconds
