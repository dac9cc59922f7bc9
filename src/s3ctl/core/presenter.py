from collections.abc import Iterable
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from s3ctl.core.config import ProfileFile, mask_secret
from s3ctl.core.models import SCHEME, BucketInfo, ListingEntry, StorageConfig
from s3ctl.core.progress import format_size

console_out = Console(soft_wrap=True)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_row(modified: str, size: str, path: str) -> str:
    return f"{modified:<22} {size:<11} {path}"


def display_prefix(bucket: str, prefix: str) -> str:
    """
    The part of the full object path hidden when full paths are off: the
    listed prefix up to and including its last '/'.
    """
    full = f"{SCHEME}{bucket}/{prefix}"
    return full[: full.rfind("/") + 1]


class ListingPresenter:
    def __init__(self, console: Console | None = None):
        self.console = console or console_out

    def print_entries(
        self,
        bucket: str,
        prefix: str,
        entries: Iterable[ListingEntry],
        full_path: bool = False,
    ) -> int:
        """
        Prints one fixed-width row per entry and returns the row count.
        A failing entry raises its error before anything else is printed.
        """
        hidden = display_prefix(bucket, prefix)
        count = 0
        for entry in entries:
            entry.unwrap()
            if entry.is_prefix_marker and entry.key == prefix:
                continue

            path = f"{SCHEME}{bucket}/{entry.key}"
            if not full_path:
                path = path.replace(hidden, "", 1)

            modified, size = "", "DIR"
            if not entry.is_prefix_marker:
                size = format_size(entry.size)
                if entry.last_modified is not None:
                    modified = entry.last_modified.strftime(TIMESTAMP_FORMAT)

            self._emit(format_row(modified, size, path))
            count += 1
        return count

    def print_buckets(self, buckets: Iterable[BucketInfo], filter_prefix: str = "") -> int:
        count = 0
        for bucket in buckets:
            uri = f"{SCHEME}{bucket.name}/"
            if uri.startswith(filter_prefix):
                self._emit(format_row("", "BUCKET", uri))
                count += 1
        return count

    def _emit(self, line: str) -> None:
        self.console.print(line, markup=False, highlight=False)


class ProfilePresenter:
    def __init__(self, console: Console | None = None):
        self.console = console or console_out

    def print_profile(self, profile: StorageConfig, config_path: Path) -> None:
        table = Table(title=f"Profile: {profile.name}", show_header=False)
        table.add_column("Setting")
        table.add_column("Value")
        table.add_row("Endpoint", profile.endpoint)
        table.add_row("Access Key ID", profile.access_key_id)
        table.add_row("Secret Access Key", mask_secret(profile.secret_access_key))
        table.add_row("Use SSL", str(profile.use_ssl))
        table.add_row("Signature", str(profile.signature_version))
        table.add_row("Region", profile.region)
        table.add_row("Config File", str(config_path))
        self.console.print(table)

    def print_profiles(self, profiles: ProfileFile, active: str) -> None:
        self.console.print("\nAvailable profiles:")
        for name in profiles.services:
            if name == active:
                self.console.print(f"* {escape(name)} [green](current)[/green]")
            else:
                self.console.print(f"  {name}", markup=False)
