import logging
import signal
import sys
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from s3ctl.core.backend import StorageBackend
from s3ctl.core.bulk import BulkOps
from s3ctl.core.config import ConfigStore
from s3ctl.core.errors import ConfigError, OperationCancelledError, S3CtlError
from s3ctl.core.listing import ListingIterator
from s3ctl.core.models import SignatureVersion, StorageConfig
from s3ctl.core.transfer import TransferEngine
from s3ctl.services.s3.client import S3Backend

logger = logging.getLogger(__name__)

console_err = Console(stderr=True, soft_wrap=True)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def setup_logging(verbose: bool):
    log_level = logging.DEBUG if verbose else logging.ERROR
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@dataclass
class GlobalOptions:
    """Options given before the sub-command, threaded through every call."""

    profile: str | None = None
    verbose: bool = False
    config_path: str | None = None


@dataclass
class S3Context:
    """Everything one command invocation works with."""

    config: StorageConfig
    backend: StorageBackend
    cancel: threading.Event = field(default_factory=threading.Event)
    lister: ListingIterator = field(init=False)
    engine: TransferEngine = field(init=False)
    bulk: BulkOps = field(init=False)

    def __post_init__(self):
        self.lister = ListingIterator(self.backend, cancel=self.cancel)
        self.engine = TransferEngine(self.backend, cancel=self.cancel)
        self.bulk = BulkOps(
            self.backend, engine=self.engine, lister=self.lister, cancel=self.cancel
        )


def build_context(
    options: GlobalOptions, signature_version: SignatureVersion | None = None
) -> S3Context:
    profiles = ConfigStore(options.config_path).load()
    config = profiles.select(options.profile)
    try:
        backend = S3Backend.from_config(config, signature_version)
    except ValueError as e:
        raise ConfigError(str(e), "create client", config.name) from e
    return S3Context(config=config, backend=backend)


@contextmanager
def cancellation_scope(cancel: threading.Event) -> Iterator[None]:
    """
    Routes the first SIGINT to ``cancel``. A second SIGINT raises
    KeyboardInterrupt as usual.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGINT)

    def handle_interrupt(signum, frame):
        console_err.print(
            "\n[bold yellow]Interrupt received, cancelling...[/bold yellow]"
        )
        cancel.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, handle_interrupt)
    try:
        yield
    finally:
        if previous is None:
            previous = signal.default_int_handler
        signal.signal(signal.SIGINT, previous)


def report_error(error: S3CtlError) -> None:
    console_err.print(f"[bold red]Error:[/bold red] {escape(str(error))}")


def run_operation(
    options: GlobalOptions,
    operation: Callable[[S3Context], int | None],
    signature_version: SignatureVersion | None = None,
) -> int:
    """
    Builds the invocation context and runs ``operation`` inside a
    cancellation scope, mapping failures onto exit codes.
    """
    setup_logging(options.verbose)

    try:
        context = build_context(options, signature_version)
    except S3CtlError as e:
        report_error(e)
        return EXIT_FAILURE

    with cancellation_scope(context.cancel):
        try:
            return operation(context) or EXIT_OK
        except OperationCancelledError:
            console_err.print("[bold yellow]Cancelled.[/bold yellow]")
            return EXIT_CANCELLED
        except S3CtlError as e:
            logger.debug("Operation failed", exc_info=True)
            report_error(e)
            return EXIT_FAILURE
