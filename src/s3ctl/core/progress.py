import math
import time
from collections.abc import Callable
from typing import Protocol

from rich.console import Console

from s3ctl.core.models import ProgressState

MIN_TERMINAL_WIDTH = 20
DEFAULT_TERMINAL_WIDTH = 50
RESERVED_COLUMNS = 58
MIN_BAR_WIDTH = 10
UNKNOWN_ETA = "--:--:--"

SIZE_UNITS = "KMGTPE"

console_err = Console(stderr=True)


class ProgressObserver(Protocol):
    def observe(self, amount: int) -> None: ...

    def finish(self) -> None: ...


class NullProgress:
    def observe(self, amount: int) -> None:
        pass

    def finish(self) -> None:
        pass


def format_size(size: int, precision: int = 2) -> str:
    """
    Renders a byte count with a 1024-based unit suffix (B, KB, MB, ...).
    """
    if size < 1024:
        return f"{size} B"
    divisor, exponent = 1024, 0
    remaining = size // 1024
    while remaining >= 1024:
        divisor *= 1024
        exponent += 1
        remaining //= 1024
    return f"{size / divisor:.{precision}f} {SIZE_UNITS[exponent]}B"


def format_duration(seconds: float | None) -> str:
    if seconds is None or seconds < 0:
        return UNKNOWN_ETA
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def detect_terminal_width(console: Console | None = None) -> int | None:
    console = console or console_err
    if not console.is_terminal:
        return None
    return console.size.width


class ProgressReporter:
    """
    Renders a single rewritten progress line for one transfer.

    A line is only drawn when the whole-number percentage advances, or when
    it reaches 100. After the 100% line the reporter is completed and any
    further observation is ignored.
    """

    def __init__(
        self,
        total_size: int,
        console: Console | None = None,
        terminal_width: Callable[[], int | None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.console = console or console_err
        self.terminal_width = terminal_width or (
            lambda: detect_terminal_width(self.console)
        )
        self.clock = clock
        now = clock()
        self.state = ProgressState(
            total_size=max(total_size, 0),
            start_time=now,
            last_sample_time=now,
        )
        self.completed = False

    @property
    def percent(self) -> int:
        if self.state.total_size == 0:
            return 100
        ratio = self.state.bytes_transferred / self.state.total_size
        return min(math.floor(ratio * 100), 100)

    def observe(self, amount: int) -> None:
        if self.completed:
            return
        self.state.bytes_transferred += amount
        percent = self.percent
        if percent >= self.state.last_printed_percent + 1 or percent == 100:
            self._render(percent)

    def finish(self) -> None:
        """Draws the final line if the stream never reached the total."""
        if not self.completed:
            self._render(100)

    def bar_width(self) -> int:
        width = self.terminal_width()
        if width is None:
            width = DEFAULT_TERMINAL_WIDTH
        width = max(width, MIN_TERMINAL_WIDTH)
        return max(width - RESERVED_COLUMNS, MIN_BAR_WIDTH)

    def render_line(self, percent: int, rate: float, eta: float | None) -> str:
        width = self.bar_width()
        filled = width * percent // 100
        bar = "[" + "=" * filled + " " * (width - filled) + "]"
        amounts = (
            f"({format_size(self.state.bytes_transferred, 1)}"
            f"/{format_size(self.state.total_size, 1)})"
        )
        speed = f"{format_size(int(rate), 1)}/s"
        eta_text = format_duration(eta)
        return f"{bar} {percent:3d}% {amounts:<23} {speed:<12} ETA:{eta_text}"

    def _render(self, percent: int) -> None:
        state = self.state
        now = self.clock()
        elapsed = now - state.last_sample_time
        delta = state.bytes_transferred - state.last_sample_bytes
        rate = delta / elapsed if elapsed > 0 else 0.0

        remaining = max(state.total_size - state.bytes_transferred, 0)
        eta = remaining / rate if rate > 0 else None
        if remaining == 0:
            eta = 0.0

        self._write("\r" + self.render_line(percent, rate, eta))

        state.last_sample_time = now
        state.last_sample_bytes = state.bytes_transferred
        state.last_printed_percent = percent

        if percent == 100:
            self._write("\n")
            self.completed = True

    def _write(self, text: str) -> None:
        # raw write: Console.print would wrap the line and drop the leading \r
        self.console.file.write(text)
        self.console.file.flush()
