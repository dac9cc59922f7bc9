import logging
import queue
import threading
from collections.abc import Iterator

from s3ctl.core.backend import StorageBackend
from s3ctl.core.errors import BackendError, OperationCancelledError, S3CtlError
from s3ctl.core.models import ListingEntry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 1000
POLL_INTERVAL = 0.1

_DONE = object()


class ListingIterator:
    """
    Lazily lists a remote prefix.

    Backend pagination runs on one background thread that publishes entries
    to a single-slot queue, so the network fetch stays one entry ahead of
    the consumer. Entries are delivered in backend order. A failure is
    delivered as a final ``ListingEntry`` carrying ``err``.
    """

    def __init__(
        self,
        backend: StorageBackend,
        cancel: threading.Event | None = None,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.backend = backend
        self.cancel = cancel or threading.Event()
        self.poll_interval = poll_interval

    def list(
        self,
        bucket: str,
        prefix: str = "",
        recursive: bool = False,
        folders_only: bool = False,
        page_limit: int = DEFAULT_PAGE_LIMIT,
    ) -> Iterator[ListingEntry]:
        channel: queue.Queue = queue.Queue(maxsize=1)
        stop = threading.Event()
        worker = threading.Thread(
            target=self._produce,
            args=(channel, stop, bucket, prefix, recursive, folders_only, page_limit),
            name=f"s3ctl-list-{bucket}",
            daemon=True,
        )
        worker.start()

        try:
            while True:
                item = self._receive(channel, bucket, prefix)
                if item is _DONE:
                    return
                yield item
                if item.err is not None:
                    return
        finally:
            stop.set()
            self._drain(channel)
            worker.join(timeout=self.poll_interval * 10)

    def has_entries(self, bucket: str, prefix: str = "") -> bool:
        """
        Returns True when at least one entry exists under ``prefix``.

        Raises the listing error instead of treating it as "not empty".
        """
        entries = self.list(bucket, prefix, recursive=True, page_limit=1)
        try:
            first = next(entries, None)
        finally:
            entries.close()

        if first is None:
            return False
        first.unwrap()
        return True

    def _produce(
        self,
        channel: queue.Queue,
        stop: threading.Event,
        bucket: str,
        prefix: str,
        recursive: bool,
        folders_only: bool,
        page_limit: int,
    ) -> None:
        try:
            for entry in self.backend.list_objects(
                bucket, prefix, recursive, page_limit
            ):
                if folders_only and not entry.is_prefix_marker:
                    continue
                if not self._publish(channel, stop, entry):
                    return
        except S3CtlError as e:
            self._publish(channel, stop, ListingEntry.failure(prefix, e))
            return
        except Exception as e:
            logger.error("Unexpected error listing %s/%s: %s", bucket, prefix, e)
            failure = BackendError(str(e), "list", f"{bucket}/{prefix}")
            self._publish(channel, stop, ListingEntry.failure(prefix, failure))
            return

        self._publish(channel, stop, _DONE)

    def _publish(self, channel: queue.Queue, stop: threading.Event, item) -> bool:
        while not (stop.is_set() or self.cancel.is_set()):
            try:
                channel.put(item, timeout=self.poll_interval)
                return True
            except queue.Full:
                continue
        return False

    def _receive(self, channel: queue.Queue, bucket: str, prefix: str):
        while True:
            if self.cancel.is_set():
                raise OperationCancelledError("list", f"{bucket}/{prefix}")
            try:
                return channel.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

    @staticmethod
    def _drain(channel: queue.Queue) -> None:
        while True:
            try:
                channel.get_nowait()
            except queue.Empty:
                return
