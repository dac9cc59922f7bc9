import logging
import mimetypes
import os
import posixpath
import shutil
import tempfile
import threading
from collections.abc import Callable
from typing import BinaryIO

from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console

from s3ctl.core.address import join_key
from s3ctl.core.backend import StorageBackend
from s3ctl.core.errors import AddressError, LocalIOError, OperationCancelledError
from s3ctl.core.models import TransferUnit
from s3ctl.core.progress import ProgressObserver, ProgressReporter
from s3ctl.services.s3.client import translate_error

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
CHUNK_SIZE = 64 * 1024

console_err = Console(stderr=True, soft_wrap=True)


def guess_content_type(name: str) -> str:
    content_type, _ = mimetypes.guess_type(name.lower())
    return content_type or DEFAULT_CONTENT_TYPE


class CountingReader:
    """
    Read side counting adapter. Forwards every chunk size to the observer and
    stops the transfer between chunks once cancellation is requested.
    """

    def __init__(
        self,
        raw: BinaryIO,
        observer: ProgressObserver,
        cancel: threading.Event | None = None,
    ):
        self._raw = raw
        self._observer = observer
        self._cancel = cancel

    def read(self, size: int = -1) -> bytes:
        if self._cancel is not None and self._cancel.is_set():
            raise OperationCancelledError("read")
        chunk = self._raw.read(size)
        if chunk:
            self._observer.observe(len(chunk))
        return chunk

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        return self._raw.seek(offset, whence)

    def tell(self) -> int:
        return self._raw.tell()

    def seekable(self) -> bool:
        return self._raw.seekable()

    def readable(self) -> bool:
        return True


class CountingWriter:
    """Write side counting adapter."""

    def __init__(
        self,
        raw: BinaryIO,
        observer: ProgressObserver,
        cancel: threading.Event | None = None,
    ):
        self._raw = raw
        self._observer = observer
        self._cancel = cancel

    def write(self, data: bytes) -> int:
        if self._cancel is not None and self._cancel.is_set():
            raise OperationCancelledError("write")
        written = self._raw.write(data)
        self._observer.observe(len(data))
        return written


class TransferEngine:
    """
    Moves single objects between the local filesystem and the backend.

    Filesystem failures surface as ``LocalIOError``; backend failures keep
    their ``NotFoundError``/``BackendError`` type. Nothing is retried here.
    """

    def __init__(
        self,
        backend: StorageBackend,
        cancel: threading.Event | None = None,
        progress_factory: Callable[[int], ProgressObserver] = ProgressReporter,
        content_type_for: Callable[[str], str] = guess_content_type,
        console: Console | None = None,
    ):
        self.backend = backend
        self.cancel = cancel or threading.Event()
        self.progress_factory = progress_factory
        self.content_type_for = content_type_for
        self.console = console or console_err

    def put_object(
        self,
        bucket: str,
        key: str,
        source_stream: BinaryIO,
        size: int,
        is_public: bool = False,
        content_type: str | None = None,
    ) -> None:
        self._check_cancelled("put", f"{bucket}/{key}")
        progress = self.progress_factory(size)
        reader = CountingReader(source_stream, progress, self.cancel)
        self.backend.put_object(
            bucket,
            key,
            reader,
            size,
            content_type or self.content_type_for(key),
            is_public,
        )
        progress.finish()

    def upload_file(
        self, bucket: str, source_path: str, key: str = "", is_public: bool = False
    ) -> TransferUnit:
        """
        Uploads one local file. An empty key, or a key ending with '/',
        receives the file's base name.
        """
        if not key or key.endswith("/"):
            key = join_key(key, os.path.basename(source_path))

        self._check_cancelled("put", source_path)
        try:
            source = open(source_path, "rb")
        except OSError as e:
            raise LocalIOError(
                e.strerror or str(e), "open", source_path, cause=e
            ) from e

        with source:
            try:
                size = os.fstat(source.fileno()).st_size
            except OSError as e:
                raise LocalIOError(
                    e.strerror or str(e), "stat", source_path, cause=e
                ) from e

            unit = TransferUnit(
                source_ref=source_path,
                dest_ref=f"{bucket}/{key}",
                size_hint=size,
                is_public=is_public,
            )
            self.console.print(
                f"Uploading {source_path} to {unit.dest_ref}...",
                markup=False,
                highlight=False,
            )
            logger.debug("put %s (%d bytes, public=%s)", unit.dest_ref, size, is_public)
            self.put_object(
                bucket,
                key,
                source,
                size,
                is_public,
                content_type=self.content_type_for(source_path),
            )
        return unit

    def get_object(self, bucket: str, key: str, dest_path: str) -> TransferUnit:
        """
        Downloads one object into ``dest_path``, creating parent directories.

        The object is stat'd first so a missing key never creates a file.
        Bytes land in a temporary file beside ``dest_path`` that replaces it
        only once the stream is complete; on any failure an existing file at
        ``dest_path`` is left as it was.
        """
        target = f"{bucket}/{key}"
        self._check_cancelled("get", target)
        info = self.backend.stat_object(bucket, key)
        unit = TransferUnit(source_ref=target, dest_ref=dest_path, size_hint=info.size)

        body, size = self.backend.get_object(bucket, key)
        try:
            self._receive(body, size or info.size, target, dest_path)
        finally:
            close = getattr(body, "close", None)
            if close is not None:
                close()
        return unit

    def _receive(self, body: BinaryIO, size: int, target: str, dest_path: str) -> None:
        parent = os.path.dirname(os.path.abspath(dest_path))
        try:
            os.makedirs(parent, exist_ok=True)
            partial = tempfile.NamedTemporaryFile(
                dir=parent, prefix=".s3ctl-", suffix=".part", delete=False
            )
        except OSError as e:
            raise LocalIOError(
                e.strerror or str(e), "create", dest_path, cause=e
            ) from e

        self.console.print(
            f"Downloading {target} to {dest_path}...", markup=False, highlight=False
        )
        logger.debug("get %s (%d bytes)", target, size)

        progress = self.progress_factory(size)
        try:
            try:
                with partial:
                    shutil.copyfileobj(
                        body, CountingWriter(partial, progress, self.cancel), CHUNK_SIZE
                    )
                os.replace(partial.name, dest_path)
            except (BotoCoreError, ClientError) as e:
                raise translate_error(e, "get", target) from e
            except OSError as e:
                raise LocalIOError(
                    e.strerror or str(e), "write", dest_path, cause=e
                ) from e
        except BaseException:
            discard(partial.name)
            raise
        progress.finish()

    def delete_object(self, bucket: str, key: str) -> None:
        if not key:
            raise AddressError("object key is empty", "delete", bucket)
        self._check_cancelled("delete", f"{bucket}/{key}")
        self.console.print(
            f"Deleting {bucket}/{key}...", markup=False, highlight=False
        )
        self.backend.remove_object(bucket, key)

    def presign_get(self, bucket: str, key: str, ttl: int) -> str:
        if not key or key.endswith("/"):
            raise AddressError("an object key is required", "presign", bucket)
        self.backend.stat_object(bucket, key)
        return self.backend.presign_get(bucket, key, ttl)

    def _check_cancelled(self, operation: str, target: str) -> None:
        if self.cancel.is_set():
            raise OperationCancelledError(operation, target)


def local_name(key: str) -> str:
    return posixpath.basename(key.rstrip("/"))


def discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
