import os
import stat
from collections.abc import Iterator

from s3ctl.core.address import join_key
from s3ctl.core.errors import PathError


def walk(root_dir: str, dest_prefix: str = "") -> Iterator[tuple[str, str]]:
    """
    Yields ``(absolute_path, object_key)`` for every regular file under
    ``root_dir``, directories and file names visited in sorted order.

    Raises:
        PathError: when ``root_dir`` is not a readable directory, or when a
            directory fails to read mid-walk. The remaining walk is abandoned.
    """
    try:
        info = os.stat(root_dir)
    except OSError as e:
        raise PathError(e.strerror or str(e), "walk", root_dir, cause=e) from e
    if not stat.S_ISDIR(info.st_mode):
        raise PathError("not a directory", operation="walk", target=root_dir)

    root = os.path.abspath(root_dir)

    def on_error(error: OSError) -> None:
        target = error.filename or root
        raise PathError(error.strerror or str(error), "walk", target, cause=error)

    for current, dirnames, filenames in os.walk(root, onerror=on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            path = os.path.join(current, filename)
            if not os.path.isfile(path):
                continue
            relative = os.path.relpath(path, root).replace(os.sep, "/")
            yield path, join_key(dest_prefix, relative)
