"""Local-file intake for uploaded media.

The API layer stages multipart files on local disk; :class:`MediaIntake`
hands them to the configured :class:`MediaStore` and always removes the local
copy afterwards, whatever the outcome.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

from authflow.services._shared.ports import MediaStore

log = logging.getLogger(__name__)


def remove_local_file(path: str | None) -> None:
    """Delete ``path`` if it still exists; missing files are not an error."""
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError:
        log.warning("media.cleanup_failed path=%s", path, exc_info=True)


@contextmanager
def staged_file(path: str) -> Iterator[str]:
    """Yield ``path`` and unlink it when the block exits, on every exit path."""
    try:
        yield path
    finally:
        remove_local_file(path)


class MediaIntake:
    """
    Upload a staged local file and report the public URL, or ``None``.

    Any failure from the store is logged and downgraded to ``None`` so the
    caller decides policy (the avatar is mandatory, the cover is not).
    """

    def __init__(self, store: MediaStore) -> None:
        self.store = store

    def upload(self, local_path: str | None) -> str | None:
        """
        Upload ``local_path`` and delete the local copy.

        :param local_path: Staged file path, or ``None`` when nothing was sent.
        :returns: Public URL, or ``None`` when absent or when the upload failed.
        """
        if not local_path:
            return None
        with staged_file(local_path) as path:
            try:
                return self.store.upload(path).url
            except Exception:
                log.warning(
                    "media.upload_failed file=%s", os.path.basename(path), exc_info=True
                )
                return None

    def discard(self, *paths: str | None) -> None:
        """Remove staged files that will not be uploaded."""
        for path in paths:
            remove_local_file(path)
