from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Protocol


class MediaStoreError(Exception):
    """Raised by a media store when an upload is rejected or unreachable."""


@dataclass(frozen=True, slots=True)
class UploadResult:
    """
    Outcome of a successful upload.

    :ivar url: Public URL of the stored asset.
    :ivar public_id: Store-side identifier (may be empty).
    """

    url: str
    public_id: str = ""


class MediaStore(Protocol):
    """
    Port for third-party binary media storage.

    Implementations read the local file and return where it is now served
    from. They do not delete the local file; cleanup belongs to the caller.
    """

    def upload(self, local_path: str) -> UploadResult: ...


@dataclass
class InMemoryMediaStore(MediaStore):
    """
    Media store double for unit tests.

    Records every uploaded path; set ``fail_paths`` (or ``fail_all``) to
    simulate a store outage for specific files.
    """

    base_url: str = "https://media.test/upload"
    uploaded: list[str] = field(default_factory=list)
    fail_paths: set[str] = field(default_factory=set)
    fail_all: bool = False

    def upload(self, local_path: str) -> UploadResult:
        if self.fail_all or local_path in self.fail_paths:
            raise MediaStoreError(f"Upload rejected for {os.path.basename(local_path)}")
        if not os.path.isfile(local_path):
            raise MediaStoreError(f"No such file: {local_path}")
        self.uploaded.append(local_path)
        name = os.path.basename(local_path)
        return UploadResult(url=f"{self.base_url}/{name}", public_id=name)
