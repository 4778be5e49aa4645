# authflow/infra/cloudinary/cloudinary_media_store.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import cloudinary.exceptions
import cloudinary.uploader

from authflow.services._shared.ports import MediaStore, MediaStoreError, UploadResult


@dataclass(slots=True)
class CloudinaryMediaStore(MediaStore):
    """
    Upload adapter over the Cloudinary SDK.

    Credentials travel with each call instead of the SDK's process-wide
    ``cloudinary.config()``, so two apps in one process can target different
    accounts. ``resource_type="auto"`` lets images and other media share one
    endpoint.

    :param cloud_name: Cloudinary cloud name.
    :param api_key: API key.
    :param api_secret: API secret (used by the SDK for signing, never sent).
    :param folder: Optional remote folder.
    :param timeout: Request timeout in seconds.
    """

    cloud_name: str
    api_key: str
    api_secret: str
    folder: str | None = None
    timeout: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def _options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "resource_type": "auto",
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
            "timeout": self.timeout,
        }
        if self.folder:
            options["folder"] = self.folder
        return options

    def upload(self, local_path: str) -> UploadResult:
        """
        Upload ``local_path`` and return its public URL.

        :raises MediaStoreError: On missing credentials, a rejected upload or
            a response without a URL.
        """
        if not self.configured:
            raise MediaStoreError("Media store credentials are not configured")

        try:
            result = cloudinary.uploader.upload(local_path, **self._options())
        except cloudinary.exceptions.Error as exc:
            raise MediaStoreError(f"Upload rejected: {exc}") from exc

        if not isinstance(result, Mapping):
            raise MediaStoreError("Upload response was not an object")
        url = result.get("secure_url") or result.get("url")
        if not url:
            raise MediaStoreError("Upload response did not include a URL")
        return UploadResult(url=str(url), public_id=str(result.get("public_id", "")))
