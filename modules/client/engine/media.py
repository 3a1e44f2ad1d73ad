"""
Media Attachments.

Contracts for the device media picker and the upload collaborator, the
naming rules for uploaded objects, and MediaAttachment: the upload state a
create/edit screen holds while an attachment is picked and uploaded.

While an upload is in flight further picks are ignored. A failed pick or
upload raises MediaFailureError and leaves the previous attachment URL in
place, so nothing the user typed is lost.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path, PurePosixPath

from modules.client.core.exceptions import ApplicationError, MediaFailureError
from modules.client.core.logging import get_logger, log_with_source
from modules.client.core.utils import epoch_millis, utc_now
from modules.client.schemas.note import VIDEO_SUFFIX, MediaKind, media_kind

logger = get_logger(__name__)

DEFAULT_KEY_PREFIX = "private"
VIDEO_CONTENT_TYPE = "video/mp4"
IMAGE_CONTENT_TYPE = "image/jpeg"


def file_extension(local_ref: str) -> str:
    """Text after the last dot of a local reference, without the dot."""
    return local_ref.rsplit(".", 1)[-1]


def build_media_key(
    local_ref: str,
    now: datetime | None = None,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> str:
    """
    Destination key for an upload: <prefix>/<epoch-ms>.<ext>.

    Args:
        local_ref: Local path or URI of the picked file
        now: Upload time, defaults to the current UTC time
        prefix: Key prefix inside the bucket
    """
    moment = now or utc_now()
    return f"{prefix}/{epoch_millis(moment)}.{file_extension(local_ref)}"


def content_type_for(local_ref: str, video_suffix: str = VIDEO_SUFFIX) -> str:
    """Upload content type: video for the video suffix, JPEG otherwise."""
    if local_ref.endswith(video_suffix):
        return VIDEO_CONTENT_TYPE
    return IMAGE_CONTENT_TYPE


class MediaPicker(ABC):
    """Device media picker."""

    @abstractmethod
    async def pick(self) -> str | None:
        """Return a local reference to the picked file, or None if cancelled."""


class MediaUploader(ABC):
    """Object storage that turns a local file into a public URL."""

    @abstractmethod
    async def upload(self, local_ref: str, key: str, content_type: str) -> str:
        """
        Upload a local file under key.

        Returns:
            Publicly dereferenceable URL of the stored object

        Raises:
            MediaFailureError: If the upload fails
        """


class PathMediaPicker(MediaPicker):
    """Picker that hands back a preselected filesystem path."""

    def __init__(self, path: str | Path | None) -> None:
        self.path = Path(path) if path is not None else None

    async def pick(self) -> str | None:
        if self.path is None:
            return None
        if not self.path.is_file():
            raise MediaFailureError(f"No such file: {self.path}", stage="pick")
        return str(self.path)


async def read_local_file(local_ref: str) -> bytes:
    """Read a picked file without blocking the event loop."""
    path = Path(local_ref.removeprefix("file://"))
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise MediaFailureError(f"Could not read {PurePosixPath(path).name}: {e}") from e


class MediaAttachment:
    """
    Attachment state for a note being created or edited.

    Attributes:
        media_url: URL of the current attachment, None when there is none
        uploading: True while an upload is in flight
    """

    def __init__(
        self,
        picker: MediaPicker,
        uploader: MediaUploader,
        media_url: str | None = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        self._picker = picker
        self._uploader = uploader
        self._key_prefix = key_prefix
        self.media_url = media_url
        self.uploading = False

    @property
    def kind(self) -> MediaKind | None:
        return media_kind(self.media_url)

    async def pick_and_upload(self) -> str | None:
        """
        Pick a file and upload it, replacing the current attachment.

        Returns:
            The new attachment URL; None if the pick was cancelled or an
            upload is already in progress

        Raises:
            MediaFailureError: If picking or uploading fails
        """
        if self.uploading:
            log_with_source(logger, "media", "debug", "Pick ignored, upload in progress")
            return None

        try:
            local_ref = await self._picker.pick()
        except MediaFailureError:
            raise
        except Exception as e:
            raise MediaFailureError(str(e) or "Could not pick media", stage="pick") from e

        if local_ref is None:
            return None
        if not local_ref:
            raise MediaFailureError("No file URI!", stage="pick")

        return await self._upload(local_ref)

    async def _upload(self, local_ref: str) -> str:
        key = build_media_key(local_ref, prefix=self._key_prefix)
        self.uploading = True
        try:
            url = await self._uploader.upload(local_ref, key, content_type_for(local_ref))
        except ApplicationError as e:
            log_with_source(logger, "media", "error", "Upload failed", key=key, error=e.message)
            raise MediaFailureError(e.message) from e
        except Exception as e:
            log_with_source(logger, "media", "error", "Upload failed", key=key, error=str(e))
            raise MediaFailureError(str(e) or "Upload failed") from e
        finally:
            self.uploading = False

        self.media_url = url
        log_with_source(logger, "media", "info", "Upload complete", key=key)
        return url
