"""
Note Editor.

State and actions of the create and edit screens: the text fields being
typed, the attachment upload, and the save action. Failures become
ErrorNotice events; the fields are never reset by a failure, so the user
can retry.

After a successful save the caller navigates back to the list, whose
focus trigger refreshes the collection.
"""

from modules.client.core.exceptions import (
    ApplicationError,
    AuthenticationAbsentError,
    MediaFailureError,
)
from modules.client.core.logging import get_logger
from modules.client.engine.media import (
    DEFAULT_KEY_PREFIX,
    MediaAttachment,
    MediaPicker,
    MediaUploader,
)
from modules.client.engine.sync import SyncController
from modules.client.events.signals import Signal
from modules.client.schemas.note import Note, NoteDraft
from modules.client.schemas.notice import ErrorNotice

logger = get_logger(__name__)


class NoteEditor:
    """Editor for a new note, or for an existing one when `note` is given."""

    def __init__(
        self,
        sync: SyncController,
        picker: MediaPicker,
        uploader: MediaUploader,
        note: Note | None = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ) -> None:
        self._sync = sync
        self.note = note
        self.title = note.title if note else ""
        self.content = note.content if note else ""
        self.media = MediaAttachment(
            picker,
            uploader,
            media_url=note.media_url if note else None,
            key_prefix=key_prefix,
        )
        self.error_raised = Signal("error_raised")

    @property
    def is_new(self) -> bool:
        return self.note is None

    @property
    def uploading(self) -> bool:
        return self.media.uploading

    def draft(self) -> NoteDraft:
        return NoteDraft(
            title=self.title,
            content=self.content,
            media_url=self.media.media_url,
        )

    async def attach_media(self) -> str | None:
        """
        Pick and upload an attachment.

        Returns:
            The new attachment URL, or None if nothing changed
        """
        try:
            return await self.media.pick_and_upload()
        except MediaFailureError as e:
            title = "Error picking media" if e.stage == "pick" else "Upload failed"
            self._report(title, e)
            return None

    async def save(self) -> bool:
        """
        Create or update the note.

        Returns:
            True on success; the caller then returns to the list
        """
        failure_title = "Save failed" if self.is_new else "Update failed"
        try:
            if self.is_new:
                await self._sync.create(self.draft())
            else:
                await self._sync.update(self.note.id, self.draft())
        except AuthenticationAbsentError as e:
            self._report("Error", e)
            return False
        except ApplicationError as e:
            self._report(failure_title, e)
            return False
        return True

    def _report(self, title: str, error: ApplicationError) -> None:
        logger.warning(
            title,
            extra={"code": error.code, "error": error.message, "note_id": self.note.id if self.note else None},
        )
        self.error_raised.emit(ErrorNotice.from_error(title, error))
