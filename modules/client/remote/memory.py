"""
In-Memory Remote.

Process-local implementation of the remote collaborator. Assigns ids and
creation timestamps the way the hosted store does and publishes a change
signal after every write. Used by the CLI tests and by callers that need no backend.
"""

from collections.abc import Iterable
from uuid import uuid4

from modules.client.core.exceptions import RemoteFailureError
from modules.client.core.logging import get_logger
from modules.client.core.utils import utc_now
from modules.client.remote.base import ChangeCallback, RemoteCollaborator, Unsubscribe
from modules.client.remote.feed import LocalChangeFeed
from modules.client.schemas.note import CurrentUser, Note, NoteDraft

logger = get_logger(__name__)


class InMemoryRemote(RemoteCollaborator):
    """Remote store kept in a dict, with a simple signed-in user slot."""

    def __init__(
        self,
        user_id: str | None = None,
        feed: LocalChangeFeed | None = None,
        notes: Iterable[Note] = (),
    ) -> None:
        self._rows: dict[str, Note] = {note.id: note for note in notes}
        self._user = CurrentUser(id=user_id) if user_id else None
        self.feed = feed or LocalChangeFeed()

    def sign_in(self, user_id: str) -> None:
        self._user = CurrentUser(id=user_id)

    def sign_out(self) -> None:
        self._user = None

    async def get_current_user(self) -> CurrentUser | None:
        return self._user

    async def list_notes(self, owner_id: str) -> list[Note]:
        owned = [note for note in self._rows.values() if note.owner_id == owner_id]
        owned.sort(key=lambda note: note.created_at, reverse=True)
        return owned

    async def insert_note(self, owner_id: str, draft: NoteDraft) -> None:
        note = Note(
            id=str(uuid4()),
            owner_id=owner_id,
            title=draft.title,
            content=draft.content,
            media_url=draft.media_url,
            created_at=utc_now(),
        )
        self._rows[note.id] = note
        logger.debug("Note inserted", extra={"note_id": note.id})
        self.feed.publish()

    async def update_note(self, note_id: str, draft: NoteDraft) -> None:
        existing = self._rows.get(note_id)
        if existing is None:
            raise RemoteFailureError(f"Note {note_id} not found", status_code=404)
        self._rows[note_id] = existing.model_copy(update=draft.model_dump())
        self.feed.publish()

    async def delete_notes(self, ids: Iterable[str]) -> None:
        removed = 0
        for note_id in ids:
            if self._rows.pop(note_id, None) is not None:
                removed += 1
        logger.debug("Notes deleted", extra={"removed": removed})
        self.feed.publish()

    def subscribe_to_changes(self, owner_id: str, on_change: ChangeCallback) -> Unsubscribe:
        return self.feed.subscribe(owner_id, on_change)
