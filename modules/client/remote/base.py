"""
Remote Collaborator Contract.

Abstract interface to the remote store. Only the SyncController calls it.

Implementations raise RemoteFailureError for any failure the backend
reports; anything else they let escape is wrapped by the caller.

Usage:
    class MyBackend(RemoteCollaborator):
        async def get_current_user(self) -> CurrentUser | None: ...
        async def list_notes(self, owner_id: str) -> list[Note]: ...
        ...
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from modules.client.schemas.note import CurrentUser, Note, NoteDraft

ChangeCallback = Callable[[], None]
Unsubscribe = Callable[[], None]


class RemoteCollaborator(ABC):
    """Contract to the backend owning notes, auth and change notification."""

    @abstractmethod
    async def get_current_user(self) -> CurrentUser | None:
        """Return the signed-in user, or None when signed out."""

    @abstractmethod
    async def list_notes(self, owner_id: str) -> list[Note]:
        """Fetch every note owned by owner_id, newest first."""

    @abstractmethod
    async def insert_note(self, owner_id: str, draft: NoteDraft) -> None:
        """Insert a new note owned by owner_id."""

    @abstractmethod
    async def update_note(self, note_id: str, draft: NoteDraft) -> None:
        """Overwrite the editable fields of a note."""

    @abstractmethod
    async def delete_notes(self, ids: Iterable[str]) -> None:
        """Delete every note whose id is in ids, in one request."""

    @abstractmethod
    def subscribe_to_changes(self, owner_id: str, on_change: ChangeCallback) -> Unsubscribe:
        """
        Register for payload-less "notes changed" signals.

        Signals are not guaranteed to be filtered by owner; receivers
        re-run their owner-scoped fetch.

        Returns:
            Callable that cancels the subscription
        """
