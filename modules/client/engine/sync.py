"""
Sync Controller.

The only component that talks to the remote collaborator. It funnels the
three refresh triggers (initial mount, focus regained, remote change
signal) into full re-fetches applied through CollectionStore.replace_all,
and runs writes (create, update, batch delete).

Overlapping refreshes may complete out of order. Each refresh takes a
token from a monotonic counter when it is invoked; a completion is applied
only if its token is still the latest one issued, otherwise it is dropped.

Usage:
    controller = SyncController(remote, store, selection)
    await controller.start()        # initial refresh + change subscription
    await controller.refresh()      # focus regained
    await controller.delete_batch(selection.selected_list())
    await controller.stop()
"""

import asyncio
import itertools
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

from modules.client.core.exceptions import (
    ApplicationError,
    AuthenticationAbsentError,
    RemoteFailureError,
)
from modules.client.core.logging import get_logger, log_with_source
from modules.client.engine.selection import SelectionEngine
from modules.client.engine.store import CollectionStore
from modules.client.events.signals import Signal
from modules.client.remote.base import RemoteCollaborator, Unsubscribe
from modules.client.schemas.note import NoteDraft

logger = get_logger(__name__)

T = TypeVar("T")


class SyncController:
    """
    Coordinates refreshes and writes against the remote store.

    Failures of refreshes started by a change signal run detached from any
    caller, so they are reported on `background_error` instead of raised.
    """

    def __init__(
        self,
        remote: RemoteCollaborator,
        store: CollectionStore,
        selection: SelectionEngine,
    ) -> None:
        self._remote = remote
        self._store = store
        self._selection = selection
        self._tokens = itertools.count(1)
        self._latest_token = 0
        self._unsubscribe: Unsubscribe | None = None
        self._pending: set[asyncio.Task] = set()
        self.background_error = Signal("background_error")

    @property
    def latest_token(self) -> int:
        """Token of the most recently issued refresh."""
        return self._latest_token

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    async def _execute_remote_operation(self, operation: str, coro: Awaitable[T]) -> T:
        """
        Await a collaborator call, normalising failures.

        Raises:
            RemoteFailureError: For any failure of the call
        """
        try:
            return await coro
        except ApplicationError:
            raise
        except Exception as e:
            logger.error(
                "Remote operation failed",
                extra={"operation": operation, "error": str(e)},
            )
            raise RemoteFailureError(f"Remote operation failed: {operation}") from e

    async def _resolve_owner_id(self) -> str | None:
        user = await self._execute_remote_operation(
            "get_current_user", self._remote.get_current_user(),
        )
        return user.id if user is not None else None

    async def _require_owner_id(self) -> str:
        owner_id = await self._resolve_owner_id()
        if owner_id is None:
            raise AuthenticationAbsentError()
        return owner_id

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh(self) -> bool:
        """
        Re-fetch the owner's notes and replace the local collection.

        Returns:
            True if the fetched notes were applied; False when signed out
            or when a newer refresh was issued while this one was in flight

        Raises:
            RemoteFailureError: If the fetch failed and no newer refresh
                superseded it. The store is left untouched.
        """
        token = next(self._tokens)
        self._latest_token = token

        try:
            owner_id = await self._resolve_owner_id()
            if owner_id is None:
                log_with_source(
                    logger, "sync", "debug", "Refresh skipped, no signed-in owner",
                    token=token,
                )
                return False

            notes = await self._execute_remote_operation(
                "list_notes", self._remote.list_notes(owner_id),
            )
        except RemoteFailureError as e:
            if token != self._latest_token:
                log_with_source(
                    logger, "sync", "debug", "Stale refresh failure discarded",
                    token=token, latest=self._latest_token, error=e.message,
                )
                return False
            log_with_source(
                logger, "sync", "warning", "Refresh failed, keeping current notes",
                token=token, error=e.message,
            )
            raise

        if token != self._latest_token:
            log_with_source(
                logger, "sync", "debug", "Stale refresh discarded",
                token=token, latest=self._latest_token,
            )
            return False

        scoped = [note for note in notes if note.owner_id == owner_id]
        if len(scoped) != len(notes):
            logger.warning(
                "Dropped notes not owned by the signed-in user",
                extra={"dropped": len(notes) - len(scoped)},
            )

        self._store.replace_all(scoped)
        log_with_source(
            logger, "sync", "info", "Refresh applied",
            token=token, note_count=len(self._store),
        )
        return True

    # -------------------------------------------------------------------------
    # Change notification
    # -------------------------------------------------------------------------

    async def start(self) -> bool:
        """
        Initial mount: subscribe to change signals and refresh once.

        Subscribing needs an owner; when signed out only the (no-op)
        refresh runs.

        Returns:
            Result of the initial refresh
        """
        if self._unsubscribe is None:
            owner_id = await self._resolve_owner_id()
            if owner_id is not None:
                self._unsubscribe = self._remote.subscribe_to_changes(
                    owner_id, self.notify_changed,
                )
                log_with_source(
                    logger, "realtime", "info", "Subscribed to note changes",
                    owner_id=owner_id,
                )
        return await self.refresh()

    async def stop(self) -> None:
        """Cancel the change subscription and wait for signalled refreshes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            log_with_source(logger, "realtime", "info", "Unsubscribed from note changes")

        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def notify_changed(self) -> asyncio.Task:
        """
        Handle a payload-less change signal by scheduling a full refresh.

        Must be called from the event loop thread.

        Returns:
            The scheduled refresh task
        """
        log_with_source(logger, "realtime", "debug", "Change signal received")
        task = asyncio.get_running_loop().create_task(self._refresh_from_signal())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _refresh_from_signal(self) -> None:
        try:
            await self.refresh()
        except ApplicationError as e:
            self.background_error.emit(e)

    async def wait_pending(self) -> None:
        """Wait until every signalled refresh has settled."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, draft: NoteDraft) -> None:
        """
        Insert a new note for the signed-in owner.

        The local collection is not touched; the list view refreshes when
        it regains focus, and the change signal triggers one too.

        Raises:
            AuthenticationAbsentError: If nobody is signed in
            RemoteFailureError: If the insert fails
        """
        owner_id = await self._require_owner_id()
        logger.info(
            "Creating note",
            extra={"owner_id": owner_id, "has_media": draft.media_url is not None},
        )
        await self._execute_remote_operation(
            "insert_note", self._remote.insert_note(owner_id, draft),
        )

    async def update(self, note_id: str, draft: NoteDraft) -> None:
        """
        Overwrite a note's editable fields.

        Raises:
            AuthenticationAbsentError: If nobody is signed in
            RemoteFailureError: If the update fails
        """
        await self._require_owner_id()
        logger.info("Updating note", extra={"note_id": note_id})
        await self._execute_remote_operation(
            "update_note", self._remote.update_note(note_id, draft),
        )

    async def delete_batch(self, ids: Iterable[Any]) -> bool:
        """
        Delete the given notes in one request, then reset selection and refresh.

        An empty id set is a no-op. Once the delete has gone through, a
        failing follow-up refresh is reported on `background_error`; the
        delete itself still counts as done.

        Returns:
            False for an empty id set, True once the delete went through

        Raises:
            RemoteFailureError: If the delete fails. The selection is kept
                for a retry.
        """
        id_set = frozenset(ids)
        if not id_set:
            logger.debug("Delete requested with empty selection")
            return False

        logger.info("Deleting notes", extra={"count": len(id_set)})
        await self._execute_remote_operation(
            "delete_notes", self._remote.delete_notes(id_set),
        )

        self._selection.clear()
        try:
            await self.refresh()
        except ApplicationError as e:
            self.background_error.emit(e)
        return True
