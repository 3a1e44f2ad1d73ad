"""
Notes List View Model.

UI-facing boundary of the list screen. Composes the collection store,
search state, selection engine and sync controller, re-derives the
filtered view whenever the store changes, and turns failures into
ErrorNotice events instead of exceptions.

Signals:
    notes_changed(notes)                   - store snapshot replaced
    search_results_changed(results, term)  - filtered view re-derived
    selection_changed(selected_ids, active)
    error_raised(notice)

Usage:
    vm = NotesListViewModel(remote)
    vm.search_results_changed.connect(render)
    await vm.mount()
    await vm.search("grocery")
"""

from collections.abc import Sequence

from modules.client.core.exceptions import ApplicationError
from modules.client.core.logging import get_logger, log_with_source
from modules.client.engine import search
from modules.client.engine.search import SearchState
from modules.client.engine.selection import SelectionEngine
from modules.client.engine.store import CollectionStore
from modules.client.engine.sync import SyncController
from modules.client.events.signals import Signal
from modules.client.remote.base import RemoteCollaborator
from modules.client.schemas.note import HighlightSpan, Note
from modules.client.schemas.notice import ErrorNotice

logger = get_logger(__name__)


class NotesListViewModel:
    """State and actions of the notes list screen."""

    def __init__(self, remote: RemoteCollaborator) -> None:
        self.store = CollectionStore()
        self.selection = SelectionEngine()
        self.search_state = SearchState()
        self.sync = SyncController(remote, self.store, self.selection)

        self.notes_changed = self.store.changed
        self.selection_changed = self.selection.changed
        self.search_results_changed = Signal("search_results_changed")
        self.error_raised = Signal("error_raised")

        self.store.changed.connect(self._on_notes_changed)
        self.sync.background_error.connect(self._on_background_error)

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def notes(self) -> tuple[Note, ...]:
        return self.store.current_notes()

    @property
    def visible_notes(self) -> tuple[Note, ...]:
        """Notes to render: the search results, or everything when unfiltered."""
        return self.search_state.results

    @property
    def term(self) -> str:
        return self.search_state.term

    @property
    def not_found(self) -> bool:
        return self.search_state.not_found

    @property
    def delete_mode(self) -> bool:
        return self.selection.active

    def highlight(self, text: str) -> list[HighlightSpan]:
        """Highlight fragments of text for the active term."""
        return search.highlight_spans(text, self.search_state.term)

    def _on_notes_changed(self, notes: Sequence[Note]) -> None:
        results = self.search_state.rederive(notes)
        self.search_results_changed.emit(results, self.search_state.term)

    def _on_background_error(self, error: ApplicationError) -> None:
        self._report("Refresh failed", error)

    def _report(self, title: str, error: ApplicationError) -> None:
        log_with_source(
            logger, "mobile", "warning", title,
            code=error.code, error=error.message,
        )
        self.error_raised.emit(ErrorNotice.from_error(title, error))

    # -------------------------------------------------------------------------
    # Lifecycle triggers
    # -------------------------------------------------------------------------

    async def mount(self) -> bool:
        """Initial load: refresh once and start listening for changes."""
        try:
            return await self.sync.start()
        except ApplicationError as e:
            self._report("Refresh failed", e)
            return False

    async def focus(self) -> bool:
        """The list became visible again: refresh."""
        try:
            return await self.sync.refresh()
        except ApplicationError as e:
            self._report("Refresh failed", e)
            return False

    async def unmount(self) -> None:
        await self.sync.stop()

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(self, term: str) -> tuple[Note, ...]:
        """Filter the list by term."""
        results = self.search_state.set_term(term, self.store.current_notes())
        logger.debug(
            "Search applied",
            extra={"term": term, "results": len(results)},
        )
        self.search_results_changed.emit(results, self.search_state.term)
        return results

    def clear_search(self) -> tuple[Note, ...]:
        """Drop the filter and show every note."""
        results = self.search_state.clear(self.store.current_notes())
        self.search_results_changed.emit(results, self.search_state.term)
        return results

    # -------------------------------------------------------------------------
    # Delete mode
    # -------------------------------------------------------------------------

    def toggle_delete_mode(self) -> bool:
        return self.selection.toggle_active()

    def cancel_delete_mode(self) -> None:
        self.selection.set_active(False)

    def tap(self, note_id: str) -> Note | None:
        """
        Handle a tap on a list row.

        Returns:
            The note to open for editing, or None when the tap toggled
            selection in delete-mode
        """
        if self.selection.active:
            self.selection.toggle(note_id)
            return None
        return self.store.get(note_id)

    async def delete_selected(self) -> bool:
        """
        Delete every selected note.

        Returns:
            True if the delete went through. A failing refresh afterwards
            is reported as "Refresh failed", not as a failed delete.
        """
        try:
            return await self.sync.delete_batch(self.selection.selected_list())
        except ApplicationError as e:
            self._report("Delete failed", e)
            return False
