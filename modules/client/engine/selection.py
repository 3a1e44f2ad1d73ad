"""
Selection Engine.

Tracks the ids picked for batch deletion and whether delete-mode is on.
Entering delete-mode keeps any existing selection; leaving it clears.
"""

from collections.abc import Hashable

from modules.client.events.signals import Signal


class SelectionEngine:
    """Transient set of selected note ids plus the delete-mode flag."""

    def __init__(self) -> None:
        self._selected: set[Hashable] = set()
        self._active = False
        self.changed = Signal("selection_changed")

    @property
    def active(self) -> bool:
        """Whether delete-mode is engaged."""
        return self._active

    def toggle(self, note_id: Hashable) -> bool:
        """
        Flip membership of an id.

        Ids not in the collection are accepted; they simply never render.

        Returns:
            True if the id is now selected
        """
        if note_id in self._selected:
            self._selected.discard(note_id)
            selected = False
        else:
            self._selected.add(note_id)
            selected = True
        self._emit()
        return selected

    def is_selected(self, note_id: Hashable) -> bool:
        return note_id in self._selected

    def clear(self) -> None:
        """Empty the selection and leave delete-mode."""
        if not self._selected and not self._active:
            return
        self._selected.clear()
        self._active = False
        self._emit()

    def set_active(self, active: bool) -> None:
        """Enter or leave delete-mode. Leaving clears the selection."""
        if not active:
            self.clear()
            return
        if self._active:
            return
        self._active = True
        self._emit()

    def toggle_active(self) -> bool:
        """Flip delete-mode, returning the new state."""
        self.set_active(not self._active)
        return self._active

    def selected_list(self) -> frozenset:
        """Materialize the selection for a delete request."""
        return frozenset(self._selected)

    def __len__(self) -> int:
        return len(self._selected)

    def _emit(self) -> None:
        self.changed.emit(self.selected_list(), self._active)
