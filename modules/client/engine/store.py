"""
Collection Store.

Holds the authoritative local copy of the signed-in owner's notes, newest
first. The collection is only ever replaced wholesale through replace_all;
there is no incremental patching, so there is nothing to merge.

Invariants after every replace_all:
    - ids are unique (first occurrence in the input wins)
    - notes are ordered by created_at descending
"""

from collections.abc import Iterable

from modules.client.core.logging import get_logger
from modules.client.events.signals import Signal
from modules.client.schemas.note import Note

logger = get_logger(__name__)


def order_notes(notes: Iterable[Note]) -> tuple[Note, ...]:
    """
    Deduplicate by id and sort newest first.

    The sort is stable, so notes sharing a created_at keep their input order.
    """
    seen: set[str] = set()
    unique: list[Note] = []
    for note in notes:
        if note.id in seen:
            continue
        seen.add(note.id)
        unique.append(note)
    unique.sort(key=lambda note: note.created_at, reverse=True)
    return tuple(unique)


class CollectionStore:
    """
    Local notes collection.

    Written only by the SyncController. Readers get immutable snapshots and
    subscribe to `changed` to learn that any derived view is stale.
    """

    def __init__(self) -> None:
        self._notes: tuple[Note, ...] = ()
        self.changed = Signal("notes_changed")

    def replace_all(self, notes: Iterable[Note]) -> tuple[Note, ...]:
        """
        Replace the whole collection.

        Args:
            notes: The owner's notes as fetched, in any order

        Returns:
            The new snapshot
        """
        incoming = list(notes)
        self._notes = order_notes(incoming)

        dropped = len(incoming) - len(self._notes)
        if dropped:
            logger.warning(
                "Duplicate note ids dropped",
                extra={"dropped": dropped},
            )

        self.changed.emit(self._notes)
        return self._notes

    def current_notes(self) -> tuple[Note, ...]:
        """Return the present snapshot."""
        return self._notes

    def get(self, note_id: str) -> Note | None:
        """Look up a note in the current snapshot."""
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def __len__(self) -> int:
        return len(self._notes)
