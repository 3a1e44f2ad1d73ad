"""
Unit Test Fixtures.

Fixtures for unit tests - the remote store and media collaborators are
mocked. Unit tests never touch the network.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from modules.client.engine.media import MediaPicker, MediaUploader
from modules.client.engine.selection import SelectionEngine
from modules.client.engine.store import CollectionStore
from modules.client.engine.sync import SyncController
from modules.client.remote.base import RemoteCollaborator
from modules.client.schemas.note import CurrentUser


# =============================================================================
# Remote Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_remote() -> MagicMock:
    """
    Mock remote collaborator signed in as "user-1" with no notes.

    Async methods are AsyncMocks; the subscription returns a MagicMock
    unsubscribe handle.

    Usage:
        def test_refresh(mock_remote, make_note):
            mock_remote.list_notes.return_value = [make_note()]
    """
    remote = MagicMock(spec=RemoteCollaborator)
    remote.get_current_user = AsyncMock(return_value=CurrentUser(id="user-1"))
    remote.list_notes = AsyncMock(return_value=[])
    remote.insert_note = AsyncMock(return_value=None)
    remote.update_note = AsyncMock(return_value=None)
    remote.delete_notes = AsyncMock(return_value=None)
    remote.subscribe_to_changes = MagicMock(return_value=MagicMock())
    return remote


@pytest.fixture
def store() -> CollectionStore:
    return CollectionStore()


@pytest.fixture
def selection() -> SelectionEngine:
    return SelectionEngine()


@pytest.fixture
def controller(mock_remote, store, selection) -> SyncController:
    """SyncController wired to the mock remote."""
    return SyncController(mock_remote, store, selection)


# =============================================================================
# Media Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_picker() -> MagicMock:
    """Picker that returns a local JPEG path."""
    picker = MagicMock(spec=MediaPicker)
    picker.pick = AsyncMock(return_value="/tmp/photo.jpg")
    return picker


@pytest.fixture
def mock_uploader() -> MagicMock:
    """Uploader that returns a public URL derived from the key."""
    uploader = MagicMock(spec=MediaUploader)

    async def _upload(local_ref: str, key: str, content_type: str) -> str:
        return f"https://cdn.test/notes-media/{key}"

    uploader.upload = AsyncMock(side_effect=_upload)
    return uploader
