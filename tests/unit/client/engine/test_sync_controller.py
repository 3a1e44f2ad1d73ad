"""
Unit Tests for the Sync Controller.

The remote collaborator is mocked. Out-of-order completion is simulated
with futures resolved by the test in whatever order it needs.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from modules.client.core.exceptions import (
    AuthenticationAbsentError,
    RemoteFailureError,
)
from modules.client.schemas.note import NoteDraft


def _deferred_list_notes(mock_remote) -> list[asyncio.Future]:
    """Make every list_notes call wait on a future the test resolves."""
    futures: list[asyncio.Future] = []

    async def _list_notes(owner_id: str):
        future = asyncio.get_running_loop().create_future()
        futures.append(future)
        return await future

    mock_remote.list_notes = AsyncMock(side_effect=_list_notes)
    return futures


async def _until_called(futures: list, count: int) -> None:
    while len(futures) < count:
        await asyncio.sleep(0)


class TestRefresh:
    """Tests for the refresh operation."""

    @pytest.mark.asyncio
    async def test_refresh_replaces_store(self, controller, mock_remote, store, make_note):
        """Should fetch the owner's notes and apply them newest first."""
        older = make_note(id="1", minutes=1)
        newer = make_note(id="2", minutes=2)
        mock_remote.list_notes.return_value = [older, newer]

        applied = await controller.refresh()

        assert applied is True
        assert [n.id for n in store.current_notes()] == ["2", "1"]
        mock_remote.list_notes.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_refresh_signed_out_is_noop(self, controller, mock_remote, store, make_note):
        """Should skip the fetch entirely and leave the store alone."""
        store.replace_all([make_note(id="kept")])
        mock_remote.get_current_user.return_value = None

        applied = await controller.refresh()

        assert applied is False
        mock_remote.list_notes.assert_not_called()
        assert [n.id for n in store.current_notes()] == ["kept"]

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_store(self, controller, mock_remote, store, make_note):
        store.replace_all([make_note(id="kept")])
        mock_remote.list_notes.side_effect = RemoteFailureError("boom", status_code=500)

        with pytest.raises(RemoteFailureError):
            await controller.refresh()

        assert [n.id for n in store.current_notes()] == ["kept"]

    @pytest.mark.asyncio
    async def test_unexpected_errors_become_remote_failure(self, controller, mock_remote):
        mock_remote.list_notes.side_effect = ConnectionError("reset")

        with pytest.raises(RemoteFailureError) as exc_info:
            await controller.refresh()

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_drops_notes_of_other_owners(self, controller, mock_remote, store, make_note):
        mock_remote.list_notes.return_value = [
            make_note(id="mine"),
            make_note(id="theirs", owner_id="user-2"),
        ]

        await controller.refresh()

        assert [n.id for n in store.current_notes()] == ["mine"]

    @pytest.mark.asyncio
    async def test_tokens_increase_per_invocation(self, controller):
        await controller.refresh()
        first = controller.latest_token
        await controller.refresh()

        assert controller.latest_token == first + 1


class TestStaleRefresh:
    """Tests for discarding completions of superseded refreshes."""

    @pytest.mark.asyncio
    async def test_older_completion_after_newer_is_discarded(
        self, controller, mock_remote, store, make_note,
    ):
        """A refresh finishing after a newer one must not overwrite it."""
        futures = _deferred_list_notes(mock_remote)

        first = asyncio.create_task(controller.refresh())
        await _until_called(futures, 1)
        second = asyncio.create_task(controller.refresh())
        await _until_called(futures, 2)

        futures[1].set_result([make_note(id="new")])
        assert await second is True

        futures[0].set_result([make_note(id="old")])
        assert await first is False

        assert [n.id for n in store.current_notes()] == ["new"]

    @pytest.mark.asyncio
    async def test_older_completion_before_newer_is_also_discarded(
        self, controller, mock_remote, store, make_note,
    ):
        futures = _deferred_list_notes(mock_remote)

        first = asyncio.create_task(controller.refresh())
        await _until_called(futures, 1)
        second = asyncio.create_task(controller.refresh())
        await _until_called(futures, 2)

        futures[0].set_result([make_note(id="old")])
        assert await first is False
        assert store.current_notes() == ()

        futures[1].set_result([make_note(id="new")])
        assert await second is True
        assert [n.id for n in store.current_notes()] == ["new"]

    @pytest.mark.asyncio
    async def test_stale_failure_is_swallowed(self, controller, mock_remote, store, make_note):
        """A superseded refresh that fails should not raise."""
        futures = _deferred_list_notes(mock_remote)

        first = asyncio.create_task(controller.refresh())
        await _until_called(futures, 1)
        second = asyncio.create_task(controller.refresh())
        await _until_called(futures, 2)

        futures[0].set_exception(RemoteFailureError("late failure"))
        futures[1].set_result([make_note(id="fresh")])

        assert await first is False
        assert await second is True
        assert [n.id for n in store.current_notes()] == ["fresh"]


class TestChangeNotification:
    """Tests for start, stop and change-signal refreshes."""

    @pytest.mark.asyncio
    async def test_start_subscribes_and_refreshes(self, controller, mock_remote, make_note):
        mock_remote.list_notes.return_value = [make_note()]

        applied = await controller.start()

        assert applied is True
        assert controller.subscribed
        owner_id, callback = mock_remote.subscribe_to_changes.call_args.args
        assert owner_id == "user-1"
        assert callback == controller.notify_changed

    @pytest.mark.asyncio
    async def test_start_signed_out_does_not_subscribe(self, controller, mock_remote):
        mock_remote.get_current_user.return_value = None

        assert await controller.start() is False
        mock_remote.subscribe_to_changes.assert_not_called()
        assert not controller.subscribed

    @pytest.mark.asyncio
    async def test_start_twice_subscribes_once(self, controller, mock_remote):
        await controller.start()
        await controller.start()

        mock_remote.subscribe_to_changes.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, controller, mock_remote):
        unsubscribe = MagicMock()
        mock_remote.subscribe_to_changes.return_value = unsubscribe
        await controller.start()

        await controller.stop()

        unsubscribe.assert_called_once_with()
        assert not controller.subscribed

    @pytest.mark.asyncio
    async def test_notify_changed_schedules_refresh(self, controller, mock_remote, store, make_note):
        mock_remote.list_notes.return_value = [make_note(id="pushed")]

        controller.notify_changed()
        await controller.wait_pending()

        assert [n.id for n in store.current_notes()] == ["pushed"]

    @pytest.mark.asyncio
    async def test_signal_refresh_failure_goes_to_background_error(self, controller, mock_remote):
        mock_remote.list_notes.side_effect = RemoteFailureError("offline")
        handler = MagicMock()
        controller.background_error.connect(handler)

        controller.notify_changed()
        await controller.wait_pending()

        handler.assert_called_once()
        assert isinstance(handler.call_args.args[0], RemoteFailureError)

    @pytest.mark.asyncio
    async def test_signals_during_refresh_apply_only_latest(
        self, controller, mock_remote, store, make_note,
    ):
        futures = _deferred_list_notes(mock_remote)

        controller.notify_changed()
        controller.notify_changed()
        await _until_called(futures, 2)

        futures[1].set_result([make_note(id="latest")])
        futures[0].set_result([make_note(id="earlier")])
        await controller.wait_pending()

        assert [n.id for n in store.current_notes()] == ["latest"]


class TestWrites:
    """Tests for create and update."""

    @pytest.mark.asyncio
    async def test_create_inserts_for_owner(self, controller, mock_remote):
        draft = NoteDraft(title="Grocery", content="milk")

        await controller.create(draft)

        mock_remote.insert_note.assert_awaited_once_with("user-1", draft)

    @pytest.mark.asyncio
    async def test_create_without_user_raises(self, controller, mock_remote):
        mock_remote.get_current_user.return_value = None

        with pytest.raises(AuthenticationAbsentError):
            await controller.create(NoteDraft(title="x"))

        mock_remote.insert_note.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_does_not_touch_store(self, controller, store, make_note):
        store.replace_all([make_note(id="1")])

        await controller.create(NoteDraft(title="new"))

        assert [n.id for n in store.current_notes()] == ["1"]

    @pytest.mark.asyncio
    async def test_update_sends_draft(self, controller, mock_remote):
        draft = NoteDraft(title="t", content="c", media_url="https://cdn.test/a.jpg")

        await controller.update("42", draft)

        mock_remote.update_note.assert_awaited_once_with("42", draft)

    @pytest.mark.asyncio
    async def test_update_without_user_raises(self, controller, mock_remote):
        mock_remote.get_current_user.return_value = None

        with pytest.raises(AuthenticationAbsentError):
            await controller.update("42", NoteDraft())

        mock_remote.update_note.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_failure_propagates(self, controller, mock_remote):
        mock_remote.insert_note.side_effect = RemoteFailureError("rejected", status_code=400)

        with pytest.raises(RemoteFailureError, match="rejected"):
            await controller.create(NoteDraft())


class TestDeleteBatch:
    """Tests for batch delete."""

    @pytest.mark.asyncio
    async def test_empty_selection_is_noop(self, controller, mock_remote):
        assert await controller.delete_batch(frozenset()) is False
        mock_remote.delete_notes.assert_not_called()
        mock_remote.list_notes.assert_not_called()

    @pytest.mark.asyncio
    async def test_deletes_in_one_call_then_clears_and_refreshes(
        self, controller, mock_remote, selection, store, make_note,
    ):
        selection.set_active(True)
        selection.toggle("1")
        selection.toggle("2")
        mock_remote.list_notes.return_value = [make_note(id="3")]

        applied = await controller.delete_batch(selection.selected_list())

        assert applied is True
        mock_remote.delete_notes.assert_awaited_once_with(frozenset({"1", "2"}))
        assert len(selection) == 0
        assert not selection.active
        assert [n.id for n in store.current_notes()] == ["3"]

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_selection(self, controller, mock_remote, selection):
        selection.set_active(True)
        selection.toggle("1")
        mock_remote.delete_notes.side_effect = RemoteFailureError("nope")

        with pytest.raises(RemoteFailureError):
            await controller.delete_batch(selection.selected_list())

        assert selection.selected_list() == frozenset({"1"})
        assert selection.active
        mock_remote.list_notes.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_failure_after_delete_is_reported_separately(
        self, controller, mock_remote, selection, store, make_note,
    ):
        """A delete that went through should not be reported as failed."""
        store.replace_all([make_note(id="1"), make_note(id="2")])
        selection.set_active(True)
        selection.toggle("1")
        mock_remote.list_notes.side_effect = RuntimeError("boom")
        handler = MagicMock()
        controller.background_error.connect(handler)

        assert await controller.delete_batch(selection.selected_list()) is True

        mock_remote.delete_notes.assert_awaited_once_with(frozenset({"1"}))
        assert len(selection) == 0
        handler.assert_called_once()
        assert isinstance(handler.call_args.args[0], RemoteFailureError)
        assert [n.id for n in store.current_notes()] == ["2", "1"]
