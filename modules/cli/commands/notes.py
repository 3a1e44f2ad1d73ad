"""
Notes Commands.

List, search, create, edit and delete notes through the same view model
and editor a mobile screen would drive.
"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from modules.client.engine.editor import NoteEditor
from modules.client.engine.media import MediaUploader, PathMediaPicker
from modules.client.engine.view_model import NotesListViewModel
from modules.client.remote.base import RemoteCollaborator
from modules.client.schemas.note import HighlightSpan, MediaKind, Note
from modules.client.schemas.notice import ErrorNotice

if TYPE_CHECKING:
    from modules.client.remote.supabase import SupabaseClient

app = typer.Typer(help="Browse and edit notes")
console = Console()


@dataclass
class Backend:
    """Remote store and uploader a command works against."""

    remote: RemoteCollaborator
    uploader: MediaUploader
    key_prefix: str = "private"
    client: "SupabaseClient | None" = None

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


def _build_backend() -> Backend:
    """Hosted backend configured from remote.yaml and config/.env."""
    from modules.client.core.config import get_app_config
    from modules.client.remote.supabase import (
        SupabaseClient,
        SupabaseMediaUploader,
        SupabaseRemote,
    )

    remote_config = get_app_config().remote
    client = SupabaseClient.from_config()
    return Backend(
        remote=SupabaseRemote(client, table=remote_config.notes_table),
        uploader=SupabaseMediaUploader(client, bucket=remote_config.media_bucket),
        key_prefix=remote_config.media_key_prefix,
        client=client,
    )


def _print_notice(notice: ErrorNotice) -> None:
    console.print(f"[red]{notice.title}: {notice.message}[/red]")


def _highlighted(spans: list[HighlightSpan]) -> Text:
    text = Text()
    for span in spans:
        text.append(span.text, style="black on yellow" if span.matched else None)
    return text


def _media_label(note: Note) -> str:
    if note.media_kind is MediaKind.VIDEO:
        return "Video attached"
    if note.media_kind is MediaKind.IMAGE:
        return note.media_url or ""
    return ""


def _render(vm: NotesListViewModel) -> None:
    if vm.not_found:
        console.print("[bold dim]Keyword Not Found[/bold dim]")
        return

    table = Table(show_header=True, show_lines=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Content")
    table.add_column("Media", style="italic")
    table.add_column("Created", no_wrap=True)

    for note in vm.visible_notes:
        table.add_row(
            note.id,
            _highlighted(vm.highlight(note.title)),
            _highlighted(vm.highlight(note.content)),
            _media_label(note),
            note.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command("list")
def list_notes(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Only show notes containing this text"),
) -> None:
    """
    List your notes, newest first.

    Examples:
        cli.py notes list
        cli.py notes list -s grocery
    """
    ok = asyncio.run(_list(search))
    if not ok:
        raise typer.Exit(1)


async def _list(search: str | None) -> bool:
    backend = _build_backend()
    vm = NotesListViewModel(backend.remote)
    errors: list[ErrorNotice] = []
    vm.error_raised.connect(errors.append)
    vm.error_raised.connect(_print_notice)

    try:
        await vm.mount()
        if search:
            vm.search(search)
        if not errors:
            _render(vm)
    finally:
        await vm.unmount()
        await backend.close()
    return not errors


@app.command()
def create(
    title: str = typer.Option("", "--title", "-t", help="Note title"),
    content: str = typer.Option("", "--content", "-c", help="Note content"),
    media: Optional[str] = typer.Option(None, "--media", "-m", help="Image or video file to attach"),
) -> None:
    """
    Create a note, optionally with an image or video attachment.
    """
    ok = asyncio.run(_save(None, title, content, media))
    if not ok:
        raise typer.Exit(1)


@app.command()
def edit(
    note_id: str = typer.Argument(..., help="ID of the note to edit"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    content: Optional[str] = typer.Option(None, "--content", "-c", help="New content"),
    media: Optional[str] = typer.Option(None, "--media", "-m", help="Replace the attachment with this file"),
) -> None:
    """
    Edit an existing note. Fields not given keep their current value.
    """
    ok = asyncio.run(_save(note_id, title, content, media))
    if not ok:
        raise typer.Exit(1)


async def _save(
    note_id: str | None,
    title: str | None,
    content: str | None,
    media: str | None,
) -> bool:
    backend = _build_backend()
    vm = NotesListViewModel(backend.remote)
    errors: list[ErrorNotice] = []
    vm.error_raised.connect(errors.append)
    vm.error_raised.connect(_print_notice)

    try:
        note = None
        if note_id is not None:
            await vm.focus()
            if errors:
                return False
            note = vm.store.get(note_id)
            if note is None:
                console.print(f"[red]Note not found: {note_id}[/red]")
                return False

        editor = NoteEditor(
            vm.sync,
            PathMediaPicker(media),
            backend.uploader,
            note=note,
            key_prefix=backend.key_prefix,
        )
        editor.error_raised.connect(errors.append)
        editor.error_raised.connect(_print_notice)

        if title is not None:
            editor.title = title
        if content is not None:
            editor.content = content
        if media is not None:
            await editor.attach_media()
            if errors:
                return False

        if not await editor.save():
            return False
    finally:
        await vm.unmount()
        await backend.close()

    console.print("[green]Note saved[/green]" if note_id is None else "[green]Note updated[/green]")
    return True


@app.command()
def delete(
    note_ids: list[str] = typer.Argument(..., help="IDs of the notes to delete"),
) -> None:
    """
    Delete one or more notes in a single request.
    """
    ok = asyncio.run(_delete(note_ids))
    if not ok:
        raise typer.Exit(1)


async def _delete(note_ids: list[str]) -> bool:
    backend = _build_backend()
    vm = NotesListViewModel(backend.remote)
    errors: list[ErrorNotice] = []
    vm.error_raised.connect(errors.append)
    vm.error_raised.connect(_print_notice)

    try:
        vm.toggle_delete_mode()
        for note_id in dict.fromkeys(note_ids):
            vm.tap(note_id)
        await vm.delete_selected()
    finally:
        await vm.unmount()
        await backend.close()

    if errors:
        return False
    console.print(f"[green]Deleted {len(set(note_ids))} note(s)[/green]")
    return True
