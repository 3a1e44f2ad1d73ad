"""
CLI Client Module.

Command-line front end for the notes engine, built with Typer and Rich.

Architecture:
- CLI is a thin presentation layer over NotesListViewModel and NoteEditor
- All state and sync logic lives in modules.client
- Talks to the hosted backend over httpx (SupabaseRemote)

Usage:
    python cli.py --help
    python cli.py notes list --search grocery
    python cli.py notes create --title "Groceries" --content "milk"
    python cli.py notes delete <id> <id>
"""
