"""
Application Modules.

- client/: Notes sync engine, remote adapters, configuration and logging
- cli/: Command-line client (Typer + Rich)
"""
