"""
Notes Engine.

Components, leaf-first:
    store.CollectionStore       - authoritative local copy, single writer
    search                      - pure filter and highlight functions, SearchState
    selection.SelectionEngine   - batch-delete selection and delete-mode
    sync.SyncController         - refresh triggers and writes against the remote store
    media.MediaAttachment       - attachment pick/upload state
    view_model.NotesListViewModel, editor.NoteEditor - UI-facing boundary
"""
