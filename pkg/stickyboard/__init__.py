# Sticky board: notes, stages, and drag-and-drop reconciliation
#
# Components:
#   schema.py      - Data model (Note, NoteDraft, Stage, NoteColor)
#   store.py       - SQLite persistence layer behind the REST API
#   client.py      - HTTP client for the REST API (Note Store interface)
#   reconciler.py  - Optimistic drag-and-drop state machine with resync
#   view.py        - Filter, sort, and stage grouping for rendering
#   preferences.py - Local display settings with subscriptions
#   config.py      - YAML/env configuration
