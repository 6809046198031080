"""Memory — one flat user record persisted as JSON.

Layout:
    ~/.chatmate/memory/
    └── chatmate_memory.json           # {"name": ..., "tone": ..., "note": ...}

The record is owned by a single user; the last write wins.
"""
