"""Core Layer — availability, marketplace and Rye payload rules; no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Functions are deterministic over their inputs
"""
