"""Core Layer — pure helpers and the error hierarchy, no IO, no HTTP.

Invariants:
    - No module in core/ imports from api/, schemas/, or infrastructure/
"""
