"""Infrastructure Layer — process-level concerns: logging and the server lifecycle.

Invariants:
    - Infrastructure never registers routes or touches request payloads
"""
