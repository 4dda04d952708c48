"""App Server Package — minimal HTTP API server skeleton.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
