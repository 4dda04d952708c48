"""Route Modules — one file per concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Handlers read configuration only through the get_settings dependency
"""
