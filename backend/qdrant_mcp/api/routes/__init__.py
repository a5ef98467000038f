"""Route Modules - one file per concern.

Invariants:
    - Each module defines its own APIRouter
    - Routes never contain tool logic (delegate to services)
"""
