"""Route Modules — one file per resource/concern.

Invariants:
    - Each module defines its own APIRouter with prefix and tags
    - Database-heavy logic lives in services/, pure rules in core/
"""
