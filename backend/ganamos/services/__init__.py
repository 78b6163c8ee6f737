"""Service Layer — database-backed operations shared by routes.

Invariants:
    - Services receive an AsyncSession; they never open their own
    - Domain failures raised as GanamosError subclasses, never HTTPException
"""
